"""Domain layer: permission catalog, role kinds, entities and exceptions."""
