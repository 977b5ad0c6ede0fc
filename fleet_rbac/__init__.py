"""Role-based access control core for a multi-tenant rental fleet backend."""
