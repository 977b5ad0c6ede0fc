"""Infrastructure: persistence, cache and token verification."""
