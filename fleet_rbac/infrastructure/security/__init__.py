"""Bearer token handling."""
