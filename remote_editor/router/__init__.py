"""Operation routing."""
