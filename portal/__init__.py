"""Service portal backend."""
