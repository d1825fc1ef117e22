"""Application wiring for the domain services."""
