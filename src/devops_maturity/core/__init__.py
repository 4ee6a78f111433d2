"""Core domain layer: catalog, scoring, permissions and lifecycle services."""
