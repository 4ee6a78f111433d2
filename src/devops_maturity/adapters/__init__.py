"""Adapters for storage, catalog files, password hashing and background tasks."""
