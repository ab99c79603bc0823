"""Shared FastAPI service scaffolding."""
