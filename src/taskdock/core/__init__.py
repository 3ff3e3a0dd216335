"""Entities, ports and the application-scoped context."""
