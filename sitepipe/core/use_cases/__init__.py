"""Use cases — operations the CLI composes from core services."""
