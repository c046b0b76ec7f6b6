"""Infrastructure adapters (database, CSV exports)."""
