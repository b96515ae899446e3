"""pg-schema-mcp: a tool server for PostgreSQL schema changes with replayable migrations."""

__version__ = "0.1.0"

__all__ = ["__version__"]
