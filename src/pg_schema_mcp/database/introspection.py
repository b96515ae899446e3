"""Read-only schema introspection used for the table resources."""

from typing import Any

from sqlalchemy import inspect

from .connection import DatabaseManager


def default_schema(database: DatabaseManager) -> str | None:
    return "public" if database.is_postgres else None


def list_tables(database: DatabaseManager, schema: str | None = None) -> list[str]:
    """Names of the tables in ``schema`` (``public`` on PostgreSQL)."""
    inspector = inspect(database.engine)
    return inspector.get_table_names(schema=schema or default_schema(database))


def get_table_schema(
    database: DatabaseManager, table_name: str, schema: str | None = None
) -> list[dict[str, Any]]:
    """Column names and types of one table."""
    inspector = inspect(database.engine)
    columns = inspector.get_columns(table_name, schema=schema or default_schema(database))
    return [
        {"column_name": column["name"], "data_type": str(column["type"])}
        for column in columns
    ]
