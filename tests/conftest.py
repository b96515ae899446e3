"""
Pytest configuration and shared fixtures for pg-schema-mcp tests.
"""

import logging
import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pg_schema_mcp.config.loader import ServerConfig
from pg_schema_mcp.database.connection import DatabaseManager
from pg_schema_mcp.database.migrations import (
    MigrationKind,
    MigrationManager,
    MigrationStore,
)
from pg_schema_mcp.server.context import ServerContext


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep PG_SCHEMA_MCP_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("PG_SCHEMA_MCP_"):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI commands reconfigure the root logger; undo that after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def migrations_dir(tmp_path) -> Path:
    return tmp_path / "migrations"


@pytest.fixture
def store(migrations_dir) -> MigrationStore:
    migration_store = MigrationStore(migrations_dir)
    migration_store.ensure_initialized()
    return migration_store


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def database(database_url):
    manager = DatabaseManager(database_url=database_url)
    yield manager
    manager.close()


@pytest.fixture
def manager(database, store) -> MigrationManager:
    return MigrationManager(database, store)


@pytest.fixture
def mock_database():
    """Database double whose acquire_connection() yields a mock connection."""
    database = MagicMock(spec=DatabaseManager)
    database.acquire_connection.return_value.__enter__.return_value = MagicMock()
    return database


@pytest.fixture
def server_context(tmp_path, database_url):
    config = ServerConfig(database_url=database_url, working_dir=str(tmp_path))
    context = ServerContext.from_config(config)
    yield context
    context.close()


@pytest.fixture
def record_factory(manager):
    """Build and store records without touching the database."""

    def _create(sql: str, kind: MigrationKind = MigrationKind.TABLE, **kwargs):
        record = manager.new_record(kind, sql, **kwargs)
        manager.store.append(record)
        return record

    return _create
