"""Tests for the tool handlers and the MCP server wiring."""

import json
from datetime import date

import pytest
from mcp import types
from sqlalchemy import inspect

from pg_schema_mcp.config.loader import ServerConfig
from pg_schema_mcp.database.migrations import MigrationNotFoundError, UnsupportedKindError
from pg_schema_mcp.server.app import create_server, to_json
from pg_schema_mcp.server.context import ServerContext
from pg_schema_mcp.server.tools import (
    TOOLS,
    ToolHandlers,
    parse_schema_resource_uri,
    schema_resource_uri,
)
from pg_schema_mcp.utils.logging import ConfigurationError, ExecutionFailureError

TASKS_TABLE = {
    "tableName": "tasks",
    "columns": [
        {"name": "id", "type": "INTEGER", "constraints": "PRIMARY KEY"},
        {"name": "title", "type": "TEXT", "constraints": "NOT NULL"},
    ],
}


@pytest.fixture
def handlers(server_context):
    return ToolHandlers(server_context)


class TestResourceUris:
    def test_round_trip(self):
        assert parse_schema_resource_uri(schema_resource_uri("tasks")) == "tasks"

    @pytest.mark.parametrize(
        "uri", ["postgres://tasks/columns", "postgres://schema", "postgres:///"]
    )
    def test_rejects_other_uris(self, uri):
        with pytest.raises(ValueError, match="Invalid resource URI"):
            parse_schema_resource_uri(uri)


class TestServerContext:
    def test_requires_database_url(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ServerContext.from_config(ServerConfig(working_dir=str(tmp_path)))

    def test_initializes_migrations_dir(self, server_context, tmp_path):
        assert (tmp_path / "migrations" / "metadata.json").exists()


class TestToolHandlers:
    def test_every_tool_has_a_handler(self, handlers):
        for tool in TOOLS:
            assert tool.name in handlers._handlers

    def test_unknown_tool(self, handlers):
        with pytest.raises(ValueError, match="Unknown tool: dropDatabase"):
            handlers.call("dropDatabase", {})

    def test_create_table_records_migration(self, handlers, server_context):
        result = handlers.call("createTable", TASKS_TABLE)

        assert result["message"] == "Table created successfully"
        assert result["sql"] == (
            "CREATE TABLE tasks (id INTEGER PRIMARY KEY, title TEXT NOT NULL)"
        )
        [record] = server_context.migrations.list_migrations()
        assert result["migration"] == {"id": record.id, "name": record.name}
        assert record.description == "Create table tasks"
        assert inspect(server_context.database.engine).has_table("tasks")

    def test_data_tools(self, handlers):
        handlers.call("createTable", TASKS_TABLE)

        inserted = handlers.call("insert", {"table": "tasks", "data": {"title": "first"}})
        assert inserted["command"] == "INSERT"
        assert inserted["rows"] == [{"id": 1, "title": "first"}]

        handlers.call(
            "update", {"table": "tasks", "data": {"title": "renamed"}, "where": "id = 1"}
        )
        assert handlers.call("query", {"sql": "SELECT title FROM tasks"}) == [
            {"title": "renamed"}
        ]

        handlers.call("delete", {"table": "tasks", "where": "id = 1"})
        assert handlers.call("query", {"sql": "SELECT * FROM tasks"}) == []

    def test_execute_error_is_verbatim(self, handlers):
        with pytest.raises(ExecutionFailureError, match="no such table: ghosts"):
            handlers.call("execute", {"sql": "DELETE FROM ghosts"})

    def test_list_and_revert(self, handlers, server_context):
        created = handlers.call("createTable", TASKS_TABLE)

        [listed] = handlers.call("listMigrations", {})
        assert listed["id"] == created["migration"]["id"]
        assert listed["type"] == "table"
        assert listed["status"] == "applied"

        reverted = handlers.call("revertMigration", {})
        assert reverted["message"] == "Migration reverted successfully"
        assert reverted["revertSql"] == "DROP TABLE IF EXISTS tasks"
        assert reverted["revertedMigration"]["id"] == listed["id"]
        assert handlers.call("listMigrations", {}) == []
        assert not inspect(server_context.database.engine).has_table("tasks")

    def test_revert_with_nothing_recorded(self, handlers):
        with pytest.raises(MigrationNotFoundError):
            handlers.call("revertMigration", {})

    def test_alter_revert_needs_inverse(self, handlers):
        handlers.call("createTable", TASKS_TABLE)
        handlers.call(
            "alterTable",
            {"tableName": "tasks", "operation": "ADD COLUMN", "details": "done BOOLEAN"},
        )

        with pytest.raises(UnsupportedKindError):
            handlers.call("revertMigration", {})

    def test_alter_revert_with_inverse(self, handlers):
        handlers.call("createTable", TASKS_TABLE)
        handlers.call(
            "alterTable",
            {
                "tableName": "tasks",
                "operation": "RENAME TO",
                "details": "todo",
                "revertSql": "ALTER TABLE todo RENAME TO tasks",
            },
        )

        result = handlers.call("revertMigration", {})

        assert result["revertSql"] == "ALTER TABLE todo RENAME TO tasks"
        assert handlers.call("query", {"sql": "SELECT COUNT(*) AS n FROM tasks"}) == [
            {"n": 0}
        ]

    def test_apply_migrations_skips_applied(self, handlers):
        handlers.call("createTable", TASKS_TABLE)

        result = handlers.call("applyMigrations", {})

        assert result == {"message": "Migrations applied successfully", "applied": []}

    def test_verify_migrations(self, handlers, server_context):
        handlers.call("createTable", TASKS_TABLE)
        assert handlers.call("verifyMigrations", {}) == {"valid": True, "issues": []}

        [record] = server_context.migrations.list_migrations()
        server_context.migrations.store.sql_file_path(record.id).write_text("-- gone\n\nSELECT 1\n")

        result = handlers.call("verifyMigrations", {})
        assert result["valid"] is False
        assert result["issues"][0]["migrationId"] == record.id

    def test_table_resources(self, handlers):
        handlers.call("createTable", TASKS_TABLE)

        assert handlers.list_table_resources() == ["tasks"]
        columns = handlers.read_table_resource("postgres://tasks/schema")
        assert [c["column_name"] for c in columns] == ["id", "title"]
        assert columns[1]["data_type"] == "TEXT"


class TestServer:
    @pytest.mark.asyncio
    async def test_lists_tools(self, server_context):
        server = create_server(server_context)
        handler = server.request_handlers[types.ListToolsRequest]

        result = await handler(types.ListToolsRequest(method="tools/list"))

        names = [tool.name for tool in result.root.tools]
        assert "createTable" in names
        assert "revertMigration" in names
        assert len(names) == len(TOOLS)

    @pytest.mark.asyncio
    async def test_lists_table_resources(self, server_context):
        server_context.database.execute("CREATE TABLE tasks (id INTEGER)")
        server = create_server(server_context)
        handler = server.request_handlers[types.ListResourcesRequest]

        result = await handler(types.ListResourcesRequest(method="resources/list"))

        [resource] = result.root.resources
        assert str(resource.uri) == "postgres://tasks/schema"
        assert resource.mimeType == "application/json"

    def test_json_output_handles_non_json_types(self):
        assert json.loads(to_json({"when": date(2024, 1, 2)})) == {"when": "2024-01-02"}
