"""Tool definitions and their synchronous handlers."""

from collections.abc import Callable
from typing import Any
from urllib.parse import urlparse

from mcp.types import Tool

from ..database import schema
from ..database.introspection import get_table_schema, list_tables
from ..database.migrations import MigrationKind
from ..utils.logging import LogContext, get_logger
from .context import ServerContext

logger = get_logger(__name__, LogContext.TOOL)

_OBJECT = "object"

TOOLS = [
    Tool(
        name="query",
        description="Run a read-only SQL query",
        inputSchema={
            "type": _OBJECT,
            "properties": {"sql": {"type": "string"}},
            "required": ["sql"],
        },
    ),
    Tool(
        name="execute",
        description="Execute a SQL statement that modifies data (INSERT, UPDATE, DELETE)",
        inputSchema={
            "type": _OBJECT,
            "properties": {"sql": {"type": "string"}},
            "required": ["sql"],
        },
    ),
    Tool(
        name="insert",
        description="Insert a new record into a table",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "table": {"type": "string"},
                "data": {"type": "object", "additionalProperties": True},
            },
            "required": ["table", "data"],
        },
    ),
    Tool(
        name="update",
        description="Update records in a table",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "table": {"type": "string"},
                "data": {"type": "object", "additionalProperties": True},
                "where": {"type": "string"},
            },
            "required": ["table", "data", "where"],
        },
    ),
    Tool(
        name="delete",
        description="Delete records from a table",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "table": {"type": "string"},
                "where": {"type": "string"},
            },
            "required": ["table", "where"],
        },
    ),
    Tool(
        name="createTable",
        description="Create a new table with specified columns and constraints",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "tableName": {"type": "string"},
                "columns": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "type": {"type": "string"},
                            "constraints": {
                                "type": "string",
                                "description": "Optional constraints like NOT NULL, UNIQUE, etc.",
                            },
                        },
                        "required": ["name", "type"],
                    },
                },
                "constraints": {
                    "type": "array",
                    "items": {
                        "type": "string",
                        "description": "Table-level constraints like PRIMARY KEY, FOREIGN KEY, etc.",
                    },
                },
            },
            "required": ["tableName", "columns"],
        },
    ),
    Tool(
        name="createFunction",
        description="Create a PostgreSQL function/procedure",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "name": {"type": "string"},
                "parameters": {"type": "string"},
                "returnType": {"type": "string"},
                "language": {"type": "string", "description": "plpgsql, sql, etc."},
                "body": {"type": "string"},
                "options": {
                    "type": "string",
                    "description": "Additional function options",
                },
            },
            "required": ["name", "parameters", "returnType", "language", "body"],
        },
    ),
    Tool(
        name="createTrigger",
        description="Create a trigger on a table",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "name": {"type": "string"},
                "tableName": {"type": "string"},
                "functionName": {"type": "string"},
                "when": {"type": "string", "description": "BEFORE, AFTER, or INSTEAD OF"},
                "events": {
                    "type": "array",
                    "items": {"type": "string", "description": "INSERT, UPDATE, DELETE"},
                },
                "forEach": {"type": "string", "description": "ROW or STATEMENT"},
                "condition": {"type": "string", "description": "Optional WHEN condition"},
            },
            "required": ["name", "tableName", "functionName", "when", "events", "forEach"],
        },
    ),
    Tool(
        name="createIndex",
        description="Create an index on a table",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "tableName": {"type": "string"},
                "indexName": {"type": "string"},
                "columns": {"type": "array", "items": {"type": "string"}},
                "unique": {"type": "boolean"},
                "type": {"type": "string", "description": "BTREE, HASH, GIN, GIST, etc."},
                "where": {"type": "string", "description": "Optional condition"},
            },
            "required": ["tableName", "indexName", "columns"],
        },
    ),
    Tool(
        name="alterTable",
        description="Alter a table structure",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "tableName": {"type": "string"},
                "operation": {
                    "type": "string",
                    "description": "ADD COLUMN, DROP COLUMN, ALTER COLUMN, etc.",
                },
                "details": {
                    "type": "string",
                    "description": "Specific details for the operation",
                },
                "revertSql": {
                    "type": "string",
                    "description": "Optional: statement that undoes this change, used by revertMigration",
                },
            },
            "required": ["tableName", "operation", "details"],
        },
    ),
    Tool(
        name="listMigrations",
        description="List all database migrations",
        inputSchema={"type": _OBJECT, "properties": {}},
    ),
    Tool(
        name="applyMigrations",
        description="Apply pending migrations to the database",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "fromId": {
                    "type": "string",
                    "description": "Optional: Start applying from this migration ID",
                },
                "force": {
                    "type": "boolean",
                    "description": "Optional: Re-apply migrations already marked applied",
                },
            },
        },
    ),
    Tool(
        name="revertMigration",
        description="Revert the last applied migration",
        inputSchema={
            "type": _OBJECT,
            "properties": {
                "migrationId": {
                    "type": "string",
                    "description": "Optional: Revert this specific migration. If not provided, reverts the last one",
                },
            },
        },
    ),
    Tool(
        name="verifyMigrations",
        description="Check every migration's SQL against its recorded checksum",
        inputSchema={"type": _OBJECT, "properties": {}},
    ),
]


def schema_resource_uri(table_name: str) -> str:
    return f"postgres://{table_name}/schema"


def parse_schema_resource_uri(uri: str) -> str:
    """Return the table name from ``postgres://<table>/schema``.

    Raises:
        ValueError: If the URI does not point at a table schema.
    """
    parsed = urlparse(uri)
    segments = [s for s in [parsed.netloc, *parsed.path.split("/")] if s]
    if len(segments) < 2 or segments[-1] != "schema":
        raise ValueError("Invalid resource URI")
    return segments[-2]


class ToolHandlers:
    """Runs tool calls against a :class:`ServerContext`.

    Handlers block on database and file I/O; the server runs them in a
    worker thread.
    """

    def __init__(self, context: ServerContext) -> None:
        self.context = context
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "query": self.query,
            "execute": self.execute,
            "insert": self.insert,
            "update": self.update,
            "delete": self.delete,
            "createTable": self.create_table,
            "createFunction": self.create_function,
            "createTrigger": self.create_trigger,
            "createIndex": self.create_index,
            "alterTable": self.alter_table,
            "listMigrations": self.list_migrations,
            "applyMigrations": self.apply_migrations,
            "revertMigration": self.revert_migration,
            "verifyMigrations": self.verify_migrations,
        }

    def call(self, name: str, arguments: dict[str, Any] | None) -> Any:
        handler = self._handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")

        logger.debug("Tool call", tool=name)
        return handler(arguments or {})

    def query(self, arguments: dict[str, Any]) -> Any:
        return self.context.database.query(arguments["sql"])

    def execute(self, arguments: dict[str, Any]) -> Any:
        return self.context.database.execute(arguments["sql"])

    def insert(self, arguments: dict[str, Any]) -> Any:
        sql, params = schema.insert_sql(arguments["table"], arguments["data"])
        return self.context.database.execute(sql, params)

    def update(self, arguments: dict[str, Any]) -> Any:
        sql, params = schema.update_sql(
            arguments["table"], arguments["data"], arguments["where"]
        )
        return self.context.database.execute(sql, params)

    def delete(self, arguments: dict[str, Any]) -> Any:
        sql = schema.delete_sql(arguments["table"], arguments["where"])
        return self.context.database.execute(sql)

    def _record_schema_change(
        self,
        kind: MigrationKind,
        params: Any,
        sql: str,
        description: str,
        message: str,
    ) -> dict[str, Any]:
        record = self.context.migrations.create_and_apply(
            kind, sql, description, revert=schema.revert_plan_for(params)
        )
        return {"message": message, "sql": sql, "migration": record.summary()}

    def create_table(self, arguments: dict[str, Any]) -> dict[str, Any]:
        params = schema.CreateTableParams.model_validate(arguments)
        return self._record_schema_change(
            MigrationKind.TABLE,
            params,
            schema.create_table_sql(params),
            f"Create table {params.tableName}",
            "Table created successfully",
        )

    def create_function(self, arguments: dict[str, Any]) -> dict[str, Any]:
        params = schema.CreateFunctionParams.model_validate(arguments)
        return self._record_schema_change(
            MigrationKind.FUNCTION,
            params,
            schema.create_function_sql(params),
            f"Create function {params.name}",
            "Function created successfully",
        )

    def create_trigger(self, arguments: dict[str, Any]) -> dict[str, Any]:
        params = schema.CreateTriggerParams.model_validate(arguments)
        return self._record_schema_change(
            MigrationKind.TRIGGER,
            params,
            schema.create_trigger_sql(params),
            f"Create trigger {params.name}",
            "Trigger created successfully",
        )

    def create_index(self, arguments: dict[str, Any]) -> dict[str, Any]:
        params = schema.CreateIndexParams.model_validate(arguments)
        return self._record_schema_change(
            MigrationKind.INDEX,
            params,
            schema.create_index_sql(params),
            f"Create index {params.indexName}",
            "Index created successfully",
        )

    def alter_table(self, arguments: dict[str, Any]) -> dict[str, Any]:
        params = schema.AlterTableParams.model_validate(arguments)
        return self._record_schema_change(
            MigrationKind.ALTER,
            params,
            schema.alter_table_sql(params),
            f"Alter table {params.tableName}",
            "Table altered successfully",
        )

    def list_migrations(self, arguments: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            record.to_index_entry()
            for record in self.context.migrations.list_migrations()
        ]

    def apply_migrations(self, arguments: dict[str, Any]) -> dict[str, Any]:
        applied = self.context.migrations.apply_pending(
            from_id=arguments.get("fromId"), force=bool(arguments.get("force", False))
        )
        return {
            "message": "Migrations applied successfully",
            "applied": [
                {"id": record.id, "name": record.name, "sql": record.sql}
                for record in applied
            ],
        }

    def revert_migration(self, arguments: dict[str, Any]) -> dict[str, Any]:
        result = self.context.migrations.revert(arguments.get("migrationId"))
        return {
            "message": "Migration reverted successfully",
            "revertedMigration": result.reverted.to_index_entry(),
            "revertSql": result.revert_sql,
        }

    def verify_migrations(self, arguments: dict[str, Any]) -> dict[str, Any]:
        issues = self.context.migrations.verify_integrity()
        return {
            "valid": not issues,
            "issues": [
                {"migrationId": issue.migration_id, "problem": issue.problem}
                for issue in issues
            ],
        }

    def list_table_resources(self) -> list[str]:
        return list_tables(self.context.database)

    def read_table_resource(self, uri: str) -> list[dict[str, Any]]:
        return get_table_schema(self.context.database, parse_schema_resource_uri(uri))
