"""SQL builders for schema and data tools.

Builders are pure: they format SQL from validated parameters and never
touch the database.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from .migrations.migration import MigrationKind, RevertPlan


class ColumnDefinition(BaseModel):
    name: str
    type: str
    constraints: str | None = None


class CreateTableParams(BaseModel):
    tableName: str
    columns: list[ColumnDefinition] = Field(min_length=1)
    constraints: list[str] | None = None


class CreateFunctionParams(BaseModel):
    name: str
    parameters: str
    returnType: str
    language: str
    body: str
    options: str | None = None


class CreateTriggerParams(BaseModel):
    name: str
    tableName: str
    functionName: str
    when: Literal["BEFORE", "AFTER", "INSTEAD OF"]
    events: list[Literal["INSERT", "UPDATE", "DELETE", "TRUNCATE"]] = Field(
        min_length=1
    )
    forEach: Literal["ROW", "STATEMENT"]
    condition: str | None = None


class CreateIndexParams(BaseModel):
    tableName: str
    indexName: str
    columns: list[str] = Field(min_length=1)
    unique: bool = False
    type: str | None = None
    where: str | None = None


class AlterTableParams(BaseModel):
    tableName: str
    operation: str
    details: str
    revertSql: str | None = Field(
        default=None, description="Statement that undoes this change"
    )


def create_table_sql(params: CreateTableParams) -> str:
    column_definitions = ", ".join(
        f"{col.name} {col.type}" + (f" {col.constraints}" if col.constraints else "")
        for col in params.columns
    )
    table_constraints = (
        ", " + ", ".join(params.constraints) if params.constraints else ""
    )
    return f"CREATE TABLE {params.tableName} ({column_definitions}{table_constraints})"


def create_function_sql(params: CreateFunctionParams) -> str:
    lines = [
        f"CREATE OR REPLACE FUNCTION {params.name}({params.parameters})",
        f"RETURNS {params.returnType}",
        f"LANGUAGE {params.language}",
    ]
    if params.options:
        lines.append(params.options)
    lines.extend(["AS $$", params.body, "$$;"])
    return "\n".join(lines)


def create_trigger_sql(params: CreateTriggerParams) -> str:
    lines = [
        f"CREATE TRIGGER {params.name}",
        f"{params.when} {' OR '.join(params.events)}",
        f"ON {params.tableName}",
        f"FOR EACH {params.forEach}",
    ]
    if params.condition:
        lines.append(f"WHEN ({params.condition})")
    lines.append(f"EXECUTE FUNCTION {params.functionName}();")
    return "\n".join(lines)


def create_index_sql(params: CreateIndexParams) -> str:
    head = "CREATE UNIQUE INDEX" if params.unique else "CREATE INDEX"
    using = f" USING {params.type}" if params.type else ""
    lines = [
        f"{head} {params.indexName}",
        f"ON {params.tableName}{using} ({', '.join(params.columns)})",
    ]
    if params.where:
        lines.append(f"WHERE {params.where}")
    return "\n".join(lines)


def alter_table_sql(params: AlterTableParams) -> str:
    return f"ALTER TABLE {params.tableName} {params.operation} {params.details}"


def revert_plan_for(params: BaseModel) -> RevertPlan | None:
    """Structured inverse of the statement built from ``params``."""
    if isinstance(params, CreateTableParams):
        return RevertPlan.drop_table(params.tableName)
    if isinstance(params, CreateFunctionParams):
        return RevertPlan.drop_function(params.name, params.parameters)
    if isinstance(params, CreateTriggerParams):
        return RevertPlan.drop_trigger(params.name, params.tableName)
    if isinstance(params, CreateIndexParams):
        return RevertPlan.drop_index(params.indexName)
    if isinstance(params, AlterTableParams) and params.revertSql:
        return RevertPlan.explicit(MigrationKind.ALTER, params.revertSql)
    return None


def _bind_names(data: dict[str, Any]) -> tuple[list[str], dict[str, Any]]:
    names = [f"p{i}" for i in range(len(data))]
    return names, dict(zip(names, data.values(), strict=True))


def insert_sql(table: str, data: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """INSERT one row and return it."""
    if not data:
        raise ValueError("Insert requires at least one column")
    names, params = _bind_names(data)
    columns = ", ".join(data)
    placeholders = ", ".join(f":{name}" for name in names)
    return (
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *",
        params,
    )


def update_sql(
    table: str, data: dict[str, Any], where: str
) -> tuple[str, dict[str, Any]]:
    """UPDATE matching rows and return them."""
    if not data:
        raise ValueError("Update requires at least one column")
    names, params = _bind_names(data)
    set_clause = ", ".join(
        f"{column} = :{name}" for column, name in zip(data, names, strict=True)
    )
    return f"UPDATE {table} SET {set_clause} WHERE {where} RETURNING *", params


def delete_sql(table: str, where: str) -> str:
    """DELETE matching rows and return them."""
    return f"DELETE FROM {table} WHERE {where} RETURNING *"
