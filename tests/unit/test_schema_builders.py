"""Tests for the SQL builders."""

import pytest
from pydantic import ValidationError

from pg_schema_mcp.database import schema
from pg_schema_mcp.database.migrations import MigrationKind, RevertPlan


class TestCreateTable:
    def test_columns_and_constraints(self):
        params = schema.CreateTableParams(
            tableName="tasks",
            columns=[
                {"name": "id", "type": "SERIAL", "constraints": "PRIMARY KEY"},
                {"name": "title", "type": "TEXT", "constraints": "NOT NULL"},
                {"name": "owner_id", "type": "INTEGER"},
            ],
            constraints=["FOREIGN KEY (owner_id) REFERENCES users(id)"],
        )

        assert schema.create_table_sql(params) == (
            "CREATE TABLE tasks (id SERIAL PRIMARY KEY, title TEXT NOT NULL, "
            "owner_id INTEGER, FOREIGN KEY (owner_id) REFERENCES users(id))"
        )

    def test_requires_a_column(self):
        with pytest.raises(ValidationError):
            schema.CreateTableParams(tableName="empty", columns=[])


class TestCreateFunction:
    def test_shape(self):
        params = schema.CreateFunctionParams(
            name="add",
            parameters="a integer, b integer",
            returnType="integer",
            language="sql",
            body="SELECT a + b;",
            options="IMMUTABLE",
        )

        assert schema.create_function_sql(params) == (
            "CREATE OR REPLACE FUNCTION add(a integer, b integer)\n"
            "RETURNS integer\n"
            "LANGUAGE sql\n"
            "IMMUTABLE\n"
            "AS $$\n"
            "SELECT a + b;\n"
            "$$;"
        )


class TestCreateTrigger:
    def test_shape_with_condition(self):
        params = schema.CreateTriggerParams(
            name="tasks_audit",
            tableName="tasks",
            functionName="audit",
            when="AFTER",
            events=["INSERT", "DELETE"],
            forEach="ROW",
            condition="NEW.id IS NOT NULL",
        )

        sql = schema.create_trigger_sql(params)
        assert sql.splitlines() == [
            "CREATE TRIGGER tasks_audit",
            "AFTER INSERT OR DELETE",
            "ON tasks",
            "FOR EACH ROW",
            "WHEN (NEW.id IS NOT NULL)",
            "EXECUTE FUNCTION audit();",
        ]

    def test_rejects_unknown_timing(self):
        with pytest.raises(ValidationError):
            schema.CreateTriggerParams(
                name="t",
                tableName="tasks",
                functionName="f",
                when="DURING",
                events=["INSERT"],
                forEach="ROW",
            )


class TestCreateIndex:
    def test_plain_index(self):
        params = schema.CreateIndexParams(
            tableName="tasks", indexName="idx_done", columns=["done"]
        )
        assert schema.create_index_sql(params) == "CREATE INDEX idx_done\nON tasks (done)"

    def test_unique_partial_index_with_method(self):
        params = schema.CreateIndexParams(
            tableName="tasks",
            indexName="idx_open_title",
            columns=["title", "owner_id"],
            unique=True,
            type="BTREE",
            where="done = false",
        )
        assert schema.create_index_sql(params) == (
            "CREATE UNIQUE INDEX idx_open_title\n"
            "ON tasks USING BTREE (title, owner_id)\n"
            "WHERE done = false"
        )


class TestAlterTable:
    def test_shape(self):
        params = schema.AlterTableParams(
            tableName="tasks", operation="ADD COLUMN", details="done boolean DEFAULT false"
        )
        assert (
            schema.alter_table_sql(params)
            == "ALTER TABLE tasks ADD COLUMN done boolean DEFAULT false"
        )


class TestRevertPlanFor:
    def test_plans_per_builder(self):
        assert schema.revert_plan_for(
            schema.CreateTableParams(tableName="t", columns=[{"name": "id", "type": "int"}])
        ) == RevertPlan.drop_table("t")
        assert schema.revert_plan_for(
            schema.CreateIndexParams(tableName="t", indexName="i", columns=["id"])
        ) == RevertPlan.drop_index("i")
        assert schema.revert_plan_for(
            schema.CreateTriggerParams(
                name="tr",
                tableName="t",
                functionName="f",
                when="BEFORE",
                events=["UPDATE"],
                forEach="ROW",
            )
        ) == RevertPlan.drop_trigger("tr", "t")

    def test_function_plan_includes_signature(self):
        plan = schema.revert_plan_for(
            schema.CreateFunctionParams(
                name="add",
                parameters="a int, b int",
                returnType="int",
                language="sql",
                body="SELECT a + b",
            )
        )
        assert plan.to_sql() == "DROP FUNCTION IF EXISTS add(a int, b int)"

    def test_alter_plan_only_with_revert_sql(self):
        without = schema.AlterTableParams(tableName="t", operation="ADD COLUMN", details="x int")
        with_inverse = without.model_copy(update={"revertSql": "ALTER TABLE t DROP COLUMN x"})

        assert schema.revert_plan_for(without) is None
        assert schema.revert_plan_for(with_inverse) == RevertPlan.explicit(
            MigrationKind.ALTER, "ALTER TABLE t DROP COLUMN x"
        )


class TestDataStatements:
    def test_insert(self):
        sql, params = schema.insert_sql("tasks", {"title": "a", "done": False})

        assert sql == "INSERT INTO tasks (title, done) VALUES (:p0, :p1) RETURNING *"
        assert params == {"p0": "a", "p1": False}

    def test_update(self):
        sql, params = schema.update_sql("tasks", {"done": True}, "id = 1")

        assert sql == "UPDATE tasks SET done = :p0 WHERE id = 1 RETURNING *"
        assert params == {"p0": True}

    def test_delete(self):
        assert schema.delete_sql("tasks", "done") == "DELETE FROM tasks WHERE done RETURNING *"

    def test_empty_data_rejected(self):
        with pytest.raises(ValueError):
            schema.insert_sql("tasks", {})
