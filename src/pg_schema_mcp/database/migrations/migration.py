"""Migration record model and related types."""

import re
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

_DEFAULT_CLAUSE = re.compile(r"\s+DEFAULT\b|\s*=", re.IGNORECASE)


def function_argument_types(parameters: str) -> str:
    """Reduce a CREATE FUNCTION parameter list to what DROP FUNCTION accepts.

    Default values (``DEFAULT expr`` or ``= expr``) are cut from each argument.
    Commas nested in parentheses or quotes do not split arguments.
    """
    arguments = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    for char in parameters:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            arguments.append("".join(current))
            current = []
            continue
        current.append(char)
    arguments.append("".join(current))

    stripped = [_DEFAULT_CLAUSE.split(arg, maxsplit=1)[0].strip() for arg in arguments]
    return ", ".join(arg for arg in stripped if arg)


class MigrationKind(str, Enum):
    """Category of schema change; decides how a migration is reverted."""

    TABLE = "table"
    FUNCTION = "function"
    TRIGGER = "trigger"
    INDEX = "index"
    ALTER = "alter"


class MigrationStatus(str, Enum):
    """Whether a recorded migration is known to have reached the database."""

    RECORDED = "recorded"
    APPLIED = "applied"


class RevertPlan(BaseModel):
    """Structured inverse of a migration, captured when the SQL was built.

    ``target`` names the object to drop. Trigger plans also need the
    ``table`` they are attached to. Alter plans carry an explicit
    ``statement`` because no inverse can be derived from the forward SQL.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    kind: MigrationKind
    target: str | None = None
    table: str | None = None
    statement: str | None = None

    @classmethod
    def drop_table(cls, table_name: str) -> "RevertPlan":
        return cls(kind=MigrationKind.TABLE, target=table_name)

    @classmethod
    def drop_function(cls, name: str, parameters: str | None = None) -> "RevertPlan":
        if parameters is None:
            return cls(kind=MigrationKind.FUNCTION, target=name)
        target = f"{name}({function_argument_types(parameters)})"
        return cls(kind=MigrationKind.FUNCTION, target=target)

    @classmethod
    def drop_trigger(cls, name: str, table_name: str) -> "RevertPlan":
        return cls(kind=MigrationKind.TRIGGER, target=name, table=table_name)

    @classmethod
    def drop_index(cls, index_name: str) -> "RevertPlan":
        return cls(kind=MigrationKind.INDEX, target=index_name)

    @classmethod
    def explicit(cls, kind: MigrationKind, statement: str) -> "RevertPlan":
        return cls(kind=kind, statement=statement)

    def to_sql(self) -> str | None:
        """Render the undo statement, or None if the plan is incomplete."""
        if self.statement:
            return self.statement.strip()
        if not self.target:
            return None
        if self.kind == MigrationKind.TABLE:
            return f"DROP TABLE IF EXISTS {self.target}"
        if self.kind == MigrationKind.FUNCTION:
            return f"DROP FUNCTION IF EXISTS {self.target}"
        if self.kind == MigrationKind.TRIGGER and self.table:
            return f"DROP TRIGGER IF EXISTS {self.target} ON {self.table}"
        if self.kind == MigrationKind.INDEX:
            return f"DROP INDEX IF EXISTS {self.target}"
        return None


class MigrationRecord(BaseModel):
    """A recorded, checksummed unit of schema change.

    Serialized field names (``timestamp``, ``sql``, ``type``) are the ones
    written to the metadata index.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    timestamp: int = Field(description="Creation time, milliseconds since epoch")
    sql: str
    kind: MigrationKind = Field(alias="type")
    description: str | None = None
    checksum: str
    status: MigrationStatus = MigrationStatus.RECORDED
    revert: RevertPlan | None = None

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    @property
    def is_applied(self) -> bool:
        return self.status == MigrationStatus.APPLIED

    def to_index_entry(self) -> dict:
        """Serialize for the metadata index."""
        return self.model_dump(mode="json", by_alias=True)

    def summary(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}

    def __str__(self) -> str:
        return f"Migration {self.id}: {self.name}"
