"""Derive undo SQL for a recorded migration.

A record's structured ``RevertPlan`` is used when present. Otherwise the
forward SQL is matched against the statement shapes the schema builders
emit; this is heuristic and only understands those shapes.
"""

import re

from .errors import UnsupportedKindError
from .migration import MigrationKind, MigrationRecord

_NAME = r"([^\s(;]+)"

TABLE_PATTERN = re.compile(
    r"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?" + _NAME, re.IGNORECASE
)
FUNCTION_PATTERN = re.compile(
    r"CREATE\s+(?:OR\s+REPLACE\s+)?FUNCTION\s+" + _NAME, re.IGNORECASE
)
TRIGGER_PATTERN = re.compile(
    r"CREATE\s+(?:OR\s+REPLACE\s+)?TRIGGER\s+" + _NAME + r"\s+.*?\bON\s+" + _NAME,
    re.IGNORECASE | re.DOTALL,
)
INDEX_PATTERN = re.compile(
    r"CREATE\s+(?:UNIQUE\s+)?INDEX\s+(?:CONCURRENTLY\s+)?(?:IF\s+NOT\s+EXISTS\s+)?"
    + _NAME,
    re.IGNORECASE,
)


def _parse_table(sql: str) -> str | None:
    match = TABLE_PATTERN.search(sql)
    return f"DROP TABLE IF EXISTS {match.group(1)}" if match else None


def _parse_function(sql: str) -> str | None:
    match = FUNCTION_PATTERN.search(sql)
    return f"DROP FUNCTION IF EXISTS {match.group(1)}" if match else None


def _parse_trigger(sql: str) -> str | None:
    match = TRIGGER_PATTERN.search(sql)
    if not match:
        return None
    trigger_name, table_name = match.groups()
    return f"DROP TRIGGER IF EXISTS {trigger_name} ON {table_name}"


def _parse_index(sql: str) -> str | None:
    match = INDEX_PATTERN.search(sql)
    # "CREATE INDEX ON t (...)" has no name to drop
    if not match or match.group(1).upper() == "ON":
        return None
    return f"DROP INDEX IF EXISTS {match.group(1)}"


PARSERS = {
    MigrationKind.TABLE: _parse_table,
    MigrationKind.FUNCTION: _parse_function,
    MigrationKind.TRIGGER: _parse_trigger,
    MigrationKind.INDEX: _parse_index,
}


def synthesize_revert(record: MigrationRecord) -> str:
    """Return the SQL that undoes ``record``.

    Raises:
        UnsupportedKindError: If the kind has no revert strategy, or no object
            name could be extracted from the recorded SQL.
    """
    context = {"migration_id": record.id, "kind": record.kind.value}

    if record.revert is not None:
        planned = record.revert.to_sql()
        if planned:
            return planned

    parser = PARSERS.get(record.kind)
    if parser is None:
        raise UnsupportedKindError(
            f"Revert not implemented for migration type: {record.kind.value}",
            context=context,
        )

    revert_sql = parser(record.sql)
    if not revert_sql:
        raise UnsupportedKindError(
            f"Could not derive revert SQL for {record.kind.value} migration {record.id}",
            context=context,
        )
    return revert_sql
