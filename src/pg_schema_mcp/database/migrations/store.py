"""Durable migration history: a JSON metadata index plus one SQL file per migration."""

import json
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ...utils.logging import LogContext, get_logger
from .errors import IntegrityMismatchError, MigrationNotFoundError, StoreIOError
from .identity import compute_checksum
from .migration import MigrationRecord, MigrationStatus

logger = get_logger(__name__, LogContext.MIGRATION)


@dataclass
class IntegrityIssue:
    """A problem found while verifying one migration."""

    migration_id: str
    problem: str


def render_sql_file(record: MigrationRecord) -> str:
    """Render a migration's SQL file: header comments, blank line, SQL."""
    description = record.description or "No description provided"
    description = " ".join(description.splitlines())
    return (
        f"-- Migration: {record.name}\n"
        f"-- Type: {record.kind.value}\n"
        f"-- Description: {description}\n"
        f"-- Timestamp: {record.created_at.isoformat(timespec='milliseconds')}\n"
        f"\n"
        f"{record.sql}\n"
    )


def parse_sql_file_body(content: str) -> str:
    """Return the SQL that follows the header block of a migration file."""
    _, separator, body = content.partition("\n\n")
    if not separator:
        return content
    return body[:-1] if body.endswith("\n") else body


def _atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to a temp file beside ``path`` and rename it into place."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class MigrationStore:
    """Owns the metadata index and the SQL file set.

    The index is the source of truth; each record embeds its SQL. The
    ``<id>.sql`` files are derived artifacts that can be regenerated from it.
    """

    def __init__(self, migrations_dir: Path, metadata_file: Path | None = None) -> None:
        """Initialize the store.

        Args:
            migrations_dir: Directory holding the SQL files.
            metadata_file: Index file; defaults to ``metadata.json`` in
                ``migrations_dir``.
        """
        self.migrations_dir = Path(migrations_dir)
        self.metadata_file = (
            Path(metadata_file) if metadata_file else self.migrations_dir / "metadata.json"
        )
        self._lock = threading.RLock()

    def sql_file_path(self, migration_id: str) -> Path:
        return self.migrations_dir / f"{migration_id}.sql"

    def ensure_initialized(self) -> None:
        """Create the migrations directory and an empty index if absent."""
        with self._lock:
            try:
                self.migrations_dir.mkdir(parents=True, exist_ok=True)
                self.metadata_file.parent.mkdir(parents=True, exist_ok=True)
                if not self.metadata_file.exists():
                    self._write_index([])
                    logger.info(
                        "Initialized migration index",
                        metadata_file=str(self.metadata_file),
                    )
            except OSError as e:
                raise StoreIOError(
                    f"Failed to initialize migrations directory: {e}",
                    context={"migrations_dir": str(self.migrations_dir)},
                ) from e

    def _read_index(self) -> list[MigrationRecord]:
        """Read the index strictly; used on write paths."""
        try:
            raw = self.metadata_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreIOError(
                f"Failed to read migration index: {e}",
                context={"metadata_file": str(self.metadata_file)},
            ) from e

        try:
            data = json.loads(raw)
            entries = data.get("migrations", [])
            return [MigrationRecord.model_validate(entry) for entry in entries]
        except (json.JSONDecodeError, AttributeError, ValidationError) as e:
            raise StoreIOError(
                f"Migration index is corrupt: {e}",
                context={"metadata_file": str(self.metadata_file)},
            ) from e

    def _write_index(self, records: list[MigrationRecord]) -> None:
        document: dict[str, Any] = {
            "migrations": [record.to_index_entry() for record in records]
        }
        try:
            _atomic_write(self.metadata_file, json.dumps(document, indent=2) + "\n")
        except OSError as e:
            raise StoreIOError(
                f"Failed to write migration index: {e}",
                context={"metadata_file": str(self.metadata_file)},
            ) from e

    def _write_sql_file(self, record: MigrationRecord) -> None:
        try:
            _atomic_write(self.sql_file_path(record.id), render_sql_file(record))
        except OSError as e:
            raise StoreIOError(
                f"Failed to write migration file: {e}",
                context={"migration_id": record.id},
            ) from e

    def append(self, record: MigrationRecord) -> None:
        """Write the record's SQL file, then add it to the index.

        Raises:
            StoreIOError: On a file system failure or a duplicate id.
        """
        with self._lock:
            self.ensure_initialized()
            records = self._read_index()
            if any(existing.id == record.id for existing in records):
                raise StoreIOError(
                    f"Migration {record.id} already exists",
                    context={"migration_id": record.id},
                )

            self._write_sql_file(record)
            records.append(record)
            self._write_index(records)

        logger.info(
            "Recorded migration",
            migration_id=record.id,
            kind=record.kind.value,
            checksum=record.checksum,
        )

    def list_records(self, strict: bool = False) -> list[MigrationRecord]:
        """Return all records in creation order.

        A missing index reads as an empty history. An unreadable index also
        reads as empty unless ``strict`` is set.

        Raises:
            StoreIOError: If ``strict`` and the index cannot be read.
        """
        with self._lock:
            if strict:
                return self._read_index()
            try:
                return self._read_index()
            except StoreIOError as e:
                logger.warning("Migration index unreadable", error=e.message)
                return []

    def get(self, migration_id: str) -> MigrationRecord:
        """Return one record.

        Raises:
            MigrationNotFoundError: If no record has this id.
            StoreIOError: If the index cannot be read.
        """
        for record in self.list_records(strict=True):
            if record.id == migration_id:
                return record
        raise MigrationNotFoundError(
            f"Migration not found: {migration_id}",
            context={"migration_id": migration_id},
        )

    def latest(self) -> MigrationRecord:
        """Return the most recently created record.

        Raises:
            MigrationNotFoundError: If the store is empty.
            StoreIOError: If the index cannot be read.
        """
        records = self.list_records(strict=True)
        if not records:
            raise MigrationNotFoundError("No migrations to revert")
        return records[-1]

    def mark_applied(self, migration_id: str) -> MigrationRecord:
        """Set a record's status to applied and persist it."""
        with self._lock:
            records = self._read_index()
            for position, record in enumerate(records):
                if record.id == migration_id:
                    updated = record.model_copy(
                        update={"status": MigrationStatus.APPLIED}
                    )
                    records[position] = updated
                    self._write_index(records)
                    return updated

        raise MigrationNotFoundError(
            f"Migration not found: {migration_id}",
            context={"migration_id": migration_id},
        )

    def remove(self, migration_id: str) -> None:
        """Delete the index entry and the SQL file of one migration.

        Raises:
            MigrationNotFoundError: If the index has no such entry.
        """
        with self._lock:
            records = self._read_index()
            remaining = [record for record in records if record.id != migration_id]
            if len(remaining) == len(records):
                raise MigrationNotFoundError(
                    f"Migration not found: {migration_id}",
                    context={"migration_id": migration_id},
                )

            self._write_index(remaining)

            sql_file = self.sql_file_path(migration_id)
            try:
                sql_file.unlink()
            except FileNotFoundError:
                logger.warning(
                    "Migration file already absent",
                    migration_id=migration_id,
                    path=str(sql_file),
                )
            except OSError as e:
                raise StoreIOError(
                    f"Failed to delete migration file: {e}",
                    context={"migration_id": migration_id},
                ) from e

        logger.info("Removed migration", migration_id=migration_id)

    def verify(self, record: MigrationRecord) -> None:
        """Check a record against its checksum and its SQL file.

        A missing SQL file is regenerated from the index.

        Raises:
            IntegrityMismatchError: If the SQL or the file body does not match
                the recorded checksum.
        """
        if compute_checksum(record.sql) != record.checksum:
            raise IntegrityMismatchError(
                f"Checksum mismatch for migration {record.id} in the metadata index",
                context={"migration_id": record.id},
            )

        sql_file = self.sql_file_path(record.id)
        try:
            content = sql_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning(
                "Migration file missing, regenerating from index",
                migration_id=record.id,
            )
            with self._lock:
                self._write_sql_file(record)
            return
        except OSError as e:
            raise StoreIOError(
                f"Failed to read migration file: {e}",
                context={"migration_id": record.id},
            ) from e

        if compute_checksum(parse_sql_file_body(content)) != record.checksum:
            raise IntegrityMismatchError(
                f"Checksum mismatch for migration file {sql_file.name}",
                context={"migration_id": record.id, "path": str(sql_file)},
            )

    def verify_all(self) -> list[IntegrityIssue]:
        """Verify every record, collecting problems instead of raising.

        Raises:
            StoreIOError: If the index itself cannot be read.
        """
        issues = []
        for record in self.list_records(strict=True):
            try:
                self.verify(record)
            except (IntegrityMismatchError, StoreIOError) as e:
                issues.append(IntegrityIssue(migration_id=record.id, problem=e.message))
        return issues
