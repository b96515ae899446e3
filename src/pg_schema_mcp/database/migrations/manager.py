"""Migration management: record, apply and revert schema changes."""

import threading
from dataclasses import dataclass

from ...utils.logging import LogContext, audit_log, get_logger, log_performance
from ..connection import DatabaseManager
from .applier import MigrationApplier
from .errors import MigrationNotFoundError
from .identity import MigrationIdGenerator, compute_checksum
from .migration import MigrationKind, MigrationRecord, RevertPlan
from .revert import synthesize_revert
from .store import IntegrityIssue, MigrationStore

logger = get_logger(__name__, LogContext.MIGRATION)


@dataclass
class RevertResult:
    """Outcome of a successful revert."""

    reverted: MigrationRecord
    revert_sql: str


class MigrationManager:
    """Coordinates the store, the applier and the revert synthesizer.

    Operations are serialized by an internal lock: one migration operation
    runs at a time per manager.
    """

    def __init__(
        self,
        database: DatabaseManager,
        store: MigrationStore,
        applier: MigrationApplier | None = None,
        id_generator: MigrationIdGenerator | None = None,
    ) -> None:
        """Initialize migration manager.

        Args:
            database: Source of pooled connections.
            store: Migration history.
            applier: Transactional SQL runner.
            id_generator: Issues migration ids.
        """
        self.database = database
        self.store = store
        self.applier = applier or MigrationApplier()
        self.id_generator = id_generator or MigrationIdGenerator()
        self._lock = threading.RLock()

    def new_record(
        self,
        kind: MigrationKind | str,
        sql: str,
        description: str | None = None,
        revert: RevertPlan | None = None,
    ) -> MigrationRecord:
        """Build an unsaved record for ``sql``."""
        kind = MigrationKind(kind)
        timestamp = self.id_generator.next_timestamp()
        return MigrationRecord(
            id=self.id_generator.new_id(timestamp),
            name=f"{kind.value}_{timestamp}",
            timestamp=timestamp,
            sql=sql,
            kind=kind,
            description=description,
            checksum=compute_checksum(sql),
            revert=revert,
        )

    @audit_log("create and apply migration")
    def create_and_apply(
        self,
        kind: MigrationKind | str,
        sql: str,
        description: str | None = None,
        revert: RevertPlan | None = None,
    ) -> MigrationRecord:
        """Record ``sql`` as a migration, then apply it.

        If applying fails the record stays in the store with status
        ``recorded`` and the database error is raised.

        Returns:
            The applied record.
        """
        with self._lock:
            record = self.new_record(kind, sql, description, revert)
            self.store.append(record)

            with self.database.acquire_connection() as connection:
                self.applier.apply(connection, record)

            return self.store.mark_applied(record.id)

    def list_migrations(self) -> list[MigrationRecord]:
        """All recorded migrations in creation order."""
        return self.store.list_records()

    @audit_log("apply pending migrations")
    @log_performance()
    def apply_pending(
        self, from_id: str | None = None, force: bool = False
    ) -> list[MigrationRecord]:
        """Apply recorded migrations in order.

        Args:
            from_id: Start at this migration (inclusive); earlier ones are
                skipped.
            force: Re-apply migrations already marked applied.

        Returns:
            The records applied by this call, in order.

        Raises:
            MigrationNotFoundError: If ``from_id`` matches no record.
            ExecutionFailureError: On the first migration that fails; the
                rest of the batch is not attempted.
        """
        with self._lock:
            records = self.store.list_records(strict=True)

            if from_id is not None:
                positions = [i for i, r in enumerate(records) if r.id == from_id]
                if not positions:
                    raise MigrationNotFoundError(
                        f"Migration not found: {from_id}",
                        context={"migration_id": from_id},
                    )
                records = records[positions[0]:]

            batch = [r for r in records if force or not r.is_applied]
            if not batch:
                logger.info("No pending migrations to apply")
                return []

            applied = []
            try:
                with self.database.acquire_connection() as connection:
                    for record in batch:
                        logger.set_migration_id(record.id)
                        self.store.verify(record)
                        self.applier.apply(connection, record)
                        applied.append(self.store.mark_applied(record.id))
            finally:
                logger.set_migration_id(None)

            logger.info("Applied pending migrations", count=len(applied))
            return applied

    @audit_log("revert migration")
    def revert(self, migration_id: str | None = None) -> RevertResult:
        """Undo one migration and drop it from the history.

        Args:
            migration_id: Migration to revert; defaults to the most recent.

        Raises:
            MigrationNotFoundError: If the store is empty or has no such id.
            UnsupportedKindError: If no revert SQL can be produced.
            ExecutionFailureError: If the revert SQL fails; the record is kept.
        """
        with self._lock:
            if migration_id is None:
                record = self.store.latest()
            else:
                record = self.store.get(migration_id)

            revert_sql = synthesize_revert(record)

            with self.database.acquire_connection() as connection:
                self.applier.execute_in_transaction(
                    connection, revert_sql, migration_id=record.id
                )

            # Only forget the migration once its revert has committed
            self.store.remove(record.id)

            logger.info(
                "Reverted migration", migration_id=record.id, revert_sql=revert_sql
            )
            return RevertResult(reverted=record, revert_sql=revert_sql)

    def verify_integrity(self) -> list[IntegrityIssue]:
        """Check every record's SQL against its checksum."""
        return self.store.verify_all()

    def get_migration_status(self) -> dict[str, object]:
        """Summarize the migration history."""
        records = self.store.list_records()
        applied = [r for r in records if r.is_applied]
        pending = [r for r in records if not r.is_applied]

        return {
            "current_migration": applied[-1].id if applied else None,
            "total_count": len(records),
            "applied_count": len(applied),
            "pending_count": len(pending),
            "pending_migrations": [
                {"id": r.id, "name": r.name, "description": r.description}
                for r in pending
            ],
        }
