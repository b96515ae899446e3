"""Transactional execution of migration SQL."""

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ...utils.logging import ExecutionFailureError, LogContext, get_logger
from ..connection import database_error_message, run_statement
from .migration import MigrationRecord

logger = get_logger(__name__, LogContext.MIGRATION)


class MigrationApplier:
    """Runs SQL against a connection inside exactly one transaction."""

    def execute_in_transaction(
        self, connection: Connection, sql: str, migration_id: str | None = None
    ) -> None:
        """Begin, execute ``sql`` verbatim, commit; roll back on any failure.

        Raises:
            ExecutionFailureError: Carries the database's own error message,
                prefixed with ``migration_id`` when one is given.
        """
        try:
            with connection.begin():
                run_statement(connection, sql)
        except SQLAlchemyError as e:
            error = database_error_message(e)
            logger.error(
                "Migration SQL rolled back",
                migration_id=migration_id,
                error=error,
            )
            message = f"Migration {migration_id} failed: {error}" if migration_id else error
            raise ExecutionFailureError(
                message, context={
                    "migration_id": migration_id,
                    "sql": sql,
                    "database_error": error,
                },
            ) from e

    def apply(self, connection: Connection, record: MigrationRecord) -> None:
        """Apply one migration's recorded SQL."""
        logger.info("Applying migration", migration_id=record.id, kind=record.kind.value)
        self.execute_in_transaction(connection, record.sql, migration_id=record.id)
        logger.info("Applied migration", migration_id=record.id)
