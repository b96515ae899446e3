"""Database connection and transaction management."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..utils.logging import ExecutionFailureError, LogContext, get_logger

logger = get_logger(__name__, LogContext.DATABASE)


def database_error_message(error: SQLAlchemyError) -> str:
    """Return the driver's own error text, without SQLAlchemy decoration."""
    orig = getattr(error, "orig", None)
    if orig is not None:
        return str(orig).strip()
    return str(error)


def run_statement(
    connection: Connection, sql: str, params: dict[str, Any] | None = None
) -> CursorResult:
    """Run one statement on an open connection.

    Statements without parameters are sent to the driver verbatim so that
    colons and percent signs in function bodies are left alone.
    """
    if params:
        return connection.execute(text(sql), params)
    return connection.exec_driver_sql(
        sql, execution_options={"no_parameters": True}
    )


class DatabaseManager:
    """Manages the connection pool and the read/write query helpers."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_pre_ping: bool = True,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
    ) -> None:
        """Initialize database manager.

        Args:
            database_url: SQLAlchemy database URL.
            echo: Whether to echo SQL statements.
            pool_pre_ping: Whether to validate connections before use.
            pool_size: Number of connections to maintain in the pool.
            max_overflow: Maximum number of overflow connections.
            pool_timeout: Timeout for getting connection from pool.
            pool_recycle: Time in seconds to recycle connections.
        """
        self.database_url = database_url
        self.echo = echo
        self.pool_pre_ping = pool_pre_ping
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle

        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        """Get the database engine, creating it if necessary."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgres")

    def _create_engine(self) -> Engine:
        """Create the database engine with appropriate configuration."""
        engine_kwargs: dict[str, Any] = {
            "echo": self.echo,
            "pool_pre_ping": self.pool_pre_ping,
        }

        if self.database_url.startswith("sqlite"):
            engine_kwargs.update(
                {
                    "poolclass": StaticPool,
                    "connect_args": {
                        "check_same_thread": False,
                        "timeout": self.pool_timeout,
                    },
                }
            )
        else:
            engine_kwargs.update(
                {
                    "pool_size": self.pool_size,
                    "max_overflow": self.max_overflow,
                    "pool_timeout": self.pool_timeout,
                    "pool_recycle": self.pool_recycle,
                }
            )

        return create_engine(self.database_url, **engine_kwargs)

    @contextmanager
    def acquire_connection(self) -> Generator[Connection, None, None]:
        """Check a connection out of the pool for exclusive use.

        The connection is returned to the pool on every exit path; any
        transaction still open at that point is rolled back.

        Yields:
            Pooled database connection.
        """
        connection = self.engine.connect()
        try:
            yield connection
        finally:
            connection.close()

    def query(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a read-only query.

        The statement runs inside a transaction that is always rolled back.

        Args:
            sql: SQL text.
            params: Optional named bind parameters.

        Returns:
            Result rows as dictionaries.
        """
        with self.acquire_connection() as connection:
            transaction = connection.begin()
            try:
                if self.is_postgres:
                    connection.exec_driver_sql("SET TRANSACTION READ ONLY")
                result = run_statement(connection, sql, params)
                if not result.returns_rows:
                    return []
                return [dict(row._mapping) for row in result]
            except SQLAlchemyError as e:
                raise ExecutionFailureError(
                    database_error_message(e), context={"sql": sql}
                ) from e
            finally:
                transaction.rollback()

    def execute(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run a data-modifying statement in its own transaction.

        Args:
            sql: SQL text.
            params: Optional named bind parameters.

        Returns:
            Dictionary with ``command``, ``rowCount`` and ``rows``.

        Raises:
            ExecutionFailureError: If the database rejects the statement.
        """
        with self.acquire_connection() as connection:
            try:
                with connection.begin():
                    result = run_statement(connection, sql, params)
                    rows = (
                        [dict(row._mapping) for row in result]
                        if result.returns_rows
                        else []
                    )
                    row_count = result.rowcount
            except SQLAlchemyError as e:
                logger.warning("Statement rolled back", error=str(e))
                raise ExecutionFailureError(
                    database_error_message(e), context={"sql": sql}
                ) from e

        command = sql.strip().split(None, 1)[0].upper() if sql.strip() else ""
        return {"command": command, "rowCount": row_count, "rows": rows}

    def close(self) -> None:
        """Close database connections."""
        if self._engine:
            self._engine.dispose()
            self._engine = None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
