"""Composition root: everything a request handler needs, built once per process."""

from dataclasses import dataclass

from ..config.loader import ServerConfig
from ..database.connection import DatabaseManager
from ..database.migrations import MigrationManager, MigrationStore
from ..utils.logging import ConfigurationError


@dataclass
class ServerContext:
    """Owns the connection pool and the migration manager."""

    config: ServerConfig
    database: DatabaseManager
    migrations: MigrationManager

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ServerContext":
        if not config.database_url:
            raise ConfigurationError(
                "A database URL is required (argument, config file or "
                "PG_SCHEMA_MCP_DATABASE_URL)"
            )

        database = DatabaseManager(
            database_url=config.database_url,
            echo=config.echo_sql,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
        )
        store = MigrationStore(config.migrations_path, config.metadata_path)
        store.ensure_initialized()

        return cls(
            config=config,
            database=database,
            migrations=MigrationManager(database, store),
        )

    def close(self) -> None:
        self.database.close()
