"""Database access, schema builders and migrations."""

from .connection import DatabaseManager
from .migrations import MigrationManager, MigrationStore

__all__ = ["DatabaseManager", "MigrationManager", "MigrationStore"]
