"""Migration management system."""

from .applier import MigrationApplier
from .errors import (
    IntegrityMismatchError,
    MigrationError,
    MigrationNotFoundError,
    StoreIOError,
    UnsupportedKindError,
)
from .identity import MigrationIdGenerator, compute_checksum
from .manager import MigrationManager, RevertResult
from .migration import MigrationKind, MigrationRecord, MigrationStatus, RevertPlan
from .revert import synthesize_revert
from .store import IntegrityIssue, MigrationStore

__all__ = [
    "IntegrityIssue",
    "IntegrityMismatchError",
    "MigrationApplier",
    "MigrationError",
    "MigrationIdGenerator",
    "MigrationKind",
    "MigrationManager",
    "MigrationNotFoundError",
    "MigrationRecord",
    "MigrationStatus",
    "MigrationStore",
    "RevertPlan",
    "RevertResult",
    "StoreIOError",
    "UnsupportedKindError",
    "compute_checksum",
    "synthesize_revert",
]
