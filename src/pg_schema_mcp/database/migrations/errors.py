"""Migration error taxonomy."""

from ...utils.logging import SchemaServerError


class MigrationError(SchemaServerError):
    """Base exception for migration management."""

    pass


class MigrationNotFoundError(MigrationError):
    """No migration with the requested id, or nothing to revert."""

    pass


class UnsupportedKindError(MigrationError):
    """No revert SQL can be produced for a migration."""

    pass


class IntegrityMismatchError(MigrationError):
    """Stored SQL does not match the recorded checksum."""

    pass


class StoreIOError(MigrationError):
    """Reading or writing the migration index or SQL files failed."""

    pass
