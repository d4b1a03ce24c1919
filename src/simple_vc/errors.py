"""Custom exceptions for simple-vc.

This module defines typed exceptions for better error handling and clearer
error messages throughout the application. Library code raises these; only
the CLI turns them into console output.
"""


class SvcError(RuntimeError):
    """Base class for all simple-vc errors."""
    pass


# Project Errors
class NotInitializedError(SvcError):
    """No project exists for the current directory."""

    def __init__(self, path):
        self.path = path
        super().__init__(
            f"Not inside a simple-vc project: {path}. Run 'svc init' first."
        )


class NotFoundError(SvcError):
    """Referenced project, snapshot or file does not exist."""
    pass


class SnapshotNotFoundError(NotFoundError):
    """Snapshot id does not exist."""

    def __init__(self, snapshot_id: int):
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot {snapshot_id} not found")


# IO Errors
class FileAccessError(SvcError):
    """A path could not be read or written.

    Batch operations collect these per file instead of raising them.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


# Integrity Errors
class IntegrityError(SvcError):
    """Base class for data integrity errors."""
    pass


class SnapshotIntegrityError(IntegrityError):
    """Snapshot creation or deletion could not complete as one unit.

    The transaction has been rolled back; no partial rows remain.
    """

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        super().__init__(f"Snapshot {operation} rolled back: {detail}")


# Validation Errors
class ValidationFailedError(SvcError):
    """Request is well-formed but not allowed (e.g. diffing a snapshot with itself)."""
    pass


class InvalidPatternError(ValidationFailedError):
    """Ignore rule is neither a valid glob nor a valid regular expression."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid ignore pattern '{pattern}': {reason}")


# Configuration Errors
class ConfigError(SvcError):
    """Project configuration could not be read."""
    pass
