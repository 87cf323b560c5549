"""Exception hierarchy for ds-storage."""

from typing import Optional, Sequence


class DSStorageError(Exception):
    """Base exception for all ds-storage errors."""

    pass


class ConfigurationError(DSStorageError):
    """Raised when a storage backend is missing its root, client or bucket."""

    pass


class ValidationError(DSStorageError):
    """Raised when validation fails."""

    pass


class InvalidArgumentError(ValidationError):
    """Raised when a name, prefix, src or dst argument is unusable."""

    pass


class ObjectNotFoundError(DSStorageError):
    """Raised when an object does not exist."""

    pass


class StorageIOError(DSStorageError):
    """Raised when the underlying read, write or network call fails."""

    pass


class PartialFailureError(DSStorageError):
    """Raised when a multi-step operation stopped after some steps succeeded.

    Attributes:
        completed: Names of the objects the operation had already handled
    """

    def __init__(self, message: str, completed: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.completed = list(completed or [])


class OperationCancelledError(DSStorageError):
    """Raised when the caller's context was cancelled or its deadline passed."""

    pass
