"""Core utilities and shared components for ds-storage."""

from .config import settings
from .context import Context
from .exceptions import DSStorageError, ValidationError
from .observability import get_logger, get_tracer

__all__ = [
    "settings",
    "Context",
    "DSStorageError",
    "ValidationError",
    "get_logger",
    "get_tracer",
]
