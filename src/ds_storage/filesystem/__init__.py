"""Local filesystem storage backend."""

from .local_storage import LocalStorage

__all__ = ["LocalStorage"]
