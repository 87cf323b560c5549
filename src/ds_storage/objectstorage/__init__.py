"""Object storage backend for S3-compatible services."""

from .clients import S3ClientConfig, S3ClientManager
from .s3_storage import S3Storage

__all__ = [
    "S3ClientConfig",
    "S3ClientManager",
    "S3Storage",
]
