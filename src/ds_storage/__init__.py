"""Uniform object storage operations over a local filesystem or S3.

This package defines one Storage contract (get, put, list, copy, move,
delete, delete_all, path_join) and two backends implementing it, so calling
code can address objects by logical name without caring where they live.

Recommended Usage:
    >>> from ds_storage import Context, LocalStorageConfig, create_storage
    >>> storage = create_storage(LocalStorageConfig(root_dir="/data"), "scratch")
    >>> ctx = Context.background().with_timeout(30)
    >>> storage.put(ctx, "a/b.txt", b"hello")
    5
    >>> [obj.name for obj in storage.list(ctx, "a")]
    ['a/b.txt']

Advanced Usage:
    Construct a backend directly, e.g. with an existing boto3 client:

    >>> from ds_storage.objectstorage import S3Storage
    >>> storage = S3Storage(client=boto3.client("s3"), bucket_name="b", name="b")
"""

__version__ = "0.1.0"

from .base import ObjectInfo, PutOptions, Storage
from .core.context import Context
from .core.exceptions import (
    ConfigurationError,
    DSStorageError,
    InvalidArgumentError,
    ObjectNotFoundError,
    OperationCancelledError,
    PartialFailureError,
    StorageIOError,
    ValidationError,
)
from .filesystem import LocalStorage
from .objectstorage import S3ClientConfig, S3Storage
from .schemas import LocalStorageConfig, S3StorageConfig, StorageConfig
from .unified import create_storage, parse_storage_config

__all__ = [
    # Contract
    "Storage",
    "ObjectInfo",
    "PutOptions",
    "Context",
    # Backends
    "LocalStorage",
    "S3Storage",
    "S3ClientConfig",
    # Configuration
    "LocalStorageConfig",
    "S3StorageConfig",
    "StorageConfig",
    "create_storage",
    "parse_storage_config",
    # Errors
    "DSStorageError",
    "ConfigurationError",
    "ValidationError",
    "InvalidArgumentError",
    "ObjectNotFoundError",
    "StorageIOError",
    "PartialFailureError",
    "OperationCancelledError",
]
