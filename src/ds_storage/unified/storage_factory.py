"""Build Storage instances from configuration."""

from typing import Any, Optional

from pydantic import TypeAdapter

from ds_storage.base import Storage
from ds_storage.core import get_logger
from ds_storage.core.exceptions import ConfigurationError
from ds_storage.filesystem import LocalStorage
from ds_storage.objectstorage import S3ClientConfig, S3ClientManager, S3Storage
from ds_storage.schemas import LocalStorageConfig, S3StorageConfig, StorageConfig

logger = get_logger(__name__)

_config_adapter: TypeAdapter = TypeAdapter(StorageConfig)


def parse_storage_config(data: dict[str, Any]) -> StorageConfig:
    """
    Validate a plain mapping (e.g. loaded from JSON or YAML) into a storage config.

    The "type" key selects the schema: "local" or "s3".

    Raises:
        pydantic.ValidationError: If the mapping does not match either schema
    """
    return _config_adapter.validate_python(data)


def create_storage(
    config: StorageConfig,
    name: str,
    client: Optional[Any] = None,
) -> Storage:
    """
    Create the storage backend described by a configuration.

    Args:
        config: LocalStorageConfig or S3StorageConfig
        name: Display name for the storage instance
        client: Pre-built boto3 S3 client. When omitted for S3, one is created
            from the credentials in the configuration.

    Returns:
        LocalStorage or S3Storage

    Raises:
        ConfigurationError: If the configuration type is unknown
    """
    logger.info("Creating storage", storage_type=config.type, name=name)

    if isinstance(config, LocalStorageConfig):
        return LocalStorage(root_dir=config.root_dir, name=name)

    if isinstance(config, S3StorageConfig):
        if client is None:
            client_config = S3ClientConfig(
                access_key_id=config.access_key_id,
                secret_access_key=config.secret_access_key,
                session_token=config.session_token,
                region_name=config.region_name or "us-east-1",
                endpoint_url=config.endpoint_url,
                aws_profile=config.aws_profile,
            )
            client = S3ClientManager(client_config).client

        return S3Storage(client=client, bucket_name=config.bucket, name=name)

    raise ConfigurationError(f"Unknown storage configuration: {config!r}")
