"""Storage options collected from the command line.

Grouping the per-backend flags here keeps the command signatures small:
every command receives a single StorageOptions and asks it for a config.
"""

from dataclasses import dataclass
from typing import Optional

from ds_storage.core.exceptions import ConfigurationError
from ds_storage.objectstorage.clients import S3ClientManager
from ds_storage.schemas import LocalStorageConfig, S3StorageConfig, StorageConfig


@dataclass
class S3Options:
    """S3 client options."""

    bucket: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    region_name: str = "us-east-1"
    endpoint_url: Optional[str] = None
    aws_profile: Optional[str] = None


@dataclass
class StorageOptions:
    """Unified storage options."""

    storage_type: str = "local"
    root_dir: Optional[str] = None
    s3: Optional[S3Options] = None
    name: str = "ds-storage"
    timeout: float = 300

    def to_config(self) -> StorageConfig:
        """Build the storage configuration these options describe.

        The bucket may be given as a bare name or as an s3://bucket URL.

        Raises:
            ConfigurationError: If a required option for the storage type is missing
        """
        if self.storage_type == "local":
            if not self.root_dir:
                raise ConfigurationError("Local storage requires --root")
            return LocalStorageConfig(root_dir=self.root_dir)

        if self.storage_type == "s3":
            s3 = self.s3 or S3Options()
            if not s3.bucket:
                raise ConfigurationError("S3 storage requires --bucket")

            bucket = s3.bucket
            if bucket.startswith("s3://"):
                bucket, key = S3ClientManager.parse_s3_path(bucket)
                if key:
                    raise ConfigurationError(
                        f"--bucket must not include an object key: {s3.bucket}"
                    )

            return S3StorageConfig(
                bucket=bucket,
                access_key_id=s3.access_key_id,
                secret_access_key=s3.secret_access_key,
                session_token=s3.session_token,
                region_name=s3.region_name,
                endpoint_url=s3.endpoint_url,
                aws_profile=s3.aws_profile,
            )

        raise ConfigurationError(
            f"Invalid storage type: {self.storage_type}. Must be 'local' or 's3'"
        )
