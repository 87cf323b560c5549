"""Storage configuration schemas for ds-storage."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class LocalStorageConfig(BaseModel):
    """Configuration for local filesystem storage."""
    type: Literal["local"] = "local"
    root_dir: str = Field(..., description="Root directory holding the objects")


class S3StorageConfig(BaseModel):
    """Configuration for S3 object storage."""
    type: Literal["s3"] = "s3"
    bucket: str = Field(..., description="Bucket holding the objects")
    access_key_id: str | None = Field(default=None, description="AWS access key ID")
    secret_access_key: str | None = Field(
        default=None, description="AWS secret access key"
    )
    session_token: str | None = Field(default=None, description="AWS session token")
    region_name: str | None = Field(default=None, description="AWS region")
    endpoint_url: str | None = Field(default=None, description="Custom S3 endpoint URL")
    aws_profile: str | None = Field(default=None, description="AWS profile name")


# Discriminated union for storage configurations
StorageConfig = Annotated[
    Union[LocalStorageConfig, S3StorageConfig], Field(discriminator="type")
]
