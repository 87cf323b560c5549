"""Shared CLI parameter definitions.

Options are declared once as Annotated aliases so every command uses the
same flag names and help text. Storage selection options belong to the
top-level callback; per-command options are defined next to them here.
"""

from enum import Enum
from typing import Annotated, Optional

import typer


class StorageType(str, Enum):
    """Storage backends selectable from the command line."""

    local = "local"
    s3 = "s3"


StorageTypeOption = Annotated[
    StorageType,
    typer.Option(
        "--storage-type",
        "-t",
        help="Storage type: local or s3",
        case_sensitive=False,
    ),
]

RootDirOption = Annotated[
    Optional[str],
    typer.Option("--root", help="Root directory (for local storage)"),
]

NameOption = Annotated[
    str,
    typer.Option("--name", help="Display name of the storage instance"),
]

TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", help="Operation deadline in seconds"),
]

# S3 options
BucketOption = Annotated[
    Optional[str],
    typer.Option("--bucket", help="Bucket name or s3://bucket URL (for S3 storage)"),
]

AccessKeyOption = Annotated[
    Optional[str],
    typer.Option("--access-key-id", help="AWS access key ID (for S3 storage)"),
]

SecretKeyOption = Annotated[
    Optional[str],
    typer.Option("--secret-access-key", help="AWS secret access key (for S3 storage)"),
]

SessionTokenOption = Annotated[
    Optional[str],
    typer.Option("--session-token", help="AWS session token (for S3 storage)"),
]

RegionOption = Annotated[
    str,
    typer.Option("--region", help="AWS region name (for S3 storage)"),
]

EndpointUrlOption = Annotated[
    Optional[str],
    typer.Option("--endpoint-url", help="Custom S3 endpoint URL"),
]

AwsProfileOption = Annotated[
    Optional[str],
    typer.Option("--aws-profile", help="AWS CLI profile name (for S3 storage)"),
]

# Command options
ContentTypeOption = Annotated[
    Optional[str],
    typer.Option("--content-type", help="MIME type stored with the object"),
]

MetadataOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--metadata", "-m", help="Metadata entry KEY=VALUE (repeatable)"
    ),
]

OutputOption = Annotated[
    Optional[str],
    typer.Option("--output", "-o", help="Write the object to this file"),
]
