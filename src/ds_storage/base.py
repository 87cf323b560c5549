"""Storage capability contract shared by every backend.

Calling code depends only on the Storage protocol and addresses objects by
logical, slash-delimited names. LocalStorage and S3Storage are the two
implementations.
"""

import io
from datetime import datetime
from typing import BinaryIO, Iterator, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field

from ds_storage.core.config import settings
from ds_storage.core.context import Context
from ds_storage.core.exceptions import InvalidArgumentError

Readable = Union[bytes, bytearray, BinaryIO]


class ObjectInfo(BaseModel):
    """Descriptor of a stored object returned by list operations."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Logical object name, slash-delimited")
    size: int = Field(..., description="Object size in bytes")
    updated_at: datetime = Field(..., description="Last modification time")
    metadata: dict[str, str] = Field(default_factory=dict)


class PutOptions(BaseModel):
    """Optional settings applied when writing an object."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    content_type: Optional[str] = Field(None, description="MIME type of the object")
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Arbitrary metadata stored with the object"
    )


class Storage(Protocol):
    """Protocol for a set of operations on object storage."""

    @property
    def name(self) -> str:
        """Name (identifier) of this storage."""
        ...

    def get(self, ctx: Optional[Context], name: str) -> BinaryIO:
        """Open the object for reading. The caller must close the stream."""
        ...

    def put(
        self,
        ctx: Optional[Context],
        name: str,
        reader: Readable,
        opts: Optional[PutOptions] = None,
    ) -> int:
        """Create or overwrite the object and return the number of bytes written."""
        ...

    def list(self, ctx: Optional[Context], prefix: str) -> list[ObjectInfo]:
        """List objects whose name starts with the prefix."""
        ...

    def copy(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Copy an object from src to dst."""
        ...

    def move(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Move (rename) an object from src to dst."""
        ...

    def delete(self, ctx: Optional[Context], name: str) -> None:
        """Delete the object with the given name."""
        ...

    def delete_all(self, ctx: Optional[Context], prefix: str) -> None:
        """Delete every object whose name starts with the prefix."""
        ...

    def path_join(self, *segments: str) -> str:
        """Join path segments using this storage's path syntax."""
        ...


def require_argument(label: str, value: str) -> None:
    """Reject an empty name, prefix, src or dst argument.

    Raises:
        InvalidArgumentError: If value is empty
    """
    if not value:
        raise InvalidArgumentError(f"{label} required")


def iter_chunks(
    ctx: Context, reader: Readable, operation: str, path: str
) -> Iterator[bytes]:
    """Yield the reader's bytes in chunks, checking the context before each read."""
    if isinstance(reader, (bytes, bytearray)):
        reader = io.BytesIO(reader)

    while True:
        ctx.check(operation, path)
        chunk = reader.read(settings.chunk_size)
        if not chunk:
            return
        yield chunk
