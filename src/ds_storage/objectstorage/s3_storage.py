"""Storage implementation backed by an S3 bucket.

Logical names are used verbatim as object keys. The boto3 client is injected
already authenticated (see S3ClientManager); this module never manages
connection setup or credentials.
"""

import io
import posixpath
from typing import Any, BinaryIO, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ds_storage.base import (
    ObjectInfo,
    PutOptions,
    Readable,
    iter_chunks,
    require_argument,
)
from ds_storage.core import get_logger, get_tracer
from ds_storage.core.context import Context, ensure_context
from ds_storage.core.exceptions import (
    ConfigurationError,
    DSStorageError,
    ObjectNotFoundError,
    OperationCancelledError,
    PartialFailureError,
    StorageIOError,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


def _wrap_client_error(message: str, err: Exception) -> DSStorageError:
    """Translate a boto3 error into the ds-storage error taxonomy."""
    error_msg = f"{message}: {err}"
    if isinstance(err, ClientError):
        error_code = err.response.get("Error", {}).get("Code", "")
        if error_code in NOT_FOUND_CODES:
            logger.info(error_msg, error_code=error_code)
            return ObjectNotFoundError(error_msg)

    logger.error(error_msg, error=str(err))
    return StorageIOError(error_msg)


class S3Storage:
    """Storage over a single S3 bucket.

    Args:
        client: boto3 S3 client, already authenticated
        bucket_name: Bucket holding every object of this storage
        name: Display name used by callers to identify the storage
    """

    def __init__(self, client: Any, bucket_name: str, name: str):
        self._client = client
        self._bucket_name = bucket_name
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _span(self, operation: str, path: str):
        return tracer.start_as_current_span(
            f"storage.{operation}",
            attributes={
                "storage.backend": "s3",
                "storage.name": self._name,
                "storage.bucket": self._bucket_name or "",
                "storage.path": path,
            },
        )

    def _check_client_and_bucket(self) -> None:
        if self._client is None:
            raise ConfigurationError("invalid storage client: storage client required")

        if not self._bucket_name:
            raise ConfigurationError("invalid storage client: bucketName required")

    def _full_path(self, key: str) -> str:
        return self.path_join(self._bucket_name, key)

    def _head(self, key: str) -> Dict[str, Any]:
        try:
            return self._client.head_object(Bucket=self._bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise _wrap_client_error(
                f"failed to stat file {self._full_path(key)!r}", e
            ) from e

    def get(self, ctx: Optional[Context], name: str) -> BinaryIO:
        """Open the object for reading.

        Returns:
            The streaming response body. The caller owns the underlying
            connection and must close it.

        Raises:
            ObjectNotFoundError: If the key does not exist
            StorageIOError: If the request fails
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("name", name)

        with self._span("get", name):
            ctx.check("get", self._full_path(name))
            logger.debug("Opening object", bucket=self._bucket_name, key=name)
            try:
                response = self._client.get_object(Bucket=self._bucket_name, Key=name)
            except (ClientError, BotoCoreError) as e:
                raise _wrap_client_error(
                    f"failed to open file {self._full_path(name)!r}", e
                ) from e

            return response["Body"]

    def put(
        self,
        ctx: Optional[Context],
        name: str,
        reader: Readable,
        opts: Optional[PutOptions] = None,
    ) -> int:
        """Upload the reader's bytes to ``name`` in a single request.

        ContentType and Metadata from opts are applied only when non-empty.
        The source is spooled into a single in-memory buffer that is handed
        to put_object as a file object, so a read failure or cancellation
        commits nothing. Objects are therefore bounded by available memory
        and by the 5 GiB limit of a single S3 PUT.

        Returns:
            Number of bytes written
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("name", name)
        full_path = self._full_path(name)

        with self._span("put", name):
            ctx.check("put", full_path)
            logger.info("Writing object", bucket=self._bucket_name, key=name)

            body = io.BytesIO()
            try:
                for chunk in iter_chunks(ctx, reader, "put", full_path):
                    body.write(chunk)
            except OSError as e:
                error_msg = f"failed to write file {full_path!r}: {e}"
                logger.error(error_msg, error=str(e))
                raise StorageIOError(error_msg) from e

            extra_args: Dict[str, Any] = {}
            if opts is not None:
                if opts.content_type:
                    extra_args["ContentType"] = opts.content_type
                if opts.metadata:
                    extra_args["Metadata"] = dict(opts.metadata)

            size = body.tell()
            body.seek(0)

            ctx.check("put", full_path)
            try:
                self._client.put_object(
                    Bucket=self._bucket_name, Key=name, Body=body, **extra_args
                )
            except (ClientError, BotoCoreError) as e:
                error_msg = f"failed to write file {full_path!r}: {e}"
                logger.error(error_msg, error=str(e))
                raise StorageIOError(error_msg) from e

            logger.info("Object written", key=name, size=size)
            return size

    def list(
        self, ctx: Optional[Context], prefix: str, include_metadata: bool = False
    ) -> list[ObjectInfo]:
        """List objects whose key starts with ``prefix``.

        Pages through list_objects_v2 until exhausted. Pseudo-directory
        placeholder keys (ending in "/") are not reported. With
        include_metadata, each object's user metadata is fetched with an
        extra head_object request; keys removed before that request are
        skipped.
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("prefix", prefix)
        full_path = self._full_path(prefix)

        with self._span("list", prefix):
            ctx.check("list", full_path)
            logger.debug("Listing objects", bucket=self._bucket_name, prefix=prefix)

            objects = []
            try:
                paginator = self._client.get_paginator("list_objects_v2")
                page_iterator = paginator.paginate(
                    Bucket=self._bucket_name, Prefix=prefix
                )

                for page in page_iterator:
                    ctx.check("list", full_path)
                    for obj in page.get("Contents", []):
                        key = obj["Key"]
                        if key.endswith("/"):
                            continue

                        metadata: Dict[str, str] = {}
                        if include_metadata:
                            try:
                                metadata = self._head(key).get("Metadata", {})
                            except ObjectNotFoundError:
                                logger.debug("Skipping vanished object", key=key)
                                continue

                        objects.append(
                            ObjectInfo(
                                name=key,
                                size=obj.get("Size", 0),
                                updated_at=obj["LastModified"],
                                metadata=metadata,
                            )
                        )
            except (ClientError, BotoCoreError) as e:
                raise _wrap_client_error(f"failed to list {full_path!r}", e) from e

            logger.debug(
                "Objects listed",
                bucket=self._bucket_name,
                prefix=prefix,
                object_count=len(objects),
            )
            return objects

    def copy(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Copy ``src`` to ``dst`` with a server-side copy_object request."""
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("src", src)
        require_argument("dst", dst)

        with self._span("copy", src):
            ctx.check("copy", self._full_path(src))
            logger.info("Copying object", bucket=self._bucket_name, src=src, dst=dst)

            if src == dst:
                # S3 rejects a copy onto itself that changes nothing
                self._head(src)
                return

            try:
                self._client.copy_object(
                    Bucket=self._bucket_name,
                    Key=dst,
                    CopySource={"Bucket": self._bucket_name, "Key": src},
                )
            except (ClientError, BotoCoreError) as e:
                raise _wrap_client_error(
                    f"failed to copy object from {src!r} to {dst!r}", e
                ) from e

    def move(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Move ``src`` to ``dst`` as copy followed by delete.

        S3 has no rename. If the delete step fails, both keys exist and
        PartialFailureError is raised.
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("src", src)
        require_argument("dst", dst)

        with self._span("move", src):
            ctx.check("move", self._full_path(src))
            logger.info("Moving object", bucket=self._bucket_name, src=src, dst=dst)
            if src == dst:
                self._head(src)
                return

            self.copy(ctx, src, dst)

            try:
                self.delete(ctx, src)
            except DSStorageError as e:
                error_msg = f"copied {src!r} to {dst!r} but failed to delete src: {e}"
                logger.warning(error_msg)
                raise PartialFailureError(error_msg, completed=[dst]) from e

    def delete(self, ctx: Optional[Context], name: str) -> None:
        """Delete the object for ``name``.

        S3 reports success when deleting a missing key, so existence is
        checked first.

        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("name", name)
        full_path = self._full_path(name)

        with self._span("delete", name):
            ctx.check("delete", full_path)
            logger.info("Deleting object", bucket=self._bucket_name, key=name)
            self._head(name)
            try:
                self._client.delete_object(Bucket=self._bucket_name, Key=name)
            except (ClientError, BotoCoreError) as e:
                raise _wrap_client_error(
                    f"failed to delete file {full_path!r}", e
                ) from e

    def delete_all(self, ctx: Optional[Context], prefix: str) -> None:
        """Delete every object whose key starts with ``prefix``, one by one.

        There is no bulk request: keys are deleted sequentially while paging
        through the listing. A failure or cancellation after some keys were
        removed raises PartialFailureError with the removed keys in
        ``completed``; the original error is chained as its cause.
        """
        ctx = ensure_context(ctx)
        self._check_client_and_bucket()
        require_argument("prefix", prefix)
        full_path = self._full_path(prefix)

        with self._span("delete_all", prefix):
            ctx.check("delete_all", full_path)
            logger.info("Deleting objects", bucket=self._bucket_name, prefix=prefix)

            deleted = []
            try:
                paginator = self._client.get_paginator("list_objects_v2")
                page_iterator = paginator.paginate(
                    Bucket=self._bucket_name, Prefix=prefix
                )

                for page in page_iterator:
                    for obj in page.get("Contents", []):
                        ctx.check("delete_all", full_path)
                        self._client.delete_object(
                            Bucket=self._bucket_name, Key=obj["Key"]
                        )
                        deleted.append(obj["Key"])
            except (ClientError, BotoCoreError, OperationCancelledError) as e:
                if not deleted:
                    if isinstance(e, OperationCancelledError):
                        raise
                    raise _wrap_client_error(
                        f"failed to delete {full_path!r}", e
                    ) from e

                error_msg = (
                    f"failed to delete {full_path!r} after removing "
                    f"{len(deleted)} objects: {e}"
                )
                logger.warning(error_msg, deleted_count=len(deleted))
                raise PartialFailureError(error_msg, completed=deleted) from e

            logger.info(
                "Objects deleted",
                bucket=self._bucket_name,
                prefix=prefix,
                deleted_count=len(deleted),
            )

    def path_join(self, *segments: str) -> str:
        """Join path segments with forward slashes, ignoring empty segments."""
        parts = [segment for segment in segments if segment]
        if not parts:
            return ""
        return posixpath.normpath("/".join(parts))
