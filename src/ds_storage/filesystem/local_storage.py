"""Storage implementation backed by a directory tree on the local filesystem.

Logical names are translated into paths under a configured root directory.
Listing is non-recursive: only regular entries directly inside the prefix
directory are reported.
"""

import os
import shutil
from datetime import datetime, timezone
from typing import BinaryIO, Optional, Union

from ds_storage.base import (
    ObjectInfo,
    PutOptions,
    Readable,
    iter_chunks,
    require_argument,
)
from ds_storage.core import get_logger, get_tracer, settings
from ds_storage.core.context import Context, ensure_context
from ds_storage.core.exceptions import (
    ConfigurationError,
    DSStorageError,
    InvalidArgumentError,
    ObjectNotFoundError,
    PartialFailureError,
    StorageIOError,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)


def _wrap_os_error(message: str, err: OSError) -> DSStorageError:
    """Translate an OSError into the ds-storage error taxonomy."""
    error_msg = f"{message}: {err}"
    if isinstance(err, FileNotFoundError):
        logger.info(error_msg)
        return ObjectNotFoundError(error_msg)

    logger.error(error_msg, error=str(err))
    return StorageIOError(error_msg)


class LocalStorage:
    """Storage rooted at a local directory.

    Args:
        root_dir: Directory that holds every object of this storage
        name: Display name used by callers to identify the storage
    """

    def __init__(self, root_dir: Union[str, os.PathLike], name: str):
        self._root_dir = os.fspath(root_dir) if root_dir else ""
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def root_dir(self) -> str:
        return self._root_dir

    def _span(self, operation: str, path: str):
        return tracer.start_as_current_span(
            f"storage.{operation}",
            attributes={
                "storage.backend": "local",
                "storage.name": self._name,
                "storage.path": path,
            },
        )

    def _check_root_dir(self) -> None:
        if not self._root_dir:
            raise ConfigurationError("invalid root path: root dir required")

    def _is_root(self, path: str) -> bool:
        return os.path.realpath(path) == os.path.realpath(self._root_dir)

    def _resolve(self, name: str, allow_root: bool = False) -> str:
        """Map a logical name to its path under the root directory.

        Symlinks are resolved before the containment check, so a link
        inside the root that points elsewhere is rejected.

        Args:
            name: Logical object name or prefix
            allow_root: Accept a name that resolves to the root itself

        Raises:
            InvalidArgumentError: If the name would resolve outside the root
        """
        if os.path.isabs(name):
            raise InvalidArgumentError(f"name must be relative: {name!r}")

        full_path = self.path_join(self._root_dir, name)
        real_root = os.path.realpath(self._root_dir)
        real_path = os.path.realpath(full_path)
        if real_path == real_root:
            if allow_root:
                return full_path
            raise InvalidArgumentError(f"name escapes root directory: {name!r}")

        if os.path.commonpath([real_root, real_path]) != real_root:
            raise InvalidArgumentError(f"name escapes root directory: {name!r}")

        return full_path

    def get(self, ctx: Optional[Context], name: str) -> BinaryIO:
        """Open the object for reading.

        Returns:
            A binary file object positioned at offset 0. The caller owns it
            and must close it.

        Raises:
            ObjectNotFoundError: If no file exists for the name
            StorageIOError: If the file cannot be opened
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("name", name)
        full_path = self._resolve(name)

        with self._span("get", name):
            ctx.check("get", full_path)
            logger.debug("Opening object", storage=self._name, path=full_path)
            try:
                return open(full_path, "rb")
            except OSError as e:
                raise _wrap_os_error(f"failed to open file {full_path!r}", e) from e

    def put(
        self,
        ctx: Optional[Context],
        name: str,
        reader: Readable,
        opts: Optional[PutOptions] = None,
    ) -> int:
        """Create or overwrite the file for ``name`` with the reader's bytes.

        Missing parent directories are created first. PutOptions are accepted
        for interface compatibility; the filesystem has nowhere to keep them.
        A failure part way through can leave a truncated file behind.

        Returns:
            Number of bytes written
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("name", name)
        full_path = self._resolve(name)
        dir_path = os.path.dirname(full_path)

        with self._span("put", name):
            ctx.check("put", full_path)
            logger.info("Writing object", storage=self._name, path=full_path)

            try:
                os.makedirs(dir_path, mode=settings.dir_mode, exist_ok=True)
            except OSError as e:
                raise StorageIOError(
                    f"failed to create directory {dir_path!r}: {e}"
                ) from e

            size = 0
            try:
                with open(full_path, "wb") as f:
                    for chunk in iter_chunks(ctx, reader, "put", full_path):
                        f.write(chunk)
                        size += len(chunk)
            except OSError as e:
                error_msg = f"failed to write file {full_path!r}: {e}"
                logger.error(error_msg, error=str(e))
                raise StorageIOError(error_msg) from e

            logger.info("Object written", path=full_path, size=size)
            return size

    def list(self, ctx: Optional[Context], prefix: str) -> list[ObjectInfo]:
        """List files directly inside the prefix directory.

        Subdirectories are not descended into and are not reported. Entries
        whose metadata cannot be read (for example, removed mid-listing) are
        skipped. A missing prefix directory yields an empty list. A prefix
        naming the root itself (".") lists top-level files by bare name.
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("prefix", prefix)
        full_path = self._resolve(prefix, allow_root=True)

        with self._span("list", prefix):
            ctx.check("list", full_path)
            logger.debug("Listing objects", storage=self._name, path=full_path)

            try:
                entries = os.scandir(full_path)
            except FileNotFoundError:
                return []
            except OSError as e:
                raise _wrap_os_error(f"failed to list files {full_path!r}", e) from e

            if self._is_root(full_path):
                base = ""
            elif prefix.endswith(("/", os.sep)):
                base = prefix
            else:
                base = prefix + "/"
            objects = []
            with entries:
                for entry in entries:
                    ctx.check("list", full_path)
                    try:
                        if entry.is_dir():
                            continue
                        info = entry.stat()
                    except OSError as e:
                        logger.debug("Skipping entry", entry=entry.path, error=str(e))
                        continue

                    objects.append(
                        ObjectInfo(
                            name=(base + entry.name).replace(os.sep, "/"),
                            size=info.st_size,
                            updated_at=datetime.fromtimestamp(
                                info.st_mtime, tz=timezone.utc
                            ),
                            metadata={},
                        )
                    )

            logger.debug("Objects listed", path=full_path, object_count=len(objects))
            return objects

    def copy(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Copy the bytes of ``src`` into a new independent file at ``dst``.

        File metadata (mode, timestamps) is not preserved.
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("src", src)
        require_argument("dst", dst)
        src_path = self._resolve(src)
        dst_path = self._resolve(dst)
        dst_dir = os.path.dirname(dst_path)

        with self._span("copy", src):
            ctx.check("copy", src_path)
            logger.info("Copying object", src=src_path, dst=dst_path)

            try:
                src_file = open(src_path, "rb")
            except OSError as e:
                raise _wrap_os_error(f"failed to open src file {src_path!r}", e) from e

            with src_file:
                if src_path == dst_path:
                    return

                try:
                    os.makedirs(dst_dir, mode=settings.dir_mode, exist_ok=True)
                except OSError as e:
                    raise StorageIOError(
                        f"failed to create dst directory {dst_dir!r}: {e}"
                    ) from e

                try:
                    with open(dst_path, "wb") as dst_file:
                        for chunk in iter_chunks(ctx, src_file, "copy", src_path):
                            dst_file.write(chunk)
                except OSError as e:
                    error_msg = (
                        f"failed to copy file {src_path!r} to {dst_path!r}: {e}"
                    )
                    logger.error(error_msg, error=str(e))
                    raise StorageIOError(error_msg) from e

    def move(self, ctx: Optional[Context], src: str, dst: str) -> None:
        """Move ``src`` to ``dst``.

        An atomic rename is attempted first. When it fails (for example,
        across devices) the move degrades to copy followed by delete. If the
        delete step fails, both src and dst exist and PartialFailureError is
        raised.
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("src", src)
        require_argument("dst", dst)
        src_path = self._resolve(src)
        dst_path = self._resolve(dst)
        dst_dir = os.path.dirname(dst_path)

        with self._span("move", src):
            ctx.check("move", src_path)
            logger.info("Moving object", src=src_path, dst=dst_path)

            try:
                os.makedirs(dst_dir, mode=settings.dir_mode, exist_ok=True)
            except OSError as e:
                raise StorageIOError(
                    f"failed to create dst directory {dst_dir!r}: {e}"
                ) from e

            try:
                os.replace(src_path, dst_path)
                return
            except OSError as e:
                logger.debug(
                    "Rename failed, falling back to copy", src=src_path, error=str(e)
                )

            self.copy(ctx, src, dst)

            try:
                self.delete(ctx, src)
            except DSStorageError as e:
                error_msg = f"copied {src!r} to {dst!r} but failed to delete src: {e}"
                logger.warning(error_msg)
                raise PartialFailureError(error_msg, completed=[dst]) from e

    def delete(self, ctx: Optional[Context], name: str) -> None:
        """Delete the file for ``name``.

        Raises:
            ObjectNotFoundError: If no file exists for the name
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("name", name)
        full_path = self._resolve(name)

        with self._span("delete", name):
            ctx.check("delete", full_path)
            logger.info("Deleting object", storage=self._name, path=full_path)
            try:
                os.remove(full_path)
            except OSError as e:
                raise _wrap_os_error(f"failed to delete file {full_path!r}", e) from e

    def delete_all(self, ctx: Optional[Context], prefix: str) -> None:
        """Recursively remove the prefix path and everything beneath it.

        Nothing to remove is not an error.
        """
        ctx = ensure_context(ctx)
        self._check_root_dir()
        require_argument("prefix", prefix)
        full_path = self._resolve(prefix)

        with self._span("delete_all", prefix):
            ctx.check("delete_all", full_path)
            logger.info("Deleting objects", storage=self._name, path=full_path)
            try:
                if os.path.isdir(full_path) and not os.path.islink(full_path):
                    shutil.rmtree(full_path)
                elif os.path.lexists(full_path):
                    os.remove(full_path)
            except FileNotFoundError:
                return
            except OSError as e:
                error_msg = f"failed to delete path {full_path!r}: {e}"
                logger.error(error_msg, error=str(e))
                raise StorageIOError(error_msg) from e

    def path_join(self, *segments: str) -> str:
        """Join path segments with the OS separator, ignoring empty segments."""
        parts = [segment for segment in segments if segment]
        if not parts:
            return ""
        return os.path.normpath(os.sep.join(parts))
