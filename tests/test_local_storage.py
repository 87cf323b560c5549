"""Tests for the local filesystem storage backend."""

import io
import os

import pytest

from ds_storage.base import ObjectInfo, PutOptions
from ds_storage.core.config import settings
from ds_storage.core.context import Context
from ds_storage.core.exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    ObjectNotFoundError,
    OperationCancelledError,
    PartialFailureError,
    StorageIOError,
)
from ds_storage.filesystem import LocalStorage


def _read(storage, name):
    with storage.get(None, name) as stream:
        return stream.read()


class TestLocalStorageReadWrite:
    """Test put and get against a temporary root directory."""

    def test_name(self, local_storage):
        assert local_storage.name == "local-test"

    def test_put_get_round_trip(self, local_storage, temp_dir):
        size = local_storage.put(None, "a/b.txt", b"hello")

        assert size == 5
        assert (temp_dir / "a" / "b.txt").read_bytes() == b"hello"
        assert _read(local_storage, "a/b.txt") == b"hello"

    def test_put_from_file_object(self, local_storage, monkeypatch):
        monkeypatch.setattr(settings, "chunk_size", 3)
        payload = b"0123456789" * 10

        size = local_storage.put(None, "nested/deep/data.bin", io.BytesIO(payload))

        assert size == len(payload)
        assert _read(local_storage, "nested/deep/data.bin") == payload

    def test_put_overwrites_existing(self, local_storage):
        local_storage.put(None, "file.txt", b"a much longer first version")
        local_storage.put(None, "file.txt", b"short")

        assert _read(local_storage, "file.txt") == b"short"

    def test_put_ignores_options(self, local_storage):
        opts = PutOptions(content_type="text/plain", metadata={"owner": "me"})

        assert local_storage.put(None, "file.txt", b"abc", opts) == 3

    def test_put_empty_object(self, local_storage):
        assert local_storage.put(None, "empty.txt", b"") == 0
        assert _read(local_storage, "empty.txt") == b""

    def test_put_fails_when_parent_is_file(self, local_storage):
        local_storage.put(None, "blocker", b"x")

        with pytest.raises(StorageIOError, match="failed to create directory"):
            local_storage.put(None, "blocker/child.txt", b"y")

    def test_get_missing_object(self, local_storage):
        with pytest.raises(ObjectNotFoundError, match="failed to open file"):
            local_storage.get(None, "missing.txt")

    def test_get_returns_stream_at_offset_zero(self, local_storage):
        local_storage.put(None, "file.txt", b"abcdef")

        stream = local_storage.get(None, "file.txt")
        try:
            assert stream.tell() == 0
            assert stream.read(3) == b"abc"
        finally:
            stream.close()

        assert stream.closed


class TestLocalStorageList:
    """Test non-recursive listing."""

    def test_list_immediate_files_only(self, sample_file_structure):
        storage = LocalStorage(str(sample_file_structure), "local-test")

        objects = storage.list(None, "data")

        assert sorted(obj.name for obj in objects) == [
            "data/file1.txt",
            "data/file2.txt",
        ]
        sizes = {obj.name: obj.size for obj in objects}
        assert sizes["data/file2.txt"] == 16
        assert all(isinstance(obj, ObjectInfo) for obj in objects)
        assert all(obj.metadata == {} for obj in objects)
        assert all(obj.updated_at.tzinfo is not None for obj in objects)

    def test_list_with_trailing_slash(self, sample_file_structure):
        storage = LocalStorage(str(sample_file_structure), "local-test")

        objects = storage.list(None, "data/")

        assert sorted(obj.name for obj in objects) == [
            "data/file1.txt",
            "data/file2.txt",
        ]

    def test_list_names_start_with_prefix(self, sample_file_structure):
        storage = LocalStorage(str(sample_file_structure), "local-test")

        for prefix in ("data", "data/", "data/subdir"):
            for obj in storage.list(None, prefix):
                assert obj.name.startswith(prefix)

    @pytest.mark.parametrize("prefix", [".", "./", "data/.."])
    def test_list_root_returns_top_level_files(self, sample_file_structure, prefix):
        storage = LocalStorage(str(sample_file_structure), "local-test")
        storage.put(None, "top.txt", b"top")

        objects = storage.list(None, prefix)

        assert [obj.name for obj in objects] == ["top.txt"]
        assert objects[0].size == 3

    def test_root_name_still_rejected_for_writes(self, local_storage, temp_dir):
        (temp_dir / "keep.txt").write_bytes(b"x")

        with pytest.raises(InvalidArgumentError, match="escapes root"):
            local_storage.delete_all(None, ".")

        with pytest.raises(InvalidArgumentError, match="escapes root"):
            local_storage.delete(None, "./")

        assert (temp_dir / "keep.txt").exists()

    def test_list_missing_prefix_is_empty(self, local_storage):
        assert local_storage.list(None, "does/not/exist") == []

    def test_list_skips_unreadable_entries(self, local_storage, monkeypatch):
        local_storage.put(None, "dir/good.txt", b"good")
        local_storage.put(None, "dir/vanished.txt", b"gone")

        real_scandir = os.scandir

        class VanishingEntry:
            def __init__(self, entry):
                self._entry = entry
                self.name = entry.name
                self.path = entry.path

            def is_dir(self):
                return self._entry.is_dir()

            def stat(self):
                if self.name == "vanished.txt":
                    raise FileNotFoundError(self.path)
                return self._entry.stat()

        class FakeScandir:
            def __init__(self, path):
                self._iterator = real_scandir(path)

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                self._iterator.close()

            def __iter__(self):
                return (VanishingEntry(entry) for entry in self._iterator)

        monkeypatch.setattr(os, "scandir", FakeScandir)

        objects = local_storage.list(None, "dir")

        assert [obj.name for obj in objects] == ["dir/good.txt"]


class TestLocalStorageCopyMove:
    """Test copy and move, including the copy-then-delete fallback."""

    def test_copy_creates_independent_copy(self, local_storage, temp_dir):
        local_storage.put(None, "src.txt", b"original")

        local_storage.copy(None, "src.txt", "backup/dst.txt")
        local_storage.put(None, "src.txt", b"changed")

        assert _read(local_storage, "backup/dst.txt") == b"original"
        assert (temp_dir / "src.txt").exists()

    def test_copy_missing_source(self, local_storage):
        with pytest.raises(ObjectNotFoundError, match="failed to open src file"):
            local_storage.copy(None, "missing.txt", "dst.txt")

    def test_copy_onto_itself_keeps_content(self, local_storage):
        local_storage.put(None, "same.txt", b"keep me")

        local_storage.copy(None, "same.txt", "same.txt")

        assert _read(local_storage, "same.txt") == b"keep me"

    def test_move_renames(self, local_storage):
        local_storage.put(None, "a/b.txt", b"hello")

        local_storage.move(None, "a/b.txt", "c/d.txt")

        assert _read(local_storage, "c/d.txt") == b"hello"
        with pytest.raises(ObjectNotFoundError):
            local_storage.get(None, "a/b.txt")

    def test_move_missing_source(self, local_storage):
        with pytest.raises(ObjectNotFoundError):
            local_storage.move(None, "missing.txt", "dst.txt")

    def test_move_falls_back_to_copy_and_delete(self, local_storage, monkeypatch):
        local_storage.put(None, "src.txt", b"payload")

        def failing_replace(src, dst):
            raise OSError(18, "Invalid cross-device link")

        monkeypatch.setattr(os, "replace", failing_replace)

        local_storage.move(None, "src.txt", "elsewhere/dst.txt")

        assert _read(local_storage, "elsewhere/dst.txt") == b"payload"
        with pytest.raises(ObjectNotFoundError):
            local_storage.get(None, "src.txt")

    def test_move_fallback_partial_failure(self, local_storage, monkeypatch):
        local_storage.put(None, "src.txt", b"payload")

        def failing_replace(src, dst):
            raise OSError(18, "Invalid cross-device link")

        def failing_delete(ctx, name):
            raise StorageIOError(f"failed to delete file {name!r}")

        monkeypatch.setattr(os, "replace", failing_replace)
        monkeypatch.setattr(local_storage, "delete", failing_delete)

        with pytest.raises(PartialFailureError) as exc_info:
            local_storage.move(None, "src.txt", "dst.txt")

        assert exc_info.value.completed == ["dst.txt"]
        assert _read(local_storage, "src.txt") == b"payload"
        assert _read(local_storage, "dst.txt") == b"payload"


class TestLocalStorageDelete:
    """Test single and prefix deletes."""

    def test_delete(self, local_storage):
        local_storage.put(None, "file.txt", b"x")

        local_storage.delete(None, "file.txt")

        with pytest.raises(ObjectNotFoundError):
            local_storage.get(None, "file.txt")

    def test_delete_missing(self, local_storage):
        with pytest.raises(ObjectNotFoundError, match="failed to delete file"):
            local_storage.delete(None, "missing.txt")

    def test_delete_all_removes_tree(self, local_storage, temp_dir):
        local_storage.put(None, "tree/a.txt", b"a")
        local_storage.put(None, "tree/sub/b.txt", b"b")
        local_storage.put(None, "keep/c.txt", b"c")

        local_storage.delete_all(None, "tree")

        assert not (temp_dir / "tree").exists()
        assert _read(local_storage, "keep/c.txt") == b"c"

    def test_delete_all_is_idempotent(self, local_storage):
        local_storage.put(None, "tree/a.txt", b"a")

        local_storage.delete_all(None, "tree")
        local_storage.delete_all(None, "tree")

        assert local_storage.list(None, "tree") == []

    def test_delete_all_single_file(self, local_storage, temp_dir):
        local_storage.put(None, "single.txt", b"a")

        local_storage.delete_all(None, "single.txt")

        assert not (temp_dir / "single.txt").exists()


class TestLocalStorageValidation:
    """Test argument, configuration and cancellation checks."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.get(None, ""),
            lambda s: s.put(None, "", b"data"),
            lambda s: s.list(None, ""),
            lambda s: s.copy(None, "", "dst"),
            lambda s: s.copy(None, "src", ""),
            lambda s: s.move(None, "", "dst"),
            lambda s: s.move(None, "src", ""),
            lambda s: s.delete(None, ""),
            lambda s: s.delete_all(None, ""),
        ],
    )
    def test_empty_arguments_rejected(self, local_storage, temp_dir, call):
        with pytest.raises(InvalidArgumentError, match="required"):
            call(local_storage)

        assert list(temp_dir.iterdir()) == []

    @pytest.mark.parametrize("name", ["../outside.txt", "a/../../outside.txt", "."])
    def test_names_outside_root_rejected(self, local_storage, name):
        with pytest.raises(InvalidArgumentError):
            local_storage.put(None, name, b"data")

    def test_symlink_out_of_root_rejected(
        self, local_storage, temp_dir, tmp_path_factory
    ):
        outside = tmp_path_factory.mktemp("outside")
        (outside / "secret.txt").write_bytes(b"secret")
        os.symlink(outside, temp_dir / "link")

        with pytest.raises(InvalidArgumentError, match="escapes root"):
            local_storage.put(None, "link/new.txt", b"data")

        with pytest.raises(InvalidArgumentError, match="escapes root"):
            local_storage.get(None, "link/secret.txt")

        with pytest.raises(InvalidArgumentError, match="escapes root"):
            local_storage.delete_all(None, "link")

        assert not (outside / "new.txt").exists()
        assert (outside / "secret.txt").exists()

    def test_absolute_name_rejected(self, local_storage, tmp_path_factory):
        outside = tmp_path_factory.mktemp("outside") / "file.txt"

        with pytest.raises(InvalidArgumentError, match="relative"):
            local_storage.put(None, str(outside), b"data")

        assert not outside.exists()

    def test_missing_root_dir(self):
        storage = LocalStorage(root_dir="", name="unconfigured")

        with pytest.raises(ConfigurationError, match="root dir required"):
            storage.get(None, "file.txt")

        with pytest.raises(ConfigurationError):
            storage.delete_all(None, "prefix")

    def test_cancelled_context_performs_no_io(self, local_storage, temp_dir):
        ctx = Context.background().with_cancel()
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            local_storage.put(ctx, "a/b.txt", b"hello")

        assert list(temp_dir.iterdir()) == []

    def test_expired_deadline(self, local_storage):
        local_storage.put(None, "file.txt", b"x")
        ctx = Context.background().with_timeout(0)

        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            local_storage.delete(ctx, "file.txt")

        assert _read(local_storage, "file.txt") == b"x"

    def test_cancel_during_put(self, local_storage, monkeypatch):
        monkeypatch.setattr(settings, "chunk_size", 4)
        ctx = Context.background().with_cancel()

        class CancellingReader(io.BytesIO):
            def read(self, size=-1):
                chunk = super().read(size)
                ctx.cancel()
                return chunk

        with pytest.raises(OperationCancelledError):
            local_storage.put(ctx, "partial.bin", CancellingReader(b"x" * 64))


class TestLocalStoragePathJoin:
    """Test OS-native path joining."""

    def test_join(self, local_storage):
        assert local_storage.path_join("a", "b", "c.txt") == os.path.join(
            "a", "b", "c.txt"
        )

    def test_join_ignores_empty_segments(self, local_storage):
        assert local_storage.path_join("", "a", "", "b") == os.path.join("a", "b")

    def test_join_nothing(self, local_storage):
        assert local_storage.path_join() == ""
        assert local_storage.path_join("", "") == ""

    def test_join_cleans(self, local_storage):
        assert local_storage.path_join("a/./b/", "../c") == os.path.join("a", "c")


def test_put_list_move_scenario(local_storage):
    """Put, list and move through the documented scenario."""
    assert local_storage.put(None, "a/b.txt", b"hello", None) == 5

    objects = local_storage.list(None, "a")
    assert [(obj.name, obj.size) for obj in objects] == [("a/b.txt", 5)]

    local_storage.move(None, "a/b.txt", "c/d.txt")

    with pytest.raises(ObjectNotFoundError):
        local_storage.get(None, "a/b.txt")
    assert _read(local_storage, "c/d.txt") == b"hello"
