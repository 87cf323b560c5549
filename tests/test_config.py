"""Tests for environment-driven settings."""

import pytest

from ds_storage.core.config import Settings


class TestSettings:
    """Test settings loaded from DS_STORAGE_ environment variables."""

    def test_defaults(self):
        settings = Settings()

        assert settings.chunk_size == 1024 * 1024
        assert settings.dir_mode == 0o755

    @pytest.mark.parametrize("raw", ["755", "0755", "0o755"])
    def test_dir_mode_env_is_octal(self, monkeypatch, raw):
        monkeypatch.setenv("DS_STORAGE_DIR_MODE", raw)

        assert Settings().dir_mode == 0o755

    def test_dir_mode_rejects_non_octal(self, monkeypatch):
        monkeypatch.setenv("DS_STORAGE_DIR_MODE", "rwxr-xr-x")

        with pytest.raises(ValueError):
            Settings()

    def test_dir_mode_int_passes_through(self):
        assert Settings(dir_mode=0o700).dir_mode == 0o700
