"""Configuration management for ds-storage."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_service_name: str = "ds-storage"
    otel_exporter_endpoint: str = "http://localhost:4317"

    # Buffer size used when streaming object bytes
    chunk_size: int = 1024 * 1024
    dir_mode: int = 0o755

    model_config = {
        "env_prefix": "DS_STORAGE_",
        "case_sensitive": False,
    }

    @field_validator("dir_mode", mode="before")
    @classmethod
    def parse_octal_mode(cls, value: Any) -> Any:
        """Read string modes such as "755" or "0o755" as octal."""
        if isinstance(value, str):
            return int(value.strip(), 8)
        return value


settings = Settings()
