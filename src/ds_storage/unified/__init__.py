"""Unified entry point for building storage backends from configuration."""

from .storage_factory import create_storage, parse_storage_config

__all__ = [
    "create_storage",
    "parse_storage_config",
]
