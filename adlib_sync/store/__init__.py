"""Persisted store SPI and implementations."""

from __future__ import annotations

from pathlib import Path

from ..config import GlobalConfig
from .base import BaseStore
from .file_store import FileStore
from .mongo_store import MongoStore
from .sqlite_store import SQLiteStore


def build_store(global_config: GlobalConfig, home: Path) -> BaseStore:
    """Instantiate the backend selected by ``storage_backend``."""

    backend = global_config.storage_backend
    if backend == "file":
        return FileStore(global_config.resolve_path(global_config.storage_dir, home))
    if backend == "sqlite":
        return SQLiteStore(global_config.resolve_path(global_config.sqlite_path, home))
    if backend == "mongodb":
        return MongoStore(global_config.mongo_uri, database=global_config.mongo_database)
    raise ValueError(f"Unsupported storage backend: {backend}")


__all__ = ["BaseStore", "FileStore", "MongoStore", "SQLiteStore", "build_store"]
