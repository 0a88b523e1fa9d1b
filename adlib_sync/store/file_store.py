"""JSON file store: one document per ad, grouped in a directory per page."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import structlog

from ..engine.records import AdRecord, PageMetadata
from ..errors import PersistenceError
from .base import BaseStore

METADATA_FILENAME = "metadata.json"


class FileStore(BaseStore):
    """Layout: ``<base_dir>/<page_id>/<archive_id>.json`` and ``metadata.json``."""

    def __init__(self, base_dir: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.base_dir = Path(base_dir)
        self.logger = logger or structlog.get_logger("adlib_sync.store")

    def ensure_container(self, page_id: str) -> None:
        try:
            self._page_dir(page_id).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create directory for page {page_id}: {exc}") from exc

    def put(self, page_id: str, record_id: str, record: AdRecord) -> None:
        self._check_identity(page_id, record_id, record)
        self.ensure_container(page_id)
        self._write_json(self._record_path(page_id, record_id), record.to_document())

    def get(self, page_id: str, record_id: str) -> AdRecord | None:
        path = self._record_path(page_id, record_id)
        if not path.exists():
            return None
        try:
            return AdRecord.from_document(self._read_json(path))
        except (ValueError, TypeError, KeyError) as exc:
            raise PersistenceError(f"Malformed ad file {path}: {exc}") from exc

    def list_all(self, page_id: str) -> list[AdRecord]:
        page_dir = self._page_dir(page_id)
        if not page_dir.is_dir():
            return []
        records: list[AdRecord] = []
        for path in sorted(page_dir.glob("*.json")):
            if path.name == METADATA_FILENAME:
                continue
            try:
                records.append(AdRecord.from_document(self._read_json(path)))
            except (ValueError, TypeError, KeyError) as exc:
                self.logger.warning("malformed_ad_file_skipped", path=str(path), error=str(exc))
        return records

    def put_metadata(self, page_id: str, metadata: PageMetadata) -> None:
        self.ensure_container(page_id)
        self._write_json(self._page_dir(page_id) / METADATA_FILENAME, metadata.to_document())

    def get_metadata(self, page_id: str) -> PageMetadata | None:
        path = self._page_dir(page_id) / METADATA_FILENAME
        if not path.exists():
            return None
        try:
            return PageMetadata.from_document(self._read_json(path))
        except (ValueError, TypeError, KeyError) as exc:
            raise PersistenceError(f"Malformed metadata file {path}: {exc}") from exc

    def list_pages(self) -> list[str]:
        if not self.base_dir.is_dir():
            return []
        return sorted(
            path.name
            for path in self.base_dir.iterdir()
            if path.is_dir() and (path / METADATA_FILENAME).exists()
        )

    # ------------------------------------------------------------------
    def _page_dir(self, page_id: str) -> Path:
        if not page_id or page_id in (".", "..") or any(sep in page_id for sep in ("/", "\\")):
            raise PersistenceError(f"Invalid page id for file store: {page_id!r}")
        return self.base_dir / page_id

    def _record_path(self, page_id: str, record_id: str) -> Path:
        if not record_id or any(sep in record_id for sep in ("/", "\\")):
            raise PersistenceError(f"Invalid record id for file store: {record_id!r}")
        if f"{record_id}.json" == METADATA_FILENAME:
            raise PersistenceError("Record id collides with the metadata document")
        return self._page_dir(page_id) / f"{record_id}.json"

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise PersistenceError(f"Cannot read {path}: {exc}") from exc

    @staticmethod
    def _write_json(path: Path, payload: dict[str, Any]) -> None:
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as stream:
                json.dump(payload, stream, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write {path}: {exc}") from exc


__all__ = ["FileStore", "METADATA_FILENAME"]
