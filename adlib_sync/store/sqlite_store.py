"""Persist ad records and page metadata as JSON payloads in SQLite."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import structlog

from ..engine.records import AdRecord, PageMetadata
from ..errors import PersistenceError
from ..helpers import utc_timestamp
from ..infra.storage import SQLiteManager
from .base import BaseStore


class SQLiteStore(BaseStore):
    """Single database file holding every page."""

    def __init__(
        self,
        path: Path,
        manager: SQLiteManager | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.path = Path(path)
        self.logger = logger or structlog.get_logger("adlib_sync.store")
        self.manager = manager or SQLiteManager()
        try:
            self.conn = self.manager.connect(self.path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open SQLite store {self.path}: {exc}") from exc

    def ensure_container(self, page_id: str) -> None:
        # Rows are keyed by page id; nothing to create per page.
        return

    def put(self, page_id: str, record_id: str, record: AdRecord) -> None:
        self._check_identity(page_id, record_id, record)
        payload = self._encode(record.to_document())
        self._execute(
            """
            INSERT INTO ads(page_id, archive_id, payload, updated_at) VALUES (?, ?, ?, ?)
            ON CONFLICT(page_id, archive_id)
            DO UPDATE SET payload = excluded.payload, updated_at = excluded.updated_at
            """,
            (page_id, record_id, payload, utc_timestamp()),
        )

    def get(self, page_id: str, record_id: str) -> AdRecord | None:
        row = self._query(
            "SELECT payload FROM ads WHERE page_id = ? AND archive_id = ?",
            (page_id, record_id),
        ).fetchone()
        if row is None:
            return None
        try:
            return AdRecord.from_document(json.loads(row["payload"]))
        except (ValueError, TypeError, KeyError) as exc:
            raise PersistenceError(f"Malformed ad row {page_id}/{record_id}: {exc}") from exc

    def list_all(self, page_id: str) -> list[AdRecord]:
        rows = self._query(
            "SELECT archive_id, payload FROM ads WHERE page_id = ? ORDER BY rowid", (page_id,)
        ).fetchall()
        records: list[AdRecord] = []
        for row in rows:
            try:
                records.append(AdRecord.from_document(json.loads(row["payload"])))
            except (ValueError, TypeError, KeyError) as exc:
                self.logger.warning(
                    "malformed_ad_row_skipped",
                    page_id=page_id,
                    archive_id=row["archive_id"],
                    error=str(exc),
                )
        return records

    def put_metadata(self, page_id: str, metadata: PageMetadata) -> None:
        self._execute(
            "INSERT OR REPLACE INTO page_metadata(page_id, payload) VALUES (?, ?)",
            (page_id, self._encode(metadata.to_document())),
        )

    def get_metadata(self, page_id: str) -> PageMetadata | None:
        row = self._query(
            "SELECT payload FROM page_metadata WHERE page_id = ?", (page_id,)
        ).fetchone()
        if row is None:
            return None
        try:
            return PageMetadata.from_document(json.loads(row["payload"]))
        except (ValueError, TypeError, KeyError) as exc:
            raise PersistenceError(f"Malformed metadata row for page {page_id}: {exc}") from exc

    def list_pages(self) -> list[str]:
        rows = self._query("SELECT page_id FROM page_metadata ORDER BY page_id", ()).fetchall()
        return [row["page_id"] for row in rows]

    def close(self) -> None:
        self.manager.close(self.path)

    # ------------------------------------------------------------------
    @staticmethod
    def _encode(document: dict[str, Any]) -> str:
        try:
            return json.dumps(document, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot encode payload: {exc}") from exc

    def _execute(self, sql: str, params: tuple) -> None:
        try:
            self.conn.execute(sql, params)
            self.conn.commit()
        except sqlite3.Error as exc:
            self.conn.rollback()
            raise PersistenceError(f"SQLite write failed: {exc}") from exc

    def _query(self, sql: str, params: tuple) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise PersistenceError(f"SQLite read failed: {exc}") from exc


__all__ = ["SQLiteStore"]
