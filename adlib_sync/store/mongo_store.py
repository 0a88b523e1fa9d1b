"""MongoDB store implementation."""

from __future__ import annotations

from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from ..engine.records import AdRecord, PageMetadata
from ..errors import PersistenceError
from .base import BaseStore


class MongoStore(BaseStore):
    """Ads in an ``ads`` collection, metadata in ``page_metadata``."""

    def __init__(self, uri: str, database: str = "adlib_sync") -> None:
        self.client = MongoClient(uri)
        db = self.client[database]
        self.ads = db["ads"]
        self.metadata = db["page_metadata"]

    def ensure_container(self, page_id: str) -> None:
        # Collections are created lazily by MongoDB.
        return

    def put(self, page_id: str, record_id: str, record: AdRecord) -> None:
        self._check_identity(page_id, record_id, record)
        key = self._key(page_id, record_id)
        document = {**record.to_document(), "_id": key}
        try:
            self.ads.replace_one({"_id": key}, document, upsert=True)
        except PyMongoError as exc:
            raise PersistenceError(f"MongoDB write failed for {key}: {exc}") from exc

    def get(self, page_id: str, record_id: str) -> AdRecord | None:
        document = self._find_one(self.ads, {"_id": self._key(page_id, record_id)})
        return AdRecord.from_document(document) if document else None

    def list_all(self, page_id: str) -> list[AdRecord]:
        try:
            documents = list(self.ads.find({"page_id": page_id}, {"_id": False}))
        except PyMongoError as exc:
            raise PersistenceError(f"MongoDB read failed for page {page_id}: {exc}") from exc
        return [AdRecord.from_document(document) for document in documents]

    def put_metadata(self, page_id: str, metadata: PageMetadata) -> None:
        document = {**metadata.to_document(), "_id": page_id}
        try:
            self.metadata.replace_one({"_id": page_id}, document, upsert=True)
        except PyMongoError as exc:
            raise PersistenceError(f"MongoDB metadata write failed for {page_id}: {exc}") from exc

    def get_metadata(self, page_id: str) -> PageMetadata | None:
        document = self._find_one(self.metadata, {"_id": page_id})
        return PageMetadata.from_document(document) if document else None

    def list_pages(self) -> list[str]:
        try:
            return sorted(str(page_id) for page_id in self.metadata.distinct("_id"))
        except PyMongoError as exc:
            raise PersistenceError(f"MongoDB read failed: {exc}") from exc

    def close(self) -> None:
        self.client.close()

    # ------------------------------------------------------------------
    @staticmethod
    def _key(page_id: str, record_id: str) -> str:
        return f"{page_id}:{record_id}"

    @staticmethod
    def _find_one(collection, query: dict[str, Any]) -> dict[str, Any] | None:
        try:
            document = collection.find_one(query)
        except PyMongoError as exc:
            raise PersistenceError(f"MongoDB read failed: {exc}") from exc
        if document is None:
            return None
        document = dict(document)
        document.pop("_id", None)
        return document


__all__ = ["MongoStore"]
