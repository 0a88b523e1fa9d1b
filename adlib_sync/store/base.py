"""Ad store Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..engine.records import AdRecord, PageMetadata
from ..errors import PersistenceError


class BaseStore(ABC):
    """Uniform persistence contract for ad records and page metadata.

    Implementations report IO failures as :class:`PersistenceError`.
    """

    @abstractmethod
    def ensure_container(self, page_id: str) -> None:
        """Make sure the per-page container exists."""

    @abstractmethod
    def put(self, page_id: str, record_id: str, record: AdRecord) -> None:
        """Create or fully overwrite one record."""

    @abstractmethod
    def get(self, page_id: str, record_id: str) -> AdRecord | None:
        """Return one record, or None when it was never stored."""

    @abstractmethod
    def list_all(self, page_id: str) -> list[AdRecord]:
        """Return every stored record of a page."""

    @abstractmethod
    def put_metadata(self, page_id: str, metadata: PageMetadata) -> None:
        """Replace the metadata document of a page."""

    @abstractmethod
    def get_metadata(self, page_id: str) -> PageMetadata | None:
        """Return the metadata of a page, or None before its first sync."""

    @abstractmethod
    def list_pages(self) -> list[str]:
        """Return ids of pages that have metadata."""

    def close(self) -> None:
        """Release underlying resources."""

    @staticmethod
    def _check_identity(page_id: str, record_id: str, record: AdRecord) -> None:
        if record.identity != (page_id, record_id):
            raise PersistenceError(
                f"Record identity {record.identity} does not match key ({page_id}, {record_id})"
            )


__all__ = ["BaseStore"]
