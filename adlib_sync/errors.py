"""Error taxonomy shared by the sync engine."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync failures.

    ``fatal`` errors abort the running sync and flip ``SyncResult.success``;
    non-fatal ones are collected into ``SyncResult.errors`` and the run goes on.
    """

    fatal: bool = True


class DriverInitError(SyncError):
    """The browser automation driver could not be started."""


class NavigationTimeout(SyncError):
    """The target library page did not load within the allotted time."""

    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(f"Navigation to {url} timed out after {timeout:.0f}s")
        self.url = url
        self.timeout = timeout


class ExtractionParseError(SyncError):
    """A single payload entry could not be normalised into an ad record."""

    fatal = False

    def __init__(self, reason: str, index: int | None = None, detail: str | None = None) -> None:
        message = reason if index is None else f"entry {index}: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.reason = reason
        self.index = index
        self.detail = detail


class PersistenceError(SyncError):
    """A store operation failed for one record or metadata document."""

    fatal = False


class MissingMetadataError(SyncError):
    """Incremental sync requested for a page that was never initially synced."""

    def __init__(self, page_id: str) -> None:
        super().__init__(f"No metadata found for page {page_id}. Run initial sync first.")
        self.page_id = page_id


class EmptyResultError(SyncError):
    """The library returned no ads at all."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No ads found at {url}. URL may be invalid or page has no ads.")
        self.url = url


__all__ = [
    "DriverInitError",
    "EmptyResultError",
    "ExtractionParseError",
    "MissingMetadataError",
    "NavigationTimeout",
    "PersistenceError",
    "SyncError",
]
