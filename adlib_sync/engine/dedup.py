"""Identity based deduplication of ad records collected across batches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .records import AdRecord, Identity


@dataclass
class MergeResult:
    added: int
    replaced: int


class Deduplicator:
    """Keep one record per ``(page_id, archive_id)``.

    A later occurrence of an identity overwrites the stored record while the
    identity keeps the position of its first appearance.
    """

    def __init__(self) -> None:
        self._records: dict[Identity, AdRecord] = {}

    def merge(self, records: Iterable[AdRecord]) -> MergeResult:
        added = 0
        replaced = 0
        for record in records:
            if record.identity in self._records:
                replaced += 1
            else:
                added += 1
            self._records[record.identity] = record
        return MergeResult(added, replaced)

    def truncate(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must be >= 0")
        if len(self._records) <= limit:
            return
        kept = list(self._records.items())[:limit]
        self._records = dict(kept)

    def records(self) -> list[AdRecord]:
        return list(self._records.values())

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AdRecord]:
        return iter(self._records.values())


def deduplicate(records: Iterable[AdRecord]) -> list[AdRecord]:
    dedup = Deduplicator()
    dedup.merge(records)
    return dedup.records()


__all__ = ["Deduplicator", "MergeResult", "deduplicate"]
