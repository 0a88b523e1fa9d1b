"""Normalise raw ad library GraphQL payloads into ad records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ..errors import ExtractionParseError
from .records import DOCUMENT_FIELDS, AdRecord, Liveness


@dataclass(frozen=True)
class ShapeProbe:
    """One known location of the ad edge list inside a response payload.

    ``container`` is the path whose presence marks the payload as ad-bearing,
    ``edges`` the remaining path from the container to the edge list.
    """

    name: str
    container: tuple[str, ...]
    edges: tuple[str, ...]

    def contains(self, payload: Any) -> bool:
        return bool(_walk(payload, self.container))

    def resolve(self, payload: Any) -> list[Any]:
        value = _walk(_walk(payload, self.container), self.edges)
        if isinstance(value, list):
            return value
        return []


DEFAULT_PROBES: tuple[ShapeProbe, ...] = (
    ShapeProbe(
        name="ad_library_main",
        container=("data", "ad_library_main"),
        edges=("search_results", "edges"),
    ),
    ShapeProbe(
        name="page_search_result_ads",
        container=("data", "page", "ad_library_page_search_result_ads"),
        edges=("edges",),
    ),
)

_CONSUMED_KEYS = frozenset(DOCUMENT_FIELDS.values()) | {"is_active"}


def _walk(payload: Any, path: Sequence[str]) -> Any:
    current = payload
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _first_present(entry: Mapping[str, Any], *paths: Sequence[str]) -> Any:
    for path in paths:
        value = _walk(entry, path)
        if value not in (None, ""):
            return value
    return None


@dataclass
class ExtractionOutcome:
    """Either a normalised record or the reason the entry was dropped."""

    record: AdRecord | None = None
    failure: ExtractionParseError | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass
class ExtractionBatch:
    records: list[AdRecord] = field(default_factory=list)
    failures: list[ExtractionParseError] = field(default_factory=list)
    probe: str | None = None


class Extractor:
    """Turn ad library responses into :class:`AdRecord` candidates."""

    def __init__(self, probes: Iterable[ShapeProbe] | None = None) -> None:
        self.probes: tuple[ShapeProbe, ...] = tuple(probes) if probes is not None else DEFAULT_PROBES

    def matches(self, payload: Any) -> bool:
        return any(probe.contains(payload) for probe in self.probes)

    def extract(self, payload: Any) -> ExtractionBatch:
        batch = ExtractionBatch()
        for probe in self.probes:
            edges = probe.resolve(payload)
            if edges:
                batch.probe = probe.name
                break
        else:
            return batch
        for index, edge in enumerate(edges):
            entry = edge.get("node", edge) if isinstance(edge, Mapping) else edge
            outcome = self.normalize(entry, index=index)
            if outcome.record is not None:
                batch.records.append(outcome.record)
            elif outcome.failure is not None:
                batch.failures.append(outcome.failure)
        return batch

    def extract_many(self, payloads: Iterable[Any]) -> ExtractionBatch:
        combined = ExtractionBatch()
        for payload in payloads:
            batch = self.extract(payload)
            combined.records.extend(batch.records)
            combined.failures.extend(batch.failures)
        return combined

    def normalize(self, entry: Any, index: int | None = None) -> ExtractionOutcome:
        if not isinstance(entry, Mapping):
            return ExtractionOutcome(failure=ExtractionParseError("not_a_mapping", index))

        archive_id = _first_present(entry, ("ad_archive_id",), ("adArchiveID",))
        if archive_id is None:
            return ExtractionOutcome(failure=ExtractionParseError("missing_archive_id", index))
        page_id = _first_present(entry, ("page_id",), ("page", "id"), ("snapshot", "page_id"))
        if page_id is None:
            return ExtractionOutcome(
                failure=ExtractionParseError("missing_page_id", index, detail=str(archive_id))
            )

        try:
            raw_active = entry.get("is_active")
            liveness = Liveness.ACTIVE if raw_active is None else Liveness.parse(raw_active)
            record = AdRecord(
                archive_id=str(archive_id),
                page_id=str(page_id),
                page_name=_first_present(
                    entry, ("page_name",), ("page", "name"), ("snapshot", "page_name")
                ),
                liveness=liveness,
                creation_time=entry.get("ad_creation_time"),
                delivery_start_time=_first_present(
                    entry, ("ad_delivery_start_time",), ("start_date",)
                ),
                delivery_stop_time=_first_present(entry, ("ad_delivery_stop_time",), ("end_date",)),
                snapshot_url=entry.get("ad_snapshot_url"),
                currency=entry.get("currency"),
                spend=entry.get("spend"),
                impressions=entry.get("impressions"),
                creative_bodies=entry.get("ad_creative_bodies"),
                link_captions=entry.get("ad_creative_link_captions"),
                link_descriptions=entry.get("ad_creative_link_descriptions"),
                link_titles=entry.get("ad_creative_link_titles"),
                extra={key: value for key, value in entry.items() if key not in _CONSUMED_KEYS},
            )
        except (TypeError, ValueError) as exc:
            return ExtractionOutcome(
                failure=ExtractionParseError("invalid_field", index, detail=str(exc))
            )
        return ExtractionOutcome(record=record)


__all__ = [
    "DEFAULT_PROBES",
    "ExtractionBatch",
    "ExtractionOutcome",
    "Extractor",
    "ShapeProbe",
]
