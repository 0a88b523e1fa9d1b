"""Ad record and page metadata models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping

Identity = tuple[str, str]


class Liveness(str, Enum):
    """Whether an ad is currently served."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def parse(cls, value: Any) -> "Liveness":
        if isinstance(value, Liveness):
            return value
        if isinstance(value, bool):
            return cls.ACTIVE if value else cls.INACTIVE
        if isinstance(value, (int, float)):
            return cls.ACTIVE if value else cls.INACTIVE
        if isinstance(value, str):
            text = value.strip().lower()
            if text in ("active", "true", "1", "yes"):
                return cls.ACTIVE
            if text in ("inactive", "false", "0", "no"):
                return cls.INACTIVE
        raise ValueError(f"Unrecognised liveness value: {value!r}")


# attribute name -> document key
DOCUMENT_FIELDS: dict[str, str] = {
    "archive_id": "ad_archive_id",
    "page_id": "page_id",
    "page_name": "page_name",
    "creation_time": "ad_creation_time",
    "delivery_start_time": "ad_delivery_start_time",
    "delivery_stop_time": "ad_delivery_stop_time",
    "snapshot_url": "ad_snapshot_url",
    "currency": "currency",
    "spend": "spend",
    "impressions": "impressions",
    "creative_bodies": "ad_creative_bodies",
    "link_captions": "ad_creative_link_captions",
    "link_descriptions": "ad_creative_link_descriptions",
    "link_titles": "ad_creative_link_titles",
}
_RESERVED_KEYS = set(DOCUMENT_FIELDS.values()) | {"liveness", "is_active", "extra"}


@dataclass(frozen=True)
class AdRecord:
    """One ad from the library.

    The identity pair ``(page_id, archive_id)`` never changes for a record;
    use :meth:`replace_fields` to derive updated copies. Attributes the model
    does not know about live in ``extra`` and survive every round trip.
    """

    archive_id: str
    page_id: str
    page_name: str | None = None
    liveness: Liveness = Liveness.ACTIVE
    creation_time: Any = None
    delivery_start_time: Any = None
    delivery_stop_time: Any = None
    snapshot_url: str | None = None
    currency: str | None = None
    spend: Any = None
    impressions: Any = None
    creative_bodies: list[Any] | None = None
    link_captions: list[Any] | None = None
    link_descriptions: list[Any] | None = None
    link_titles: list[Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.archive_id or not self.page_id:
            raise ValueError("AdRecord requires non-empty archive_id and page_id")
        if not isinstance(self.liveness, Liveness):
            object.__setattr__(self, "liveness", Liveness.parse(self.liveness))

    @property
    def identity(self) -> Identity:
        return (self.page_id, self.archive_id)

    @property
    def is_active(self) -> bool:
        return self.liveness is Liveness.ACTIVE

    def replace_fields(self, **changes: Any) -> "AdRecord":
        if "archive_id" in changes or "page_id" in changes:
            raise ValueError("archive_id and page_id are immutable")
        return replace(self, **changes)

    def retire(self, stopped_at: str) -> "AdRecord":
        return self.replace_fields(liveness=Liveness.INACTIVE, delivery_stop_time=stopped_at)

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {}
        for attr, key in DOCUMENT_FIELDS.items():
            document[key] = getattr(self, attr)
        document["liveness"] = self.liveness.value
        document["extra"] = dict(self.extra)
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "AdRecord":
        if not isinstance(document, Mapping):
            raise TypeError(f"Ad document must be a mapping, got {type(document).__name__}")
        kwargs: dict[str, Any] = {}
        for attr, key in DOCUMENT_FIELDS.items():
            if key in document:
                kwargs[attr] = document[key]
        if "liveness" in document:
            kwargs["liveness"] = Liveness.parse(document["liveness"])
        elif "is_active" in document:
            kwargs["liveness"] = Liveness.parse(document["is_active"])
        extra: dict[str, Any] = {
            key: value for key, value in document.items() if key not in _RESERVED_KEYS
        }
        stored_extra = document.get("extra")
        if isinstance(stored_extra, Mapping):
            extra.update(stored_extra)
        kwargs["extra"] = extra
        if kwargs.get("archive_id") is not None:
            kwargs["archive_id"] = str(kwargs["archive_id"])
        if kwargs.get("page_id") is not None:
            kwargs["page_id"] = str(kwargs["page_id"])
        return cls(**kwargs)


@dataclass(frozen=True)
class PageMetadata:
    """Aggregate counters for one page, replaced wholesale on every sync."""

    page_id: str
    page_name: str | None
    last_synced: str
    total_ads: int
    active_ads: int
    inactive_ads: int

    def __post_init__(self) -> None:
        if min(self.total_ads, self.active_ads, self.inactive_ads) < 0:
            raise ValueError("PageMetadata counters must be non-negative")
        if self.active_ads + self.inactive_ads != self.total_ads:
            raise ValueError(
                f"PageMetadata counters inconsistent for page {self.page_id}: "
                f"{self.active_ads} + {self.inactive_ads} != {self.total_ads}"
            )

    @classmethod
    def from_records(
        cls,
        page_id: str,
        page_name: str | None,
        records: Iterable[AdRecord],
        synced_at: str,
    ) -> "PageMetadata":
        total = 0
        active = 0
        for record in records:
            total += 1
            if record.is_active:
                active += 1
        return cls(
            page_id=page_id,
            page_name=page_name,
            last_synced=synced_at,
            total_ads=total,
            active_ads=active,
            inactive_ads=total - active,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "page_name": self.page_name,
            "last_synced": self.last_synced,
            "total_ads": self.total_ads,
            "active_ads": self.active_ads,
            "inactive_ads": self.inactive_ads,
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "PageMetadata":
        if not isinstance(document, Mapping):
            raise TypeError("Metadata document must be a mapping")
        return cls(
            page_id=str(document["page_id"]),
            page_name=document.get("page_name"),
            last_synced=str(document.get("last_synced") or ""),
            total_ads=int(document.get("total_ads", 0)),
            active_ads=int(document.get("active_ads", 0)),
            inactive_ads=int(document.get("inactive_ads", 0)),
        )


__all__ = ["AdRecord", "DOCUMENT_FIELDS", "Identity", "Liveness", "PageMetadata"]
