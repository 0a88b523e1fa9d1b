"""Small helpers around page identifiers, library URLs and timestamps."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

_PAGE_ID_PATTERN = re.compile(r"^\d+$")

DEFAULT_LIBRARY_URL_TEMPLATE = (
    "https://www.facebook.com/ads/library/"
    "?active_status=all&ad_type=all&country=ALL&view_all_page_id={page_id}"
)


def is_valid_page_id(page_id: str) -> bool:
    return bool(page_id) and bool(_PAGE_ID_PATTERN.match(page_id))


def extract_page_id_from_url(url: str) -> str | None:
    """Return ``view_all_page_id`` from an ad library URL, if present."""

    query = parse_qs(urlparse(url).query)
    values = query.get("view_all_page_id") or []
    for value in values:
        if is_valid_page_id(value):
            return value
    return None


def build_library_url(template: str, page_id: str) -> str:
    if not is_valid_page_id(page_id):
        raise ValueError(f"Invalid page id: {page_id!r}")
    return template.format(page_id=page_id)


def utc_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and ``Z`` suffix."""

    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = [
    "DEFAULT_LIBRARY_URL_TEMPLATE",
    "build_library_url",
    "extract_page_id_from_url",
    "is_valid_page_id",
    "utc_timestamp",
]
