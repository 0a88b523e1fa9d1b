from __future__ import annotations

import json

import pytest

from adlib_sync.engine import Liveness, PageMetadata
from adlib_sync.errors import PersistenceError
from adlib_sync.store import FileStore
from adlib_sync.store.file_store import METADATA_FILENAME


@pytest.fixture
def store(tmp_path) -> FileStore:
    return FileStore(tmp_path / "ads")


def test_put_get_and_overwrite(store, make_record, tmp_path) -> None:
    record = make_record("900", extra={"publisher_platforms": ["facebook"]})
    store.put("111", "900", record)
    path = tmp_path / "ads" / "111" / "900.json"
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8"))["ad_archive_id"] == "900"
    assert store.get("111", "900") == record

    retired = record.retire("2024-05-01T00:00:00.000Z")
    store.put("111", "900", retired)
    assert store.get("111", "900").liveness is Liveness.INACTIVE
    assert not list((tmp_path / "ads" / "111").glob(".*.tmp"))


def test_get_missing_returns_none(store) -> None:
    assert store.get("111", "404") is None
    assert store.get_metadata("111") is None
    assert store.list_all("111") == []


def test_list_all_skips_malformed_files(store, make_record, tmp_path) -> None:
    store.put("111", "1", make_record("1"))
    store.put("111", "2", make_record("2"))
    (tmp_path / "ads" / "111" / "3.json").write_text("{broken", encoding="utf-8")
    store.put_metadata("111", PageMetadata.from_records("111", None, [], "now"))

    records = store.list_all("111")
    assert sorted(record.archive_id for record in records) == ["1", "2"]
    with pytest.raises(PersistenceError):
        store.get("111", "3")


def test_metadata_round_trip_and_page_listing(store, make_record) -> None:
    metadata = PageMetadata.from_records(
        "111", "Acme", [make_record("1")], "2024-05-01T00:00:00.000Z"
    )
    store.put_metadata("111", metadata)
    store.ensure_container("222")
    assert store.get_metadata("111") == metadata
    assert store.list_pages() == ["111"]


def test_rejects_identity_mismatch_and_unsafe_ids(store, make_record) -> None:
    with pytest.raises(PersistenceError):
        store.put("222", "1", make_record("1"))
    with pytest.raises(PersistenceError):
        store.put("../etc", "1", make_record("1", page_id="../etc"))
    with pytest.raises(PersistenceError):
        store.get("111", "metadata")
    assert METADATA_FILENAME == "metadata.json"
