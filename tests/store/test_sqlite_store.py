from __future__ import annotations

import pytest

from adlib_sync.engine import PageMetadata
from adlib_sync.errors import PersistenceError
from adlib_sync.infra import SQLiteManager
from adlib_sync.store import SQLiteStore


@pytest.fixture
def store(tmp_path):
    store = SQLiteStore(tmp_path / "ads.db")
    yield store
    store.close()


def test_upsert_keeps_one_row_per_identity(store, make_record) -> None:
    store.put("111", "1", make_record("1", spend="10"))
    store.put("111", "2", make_record("2"))
    store.put("111", "1", make_record("1", spend="20"))

    records = store.list_all("111")
    assert [record.archive_id for record in records] == ["1", "2"]
    assert store.get("111", "1").spend == "20"
    count = store.conn.execute("SELECT count(*) FROM ads").fetchone()[0]
    assert count == 2


def test_pages_are_isolated(store, make_record) -> None:
    store.put("111", "1", make_record("1"))
    store.put("222", "1", make_record("1", page_id="222"))
    assert len(store.list_all("111")) == 1
    assert store.get("333", "1") is None


def test_metadata_replaced_wholesale(store, make_record) -> None:
    first = PageMetadata.from_records("111", "Acme", [make_record("1")], "t1")
    second = PageMetadata.from_records("111", "Acme", [], "t2")
    store.put_metadata("111", first)
    store.put_metadata("111", second)
    assert store.get_metadata("111") == second
    assert store.get_metadata("222") is None
    assert store.list_pages() == ["111"]


def test_identity_mismatch_raises(store, make_record) -> None:
    with pytest.raises(PersistenceError):
        store.put("111", "2", make_record("1"))


def test_write_errors_become_persistence_errors(store, make_record) -> None:
    store.conn.execute("DROP TABLE ads")
    with pytest.raises(PersistenceError):
        store.put("111", "1", make_record("1"))


def test_shared_manager_reuses_connection(tmp_path) -> None:
    manager = SQLiteManager()
    first = SQLiteStore(tmp_path / "ads.db", manager=manager)
    second = SQLiteStore(tmp_path / "ads.db", manager=manager)
    assert first.conn is second.conn
    manager.close_all()


def test_malformed_rows_are_skipped_or_reported(store, make_record) -> None:
    store.put("111", "1", make_record("1"))
    store.put("111", "2", make_record("2"))
    store.put_metadata("111", PageMetadata.from_records("111", "Acme", [], "t1"))
    store.conn.execute("UPDATE ads SET payload = '{broken' WHERE archive_id = '2'")
    store.conn.execute("UPDATE page_metadata SET payload = '[]' WHERE page_id = '111'")
    store.conn.commit()

    assert [record.archive_id for record in store.list_all("111")] == ["1"]
    with pytest.raises(PersistenceError):
        store.get("111", "2")
    with pytest.raises(PersistenceError):
        store.get_metadata("111")


def test_unencodable_payload_becomes_persistence_error(store, make_record) -> None:
    with pytest.raises(PersistenceError):
        store.put("111", "1", make_record("1", extra={"blob": object()}))
    assert store.get("111", "1") is None
