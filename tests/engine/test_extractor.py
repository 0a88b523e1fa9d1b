from __future__ import annotations

from adlib_sync.engine import Extractor, Liveness, ShapeProbe


def test_extracts_records_from_main_shape(ad_node, ad_payload) -> None:
    payload = ad_payload(ad_node("1"), ad_node("2", is_active=False))
    batch = Extractor().extract(payload)
    assert batch.probe == "ad_library_main"
    assert [record.archive_id for record in batch.records] == ["1", "2"]
    assert batch.records[1].liveness is Liveness.INACTIVE
    assert batch.failures == []


def test_extracts_records_from_page_search_shape(ad_node, ad_payload) -> None:
    payload = ad_payload(ad_node("7"), shape="page")
    batch = Extractor().extract(payload)
    assert batch.probe == "page_search_result_ads"
    assert batch.records[0].identity == ("111", "7")


def test_malformed_entry_is_reported_not_fatal(ad_node, ad_payload) -> None:
    broken = ad_node("2")
    del broken["ad_archive_id"]
    batch = Extractor().extract(ad_payload(ad_node("1"), broken))
    assert len(batch.records) == 1
    assert len(batch.failures) == 1
    failure = batch.failures[0]
    assert failure.reason == "missing_archive_id"
    assert failure.index == 1
    assert failure.fatal is False


def test_missing_page_id_and_non_mapping_entries(ad_node) -> None:
    extractor = Extractor()
    no_page = ad_node("5")
    del no_page["page_id"]
    assert extractor.normalize(no_page).failure.reason == "missing_page_id"
    assert extractor.normalize("garbage").failure.reason == "not_a_mapping"


def test_invalid_liveness_value_is_a_failure(ad_node) -> None:
    outcome = Extractor().normalize(ad_node("5", is_active="sometimes"), index=0)
    assert not outcome.ok
    assert outcome.failure.reason == "invalid_field"


def test_alternate_field_locations(ad_node) -> None:
    entry = {
        "adArchiveID": 99,
        "snapshot": {"page_id": 111, "page_name": "Acme Outdoors"},
        "start_date": 1709251200,
        "end_date": 1711929600,
    }
    record = Extractor().normalize(entry).record
    assert record.identity == ("111", "99")
    assert record.page_name == "Acme Outdoors"
    assert record.liveness is Liveness.ACTIVE
    assert record.delivery_start_time == 1709251200
    assert record.delivery_stop_time == 1711929600
    assert record.extra["snapshot"] == {"page_id": 111, "page_name": "Acme Outdoors"}


def test_unknown_attributes_are_preserved(ad_node) -> None:
    record = Extractor().normalize(ad_node("1", publisher_platform=["instagram"])).record
    assert record.extra["publisher_platform"] == ["instagram"]
    assert "ad_archive_id" not in record.extra
    assert "is_active" not in record.extra


def test_probe_priority_and_matching(ad_node, ad_payload) -> None:
    extractor = Extractor()
    assert extractor.matches(ad_payload(ad_node("1")))
    assert not extractor.matches({"data": {"viewer": {}}})
    assert not extractor.matches("not json")

    custom = ShapeProbe(name="custom", container=("ads",), edges=("items",))
    combined = {
        "ads": {"items": [ad_node("c1")]},
        **ad_payload(ad_node("m1")),
    }
    batch = Extractor([custom, *extractor.probes]).extract(combined)
    assert batch.probe == "custom"
    assert [record.archive_id for record in batch.records] == ["c1"]


def test_payload_without_ads_yields_empty_batch() -> None:
    batch = Extractor().extract({"data": {"ad_library_main": {"search_results": {"edges": []}}}})
    assert batch.records == []
    assert batch.probe is None


def test_extract_many_concatenates_batches(ad_node, ad_payload) -> None:
    batch = Extractor().extract_many(
        [ad_payload(ad_node("1")), ad_payload(ad_node("2"), shape="page")]
    )
    assert [record.archive_id for record in batch.records] == ["1", "2"]
