from __future__ import annotations

import pytest

from adlib_sync.engine import Deduplicator, deduplicate


def test_later_occurrence_wins_and_keeps_first_position(make_record) -> None:
    records = [
        make_record("1", spend="10"),
        make_record("2"),
        make_record("1", spend="20"),
    ]
    result = deduplicate(records)
    assert [record.archive_id for record in result] == ["1", "2"]
    assert result[0].spend == "20"


def test_identity_includes_page_id(make_record) -> None:
    result = deduplicate([make_record("1", page_id="111"), make_record("1", page_id="222")])
    assert len(result) == 2


def test_merge_reports_growth(make_record) -> None:
    dedup = Deduplicator()
    first = dedup.merge([make_record("1"), make_record("2")])
    assert (first.added, first.replaced) == (2, 0)
    second = dedup.merge([make_record("2")])
    assert (second.added, second.replaced) == (0, 1)
    assert ("111", "2") in dedup
    assert len(dedup) == 2


def test_size_is_bounded_by_input(make_record) -> None:
    records = [make_record(str(index % 3)) for index in range(10)]
    assert len(deduplicate(records)) == 3


def test_truncate_keeps_earliest_identities(make_record) -> None:
    dedup = Deduplicator()
    dedup.merge([make_record(str(index)) for index in range(5)])
    dedup.truncate(2)
    assert [record.archive_id for record in dedup] == ["0", "1"]
    with pytest.raises(ValueError):
        dedup.truncate(-1)
