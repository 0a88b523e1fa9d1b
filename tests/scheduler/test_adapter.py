from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from adlib_sync.config import ScheduleConfig, ScheduleType, TrackedPage
from adlib_sync.scheduler import APSchedulerAdapter, job_id_for


def _page(schedule: ScheduleConfig, **overrides) -> TrackedPage:
    return TrackedPage(page_id=overrides.pop("page_id", "111"), schedule=schedule, **overrides)


def test_build_triggers() -> None:
    adapter = APSchedulerAdapter()
    cron = adapter._build_trigger(_page(ScheduleConfig(type=ScheduleType.CRON, value="0 3 * * *")))
    assert isinstance(cron, CronTrigger)

    interval = adapter._build_trigger(_page(ScheduleConfig(type=ScheduleType.INTERVAL, value=3600)))
    assert isinstance(interval, IntervalTrigger)
    assert interval.interval.total_seconds() == 3600

    by_kwargs = adapter._build_trigger(
        _page(ScheduleConfig(type=ScheduleType.INTERVAL, value={"hours": 6}))
    )
    assert by_kwargs.interval.total_seconds() == 6 * 3600

    once = adapter._build_trigger(
        _page(ScheduleConfig(type=ScheduleType.ONCE, value="2030-01-01T08:00:00+00:00"))
    )
    assert isinstance(once, DateTrigger)
    assert once.run_date == datetime(2030, 1, 1, 8, tzinfo=timezone.utc)


def test_schedule_page_registers_non_overlapping_job() -> None:
    scheduler = MagicMock()
    adapter = APSchedulerAdapter(scheduler=scheduler)
    callback = MagicMock()
    page = _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=60))

    assert adapter.schedule_page(page, callback) is True
    scheduler.add_job.assert_called_once()
    _, kwargs = scheduler.add_job.call_args
    assert kwargs["id"] == "page::111" == job_id_for("111")
    assert kwargs["args"] == ["111"]
    assert kwargs["max_instances"] == 1
    assert kwargs["coalesce"] is True
    assert kwargs["replace_existing"] is True


def test_disabled_pages_are_skipped() -> None:
    scheduler = MagicMock()
    adapter = APSchedulerAdapter(scheduler=scheduler)
    pages = [
        _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=60)),
        _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=60), page_id="222", enabled=False),
    ]
    assert adapter.schedule_pages(pages, MagicMock()) == 1
    assert scheduler.add_job.call_count == 1


def test_start_shutdown_and_jobs_listing() -> None:
    adapter = APSchedulerAdapter()
    page = _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=600))
    adapter.schedule_page(page, lambda page_id: None)
    adapter.start()
    try:
        jobs = adapter.list_jobs()
        assert [job["id"] for job in jobs] == ["page::111"]
        assert jobs[0]["next_run_time"] is not None
    finally:
        adapter.shutdown()
    assert adapter.started is False


def test_remove_page() -> None:
    adapter = APSchedulerAdapter()
    adapter.schedule_page(
        _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=600)), lambda page_id: None
    )
    assert adapter.remove_page("111") is True
    assert adapter.remove_page("111") is False


def test_invalid_interval_payload() -> None:
    adapter = APSchedulerAdapter()
    page = _page(ScheduleConfig(type=ScheduleType.INTERVAL, value=60))
    page.schedule.value = "hourly"
    with pytest.raises(ValueError):
        adapter._build_trigger(page)
