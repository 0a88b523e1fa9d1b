"""APScheduler wrapper running incremental syncs for tracked pages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleType, TrackedPage
from ..logging_conf import configure_logging

JOB_PREFIX = "page::"


def job_id_for(page_id: str) -> str:
    return f"{JOB_PREFIX}{page_id}"


class APSchedulerAdapter:
    """Manage one APScheduler job per tracked page.

    Jobs never overlap: a page whose previous run is still going is skipped
    (``max_instances=1``) and missed runs collapse into one (``coalesce``).
    """

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone.utc)
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_page(self, page: TrackedPage, callback: Callable[[str], object]) -> bool:
        """Register ``callback(page_id)``; disabled pages are skipped."""

        if not page.enabled:
            self.logger.info("job_skipped_disabled", page_id=page.page_id)
            return False
        trigger = self._build_trigger(page)
        self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=job_id_for(page.page_id),
            args=[page.page_id],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.logger.info(
            "job_scheduled", page_id=page.page_id, schedule=page.schedule.model_dump(mode="json")
        )
        return True

    def schedule_pages(self, pages: list[TrackedPage], callback: Callable[[str], object]) -> int:
        return sum(1 for page in pages if self.schedule_page(page, callback))

    def remove_page(self, page_id: str) -> bool:
        try:
            self.scheduler.remove_job(job_id_for(page_id))
        except JobLookupError:
            self.logger.warning("job_remove_failed", page_id=page_id)
            return False
        return True

    def _build_trigger(self, page: TrackedPage):
        schedule = page.schedule
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value), timezone=timezone.utc)
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        if schedule.type is ScheduleType.ONCE:
            if schedule.value:
                run_date = datetime.fromisoformat(str(schedule.value))
            else:
                run_date = datetime.now(timezone.utc)
            return DateTrigger(run_date=run_date)
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter", "JOB_PREFIX", "job_id_for"]
