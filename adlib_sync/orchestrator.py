"""Sync orchestrator wiring together driver, pagination, reconciliation and store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Iterable

import structlog

from .config import ConfigRepository, GlobalConfig
from .engine import (
    AdRecord,
    BaseDriver,
    Extractor,
    PageMetadata,
    PaginationController,
    PaginationResult,
    PlaywrightDriver,
    Reconciler,
)
from .errors import EmptyResultError, MissingMetadataError, PersistenceError, SyncError
from .helpers import build_library_url, utc_timestamp
from .logging_conf import configure_logging, page_logger
from .store import BaseStore

DriverFactory = Callable[[], BaseDriver]
ProgressCallback = Callable[[int, int], None]


class SyncPhase(str, Enum):
    STARTING = "starting"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    PERSISTING = "persisting"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class SyncResult:
    """Outcome of one sync run.

    ``success`` is False only when a fatal error aborted the run; ``errors``
    may still hold per-record persistence messages on a successful run.
    """

    success: bool
    total_fetched: int
    errors: list[str] = field(default_factory=list)
    page_id: str = ""
    new_count: int = 0
    updated_count: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class SyncOrchestrator:
    """Central coordinator for initial and incremental page syncs."""

    def __init__(
        self,
        store: BaseStore,
        global_config: GlobalConfig | None = None,
        driver_factory: DriverFactory | None = None,
        extractor: Extractor | None = None,
        reconciler: Reconciler | None = None,
    ) -> None:
        self.store = store
        self.global_config = global_config or GlobalConfig()
        self.driver_factory = driver_factory or self._default_driver
        self.extractor = extractor or Extractor()
        self.reconciler = reconciler or Reconciler()
        self.logger = configure_logging().bind(component="orchestrator")
        self.phase = SyncPhase.STARTING

    # ------------------------------------------------------------------
    def initial_sync(
        self,
        url: str,
        max_records: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> SyncResult:
        """Mirror every ad reachable from ``url`` and create the page metadata."""

        log = self.logger.bind(kind="initial", url=url)
        errors: list[str] = []
        page_id = ""
        total_fetched = 0
        if max_records is None:
            max_records = self.global_config.pagination.max_records
        self._enter(SyncPhase.STARTING, log)
        try:
            with self.driver_factory() as driver:
                self._enter(SyncPhase.FETCHING, log)
                live = self._collect(driver, url, max_records, on_progress, log)
                total_fetched = len(live.records)
                if not live.records:
                    raise EmptyResultError(url)

                first = live.records[0]
                page_id = first.page_id
                log = page_logger(page_id).bind(kind="initial", url=url)
                log.info("ads_fetched", total=total_fetched, stop_reason=live.stop_reason.value)

                self._enter(SyncPhase.PERSISTING, log)
                self.store.ensure_container(page_id)
                written = self._persist(live.records, errors, log)

                self._enter(SyncPhase.FINALIZING, log)
                page_records = [record for record in live.records if record.page_id == page_id]
                page_name = next((r.page_name for r in page_records if r.page_name), None)
                metadata = PageMetadata.from_records(
                    page_id, page_name, page_records, utc_timestamp()
                )
                self.store.put_metadata(page_id, metadata)
        except Exception as exc:  # noqa: BLE001
            self._fail(exc, errors, log)
            return SyncResult(False, total_fetched, errors, page_id)

        self._enter(SyncPhase.DONE, log)
        log.info(
            "initial_sync_complete",
            total=metadata.total_ads,
            active=metadata.active_ads,
            inactive=metadata.inactive_ads,
            persist_errors=len(errors),
        )
        return SyncResult(True, total_fetched, errors, page_id, new_count=len(written))

    def incremental_sync(
        self, page_id: str, on_progress: ProgressCallback | None = None
    ) -> SyncResult:
        """Refresh a previously synced page and retire ads that disappeared."""

        log = page_logger(page_id).bind(kind="incremental")
        errors: list[str] = []
        total_fetched = 0
        self._enter(SyncPhase.STARTING, log)
        try:
            previous = self.store.get_metadata(page_id)
            if previous is None:
                raise MissingMetadataError(page_id)
            url = build_library_url(self.global_config.library_url_template, page_id)

            with self.driver_factory() as driver:
                self._enter(SyncPhase.FETCHING, log)
                live = self._collect(driver, url, None, on_progress, log)
                total_fetched = len(live.records)
                page_records = [record for record in live.records if record.page_id == page_id]
                if len(page_records) != total_fetched:
                    log.info("foreign_ads_ignored", count=total_fetched - len(page_records))
                if not page_records:
                    raise EmptyResultError(url)

                self._enter(SyncPhase.RECONCILING, log)
                snapshot = self.store.list_all(page_id)
                plan = self.reconciler.reconcile(page_records, snapshot, utc_timestamp())
                log.info(
                    "reconciled",
                    live=len(page_records),
                    stored=len(snapshot),
                    new=plan.new_count,
                    changed=len(plan.changed),
                    retired=len(plan.retired),
                    unchanged=plan.unchanged,
                )

                self._enter(SyncPhase.PERSISTING, log)
                self.store.ensure_container(page_id)
                written = self._persist(plan.writes, errors, log)

                self._enter(SyncPhase.FINALIZING, log)
                state = plan.merged_state(snapshot, written)
                page_name = next(
                    (r.page_name for r in page_records if r.page_name), previous.page_name
                )
                metadata = PageMetadata.from_records(
                    page_id, page_name, state.values(), utc_timestamp()
                )
                self.store.put_metadata(page_id, metadata)
        except Exception as exc:  # noqa: BLE001
            self._fail(exc, errors, log)
            return SyncResult(False, total_fetched, errors, page_id)

        new_ids = {record.identity for record in plan.new}
        new_count = sum(1 for record in written if record.identity in new_ids)
        self._enter(SyncPhase.DONE, log)
        log.info(
            "incremental_sync_complete",
            new=new_count,
            updated=len(written) - new_count,
            total=metadata.total_ads,
            active=metadata.active_ads,
            inactive=metadata.inactive_ads,
        )
        return SyncResult(
            True,
            total_fetched,
            errors,
            page_id,
            new_count=new_count,
            updated_count=len(written) - new_count,
        )

    def sync_tracked_pages(
        self, repository: ConfigRepository, on_progress: ProgressCallback | None = None
    ) -> dict[str, SyncResult]:
        """Run incremental syncs one page after another for enabled tracked pages."""

        results: dict[str, SyncResult] = {}
        for page in repository.list_pages():
            if not page.enabled:
                self.logger.info("page_disabled_skipped", page_id=page.page_id)
                continue
            results[page.page_id] = self.incremental_sync(page.page_id, on_progress=on_progress)
        return results

    def page_summary(self, page_id: str) -> tuple[PageMetadata | None, list[AdRecord]]:
        return self.store.get_metadata(page_id), self.store.list_all(page_id)

    # ------------------------------------------------------------------
    def _default_driver(self) -> BaseDriver:
        return PlaywrightDriver(
            self.global_config.browser,
            scroll_wait_ms=self.global_config.pagination.settle_interval_ms,
        )

    def _collect(
        self,
        driver: BaseDriver,
        url: str,
        max_records: int | None,
        on_progress: ProgressCallback | None,
        log: structlog.BoundLogger,
    ) -> PaginationResult:
        pagination = self.global_config.pagination
        controller = PaginationController(
            driver,
            self.extractor,
            stall_threshold=pagination.stall_threshold,
            settle_interval=pagination.settle_interval_ms / 1000,
            first_payload_timeout=pagination.first_payload_timeout_ms / 1000,
            url_pattern=pagination.response_url_pattern,
            content_type=pagination.response_content_type,
            on_cycle=on_progress,
            logger=log,
        )
        return controller.collect(
            url, self.global_config.browser.navigation_timeout / 1000, max_records
        )

    def _persist(
        self,
        records: Iterable[AdRecord],
        errors: list[str],
        log: structlog.BoundLogger,
    ) -> list[AdRecord]:
        written: list[AdRecord] = []
        for record in records:
            try:
                self.store.put(record.page_id, record.archive_id, record)
            except PersistenceError as exc:
                errors.append(f"Failed to save ad {record.archive_id}: {exc}")
                log.warning("record_persist_failed", archive_id=record.archive_id, error=str(exc))
                continue
            written.append(record)
        return written

    def _enter(self, phase: SyncPhase, log: structlog.BoundLogger) -> None:
        self.phase = phase
        log.debug("sync_phase", phase=phase.value)

    def _fail(self, exc: Exception, errors: list[str], log: structlog.BoundLogger) -> None:
        failed_in = self.phase
        self.phase = SyncPhase.FAILED
        errors.append(str(exc))
        if isinstance(exc, SyncError):
            log.error(
                "sync_failed",
                phase=failed_in.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        else:
            log.error(
                "sync_crashed",
                phase=failed_in.value,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )


__all__ = ["DriverFactory", "SyncOrchestrator", "SyncPhase", "SyncResult"]
