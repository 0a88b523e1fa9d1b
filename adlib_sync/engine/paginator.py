"""Scroll-and-collect loop deciding when a library listing is exhausted."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog

from ..errors import ExtractionParseError, NavigationTimeout
from .dedup import Deduplicator
from .driver import BaseDriver
from .extractor import Extractor
from .records import AdRecord

DEFAULT_STALL_THRESHOLD = 5


class PaginationState(str, Enum):
    INIT = "init"
    ACCUMULATING = "accumulating"
    STALLED = "stalled"
    DONE = "done"


class StopReason(str, Enum):
    STALLED = "stalled"
    CAP_REACHED = "cap_reached"
    END_OF_CONTENT = "end_of_content"


class ResponseBuffer:
    """Payloads received from the driver that no cycle has consumed yet.

    Owned by a single controller; never shared between collection runs.
    """

    def __init__(self) -> None:
        self._pending: list[Any] = []
        self.received = 0

    def append(self, payload: Any) -> None:
        self._pending.append(payload)
        self.received += 1

    def drain(self) -> list[Any]:
        pending, self._pending = self._pending, []
        return pending

    def reset(self) -> None:
        self._pending = []
        self.received = 0

    def __len__(self) -> int:
        return len(self._pending)


@dataclass
class PaginationResult:
    records: list[AdRecord]
    stop_reason: StopReason
    cycles: int
    payloads: int = 0
    failures: list[ExtractionParseError] = field(default_factory=list)


class PaginationController:
    """Drive fetch/advance cycles until the live set stops growing.

    The loop ends when the deduplicated set did not grow for
    ``stall_threshold`` consecutive cycles, when ``max_records`` is reached
    (the result is cut to exactly that many records), or when advancing the
    page no longer extends its content.
    """

    def __init__(
        self,
        driver: BaseDriver,
        extractor: Extractor | None = None,
        *,
        stall_threshold: int = DEFAULT_STALL_THRESHOLD,
        settle_interval: float = 2.0,
        first_payload_timeout: float = 10.0,
        url_pattern: str = "/api/graphql",
        content_type: str = "application/json",
        on_cycle: Callable[[int, int], None] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        if stall_threshold < 1:
            raise ValueError("stall_threshold must be >= 1")
        self.driver = driver
        self.extractor = extractor or Extractor()
        self.stall_threshold = stall_threshold
        self.settle_interval = settle_interval
        self.first_payload_timeout = first_payload_timeout
        self.on_cycle = on_cycle
        self.logger = logger or structlog.get_logger("adlib_sync.paginator")
        self.buffer = ResponseBuffer()
        self.state = PaginationState.INIT
        self.driver.subscribe(url_pattern, content_type, self._on_payload)

    def _on_payload(self, payload: Any) -> None:
        if self.extractor.matches(payload):
            self.buffer.append(payload)

    def collect(
        self, url: str, navigation_timeout: float, max_records: int | None = None
    ) -> PaginationResult:
        """Open ``url`` and run the collection loop against it."""

        self.buffer.reset()
        self.state = PaginationState.INIT
        if not self.driver.navigate(url, navigation_timeout):
            raise NavigationTimeout(url, navigation_timeout)
        return self.run(max_records)

    def wait_for_first_payload(self) -> bool:
        waited = 0.0
        while self.buffer.received == 0 and waited < self.first_payload_timeout:
            step = min(1.0, self.first_payload_timeout - waited)
            self.driver.settle(step)
            waited += step
        return self.buffer.received > 0

    def run(self, max_records: int | None = None) -> PaginationResult:
        if max_records is not None and max_records < 1:
            raise ValueError("max_records must be >= 1")
        if not self.wait_for_first_payload():
            self.logger.warning("no_payload_received", timeout=self.first_payload_timeout)

        dedup = Deduplicator()
        failures: list[ExtractionParseError] = []
        last_size = 0
        stall_count = 0
        cycles = 0
        self.state = PaginationState.ACCUMULATING

        while True:
            cycles += 1
            batch = self.extractor.extract_many(self.buffer.drain())
            failures.extend(batch.failures)
            for failure in batch.failures:
                self.logger.debug("entry_skipped", reason=failure.reason, detail=str(failure))
            merged = dedup.merge(batch.records)
            size = len(dedup)
            if self.on_cycle is not None:
                self.on_cycle(cycles, size)
            self.logger.debug(
                "pagination_cycle",
                cycle=cycles,
                unique_ads=size,
                added=merged.added,
                replaced=merged.replaced,
                state=self.state.value,
                stall_count=stall_count,
            )

            if max_records is not None and size >= max_records:
                dedup.truncate(max_records)
                return self._finish(dedup, StopReason.CAP_REACHED, cycles, failures)

            if size == last_size:
                stall_count += 1
                self.state = PaginationState.STALLED
                if stall_count >= self.stall_threshold:
                    return self._finish(dedup, StopReason.STALLED, cycles, failures)
            else:
                stall_count = 0
                last_size = size
                self.state = PaginationState.ACCUMULATING

            if not self.driver.advance():
                return self._finish(dedup, StopReason.END_OF_CONTENT, cycles, failures)
            self.driver.settle(self.settle_interval)

    def _finish(
        self,
        dedup: Deduplicator,
        reason: StopReason,
        cycles: int,
        failures: list[ExtractionParseError],
    ) -> PaginationResult:
        self.state = PaginationState.DONE
        records = dedup.records()
        self.logger.info(
            "pagination_done",
            stop_reason=reason.value,
            cycles=cycles,
            unique_ads=len(records),
            skipped_entries=len(failures),
        )
        return PaginationResult(
            records=records,
            stop_reason=reason,
            cycles=cycles,
            payloads=self.buffer.received,
            failures=failures,
        )


__all__ = [
    "DEFAULT_STALL_THRESHOLD",
    "PaginationController",
    "PaginationResult",
    "PaginationState",
    "ResponseBuffer",
    "StopReason",
]
