"""Shared fixtures: isolated home, fake browser driver, payload and record builders."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Iterable

import pytest

from adlib_sync.config import (
    ConfigLocator,
    ConfigRepository,
    GlobalConfig,
    PaginationConfig,
)
from adlib_sync.engine import AdRecord, BaseDriver
from adlib_sync.engine.driver import Subscription
from adlib_sync.orchestrator import SyncOrchestrator
from adlib_sync.store import FileStore


class FakeDriver(BaseDriver):
    """Scripted driver: each step delivers one batch of payloads to subscribers.

    ``navigate`` delivers the first batch, every ``advance`` the next one.
    Once the script is exhausted ``advance`` returns ``extends_when_exhausted``.
    """

    def __init__(
        self,
        batches: Iterable[Iterable[Any]] | None = None,
        *,
        navigate_ok: bool = True,
        extends_when_exhausted: bool = True,
        fail_init: Exception | None = None,
    ) -> None:
        self.batches = [list(batch) for batch in (batches or [])]
        self.navigate_ok = navigate_ok
        self.extends_when_exhausted = extends_when_exhausted
        self.fail_init = fail_init
        self.subscriptions: list[Subscription] = []
        self.visited: list[str] = []
        self.initialized = False
        self.advances = 0
        self.settled = 0.0
        self.closed = 0

    def initialize(self) -> None:
        if self.fail_init is not None:
            raise self.fail_init
        self.initialized = True

    def navigate(self, url: str, timeout: float) -> bool:
        self.visited.append(url)
        if not self.navigate_ok:
            return False
        self._deliver()
        return True

    def subscribe(self, url_pattern: str, content_type: str, callback) -> None:
        self.subscriptions.append(Subscription(url_pattern, content_type, callback))

    def advance(self) -> bool:
        self.advances += 1
        if not self.batches:
            return self.extends_when_exhausted
        self._deliver()
        return True

    def settle(self, seconds: float) -> None:
        self.settled += seconds

    def close(self) -> None:
        self.closed += 1

    def _deliver(self) -> None:
        if not self.batches:
            return
        for payload in self.batches.pop(0):
            for subscription in self.subscriptions:
                subscription.callback(payload)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("ADLIB_SYNC_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(
        storage_dir=tmp_path / "ads",
        sqlite_path=tmp_path / "ads.db",
        pagination=PaginationConfig(settle_interval_ms=0, first_payload_timeout_ms=0),
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def fake_driver() -> type[FakeDriver]:
    return FakeDriver


@pytest.fixture
def ad_node() -> Callable[..., dict[str, Any]]:
    def _builder(archive_id: str, page_id: str = "111", **overrides: Any) -> dict[str, Any]:
        node: dict[str, Any] = {
            "ad_archive_id": archive_id,
            "page_id": page_id,
            "page_name": "Acme Outdoors",
            "is_active": True,
            "ad_delivery_start_time": "2024-03-01",
            "ad_snapshot_url": f"https://www.facebook.com/ads/archive/render_ad/?id={archive_id}",
            "ad_creative_bodies": [f"Body of {archive_id}"],
        }
        node.update(overrides)
        return node

    return _builder


@pytest.fixture
def ad_payload() -> Callable[..., dict[str, Any]]:
    def _builder(*nodes: dict[str, Any], shape: str = "main") -> dict[str, Any]:
        edges = [{"node": node} for node in nodes]
        if shape == "main":
            return {"data": {"ad_library_main": {"search_results": {"edges": edges}}}}
        return {"data": {"page": {"ad_library_page_search_result_ads": {"edges": edges}}}}

    return _builder


@pytest.fixture
def make_record() -> Callable[..., AdRecord]:
    def _builder(archive_id: str, page_id: str = "111", **overrides: Any) -> AdRecord:
        base: dict[str, Any] = {
            "archive_id": archive_id,
            "page_id": page_id,
            "page_name": "Acme Outdoors",
            "delivery_start_time": "2024-03-01",
        }
        base.update(overrides)
        return AdRecord(**base)

    return _builder


@pytest.fixture
def sync_env(sample_global_config: GlobalConfig) -> Callable[..., SimpleNamespace]:
    """Build an orchestrator over a file store; each driver acquisition pops one script."""

    def _build(*scripts: list, store=None, **driver_kwargs: Any) -> SimpleNamespace:
        store = store or FileStore(sample_global_config.storage_dir)
        queue = list(scripts)
        drivers: list[FakeDriver] = []

        def factory() -> FakeDriver:
            driver = FakeDriver(queue.pop(0) if queue else [], **driver_kwargs)
            drivers.append(driver)
            return driver

        orchestrator = SyncOrchestrator(store, sample_global_config, driver_factory=factory)
        return SimpleNamespace(orchestrator=orchestrator, store=store, drivers=drivers)

    return _build
