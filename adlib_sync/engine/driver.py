"""Browser automation drivers feeding raw library responses to the engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from ..config import BrowserConfig
from ..errors import DriverInitError

PayloadCallback = Callable[[Any], None]


@dataclass(slots=True)
class Subscription:
    url_pattern: str
    content_type: str
    callback: PayloadCallback

    def accepts(self, url: str, content_type: str | None) -> bool:
        return self.url_pattern in url and self.content_type in (content_type or "")


class BaseDriver(ABC):
    """Contract of the automation driver consumed by the sync engine.

    Used as a context manager: entering initialises the browser (any failure
    surfaces as :class:`DriverInitError`), leaving always closes it.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Start the browser session."""

    @abstractmethod
    def navigate(self, url: str, timeout: float) -> bool:
        """Open ``url``; return False when it did not load within ``timeout`` seconds."""

    @abstractmethod
    def subscribe(self, url_pattern: str, content_type: str, callback: PayloadCallback) -> None:
        """Deliver decoded JSON bodies of matching responses to ``callback``."""

    @abstractmethod
    def advance(self) -> bool:
        """Trigger further loading; return whether the content extent grew."""

    @abstractmethod
    def settle(self, seconds: float) -> None:
        """Wait while the page keeps receiving responses."""

    @abstractmethod
    def close(self) -> None:
        """Release every browser resource. Safe to call more than once."""

    def __enter__(self) -> "BaseDriver":
        try:
            self.initialize()
        except DriverInitError:
            self.close()
            raise
        except Exception as exc:  # noqa: BLE001
            self.close()
            raise DriverInitError(f"Browser driver failed to start: {exc}") from exc
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class PlaywrightDriver(BaseDriver):
    """Chromium driven through the synchronous Playwright API."""

    def __init__(
        self,
        config: BrowserConfig | None = None,
        *,
        scroll_wait_ms: int = 2000,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config or BrowserConfig()
        self.scroll_wait_ms = scroll_wait_ms
        self.logger = logger or structlog.get_logger("adlib_sync.driver")
        self._subscriptions: list[Subscription] = []
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def initialize(self) -> None:
        if self._playwright is not None:
            return
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:  # pragma: no cover
            raise DriverInitError(
                "Playwright support requires installing the 'playwright' package."
            ) from exc

        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(
            headless=self.config.headless,
            args=list(self.config.launch_args),
        )
        width, height = self.config.viewport_size
        self._context = self._browser.new_context(
            user_agent=self.config.user_agent,
            locale=self.config.locale,
            viewport={"width": width, "height": height},
        )
        self._page = self._context.new_page()
        self._page.on("response", self._on_response)
        self.logger.debug("driver_started", headless=self.config.headless)

    def navigate(self, url: str, timeout: float) -> bool:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = self._require_page()
        try:
            page.goto(url, wait_until="networkidle", timeout=int(timeout * 1000))
        except PlaywrightTimeoutError:
            self.logger.warning("navigation_timeout", url=url, timeout=timeout)
            return False
        return True

    def subscribe(self, url_pattern: str, content_type: str, callback: PayloadCallback) -> None:
        self._subscriptions.append(Subscription(url_pattern, content_type, callback))

    def advance(self) -> bool:
        page = self._require_page()
        previous_height = page.evaluate("document.body.scrollHeight")
        page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
        page.wait_for_timeout(max(0, int(self.scroll_wait_ms)))
        new_height = page.evaluate("document.body.scrollHeight")
        return new_height > previous_height

    def settle(self, seconds: float) -> None:
        self._require_page().wait_for_timeout(max(0, int(seconds * 1000)))

    def close(self) -> None:
        for attr, method in (
            ("_page", "close"),
            ("_context", "close"),
            ("_browser", "close"),
            ("_playwright", "stop"),
        ):
            resource = getattr(self, attr)
            if resource is None:
                continue
            try:
                getattr(resource, method)()
            except Exception as exc:  # noqa: BLE001
                self.logger.warning("driver_close_failed", resource=attr.lstrip("_"), error=str(exc))
            finally:
                setattr(self, attr, None)
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    def _require_page(self):
        if self._page is None:
            raise RuntimeError("Driver not initialised")
        return self._page

    def _on_response(self, response) -> None:
        if not self._subscriptions:
            return
        url = response.url
        content_type = response.headers.get("content-type")
        matching = [sub for sub in self._subscriptions if sub.accepts(url, content_type)]
        if not matching:
            return
        try:
            payload = response.json()
        except Exception as exc:  # noqa: BLE001
            # 非 JSON 或已被浏览器回收的响应体直接忽略
            self.logger.debug("response_decode_failed", url=url, error=str(exc))
            return
        for subscription in matching:
            subscription.callback(payload)


__all__ = ["BaseDriver", "PayloadCallback", "PlaywrightDriver", "Subscription"]
