"""Terminal progress helpers built on Rich's status spinner."""

from __future__ import annotations

from rich.console import Console
from rich.status import Status


class ProgressActivity:
    """Indeterminate activity indicator using Rich Status spinner."""

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self.console = console or Console()
        self._status: Status | None = None

    @property
    def active(self) -> bool:
        return self._status is not None

    def start(self, message: str) -> None:
        if not self.enabled or self._status is not None:
            return
        self._status = self.console.status(message)
        self._status.start()

    def update(self, message: str) -> None:
        if self._status is not None:
            self._status.update(message)

    def close(self) -> None:
        """关闭进度指示器"""
        if self._status is not None:
            self._status.stop()
            self._status = None

    def __enter__(self) -> "ProgressActivity":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CollectionProgress(ProgressActivity):
    """Spinner that reports scroll cycles and the unique ad count."""

    def __init__(self, label: str, enabled: bool = True, console: Console | None = None) -> None:
        super().__init__(enabled=enabled, console=console)
        self.label = label
        self.cycles = 0
        self.unique_ads = 0

    def begin(self) -> None:
        self.start(f"[bold blue]{self.label}[/] 正在打开广告库…")

    def on_cycle(self, cycle: int, unique_ads: int) -> None:
        self.cycles = cycle
        self.unique_ads = unique_ads
        self.update(f"[bold blue]{self.label}[/] 第 {cycle} 轮滚动，已收集 {unique_ads} 条广告")


__all__ = ["CollectionProgress", "ProgressActivity"]
