"""Pydantic models used across the adlib-sync configuration flow."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..helpers import DEFAULT_LIBRARY_URL_TEMPLATE, is_valid_page_id


class ScheduleType(str, Enum):
    """Scheduler modes for tracked pages."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class ScheduleConfig(BaseModel):
    """When the incremental sync of a tracked page should run."""

    type: ScheduleType = Field(default=ScheduleType.ONCE)
    value: Any = Field(
        default=None,
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class BrowserConfig(BaseModel):
    """Chromium launch and context options for the Playwright driver."""

    headless: bool = True
    viewport_size: tuple[int, int] = (1920, 1080)
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )
    locale: str = "en-US"
    navigation_timeout: int = 60000  # 毫秒
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    )

    @field_validator("navigation_timeout")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("navigation_timeout must be > 0")
        return value


class PaginationConfig(BaseModel):
    """Termination policy of the scroll/collect loop."""

    stall_threshold: int = 5
    settle_interval_ms: int = 2000
    first_payload_timeout_ms: int = 10000
    response_url_pattern: str = "/api/graphql"
    response_content_type: str = "application/json"
    max_records: int | None = None

    @model_validator(mode="after")
    def _validate_non_negative(self) -> "PaginationConfig":
        if self.stall_threshold < 1:
            raise ValueError("stall_threshold must be >= 1")
        if self.settle_interval_ms < 0:
            raise ValueError("settle_interval_ms must be >= 0")
        if self.first_payload_timeout_ms < 0:
            raise ValueError("first_payload_timeout_ms must be >= 0")
        if self.max_records is not None and self.max_records < 1:
            raise ValueError("max_records must be >= 1 when set")
        return self


class TrackedPage(BaseModel):
    """A publisher page whose ads are kept in sync on a schedule."""

    page_id: str
    page_name: str | None = None
    enabled: bool = True
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)

    @field_validator("page_id", mode="before")
    @classmethod
    def _coerce_page_id(cls, value: Any) -> str:
        text = str(value).strip()
        if not is_valid_page_id(text):
            raise ValueError(f"page_id must be numeric, got {value!r}")
        return text


class GlobalConfig(BaseModel):
    """Global controls shared across pages."""

    storage_backend: Literal["file", "sqlite", "mongodb"] = "file"
    storage_dir: Path = Field(default=Path("data/ads"))
    sqlite_path: Path = Field(default=Path("data/ads.db"))
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "adlib_sync"
    library_url_template: str = DEFAULT_LIBRARY_URL_TEMPLATE
    enable_progress: bool = True
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)

    @field_validator("storage_dir", "sqlite_path", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("library_url_template")
    @classmethod
    def _template_has_page_id(cls, value: str) -> str:
        if "{page_id}" not in value:
            raise ValueError("library_url_template must contain '{page_id}'")
        return value

    def resolve_path(self, path: Path, base_dir: Path) -> Path:
        """Return ``path`` resolved against the project home when relative."""

        if not path.is_absolute():
            return (base_dir / path).resolve()
        return path


__all__ = [
    "BrowserConfig",
    "GlobalConfig",
    "PaginationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "TrackedPage",
]
