"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    BrowserConfig,
    GlobalConfig,
    PaginationConfig,
    ScheduleConfig,
    ScheduleType,
    TrackedPage,
)

__all__ = [
    "BrowserConfig",
    "ConfigLocator",
    "ConfigRepository",
    "GlobalConfig",
    "PaginationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "TrackedPage",
]
