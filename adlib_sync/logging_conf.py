"""Structured logging: one JSON stream for the app, one file per synced page."""

from __future__ import annotations

import logging
import logging.config
import os
from collections import deque
from pathlib import Path
from typing import Any, Iterable

import structlog

from .config.loader import HOME_ENV_VAR

ROOT_LOGGER = "adlib_sync"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def log_dir() -> Path:
    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _file_handler(path: Path, level: str) -> dict[str, Any]:
    path.touch(exist_ok=True)
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Route structlog events through stdlib handlers writing JSON lines.

    Console plus ``sync.log`` (INFO) and ``error.log`` (ERROR) under
    :func:`log_dir`. Only the first call installs handlers.
    """

    global _configured
    root = log_dir()
    (root / "pages").mkdir(parents=True, exist_ok=True)
    handlers = {
        "sync_file": _file_handler(root / "sync.log", "INFO"),
        "error_file": _file_handler(root / "error.log", "ERROR"),
    }
    if _configured:
        return structlog.get_logger(ROOT_LOGGER)

    level = "DEBUG" if verbose else "INFO"
    handlers["console"] = {"class": "logging.StreamHandler", "level": level, "formatter": "json"}
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": JSON_FORMAT}
            },
            "handlers": handlers,
            "loggers": {
                ROOT_LOGGER: {"handlers": list(handlers), "level": level, "propagate": False}
            },
        }
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger(ROOT_LOGGER)


def page_logger(page_id: str) -> structlog.BoundLogger:
    """Logger bound to ``page_id``; its events also land in ``pages/<page_id>.log``."""

    configure_logging()
    path = log_dir() / "pages" / f"{page_id}.log"
    py_logger = logging.getLogger(f"{ROOT_LOGGER}.page.{page_id}")
    attached = {
        handler.baseFilename
        for handler in py_logger.handlers
        if isinstance(handler, logging.FileHandler)
    }
    if str(path) not in attached:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        root_handlers = logging.getLogger(ROOT_LOGGER).handlers
        if root_handlers:
            handler.setFormatter(root_handlers[0].formatter)
        py_logger.addHandler(handler)
    return structlog.get_logger(py_logger.name).bind(page_id=page_id)


def available_page_logs() -> Iterable[Path]:
    pages_dir = log_dir() / "pages"
    if not pages_dir.is_dir():
        return []
    return sorted(pages_dir.glob("*.log"))


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return list(deque(stream, maxlen=line_count))


__all__ = ["available_page_logs", "configure_logging", "log_dir", "page_logger", "tail_log"]
