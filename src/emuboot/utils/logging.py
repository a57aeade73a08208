from __future__ import annotations

import json
import os
import threading
from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, merge_contextvars

_LOG_DIR = Path(os.getenv("EMUBOOT_LOG_DIR", "artifacts/logs"))
_MAIN_LOG = _LOG_DIR / "emuboot.log"


def _ensure_log_dir() -> None:
    try:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
    except Exception:
        pass


def _level_from_env() -> int:
    """Get log level from EMUBOOT_LOG_LEVEL (TRACE|DEBUG|INFO|WARNING|ERROR)."""
    import logging

    raw = os.getenv("EMUBOOT_LOG_LEVEL", "INFO").upper()
    if raw == "TRACE":
        # Level below DEBUG
        return 5
    return getattr(logging, raw, logging.INFO)


_file_lock = threading.RLock()


def _copy_event_to_message(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    if "event" in event_dict and "message" not in event_dict:
        event_dict["message"] = event_dict["event"]
    return event_dict


def _drop_none_values(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> Mapping[str, Any]:
    return {k: v for k, v in event_dict.items() if v is not None}


def _safe_name(value: str) -> str:
    return value.replace(os.sep, "_").replace("/", "_").replace(" ", "_").replace(":", "_")


def _file_sink_processor(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """
    Processor that duplicates log records into files:
    - artifacts/logs/emuboot.log      : all events
    - artifacts/logs/avd_<name>.log   : events of one virtual device (if avd context is present)
    """
    _ensure_log_dir()

    line = json.dumps(event_dict, ensure_ascii=False, default=str)

    avd = event_dict.get("avd")
    avd_path = None
    if isinstance(avd, str) and avd:
        avd_path = _LOG_DIR / f"avd_{_safe_name(avd)}.log"

    try:
        with _file_lock:
            with _MAIN_LOG.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
            if avd_path is not None:
                with avd_path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
    except Exception:
        # Never break execution because of log write issues
        pass

    return event_dict


def device_log_path(avd: str | None = None) -> Path:
    """
    Return path to the framework log of a virtual device.

    If avd is not provided, returns the common log file path.
    """
    _ensure_log_dir()
    if not avd:
        return _MAIN_LOG
    return _LOG_DIR / f"avd_{_safe_name(str(avd))}.log"


def bind_context(*, avd: str | None = None, port: int | None = None) -> None:
    """
    Bind virtual device info into the logging context.

    This data is then automatically included in all structured log records.
    """
    bind_contextvars(avd=avd, port=port)


_CONFIGURED = False


def setup_logging() -> None:
    """
    Centralized setup of structured logging with JSON output and file duplication.

    Includes:
    - Log level from EMUBOOT_LOG_LEVEL
    - ISO 8601 timestamp (key: "timestamp")
    - Context (avd, port) via contextvars
    - Duplication of each record into:
        artifacts/logs/emuboot.log
        artifacts/logs/avd_<name>.log
    - Unified JSON format printed to stdout
    """
    import logging

    global _CONFIGURED
    if _CONFIGURED:
        return

    _ensure_log_dir()

    level = _level_from_env()

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.CallsiteParameterAdder(
                [structlog.processors.CallsiteParameter.MODULE]
            ),
            _copy_event_to_message,
            _drop_none_values,
            _file_sink_processor,
            structlog.processors.JSONRenderer(default=str),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(level)

    _CONFIGURED = True


def get_logger(name: str | None = None) -> Any:
    """
    Get a structlog logger instance.

    Ensures logging is configured even in plain library use without the CLI or pytest plugin.
    """
    if not globals().get("_CONFIGURED", False):
        try:
            setup_logging()
        except Exception:
            pass
    return structlog.get_logger(name or __name__)


__all__ = [
    "setup_logging",
    "bind_context",
    "device_log_path",
    "get_logger",
    "clear_contextvars",
]
