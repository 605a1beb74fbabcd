# src/logging/logger.py — v1
"""Log formatters (JSON for services, text for the terminal) and the
``setup_logging`` entry point used by the CLI.

Both formatters read the run/item context from labgen.logging.context, so
a line logged deep inside an adaptor still says which run and item it
belongs to.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from labgen.logging.context import get_context

ROOT_LOGGER = "labgen"

_NOISY_LOGGERS = ("httpx", "httpcore", "google", "urllib3", "botocore")


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: timestamp, level, logger, message, plus ``context`` (non-empty
    run/item fields), ``data`` (``extra={"data": ...}``) and ``exception``
    when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Single readable line: ``time [LEVEL] logger [run] (item) <adaptor> - msg``."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        tags = [
            f"[{ctx.run_id}]" if ctx.run_id else "",
            f"({ctx.item_id})" if ctx.item_id else "",
            f"<{ctx.adaptor}>" if ctx.adaptor else "",
        ]
        head = " ".join(
            part
            for part in (
                _record_time(record).strftime("%Y-%m-%d %H:%M:%S"),
                f"[{record.levelname:8s}]",
                record.name,
                *tags,
            )
            if part
        )
        line = f"{head} - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """Logger below the package root; handlers come from setup_logging()."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def quiet_third_party(level: int = logging.WARNING) -> None:
    """Raise the level of chatty SDK/transport loggers."""
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the package root logger. Safe to call more than once.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional rotating log file, in addition to stderr.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter: logging.Formatter = JsonFormatter() if log_format == "json" else TextFormatter()

    # stdout is reserved for CLI output (progress lines, SSE frames)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        from labgen.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(log_file, rotation=rotation, retention=retention)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    quiet_third_party()
