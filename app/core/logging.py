"""Logging configuration for progress-service.

Two output modes, picked by LOG_JSON:

  _ContainerFormatter — one human-readable line per record, for local dev
    and `docker logs`.  WARNING and above carry [file:line] so a skipped
    payload or a rejected write can be traced back to its guard clause.

  _JsonFormatter — one JSON object per line, for log aggregation.
    Request context (request_id, method, path, ...) and progress context
    (learner_id, course_tag, module_tag, activity_tag) become top-level
    keys, so "every write for learner X in course C" is a filter, not a
    regex.

Progress modules attach the progress context through `extra=`:

    logger.info("Recorded progress", extra={"learner_id": ..., "course_tag": ...})
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, message
    - WARNING+: appends [filename:lineno]
    - ERROR/CRITICAL: stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter for machine-parseable log output."""

    # Injected by RequestContextMiddleware.
    _REQUEST_FIELDS = (
        "request_id",
        "method",
        "path",
        "user_id",
        "status_code",
        "duration_ms",
    )

    # Passed via `extra=` by the progress repository and services.
    _PROGRESS_FIELDS = (
        "learner_id",
        "course_tag",
        "module_tag",
        "activity_tag",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._REQUEST_FIELDS + self._PROGRESS_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # SQL echo and HTTP client chatter stay at WARNING even in debug mode
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
