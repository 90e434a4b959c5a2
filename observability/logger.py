"""Structured event logging for the interview service.

Each event is one log record whose fields ride on ``record.event``. The console
and the human file render it as ``session=<id> kind=<kind> key=value ...``; the
JSON file renders the same record as a single JSON object per line.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import threading
import time
import uuid
from typing import Any, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "1") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

HUMAN_KEYS = ("action", "reason", "stage", "difficulty", "status", "report_id", "job_id", "attempts", "ms", "outcome")

_logger = logging.getLogger("interview")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False
_configure_lock = threading.Lock()


class HumanEventFormatter(logging.Formatter):
    """Plain-text lines; event records get a compact ``key=value`` tail."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s] %(levelname)s %(name)s :: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", None)
        if isinstance(event, dict):
            record.message = _describe(event)
        return super().formatMessage(record)


class JsonEventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        body: dict[str, Any] = {"level": record.levelname, "logger": record.name}
        body.update(getattr(record, "event", {}) or {"message": record.getMessage()})
        return json.dumps(body, ensure_ascii=False, default=str)


def _describe(event: dict[str, Any]) -> str:
    parts = [f"session={event.get('session_id')}", f"kind={event.get('kind')}"]
    parts.extend(f"{key}={event[key]}" for key in HUMAN_KEYS if key in event)
    return " ".join(parts)


def _human_file_name(log_file: str) -> str:
    root, ext = os.path.splitext(log_file)
    return f"{root}-human{ext or '.log'}"


def _rotating(path: str) -> logging.handlers.RotatingFileHandler:
    return logging.handlers.RotatingFileHandler(
        path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
    )


def configure_logging(
    *,
    force: bool = False,
    log_file: Optional[str] = None,
    enable_files: Optional[bool] = None,
) -> logging.Logger:
    """Attach console and rotating file handlers to the ``interview`` logger.

    A no-op once handlers exist unless ``force`` is set, in which case the
    previous handlers are closed and replaced.
    """

    with _configure_lock:
        if _logger.handlers and not force:
            return _logger
        for handler in list(_logger.handlers):
            _logger.removeHandler(handler)
            handler.close()

        console = logging.StreamHandler(stream=sys.stdout)
        console.setLevel(LOG_LEVEL)
        console.setFormatter(HumanEventFormatter())
        _logger.addHandler(console)

        if not (ENABLE_FILE_LOGS if enable_files is None else enable_files):
            return _logger

        path = log_file or LOG_FILE
        log_dir = os.path.dirname(path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        # JSON lines carry only event records
        json_file = _rotating(path)
        json_file.setLevel(LOG_LEVEL)
        json_file.setFormatter(JsonEventFormatter())
        json_file.addFilter(lambda record: hasattr(record, "event"))
        _logger.addHandler(json_file)

        human_file = _rotating(_human_file_name(path))
        human_file.setLevel(LOG_LEVEL)
        human_file.setFormatter(HumanEventFormatter())
        _logger.addHandler(human_file)
        return _logger


def log_event(kind: str, session_id: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one structured event to every configured handler."""

    configure_logging()
    event: dict[str, Any] = {
        "ts": time.time(),
        "trace": uuid.uuid4().hex,
        "kind": kind,
        "session_id": session_id,
    }
    event.update(fields)
    _logger.log(level, kind, extra={"event": event})


__all__ = ["HumanEventFormatter", "JsonEventFormatter", "configure_logging", "log_event"]
