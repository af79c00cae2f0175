"""Structured JSON logging shared by every subtitle-translator component.

All records go to one ``subtitle_translator`` logger with a rotating file
handler under ``log/`` and a stderr stream handler. Values bound with
:func:`log_context` (task and user identifiers, the current stage) are copied
onto every record emitted inside the block on the same thread.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Iterator, Optional, TextIO

SCRIPT_DIR = Path(__file__).resolve().parent.parent
LOG_DIR = Path(os.environ.get("SUBTITLE_LOG_DIR") or SCRIPT_DIR / "log")
LOG_FILE = LOG_DIR / "app.log"
LOGGER_NAME = "subtitle_translator"
DEFAULT_LOG_LEVEL = logging.INFO
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_context: contextvars.ContextVar[Dict[str, object]] = contextvars.ContextVar(
    "subtitle_translator_log_context", default={}
)
_logger: Optional[logging.Logger] = None
_setup_lock = threading.Lock()


class JSONLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    CONTEXT_FIELDS = ("task_id", "user_id", "stage", "event", "status", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
        }
        extra: Dict[str, object] = {}
        for key, value in vars(record).items():
            if key in self.CONTEXT_FIELDS:
                if value is not None:
                    payload[key] = value
            elif key not in _RECORD_ATTRIBUTES:
                extra[key] = value
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _ContextInjector(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _build_handlers() -> list[logging.Handler]:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    formatter = JSONLogFormatter()
    injector = _ContextInjector()
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            LOG_FILE,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        ),
        logging.StreamHandler(),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(injector)
    return handlers


def get_logger() -> logging.Logger:
    """Return the package logger, attaching handlers on first use."""

    global _logger
    with _setup_lock:
        if _logger is None:
            logger = logging.getLogger(LOGGER_NAME)
            logger.propagate = False
            for handler in _build_handlers():
                logger.addHandler(handler)
            logger.setLevel(DEFAULT_LOG_LEVEL)
            _logger = logger
        return _logger


def configure_logging_level(debug_enabled: bool = False, log_level: Optional[int] = None) -> int:
    """Apply ``log_level`` (or DEBUG/INFO from ``debug_enabled``) to the logger and its handlers."""

    level = log_level if log_level is not None else (
        logging.DEBUG if debug_enabled else DEFAULT_LOG_LEVEL
    )
    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    return level


@contextlib.contextmanager
def log_context(**values: object) -> Iterator[None]:
    """Bind ``values`` to every record logged inside the block; ``None`` values are skipped."""

    merged = {**_context.get(), **{key: value for key, value in values.items() if value is not None}}
    token = _context.set(merged)
    try:
        yield
    finally:
        _context.reset(token)


def get_log_context() -> Dict[str, object]:
    return dict(_context.get())


def clear_log_context() -> None:
    _context.set({})


def _console(level: int, stream: TextIO, message: str, args: tuple, logger_obj: Optional[logging.Logger]) -> None:
    text = message % args if args else message
    print(text, file=stream)
    (logger_obj or get_logger()).log(level, text, extra={"event": "console"})


def console_info(message: str, *args: object, logger_obj: Optional[logging.Logger] = None) -> None:
    """Print ``message`` for the operator and record it in the log."""

    _console(logging.INFO, sys.stdout, message, args, logger_obj)


def console_warning(message: str, *args: object, logger_obj: Optional[logging.Logger] = None) -> None:
    _console(logging.WARNING, sys.stderr, message, args, logger_obj)


def console_error(message: str, *args: object, logger_obj: Optional[logging.Logger] = None) -> None:
    _console(logging.ERROR, sys.stderr, message, args, logger_obj)


__all__ = [
    "JSONLogFormatter",
    "clear_log_context",
    "configure_logging_level",
    "console_error",
    "console_info",
    "console_warning",
    "get_log_context",
    "get_logger",
    "log_context",
]
