"""Structured logging for releaselink.

Records go to stdout, either as plain ``asctime level message`` lines or,
with ``json_logging``, one JSON object per line. Any keyword passed to a
logging helper becomes a structured field of the record. Tokens are
redacted from messages and error strings before they are written.

Fan-out stages log from worker threads, so the duplicate-suppression state
is guarded by a lock.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import IO, Any

from .errors import redact

# Attributes every LogRecord carries; anything else on a record came from ``extra``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}

# Emitted first, in this order, when present
_LEADING_FIELDS = (
    "operation",
    "target_number",
    "target_kind",
    "url",
    "status",
    "duration_ms",
    "error",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        for attr in _LEADING_FIELDS:
            if attr in record.__dict__:
                entry[attr] = record.__dict__[attr]
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in entry:
                continue
            entry[key] = value
        return json.dumps(entry, default=str)


class StructuredLogger:
    """Thin facade over a stdlib logger with release-oriented helpers."""

    def __init__(
        self,
        name: str = "releaselink",
        json_logging: bool = False,
        level: str = "INFO",
        stream: IO[str] | None = None,
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        for existing in list(self._logger.handlers):
            self._logger.removeHandler(existing)
        handler = logging.StreamHandler(stream or sys.stdout)
        if json_logging:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        self._logger.addHandler(handler)
        self._logger.propagate = False
        self._dedupe_enabled = json_logging
        self._dedupe_lock = threading.Lock()
        self._last_signature: tuple[int, str, tuple[tuple[str, str], ...]] | None = None

    def _is_repeat(self, level: int, message: str, extra: dict[str, Any]) -> bool:
        signature = (level, message, tuple(sorted((k, repr(v)) for k, v in extra.items())))
        with self._dedupe_lock:
            if signature == self._last_signature:
                return True
            self._last_signature = signature
        return False

    def _emit(self, level: int, message: str, extra: dict[str, Any]) -> None:
        if self._dedupe_enabled and self._is_repeat(level, message, extra):
            return
        self._logger.log(level, message, extra=extra)

    def log_operation(self, operation: str, **kw: Any) -> None:
        self._emit(logging.INFO, f"Operation: {operation}", {"operation": operation, **kw})

    def log_target_action(
        self,
        action: str,
        target_number: int,
        url: str | None = None,
        **kw: Any,
    ) -> None:
        """Log a successful mutation of an issue or pull request.

        The message reads ``"<action> #<number>: <url>"``, e.g.
        ``"Added comment to issue #12: https://github.com/o/r/issues/12#issuecomment-1"``.
        """
        extra: dict[str, Any] = {
            "operation": "target_" + action.lower().replace(" ", "_"),
            "target_number": target_number,
            **kw,
        }
        if url:
            extra["url"] = url
        suffix = f": {url}" if url else ""
        self._emit(logging.INFO, f"{action} #{target_number}{suffix}", extra)

    def log_performance(self, operation: str, duration_ms: float, **kw: Any) -> None:
        self._emit(
            logging.INFO,
            f"Performance: {operation} completed in {duration_ms:.2f}ms",
            {"operation": operation, "duration_ms": round(duration_ms, 2), **kw},
        )

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        if error:
            kw["error"] = redact(error)
        self._logger.error(message, extra=kw)

    def debug(self, message: str, **kw: Any) -> None:
        self._logger.debug(message, extra=kw)

    def info(self, message: str, **kw: Any) -> None:
        self._logger.info(message, extra=kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._logger.warning(message, extra=kw)

    def error(self, message: str, **kw: Any) -> None:  # noqa: D401
        self._logger.error(message, extra=kw)

    @contextmanager
    def timed_operation(self, operation: str, **kw: Any) -> Iterator[None]:
        """Log ``<operation>_start``, then the duration or the failure."""
        self.log_operation(f"{operation}_start", **kw)
        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.log_error(f"operation {operation} failed", error=str(exc), **kw)
            raise
        self.log_performance(operation, (time.perf_counter() - started) * 1000, **kw)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "INFO") -> StructuredLogger:
    """Replace the process-wide logger used by components without an injected one."""
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
