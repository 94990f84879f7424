"""Retry policy for GitHub API calls.

``run_with_retries`` re-invokes a request thunk with exponential backoff
and jitter when the failure is transient: server errors, replication-lag
404s, primary or secondary rate limits and dropped connections.

Environment overrides:
  RELEASELINK_RETRY_ATTEMPTS (retries after the first call, default 3)
  RELEASELINK_RETRY_BASE (seconds base, default 1.0)
  RELEASELINK_RETRY_MAX_SLEEP (cap for any single sleep)

The caller supplies a thunk returning the desired result or raising
:class:`RetryableRequestError` (anything exposing ``status``/``headers``)
or a ``requests`` connection error. Only transient failures trigger a
retry; other failures propagate immediately.
"""

from __future__ import annotations

import os
import random
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

import requests

from .logging import get_logger

T = TypeVar("T")

# Phrases GitHub uses in rate-limit and abuse-detection error bodies
_TRANSIENT_PHRASE = re.compile(r"rate limit|secondary rate|abuse detection", re.IGNORECASE)

# Caller mistakes and auth problems; 403 is re-admitted when rate limited
DO_NOT_RETRY = frozenset({400, 401, 403, 422})

_BODY_BACKOFF_HINTS = (
    re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE),
    re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE),
)
_JITTER = random.SystemRandom()


class RetryableRequestError(Protocol):
    status: int | None
    headers: Mapping[str, str]
    response_text: str | None


def _body_backoff(text: str) -> float | None:
    """Seconds requested by the response body ("retry after 12", "wait 30 seconds")."""
    for hint in _BODY_BACKOFF_HINTS:
        found = hint.search(text or "")
        if found:
            seconds = float(found.group(1))
            return seconds if seconds > 0 else None
    return None


def _header_backoff(headers: Mapping[str, str], now: float | None = None) -> float | None:
    """Derive a wait from ``Retry-After`` or an exhausted ``x-ratelimit`` window."""
    lowered = {k.lower(): v for k, v in headers.items()}
    retry_after = lowered.get("retry-after")
    if retry_after:
        try:
            val = float(retry_after)
        except ValueError:
            val = 0.0
        if val > 0:
            return val
    if lowered.get("x-ratelimit-remaining") == "0":
        reset = lowered.get("x-ratelimit-reset")
        if reset:
            try:
                wait = float(reset) - (now if now is not None else time.time())
            except ValueError:
                return None
            return max(wait, 0.0) + 1.0
    return None


@dataclass
class RetryConfig:
    attempts: int = field(
        default_factory=lambda: int(os.environ.get("RELEASELINK_RETRY_ATTEMPTS", "3"))
    )
    base_sleep: float = field(
        default_factory=lambda: float(os.environ.get("RELEASELINK_RETRY_BASE", "1.0"))
    )
    factor: float = 2.0
    sleep: Callable[[float], None] = time.sleep


def is_transient(output: str) -> bool:
    """True when an error body names a rate limit or abuse detection."""
    return bool(_TRANSIENT_PHRASE.search(output or ""))


def is_rate_limited(exc: Any) -> bool:
    status = getattr(exc, "status", None)
    if status == 429:
        return True
    if status != 403:
        return False
    headers = getattr(exc, "headers", None) or {}
    lowered = {k.lower(): v for k, v in headers.items()}
    if lowered.get("x-ratelimit-remaining") == "0" or "retry-after" in lowered:
        return True
    return is_transient(getattr(exc, "response_text", None) or "")


def should_retry(exc: BaseException) -> bool:
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return True
    status = getattr(exc, "status", None)
    if not isinstance(status, int):
        return False
    if is_rate_limited(exc):
        return True
    if status in DO_NOT_RETRY:
        return False
    return status == 404 or status >= 500


def _compute_sleep(attempt: int, cfg: RetryConfig, exc: BaseException) -> float:
    headers = getattr(exc, "headers", None) or {}
    explicit = _header_backoff(headers)
    if explicit is None:
        explicit = _body_backoff(getattr(exc, "response_text", None) or "")
    backoff = cfg.base_sleep * (cfg.factor ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("RELEASELINK_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(
    fn: Callable[[], T],
    *,
    cfg: RetryConfig | None = None,
    description: str = "request",
) -> T:
    cfg = cfg or RetryConfig()
    retries = max(0, cfg.attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn()
        except Exception as exc:
            if attempt > retries or not should_retry(exc):
                raise
            sleep_for = _compute_sleep(attempt, cfg, exc)
            get_logger().warning(
                f"[retry] transient failure on {description}, "
                f"retry {attempt}/{retries}, sleeping {sleep_for:.2f}s",
                status=getattr(exc, "status", None),
            )
            cfg.sleep(sleep_for)


__all__ = [
    "DO_NOT_RETRY",
    "RetryConfig",
    "is_rate_limited",
    "is_transient",
    "run_with_retries",
    "should_retry",
]
