"""Per-endpoint request spacing for the GitHub API.

GitHub advertises distinct budgets for the search API (30 calls/minute),
core reads (5000 calls/hour) and content-creating writes, plus a global
guard against abuse detection. :class:`RateLimiter` serializes callers so
that no two requests in the same bucket start closer together than the
bucket's interval. One limiter is shared by every thread of an invocation.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

# 10% safety margin on the advertised budgets
SEARCH_INTERVAL = (60.0 / 30) * 1.1
CORE_READ_INTERVAL = (3600.0 / 5000) * 1.1
CORE_WRITE_INTERVAL = 3.0
GLOBAL_INTERVAL = 1.0

_WRITE_METHODS = {"POST", "PATCH", "PUT", "DELETE"}


@dataclass(frozen=True)
class ThrottleConfig:
    search: float = SEARCH_INTERVAL
    read: float = CORE_READ_INTERVAL
    write: float = CORE_WRITE_INTERVAL
    global_: float = GLOBAL_INTERVAL

    @classmethod
    def disabled(cls) -> ThrottleConfig:
        return cls(search=0.0, read=0.0, write=0.0, global_=0.0)


def bucket_for(method: str, url: str) -> str:
    """Classify a request into ``search``, ``read`` or ``write``."""
    if "/search/" in url:
        return "search"
    if url.rstrip("/").endswith("/graphql"):
        # GraphQL queries are reads even though they travel as POST
        return "read"
    return "write" if method.upper() in _WRITE_METHODS else "read"


@dataclass
class RateLimiter:
    config: ThrottleConfig = field(default_factory=ThrottleConfig)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _next_slot: dict[str, float] = field(default_factory=dict, init=False, repr=False)

    def _interval(self, bucket: str) -> float:
        return float(getattr(self.config, bucket))

    def acquire(self, method: str, url: str) -> float:
        """Block until a request may start; return the time waited."""
        bucket = bucket_for(method, url)
        with self._lock:
            now = self.clock()
            start = max(
                now,
                self._next_slot.get(bucket, now),
                self._next_slot.get("global_", now),
            )
            self._next_slot[bucket] = start + self._interval(bucket)
            self._next_slot["global_"] = start + self.config.global_
        wait = start - now
        if wait > 0:
            self.sleep(wait)
        return wait


__all__ = ["RateLimiter", "ThrottleConfig", "bucket_for"]
