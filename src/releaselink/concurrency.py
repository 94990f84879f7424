"""Concurrency support for releaselink.

The HTTP client is synchronous (``requests``); fan-out stages dispatch one
blocking call chain per target onto a thread pool and await them together
from a single event loop. Ordering between targets is not guaranteed, but
results are returned in input order.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from .logging import StructuredLogger, get_logger

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 8


class ConcurrencyConfig:
    """Configuration for concurrency settings."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        self.max_workers = max(1, int(max_workers))


class ConcurrentProcessor:
    """Runs independent per-item call chains concurrently."""

    def __init__(
        self,
        config: ConcurrencyConfig | None = None,
        logger: StructuredLogger | None = None,
    ):
        self.config = config or ConcurrencyConfig()
        self.logger = logger or get_logger()

    async def map(
        self, items: Sequence[T], fn: Callable[[T], R], *, operation: str = "fan_out"
    ) -> list[R]:
        """Apply ``fn`` to every item on worker threads.

        Every task runs to completion before the first exception (if any)
        propagates; per-item error isolation is the caller's job.
        """
        if not items:
            return []
        start_time = time.perf_counter()
        workers = min(self.config.max_workers, len(items))
        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [loop.run_in_executor(executor, fn, item) for item in items]
            outcomes = await asyncio.gather(*futures, return_exceptions=True)
        duration_ms = (time.perf_counter() - start_time) * 1000
        self.logger.log_performance(operation, duration_ms, item_count=len(items))
        results: list[R] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results


def create_concurrent_processor(
    config: ConcurrencyConfig | None = None, logger: StructuredLogger | None = None
) -> ConcurrentProcessor:
    """Factory function to create concurrent processor."""
    return ConcurrentProcessor(config, logger)


__all__ = [
    "ConcurrencyConfig",
    "ConcurrentProcessor",
    "DEFAULT_MAX_WORKERS",
    "create_concurrent_processor",
]
