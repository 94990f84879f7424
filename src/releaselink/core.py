from __future__ import annotations

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import requests

from .config import ReleaseLinkConfig, load_config, resolve_config
from .context import ReleaseContext
from .logging import StructuredLogger, configure_logging
from .orchestrator import SuccessSummary, run_success
from .publish import add_channel, publish_release
from .retry import RetryConfig
from .session import ReleaseSession
from .throttle import ThrottleConfig
from .verify import verify_conditions


class ReleaseLinker:
    """Lifecycle entry points for one release invocation.

    One instance owns one :class:`ReleaseSession`. Conditions are verified
    lazily before the first mutating step and at most once per session.
    """

    def __init__(
        self,
        cfg: ReleaseLinkConfig,
        context: ReleaseContext,
        *,
        http_session: requests.Session | None = None,
        retry: RetryConfig | None = None,
        throttle: ThrottleConfig | None = None,
        logger: StructuredLogger | None = None,
    ):
        self.cfg = cfg
        self.context = context
        self._logger = logger or configure_logging(
            json_logging=cfg.logging_json_enabled, level=cfg.logging_level
        )
        self.session = ReleaseSession.create(
            cfg,
            context,
            http_session=http_session,
            retry=retry,
            throttle=throttle,
            logger=self._logger,
        )

    @classmethod
    def from_config_path(
        cls, path: str | Path, context: ReleaseContext, **kwargs: Any
    ) -> ReleaseLinker:
        return cls(load_config(path, context.env), context, **kwargs)

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None, context: ReleaseContext, **kwargs: Any
    ) -> ReleaseLinker:
        return cls(resolve_config(options, context.env), context, **kwargs)

    def _ensure_verified(self) -> None:
        if not self.session.verified:
            verify_conditions(self.session)

    def verify_conditions(self) -> None:
        with self._logger.timed_operation("verify_conditions"):
            verify_conditions(self.session)

    async def publish_async(self) -> dict[str, Any]:
        with self._logger.timed_operation("publish", tag=self.context.next_release.git_tag):
            self._ensure_verified()
            result = await publish_release(self.session, self.context)
            self._logger.log_operation(
                "publish_complete",
                state=result.state,
                uploaded=len(result.uploaded),
                skipped=len(result.skipped_assets),
            )
            return result.as_dict()

    def publish(self) -> dict[str, Any]:
        return asyncio.run(self.publish_async())

    def add_channel(self) -> dict[str, Any]:
        with self._logger.timed_operation("add_channel", tag=self.context.next_release.git_tag):
            self._ensure_verified()
            return add_channel(self.session, self.context).as_dict()

    async def success_async(self) -> SuccessSummary:
        with self._logger.timed_operation("success", commit_count=len(self.context.commits)):
            self._ensure_verified()
            summary = await run_success(self.session, self.context)
            self._logger.log_operation("success_complete", **summary.as_dict())
            return summary

    def success(self) -> SuccessSummary:
        return asyncio.run(self.success_async())


__all__ = ["ReleaseLinker"]
