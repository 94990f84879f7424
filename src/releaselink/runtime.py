"""Runtime helpers for CLI orchestration: input loading and command timing."""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from .config import ReleaseLinkConfig, load_config, resolve_config
from .context import ReleaseContext
from .errors import ConfigError
from .logging import StructuredLogger


CONFIG_DEFAULT = "releaselink.yaml"


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def load_context(
    path: str | Path | None, env: Mapping[str, str] | None = None
) -> ReleaseContext:
    """Read the pipeline context JSON; ``None`` yields an empty context."""
    env = dict(os.environ if env is None else env)
    if path is None:
        return ReleaseContext.from_mapping({}, env=env)
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Context file not found: {p}", code="ENOCONTEXT")
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Context file is not valid JSON: {p}: {exc}", code="ENOCONTEXT") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Context file must contain an object: {p}", code="ENOCONTEXT")
    return ReleaseContext.from_mapping(raw, env=env)


def prepare_config(
    args: Any,
    context: ReleaseContext,
    *,
    loader: Callable[..., ReleaseLinkConfig] = load_config,
) -> ReleaseLinkConfig:
    """Load the YAML config named on the command line.

    Without ``--config`` the default file is used when present, otherwise the
    options come from the environment alone.
    """
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    if args.config:
        return loader(args.config, context.env)
    if Path(CONFIG_DEFAULT).exists():
        return loader(CONFIG_DEFAULT, context.env)
    return resolve_config({}, context.env)


def execute_command(
    handler: _HandlerCallable, command: str, logger: StructuredLogger
) -> int:
    """Run a command handler and log its duration and exit code."""
    start = time.monotonic()
    exit_code = 1
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
        return exit_code
    finally:
        duration_ms = max(0.0, time.monotonic() - start) * 1000
        logger.log_performance(f"cli_{command}", duration_ms, exit_code=exit_code)


__all__ = ["CONFIG_DEFAULT", "execute_command", "load_context", "prepare_config"]
