"""Environment-based credential and endpoint resolution.

Reads the GitHub token and enterprise endpoint overrides from the process
environment (or a mapping supplied by the release pipeline), optionally
layering values from a ``.env`` file underneath.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from .logging import get_logger

TOKEN_VARS = ("GH_TOKEN", "GITHUB_TOKEN")
URL_VARS = ("GH_URL", "GITHUB_URL")
PREFIX_VARS = ("GH_PREFIX", "GITHUB_PREFIX")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = False
    dotenv_path: str | None = None


@dataclass(frozen=True)
class ResolvedEnvironment:
    github_token: str | None
    github_url: str | None
    github_api_path_prefix: str | None


class EnvironmentAuthManager:
    """Looks up credentials without mutating ``os.environ``."""

    def __init__(self, config: EnvAuthConfig, env: Mapping[str, str] | None = None):
        self.config = config
        self.logger = get_logger()
        merged: dict[str, str] = {}
        if config.load_dotenv:
            merged.update(self._read_dotenv())
        merged.update(env if env is not None else os.environ)
        self._env = merged

    def _read_dotenv(self) -> dict[str, str]:
        candidates = (
            [self.config.dotenv_path] if self.config.dotenv_path else [".env", ".env.local"]
        )
        for location in candidates:
            if location and Path(location).exists():
                values = {k: v for k, v in dotenv_values(location).items() if v is not None}
                self.logger.debug(f"Loaded environment variables from {location}")
                return values
        return {}

    def _first(self, names: tuple[str, ...]) -> str | None:
        for name in names:
            raw = self._env.get(name)
            if raw is None:
                continue
            value = raw.strip()
            if value:
                return value
        return None

    def get_github_token(self) -> str | None:
        token = self._first(TOKEN_VARS)
        if token:
            self.logger.debug("Found GitHub token in environment variables")
        return token

    def get_github_url(self) -> str | None:
        return self._first(URL_VARS)

    def get_api_path_prefix(self) -> str | None:
        return self._first(PREFIX_VARS)

    @property
    def env(self) -> Mapping[str, str]:
        return self._env

    def resolve(self) -> ResolvedEnvironment:
        return ResolvedEnvironment(
            github_token=self.get_github_token(),
            github_url=self.get_github_url(),
            github_api_path_prefix=self.get_api_path_prefix(),
        )


def create_env_auth_manager(
    config: EnvAuthConfig | None = None, env: Mapping[str, str] | None = None
) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    return EnvironmentAuthManager(config or EnvAuthConfig(), env)


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "ResolvedEnvironment",
    "create_env_auth_manager",
]
