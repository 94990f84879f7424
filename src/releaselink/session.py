"""Per-invocation state threaded through every lifecycle step."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

import requests

from .concurrency import ConcurrencyConfig, ConcurrentProcessor
from .config import ReleaseLinkConfig
from .context import ReleaseContext
from .errors import ConfigError
from .github_rest import ClientOptions, GitHubRestClient, build_client
from .logging import StructuredLogger, get_logger
from .references import normalize_hosts
from .repository import RepositoryRef, parse_repository_url
from .retry import RetryConfig
from .throttle import ThrottleConfig


@dataclass
class ReleaseSession:
    """Client handle, repository identity and the verified flag for one run."""

    config: ReleaseLinkConfig
    client: GitHubRestClient
    repo: RepositoryRef | None
    logger: StructuredLogger
    processor: ConcurrentProcessor
    verified: bool = False

    @classmethod
    def create(
        cls,
        config: ReleaseLinkConfig,
        context: ReleaseContext,
        *,
        http_session: requests.Session | None = None,
        retry: RetryConfig | None = None,
        throttle: ThrottleConfig | None = None,
        logger: StructuredLogger | None = None,
    ) -> ReleaseSession:
        logger = logger or get_logger()
        options = ClientOptions(
            token=config.github_token or "",
            github_url=config.github_url,
            api_path_prefix=config.github_api_path_prefix,
            proxy=config.proxy,
            retry=retry or RetryConfig(),
            throttle=throttle or ThrottleConfig(),
        )
        return cls(
            config=config,
            client=build_client(options, session=http_session),
            repo=parse_repository_url(context.repository_url),
            logger=logger,
            processor=ConcurrentProcessor(ConcurrencyConfig(config.max_workers), logger),
        )

    def require_repo(self) -> RepositoryRef:
        if self.repo is None:
            raise ConfigError(
                "The repository URL does not identify a GitHub repository",
                code="EINVALIDGITHUBURL",
            )
        return self.repo

    def resolve_canonical_repo(self) -> RepositoryRef:
        """Follow renames/transfers: the search API does not follow redirects."""
        repo = self.require_repo()
        data = self.client.get_repository(repo)
        full_name = data.get("full_name")
        if isinstance(full_name, str) and "/" in full_name:
            canonical = RepositoryRef.from_full_name(full_name)
            if canonical != repo:
                self.logger.debug(
                    "repository redirected", original=repo.slug, canonical=canonical.slug
                )
            return canonical
        return repo

    @property
    def reference_hosts(self) -> tuple[str, ...]:
        """Hosts whose issue URLs count as references to this forge."""
        hosts: list[str] = []
        if self.config.github_url:
            host = urlparse(self.config.github_url).hostname
            if host:
                hosts.append(host)
        return normalize_hosts(hosts)


__all__ = ["ReleaseSession"]
