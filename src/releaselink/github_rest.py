from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import requests
from requests.utils import parse_header_links

from . import __version__
from .errors import ReleaseLinkError
from .proxy import DEFAULT_GITHUB_URL, requests_proxies
from .repository import RepositoryRef
from .retry import RetryConfig, is_rate_limited, run_with_retries
from .throttle import RateLimiter, ThrottleConfig

DEFAULT_API_URL = DEFAULT_GITHUB_URL
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
USER_AGENT = f"releaselink/{__version__}"
HTTP_ERROR_STATUS = 400
PER_PAGE = 100

_URI_TEMPLATE = re.compile(r"\{[^}]*\}")


class GitHubAPIError(ReleaseLinkError):
    """Raised when the GitHub REST/GraphQL API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
        headers: Mapping[str, str] | None = None,
    ):
        super().__init__(message, code="EGITHUBAPI")
        self.status = status
        self.response_text = response_text
        self.headers: dict[str, str] = dict(headers or {})

    @property
    def is_permission_or_missing(self) -> bool:
        """403 (no permission, not a rate limit) or 404 (target vanished)."""
        if self.status == 404:
            return True
        return self.status == 403 and not is_rate_limited(self)


def api_urls(github_url: str | None, path_prefix: str | None = None) -> tuple[str, str]:
    """Return the ``(rest_base, graphql_url)`` pair for a (possibly enterprise) host."""
    if not github_url:
        return DEFAULT_API_URL, DEFAULT_GRAPHQL_URL
    base = github_url.rstrip("/")
    if path_prefix:
        base = f"{base}/{path_prefix.strip('/')}"
    return base, f"{base}/graphql"


@dataclass(frozen=True)
class ClientOptions:
    token: str
    github_url: str | None = None
    api_path_prefix: str | None = None
    proxy: Any = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    throttle: ThrottleConfig = field(default_factory=ThrottleConfig)
    timeout: float = 30.0


@dataclass
class GitHubRestClient:
    """REST/GraphQL client shared read-only by every task of one invocation.

    Each request passes through the rate limiter, then the retry policy,
    then the underlying ``requests`` session.
    """

    token: str
    base_url: str = DEFAULT_API_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    session: requests.Session | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    limiter: RateLimiter = field(default_factory=RateLimiter)
    proxies: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- request pipeline ----------------------------------------------
    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any | None = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        self.limiter.acquire(method, url)
        merged = dict(self._session.headers)
        if headers:
            merged.update(headers)
        response = self._session.request(
            method,
            url,
            params=dict(params) if params else None,
            json=json_body,
            data=data,
            headers=merged,
            proxies=self.proxies or None,
            timeout=self.timeout,
        )
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
                headers=getattr(response, "headers", None),
            )
        return response

    def _execute(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self._url(path)
        return run_with_retries(
            lambda: self._send(method, url, **kwargs),
            cfg=self.retry,
            description=f"{method} {url}",
        )

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.text:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._decode(self._execute(method, path, **kwargs))

    @staticmethod
    def _next_link(response: requests.Response) -> str | None:
        headers = getattr(response, "headers", None) or {}
        link = next((v for k, v in headers.items() if k.lower() == "link"), None)
        if not link:
            return None
        for entry in parse_header_links(link):
            if entry.get("rel") == "next" and entry.get("url"):
                return entry["url"]
        return None

    def _paginate(self, path: str, *, params: Mapping[str, Any] | None = None) -> list[Any]:
        query: dict[str, Any] | None = {"per_page": PER_PAGE, **(params or {})}
        results: list[Any] = []
        next_path: str | None = path
        while next_path:
            response = self._execute("GET", next_path, params=query)
            data = self._decode(response)
            if not isinstance(data, list):
                break
            results.extend(data)
            next_path = self._next_link(response)
            # next links already carry the query string
            query = None
        return results

    # ---- repository & releases ----------------------------------------
    def get_repository(self, repo: RepositoryRef) -> dict[str, Any]:
        return self._request("GET", f"/repos/{repo.slug}") or {}

    def create_release(self, repo: RepositoryRef, payload: Mapping[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"/repos/{repo.slug}/releases", json_body=dict(payload)) or {}

    def get_release_by_tag(self, repo: RepositoryRef, tag: str) -> dict[str, Any]:
        return self._request("GET", f"/repos/{repo.slug}/releases/tags/{tag}") or {}

    def update_release(
        self, repo: RepositoryRef, release_id: int, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        body = {k: v for k, v in payload.items() if v is not None}
        return (
            self._request("PATCH", f"/repos/{repo.slug}/releases/{release_id}", json_body=body)
            or {}
        )

    def upload_release_asset(
        self,
        upload_url: str,
        *,
        name: str,
        data: bytes,
        content_type: str,
        label: str | None = None,
    ) -> dict[str, Any]:
        url = _URI_TEMPLATE.sub("", upload_url)
        params: dict[str, Any] = {"name": name}
        if label:
            params["label"] = label
        headers = {"Content-Type": content_type, "Content-Length": str(len(data))}
        return self._request("POST", url, params=params, data=data, headers=headers) or {}

    # ---- issues & pull requests ----------------------------------------
    def create_issue(self, repo: RepositoryRef, payload: Mapping[str, Any]) -> dict[str, Any]:
        body = {k: v for k, v in payload.items() if v is not None}
        return self._request("POST", f"/repos/{repo.slug}/issues", json_body=body) or {}

    def create_issue_comment(self, repo: RepositoryRef, number: int, body: str) -> dict[str, Any]:
        return (
            self._request(
                "POST", f"/repos/{repo.slug}/issues/{number}/comments", json_body={"body": body}
            )
            or {}
        )

    def add_labels(self, repo: RepositoryRef, number: int, labels: Iterable[str]) -> list[Any]:
        data = self._request(
            "POST", f"/repos/{repo.slug}/issues/{number}/labels", json_body=list(labels)
        )
        return data if isinstance(data, list) else []

    def update_issue(self, repo: RepositoryRef, number: int, **fields: Any) -> dict[str, Any]:
        payload = {k: v for k, v in fields.items() if v is not None}
        return (
            self._request("PATCH", f"/repos/{repo.slug}/issues/{number}", json_body=payload) or {}
        )

    def close_issue(self, repo: RepositoryRef, number: int) -> dict[str, Any]:
        return self.update_issue(repo, number, state="closed")

    def search_issues(self, query: str) -> list[dict[str, Any]]:
        data = self._request("GET", "/search/issues", params={"q": query, "per_page": PER_PAGE})
        items = data.get("items") if isinstance(data, dict) else None
        return [item for item in items or [] if isinstance(item, dict)]

    def get_pull(self, repo: RepositoryRef, number: int) -> dict[str, Any]:
        return self._request("GET", f"/repos/{repo.slug}/pulls/{number}") or {}

    def list_pull_commits(self, repo: RepositoryRef, number: int) -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{repo.slug}/pulls/{number}/commits")
        return [entry for entry in data if isinstance(entry, dict)]

    # ---- GraphQL ------------------------------------------------------
    def graphql(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        payload = {"query": query, "variables": dict(variables or {})}
        data = self._request("POST", self.graphql_url, json_body=payload)
        if isinstance(data, dict) and data.get("errors"):
            raise GitHubAPIError(f"GraphQL query failed: {data['errors']}")
        if not isinstance(data, dict):
            raise GitHubAPIError("GraphQL query returned an unexpected payload")
        result = data.get("data")
        return result if isinstance(result, dict) else {}


def build_client(
    options: ClientOptions, *, session: requests.Session | None = None
) -> GitHubRestClient:
    """Assemble the client handle from resolved options."""
    base_url, graphql_url = api_urls(options.github_url, options.api_path_prefix)
    return GitHubRestClient(
        token=options.token,
        base_url=base_url,
        graphql_url=graphql_url,
        session=session,
        retry=options.retry,
        limiter=RateLimiter(config=options.throttle),
        proxies=requests_proxies(options.proxy),
        timeout=options.timeout,
    )


__all__ = [
    "ClientOptions",
    "GitHubAPIError",
    "GitHubRestClient",
    "api_urls",
    "build_client",
]
