"""Proxy selection for the GitHub API client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse

DEFAULT_GITHUB_URL = "https://api.github.com"


def resolve_proxy(github_url: str | None, env: Mapping[str, str]) -> str | None:
    """Pick the proxy from ``http_proxy``/``HTTP_PROXY`` honouring ``no_proxy``.

    Returns ``None`` when no proxy applies to the API host.
    """
    github_url = github_url or DEFAULT_GITHUB_URL
    proxy = env.get("http_proxy") or env.get("HTTP_PROXY")
    if not proxy:
        return None
    no_proxy = env.get("no_proxy") or env.get("NO_PROXY")
    if not no_proxy:
        return proxy
    hostname = urlparse(github_url).hostname or ""
    for raw in no_proxy.split(","):
        entry = raw.strip()
        if not entry:
            continue
        if entry == "*":
            return None
        if entry.startswith("."):
            entry = entry[1:]
        if hostname == entry or hostname.endswith("." + entry):
            return None
    return proxy


def proxy_url(proxy: Any) -> str | None:
    """Normalise a configured proxy (string or ``{host, port, ...}``) to a URL."""
    if not proxy:
        return None
    if isinstance(proxy, str):
        return proxy
    if isinstance(proxy, Mapping):
        scheme = str(proxy.get("protocol") or "http").rstrip(":")
        host = proxy.get("host")
        port = proxy.get("port")
        auth = proxy.get("auth")
        prefix = f"{auth}@" if auth else ""
        return f"{scheme}://{prefix}{host}:{port}"
    return None


def requests_proxies(proxy: Any) -> dict[str, str]:
    url = proxy_url(proxy)
    if not url:
        return {}
    return {"http": url, "https": url}


__all__ = ["DEFAULT_GITHUB_URL", "proxy_url", "requests_proxies", "resolve_proxy"]
