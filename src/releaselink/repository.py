from __future__ import annotations

import re
from dataclasses import dataclass

_SCP_LIKE = re.compile(r"^(?:[\w.-]+@)?[\w.-]+:(?!//)(?P<path>.+)$")
_SHORTHAND = re.compile(r"^(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+)$")


@dataclass(frozen=True)
class RepositoryRef:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_full_name(cls, full_name: str) -> RepositoryRef:
        owner, _, repo = full_name.partition("/")
        return cls(owner=owner, repo=repo)


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


def parse_repository_url(url: str | None) -> RepositoryRef | None:
    """Extract ``owner/repo`` from an https, ssh, scp-like or shorthand URL.

    Returns None when no owner/repo pair can be found.
    """
    if not url:
        return None
    text = url.strip()
    short = _SHORTHAND.match(text)
    if short and "://" not in text:
        return RepositoryRef(short.group("owner"), _strip_git_suffix(short.group("repo")))
    if "://" in text:
        path = text.split("://", 1)[1]
        path = path.split("/", 1)[1] if "/" in path else ""
    else:
        scp = _SCP_LIKE.match(text)
        if not scp:
            return None
        path = scp.group("path")
    parts = [p for p in path.split("?")[0].split("#")[0].split("/") if p]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], _strip_git_suffix(parts[1])
    if not owner or not repo:
        return None
    return RepositoryRef(owner, repo)


__all__ = ["RepositoryRef", "parse_repository_url"]
