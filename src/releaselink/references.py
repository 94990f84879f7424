"""Closing-keyword reference extraction.

Recognises the forms GitHub itself honours in commit messages and pull
request bodies::

    Fixes #12
    closes owner/repo#34
    Resolved: https://github.com/owner/repo/issues/56
    fix #1, #2 and gh-3

Only references that resolve to the current repository are returned; a
bare ``#N`` always belongs to the current repository.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from .models import Commit, Issue, PullRequest
from .repository import RepositoryRef

DEFAULT_HOSTS = ("github.com",)

_KEYWORD = re.compile(r"(?<![\w-])(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s*:?\s*", re.I)
_REFERENCE = re.compile(
    r"""
    (?:
        https?://(?P<host>[^\s/]+)/(?P<url_owner>[\w.-]+)/(?P<url_repo>[\w.-]+)
        /(?:issues|pull)/(?P<url_number>\d+)
      |
        (?:(?P<owner>[\w.-]+)/(?P<repo>[\w.-]+))?(?:\#|gh-)(?P<number>\d+)
    )
    (?![\w/])
    """,
    re.X | re.I,
)
_SEPARATOR = re.compile(r"\s*(?:,\s*|\s+and\s+|\s+)", re.I)


@dataclass(frozen=True)
class Reference:
    number: int
    slug: str | None = None


def _iter_references(text: str, hosts: tuple[str, ...]) -> Iterable[Reference]:
    for keyword in _KEYWORD.finditer(text):
        pos = keyword.end()
        while True:
            ref = _REFERENCE.match(text, pos)
            if ref is None:
                break
            if ref.group("url_number"):
                if ref.group("host").lower() in hosts:
                    slug = f"{ref.group('url_owner')}/{ref.group('url_repo')}"
                    yield Reference(int(ref.group("url_number")), slug)
            else:
                slug = f"{ref.group('owner')}/{ref.group('repo')}" if ref.group("owner") else None
                yield Reference(int(ref.group("number")), slug)
            sep = _SEPARATOR.match(text, ref.end())
            if sep is None:
                break
            pos = sep.end()


@lru_cache(maxsize=1024)
def _references_for_repo(text: str, slug: str, hosts: tuple[str, ...]) -> tuple[int, ...]:
    numbers: list[int] = []
    for ref in _iter_references(text, hosts):
        if ref.slug is not None and ref.slug.lower() != slug:
            continue
        if ref.number not in numbers:
            numbers.append(ref.number)
    return tuple(numbers)


def normalize_hosts(hosts: Iterable[str] | None) -> tuple[str, ...]:
    out = {h.lower() for h in DEFAULT_HOSTS}
    out.update(h.lower() for h in hosts or () if h)
    return tuple(sorted(out))


def extract_issue_numbers(
    text: str | None, repo: RepositoryRef, hosts: Iterable[str] | None = None
) -> list[int]:
    """Return issue numbers closed by ``text`` that belong to ``repo``."""
    if not text:
        return []
    return list(_references_for_repo(text, repo.slug.lower(), normalize_hosts(hosts)))


def extract_issues(
    commits: Iterable[Commit],
    pull_requests: Iterable[PullRequest],
    repo: RepositoryRef,
    hosts: Iterable[str] | None = None,
) -> list[Issue]:
    """Apply the extractor to every verified PR body and every commit message."""
    texts = [pr.body for pr in pull_requests] + [commit.message for commit in commits]
    issues: list[Issue] = []
    for text in texts:
        issues.extend(Issue(number) for number in extract_issue_numbers(text, repo, hosts))
    return issues


__all__ = [
    "DEFAULT_HOSTS",
    "Reference",
    "extract_issue_numbers",
    "extract_issues",
    "normalize_hosts",
]
