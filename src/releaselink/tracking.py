"""Closing of stale "release is failing" tracking issues.

Tracking issues are opened by the pipeline's failure reporter with
:data:`ISSUE_ID` embedded in their body. A successful release closes every
open one; the title search alone is not trusted because an unrelated issue
may share the title.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .bulk import RECOVERABLE_ERRORS, record_failure
from .errors import ErrorCollector
from .github_rest import GitHubRestClient
from .repository import RepositoryRef
from .session import ReleaseSession

ISSUE_ID = "<!-- semantic-release:github -->"


@dataclass(frozen=True)
class TrackingIssue:
    number: int
    title: str
    body: str


def tracking_issue_query(title: str, repo: RepositoryRef) -> str:
    return f"in:title repo:{repo.slug} type:issue state:open {title}"


def find_tracking_issues(
    client: GitHubRestClient, title: str, repo: RepositoryRef
) -> list[TrackingIssue]:
    items: list[dict[str, Any]] = client.search_issues(tracking_issue_query(title, repo))
    return [
        TrackingIssue(number=int(item["number"]), title=str(item.get("title") or ""), body=body)
        for item in items
        if isinstance(body := item.get("body"), str) and ISSUE_ID in body
    ]


def close_tracking_issue(
    session: ReleaseSession,
    repo: RepositoryRef,
    issue: TrackingIssue,
    collector: ErrorCollector,
) -> bool:
    logger = session.logger
    try:
        data = session.client.close_issue(repo, issue.number)
    except RECOVERABLE_ERRORS as exc:
        record_failure(
            exc,
            number=issue.number,
            action="close the issue",
            collector=collector,
            logger=logger,
        )
        return False
    logger.log_target_action("Closed issue", issue.number, data.get("html_url"))
    return True


async def close_tracking_issues(
    session: ReleaseSession,
    repo: RepositoryRef,
    collector: ErrorCollector,
) -> list[TrackingIssue]:
    """Close every open tracking issue; return the ones actually closed."""
    title = session.config.fail_title
    if not isinstance(title, str) or not title:
        return []
    issues: Sequence[TrackingIssue] = find_tracking_issues(session.client, title, repo)
    session.logger.debug(
        "found tracking issues", numbers=[issue.number for issue in issues]
    )
    results = await session.processor.map(
        list(issues),
        lambda issue: close_tracking_issue(session, repo, issue, collector),
        operation="close_tracking_issues",
    )
    return [issue for issue, closed in zip(issues, results) if closed]


__all__ = [
    "ISSUE_ID",
    "TrackingIssue",
    "close_tracking_issue",
    "close_tracking_issues",
    "find_tracking_issues",
    "tracking_issue_query",
]
