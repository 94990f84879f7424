"""Post-release cross-linking: the ``success`` lifecycle step.

Stages run strictly in order:

1. repository identity lookup (follows renames);
2. association: PRs for the release commits, verified, plus referenced issues;
3. bulk comment/label update of every target;
4. closing of stale tracking issues;
5. one aggregate error for everything collected in 3 and 4;
6. release notes merge (only once the earlier stages succeeded).

Failures in 1, 2 and 6 are systemic and propagate immediately.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .associations import resolve_associated_prs, verify_associations
from .bulk import TargetOutcome, update_targets
from .context import ReleaseContext
from .errors import ErrorCollector
from .models import PullRequest, Target
from .observability import stage_span
from .references import extract_issues
from .release_notes import merge_release_notes
from .session import ReleaseSession
from .targets import dedupe_targets
from .tracking import TrackingIssue, close_tracking_issues


@dataclass
class SuccessSummary:
    repository: str
    targets: list[Target] = field(default_factory=list)
    outcomes: list[TargetOutcome] = field(default_factory=list)
    closed_tracking_issues: list[TrackingIssue] = field(default_factory=list)
    release_notes: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "repository": self.repository,
            "targets": [
                {"number": target.number, "kind": target.kind} for target in self.targets
            ],
            "commented": [o.number for o in self.outcomes if o.comment_url],
            "skipped": [o.number for o in self.outcomes if o.skipped],
            "failed": [o.number for o in self.outcomes if o.failed],
            "closed": [issue.number for issue in self.closed_tracking_issues],
            "release_notes_updated": self.release_notes is not None,
        }


async def resolve_targets(session: ReleaseSession, context: ReleaseContext) -> list[Target]:
    """Verified PRs of the release plus the issues they (or the commits) close."""
    repo = session.require_repo()
    hashes = context.commit_hashes
    candidates = resolve_associated_prs(session.client, repo, hashes, logger=session.logger)
    prs: list[PullRequest] = await verify_associations(
        session.client, repo, candidates, hashes, session.processor
    )
    issues = extract_issues(context.commits, prs, repo, session.reference_hosts)
    return dedupe_targets(prs, issues)


async def run_success(session: ReleaseSession, context: ReleaseContext) -> SuccessSummary:
    config = session.config
    logger = session.logger
    collector = ErrorCollector()

    with stage_span("repository_identity"):
        repo = session.resolve_canonical_repo()
    session.repo = repo
    summary = SuccessSummary(repository=repo.slug)

    if not config.comments_enabled or not context.commits:
        logger.info("Skip commenting on issues and pull requests.")
    else:
        with stage_span("associate", commit_count=len(context.commits)):
            summary.targets = await resolve_targets(session, context)
        with stage_span("bulk_update", target_count=len(summary.targets)):
            summary.outcomes = await update_targets(
                session, repo, context, summary.targets, collector
            )

    if not config.close_tracking_enabled:
        logger.info("Skip closing issue.")
    else:
        with stage_span("close_tracking_issues"):
            summary.closed_tracking_issues = await close_tracking_issues(
                session, repo, collector
            )

    collector.raise_if_any()

    with stage_span("release_notes"):
        summary.release_notes = merge_release_notes(session, repo, context)
    return summary


__all__ = ["SuccessSummary", "resolve_targets", "run_success"]
