"""Fan-out commenting and labelling of resolved issues and pull requests.

Each target runs through its own request chain. Failures never stop the
other targets:

- 403 (no permission) and 404 (target vanished) are logged and skipped;
- anything else, including a template that cannot be rendered for the
  target, is recorded in the shared :class:`ErrorCollector` and surfaces in
  the aggregate error raised once the whole stage is done.

A target whose ``successCommentCondition`` renders false is left alone.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import requests

from .context import ReleaseContext
from .errors import ErrorCollector, OperationError, classify_error, redact
from .github_rest import GitHubAPIError
from .logging import StructuredLogger
from .models import Target
from .repository import RepositoryRef
from .session import ReleaseSession
from .templates import (
    TemplateRenderError,
    get_success_comment,
    render,
    render_condition,
    render_labels,
)

RECOVERABLE_ERRORS = (GitHubAPIError, requests.RequestException)


@dataclass
class TargetOutcome:
    number: int
    comment_url: str | None = None
    labels: list[str] = field(default_factory=list)
    skipped: bool = False
    failed: bool = False


def record_failure(
    exc: Exception,
    *,
    number: int,
    action: str,
    collector: ErrorCollector,
    logger: StructuredLogger,
) -> bool:
    """Classify a per-target failure; return True when it was only skipped."""
    status = exc.status if isinstance(exc, GitHubAPIError) else None
    if isinstance(exc, GitHubAPIError) and exc.is_permission_or_missing:
        reason = "it doesn't exist" if status == 404 else "access is forbidden"
        logger.warning(
            f"Failed to {action} #{number} as {reason}.",
            target_number=number,
            status=status,
        )
        return True
    collector.add(OperationError(number, status, redact(str(exc)), exc))
    logger.log_error(
        f"Failed to {action} #{number}.",
        error=str(exc),
        target_number=number,
        status=status,
        category=classify_error(exc).category,
    )
    return False


def comment_body(session: ReleaseSession, context: ReleaseContext, target: Target) -> str:
    template = session.config.success_comment
    if isinstance(template, str) and template:
        return render(template, context.template_context(target))
    return get_success_comment(target, context.releases, context.next_release.version)


def released_labels(session: ReleaseSession, context: ReleaseContext, target: Target) -> list[str]:
    templates = session.config.released_labels
    if not session.config.labels_enabled or not isinstance(templates, list):
        return []
    return render_labels(templates, context.template_context(target))


def update_target(
    session: ReleaseSession,
    repo: RepositoryRef,
    context: ReleaseContext,
    target: Target,
    collector: ErrorCollector,
) -> TargetOutcome:
    logger = session.logger
    outcome = TargetOutcome(number=target.number)

    def failed(exc: Exception, action: str) -> TargetOutcome:
        skipped = record_failure(
            exc, number=target.number, action=action, collector=collector, logger=logger
        )
        outcome.skipped = skipped
        outcome.failed = not skipped
        return outcome

    try:
        condition = session.config.success_comment_condition
        if not render_condition(condition, context.template_context(target)):
            logger.info(
                f"Skip commenting on {target.kind.replace('_', ' ')} #{target.number}.",
                target_number=target.number,
            )
            outcome.skipped = True
            return outcome
        body = comment_body(session, context, target)
        labels = released_labels(session, context, target)
    except TemplateRenderError as exc:
        return failed(exc, "render the comment for the issue")

    try:
        comment = session.client.create_issue_comment(repo, target.number, body)
    except RECOVERABLE_ERRORS as exc:
        return failed(exc, "add a comment to the issue")
    outcome.comment_url = comment.get("html_url")
    logger.log_target_action(
        "Added comment to issue",
        target.number,
        outcome.comment_url,
        target_kind=target.kind,
    )

    if labels:
        try:
            session.client.add_labels(repo, target.number, labels)
        except RECOVERABLE_ERRORS as exc:
            return failed(exc, "add labels to the issue")
        outcome.labels = labels
        logger.log_target_action(
            f"Added labels {labels} to issue", target.number, target_kind=target.kind
        )
    return outcome


async def update_targets(
    session: ReleaseSession,
    repo: RepositoryRef,
    context: ReleaseContext,
    targets: Sequence[Target],
    collector: ErrorCollector,
) -> list[TargetOutcome]:
    return await session.processor.map(
        list(targets),
        lambda target: update_target(session, repo, context, target, collector),
        operation="update_targets",
    )


__all__ = [
    "RECOVERABLE_ERRORS",
    "TargetOutcome",
    "comment_body",
    "record_failure",
    "released_labels",
    "update_target",
    "update_targets",
]
