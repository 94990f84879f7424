from __future__ import annotations

from collections.abc import Iterable

from .models import Issue, PullRequest, Target


def dedupe_targets(
    pull_requests: Iterable[PullRequest], issues: Iterable[Issue]
) -> list[Target]:
    """Merge PRs and issues into one list unique by number.

    First occurrence fixes the position; a PR replaces a same-numbered
    plain issue because it carries richer data for templating.
    """
    merged: dict[int, Target] = {}
    for target in [*pull_requests, *issues]:
        existing = merged.get(target.number)
        if existing is None or (
            isinstance(target, PullRequest) and not isinstance(existing, PullRequest)
        ):
            merged[target.number] = target
    return list(merged.values())


__all__ = ["dedupe_targets"]
