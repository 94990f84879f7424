from __future__ import annotations

from .context import RELEASE_NAME, ReleaseContext
from .repository import RepositoryRef
from .session import ReleaseSession
from .templates import get_release_links

NOTES_SEPARATOR = "\n---\n"


def merge_notes(notes: str, links: str, position: str) -> str:
    if position == "top":
        return f"{links}{NOTES_SEPARATOR}{notes}"
    return f"{notes}{NOTES_SEPARATOR}{links}"


def merge_release_notes(
    session: ReleaseSession, repo: RepositoryRef, context: ReleaseContext
) -> str | None:
    """Add links to the other release channels to the GitHub release body.

    Returns the patched body, or ``None`` when nothing was changed. Failures
    propagate unchanged.
    """
    position = session.config.add_releases
    if position not in ("top", "bottom"):
        return None
    own = next((r for r in context.releases if r.name == RELEASE_NAME), None)
    if own is None or own.id is None:
        session.logger.debug("no GitHub release with an id to add links to")
        return None
    links = get_release_links(context.releases)
    if not links:
        return None
    body = merge_notes(context.next_release.notes, links, str(position))
    data = session.client.update_release(repo, own.id, {"body": body})
    session.logger.info(
        f"Updated GitHub release notes with links to other channels: {data.get('html_url')}",
        release_id=own.id,
    )
    return body


__all__ = ["NOTES_SEPARATOR", "merge_notes", "merge_release_notes"]
