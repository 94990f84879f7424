"""Commit → pull request association via the GraphQL index.

The search/graph index can return pull requests whose head was rebased
after the fact, so every candidate is re-checked against the release's
commit set before it becomes a target.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from .concurrency import ConcurrentProcessor
from .github_rest import GitHubRestClient
from .logging import StructuredLogger, get_logger
from .models import PullRequest, pull_request_from_node
from .repository import RepositoryRef

# GraphQL node-count limit per query
CHUNK_SIZE = 100
PAGE_SIZE = 100

_SAFE_OID = re.compile(r"^[0-9A-Za-z]+$")

PR_FIELDS_FRAGMENT = """
fragment PRFields on PullRequest {
  number
  title
  body
  url
  state
  mergedAt
  author { login __typename }
  labels(first: 50) { nodes { name } }
}
"""

COMMIT_PAGE_QUERY = (
    """
query getCommitAssociatedPRs($owner: String!, $repo: String!, $sha: GitObjectID!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    commit: object(oid: $sha) {
      ...on Commit {
        associatedPullRequests(after: $cursor, first: %d) {
          pageInfo { endCursor hasNextPage }
          nodes { ...PRFields }
        }
      }
    }
  }
}
"""
    % PAGE_SIZE
    + PR_FIELDS_FRAGMENT
)


def chunked(items: Sequence[str], size: int = CHUNK_SIZE) -> list[list[str]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def build_associated_prs_query(shas: Iterable[str]) -> str:
    """One aliased ``object(oid:)`` lookup per commit in a single query."""
    aliases: list[str] = []
    for sha in shas:
        if not _SAFE_OID.match(sha):
            raise ValueError(f"invalid commit hash: {sha!r}")
        aliases.append(
            f'    commit{sha}: object(oid: "{sha}") {{\n'
            f"      ...on Commit {{\n"
            f"        oid\n"
            f"        associatedPullRequests(first: {PAGE_SIZE}) {{\n"
            f"          pageInfo {{ endCursor hasNextPage }}\n"
            f"          nodes {{ ...PRFields }}\n"
            f"        }}\n"
            f"      }}\n"
            f"    }}"
        )
    body = "\n".join(aliases)
    return (
        "query getAssociatedPRs($owner: String!, $repo: String!) {\n"
        "  repository(owner: $owner, name: $repo) {\n"
        f"{body}\n"
        "  }\n"
        "}\n" + PR_FIELDS_FRAGMENT
    )


def _connection(commit: Any) -> dict[str, Any]:
    if not isinstance(commit, dict):
        return {}
    conn = commit.get("associatedPullRequests")
    return conn if isinstance(conn, dict) else {}


def _fetch_remaining_pages(
    client: GitHubRestClient, repo: RepositoryRef, sha: str, cursor: str | None
) -> list[dict[str, Any]]:
    nodes: list[dict[str, Any]] = []
    while cursor:
        data = client.graphql(
            COMMIT_PAGE_QUERY,
            {"owner": repo.owner, "repo": repo.repo, "sha": sha, "cursor": cursor},
        )
        conn = _connection((data.get("repository") or {}).get("commit"))
        nodes.extend(n for n in conn.get("nodes") or [] if isinstance(n, dict))
        page = conn.get("pageInfo") or {}
        cursor = page.get("endCursor") if page.get("hasNextPage") else None
    return nodes


def resolve_associated_prs(
    client: GitHubRestClient,
    repo: RepositoryRef,
    commit_hashes: Sequence[str],
    *,
    chunk_size: int = CHUNK_SIZE,
    logger: StructuredLogger | None = None,
) -> list[PullRequest]:
    """Return the PRs associated with ``commit_hashes``, unique by number.

    Lookup failures propagate: a partial list would silently under-report.
    """
    logger = logger or get_logger()
    nodes: list[dict[str, Any]] = []
    for chunk in chunked(list(dict.fromkeys(commit_hashes)), chunk_size):
        data = client.graphql(
            build_associated_prs_query(chunk), {"owner": repo.owner, "repo": repo.repo}
        )
        repository = data.get("repository") or {}
        for alias, commit in repository.items():
            conn = _connection(commit)
            nodes.extend(n for n in conn.get("nodes") or [] if isinstance(n, dict))
            page = conn.get("pageInfo") or {}
            if page.get("hasNextPage"):
                sha = commit.get("oid") or alias.removeprefix("commit")
                nodes.extend(_fetch_remaining_pages(client, repo, sha, page.get("endCursor")))

    seen: set[int] = set()
    prs: list[PullRequest] = []
    for node in nodes:
        if node.get("number") is None:
            continue
        pr = pull_request_from_node(node)
        if pr.number in seen:
            continue
        seen.add(pr.number)
        prs.append(pr)
    logger.debug("found associated pull requests", numbers=[pr.number for pr in prs])
    return prs


def verify_association(
    client: GitHubRestClient, repo: RepositoryRef, pr: PullRequest, release_hashes: set[str]
) -> bool:
    """True when one of the PR's commits (or its merge commit) is in the release."""
    for entry in client.list_pull_commits(repo, pr.number):
        if entry.get("sha") in release_hashes:
            return True
    merge_sha = client.get_pull(repo, pr.number).get("merge_commit_sha")
    return bool(merge_sha) and merge_sha in release_hashes


async def verify_associations(
    client: GitHubRestClient,
    repo: RepositoryRef,
    prs: Sequence[PullRequest],
    release_hashes: Iterable[str],
    processor: ConcurrentProcessor,
) -> list[PullRequest]:
    """Drop candidates that fail verification; keep input order."""
    hashes = set(release_hashes)
    verdicts = await processor.map(
        list(prs),
        lambda pr: verify_association(client, repo, pr, hashes),
        operation="verify_associations",
    )
    kept = [pr for pr, ok in zip(prs, verdicts) if ok]
    dropped = [pr.number for pr, ok in zip(prs, verdicts) if not ok]
    if dropped:
        processor.logger.debug("dropped unrelated pull requests", numbers=dropped)
    return kept


__all__ = [
    "CHUNK_SIZE",
    "build_associated_prs_query",
    "chunked",
    "resolve_associated_prs",
    "verify_association",
    "verify_associations",
]
