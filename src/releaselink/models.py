from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class Commit:
    """A unit of change in the release; ``hash`` is the join key for lookups."""

    hash: str
    message: str = ""


@dataclass(frozen=True)
class PullRequest:
    number: int
    body: str = ""
    title: str | None = None
    url: str | None = None
    state: str | None = None
    author: str | None = None
    author_type: str | None = None
    labels: tuple[str, ...] = ()

    kind = "pull_request"

    @property
    def is_pull_request(self) -> bool:
        return True

    def as_template(self) -> dict[str, Any]:
        """GitHub-shaped view used by comment and condition templates."""
        return {
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "state": self.state,
            "pull_request": True,
            "user": {"login": self.author, "type": self.author_type} if self.author else None,
            "labels": list(self.labels),
        }


@dataclass(frozen=True)
class Issue:
    number: int

    kind = "issue"

    @property
    def is_pull_request(self) -> bool:
        return False

    def as_template(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": None,
            "body": "",
            "url": None,
            "state": None,
            "pull_request": False,
            "user": None,
            "labels": [],
        }


Target = Union[PullRequest, Issue]


def pull_request_from_node(node: dict[str, Any]) -> PullRequest:
    """Build the tagged PR variant from a GraphQL ``PullRequest`` node."""
    author = node.get("author")
    labels = (node.get("labels") or {}).get("nodes") or []
    return PullRequest(
        number=int(node["number"]),
        body=node.get("body") or "",
        title=node.get("title"),
        url=node.get("url"),
        state=node.get("state"),
        author=author.get("login") if isinstance(author, dict) else None,
        author_type=author.get("__typename") if isinstance(author, dict) else None,
        labels=tuple(
            str(lbl["name"]) for lbl in labels if isinstance(lbl, dict) and lbl.get("name")
        ),
    )


@dataclass(frozen=True)
class ReleaseDescriptor:
    """Release payload built once per invocation and sent verbatim."""

    tag_name: str
    target_branch: str
    name: str
    notes_body: str
    is_prerelease: bool
    make_latest: str | None = None

    def to_payload(self, *, draft: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "tag_name": self.tag_name,
            "target_commitish": self.target_branch,
            "name": self.name,
            "body": self.notes_body,
            "prerelease": self.is_prerelease,
            "draft": draft,
        }
        if self.make_latest is not None:
            payload["make_latest"] = self.make_latest
        return payload


@dataclass(frozen=True)
class AssetSpec:
    """Asset definition: one glob (or a group of globs) with optional name/label."""

    path: tuple[str, ...]
    name: str | None = None
    label: str | None = None
    is_object: bool = False

    @classmethod
    def from_config(cls, raw: Any) -> AssetSpec:
        if isinstance(raw, str):
            return cls(path=(raw,))
        if isinstance(raw, (list, tuple)):
            return cls(path=tuple(str(p) for p in raw))
        if isinstance(raw, dict):
            path = raw.get("path")
            globs = (path,) if isinstance(path, str) else tuple(str(p) for p in path or ())
            return cls(path=globs, name=raw.get("name"), label=raw.get("label"), is_object=True)
        raise TypeError(f"Unsupported asset definition: {raw!r}")


@dataclass(frozen=True)
class ResolvedAsset:
    """One concrete file to upload; ``path`` may point to a missing file."""

    path: str
    name: str | None = None
    label: str | None = None
    is_object: bool = False


@dataclass
class ReleaseResult:
    url: str | None
    name: str
    id: int | None = None
    state: str | None = None
    uploaded: list[str] = field(default_factory=list)
    skipped_assets: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"url": self.url, "name": self.name}
        if self.id is not None:
            out["id"] = self.id
        return out


__all__ = [
    "AssetSpec",
    "Commit",
    "Issue",
    "PullRequest",
    "ReleaseDescriptor",
    "ReleaseResult",
    "ResolvedAsset",
    "Target",
    "pull_request_from_node",
]
