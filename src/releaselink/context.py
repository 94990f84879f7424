"""Inbound context handed over by the release pipeline.

The pipeline supplies plain JSON-like mappings (camelCase keys); this
module converts them once into typed, immutable objects so the rest of
the code never inspects raw dictionaries.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .models import Commit, Target

# Name under which the release created by this package is reported
RELEASE_NAME = "GitHub release"


@dataclass(frozen=True)
class Branch:
    name: str = ""
    type: str | None = None
    main: bool | None = None
    channel: str | None = None
    prerelease: bool | str | None = None

    @classmethod
    def from_mapping(cls, raw: Any) -> Branch:
        if isinstance(raw, str):
            return cls(name=raw)
        data = raw if isinstance(raw, Mapping) else {}
        return cls(
            name=str(data.get("name") or ""),
            type=data.get("type"),
            main=data.get("main"),
            channel=data.get("channel") or None,
            prerelease=data.get("prerelease"),
        )

    def as_template(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "main": self.main,
            "channel": self.channel,
            "prerelease": self.prerelease,
        }


@dataclass(frozen=True)
class NextRelease:
    version: str = ""
    git_tag: str = ""
    name: str = ""
    notes: str = ""
    channel: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> NextRelease:
        data = raw or {}
        return cls(
            version=str(data.get("version") or ""),
            git_tag=str(data.get("gitTag") or ""),
            name=str(data.get("name") or ""),
            notes=str(data.get("notes") or ""),
            channel=data.get("channel") or None,
        )

    def as_template(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "gitTag": self.git_tag,
            "name": self.name,
            "notes": self.notes,
            "channel": self.channel,
        }


@dataclass(frozen=True)
class CurrentRelease:
    git_tag: str
    channel: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> CurrentRelease | None:
        if not raw:
            return None
        return cls(git_tag=str(raw.get("gitTag") or ""), channel=raw.get("channel") or None)


@dataclass(frozen=True)
class ReleaseInfo:
    """A release published through any channel (this one or another plugin)."""

    name: str
    url: str | None = None
    id: int | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ReleaseInfo:
        release_id = raw.get("id")
        return cls(
            name=str(raw.get("name") or ""),
            url=raw.get("url") or None,
            id=int(release_id) if release_id is not None else None,
        )

    def as_template(self) -> dict[str, Any]:
        return {"name": self.name, "url": self.url, "id": self.id}


@dataclass(frozen=True)
class ReleaseContext:
    repository_url: str
    branch: Branch = field(default_factory=Branch)
    commits: tuple[Commit, ...] = ()
    next_release: NextRelease = field(default_factory=NextRelease)
    last_release: Mapping[str, Any] = field(default_factory=dict)
    current_release: CurrentRelease | None = None
    releases: tuple[ReleaseInfo, ...] = ()
    cwd: str = field(default_factory=os.getcwd)
    env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    @property
    def commit_hashes(self) -> list[str]:
        return [commit.hash for commit in self.commits]

    def template_context(self, target: Target | None = None) -> dict[str, Any]:
        """Variables exposed to comment, label and asset-name templates.

        Values are plain mappings keyed the way the pipeline names them
        (``nextRelease.gitTag``, ``branch.name``, ``issue.pull_request``).
        """
        ctx: dict[str, Any] = {
            "branch": self.branch.as_template(),
            "lastRelease": dict(self.last_release),
            "commits": [{"hash": c.hash, "message": c.message} for c in self.commits],
            "nextRelease": self.next_release.as_template(),
            "releases": [r.as_template() for r in self.releases],
        }
        if target is not None:
            ctx["issue"] = target.as_template()
        return ctx

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, env: Mapping[str, str] | None = None
    ) -> ReleaseContext:
        options = raw.get("options") or {}
        repository_url = options.get("repositoryUrl") or raw.get("repositoryUrl") or ""
        branch_raw = raw.get("branch", options.get("branch"))
        commits = tuple(
            Commit(hash=str(c.get("hash") or ""), message=str(c.get("message") or ""))
            for c in raw.get("commits") or []
            if isinstance(c, Mapping)
        )
        releases = tuple(
            ReleaseInfo.from_mapping(r) for r in raw.get("releases") or [] if isinstance(r, Mapping)
        )
        return cls(
            repository_url=str(repository_url),
            branch=Branch.from_mapping(branch_raw),
            commits=commits,
            next_release=NextRelease.from_mapping(raw.get("nextRelease")),
            last_release=dict(raw.get("lastRelease") or {}),
            current_release=CurrentRelease.from_mapping(raw.get("currentRelease")),
            releases=releases,
            cwd=str(raw.get("cwd") or os.getcwd()),
            env=dict(env if env is not None else (raw.get("env") or os.environ)),
        )


__all__ = [
    "Branch",
    "CurrentRelease",
    "NextRelease",
    "RELEASE_NAME",
    "ReleaseContext",
    "ReleaseInfo",
]
