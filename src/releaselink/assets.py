"""Resolve configured asset definitions to concrete files under ``cwd``.

Matching rules:

- dotfiles match, directories expand to every file beneath them;
- a negated glob (``!pattern``) excludes matches of its group, but a lone
  negated glob is ignored rather than matching everything else;
- an object definition matching several files yields one entry per file,
  named after the file;
- a definition matching nothing is kept verbatim so the publisher reports
  the missing file;
- duplicates by path are dropped, object definitions win over strings.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from .logging import get_logger
from .models import AssetSpec, ResolvedAsset

DEFAULT_CONTENT_TYPE = "text/plain"


def content_type_for(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name, strict=False)
    return guessed or DEFAULT_CONTENT_TYPE


def _expand(root: Path, pattern: str) -> list[Path]:
    candidate = Path(pattern)
    if candidate.is_absolute():
        anchor = Path(candidate.anchor)
        relative = str(candidate.relative_to(anchor))
        return sorted(anchor.glob(relative)) if relative != "." else [anchor]
    if not pattern.strip() or pattern in (".", "./"):
        return [root]
    return sorted(root.glob(pattern))


def _files_under(path: Path) -> list[Path]:
    if path.is_dir():
        return sorted(p for p in path.rglob("*") if p.is_file())
    return [path]


def _display(root: Path, path: Path) -> str:
    try:
        return PurePosixPath(path.relative_to(root)).as_posix()
    except ValueError:
        return str(path)


def match_globs(cwd: str | os.PathLike[str], globs: Iterable[str]) -> list[str]:
    """Files matched by the positive globs minus those matched by negated ones."""
    root = Path(cwd)
    included: dict[str, None] = {}
    excluded: set[str] = set()
    for pattern in globs:
        negated = pattern.startswith("!")
        raw = pattern[1:] if negated else pattern
        for hit in _expand(root, raw):
            for file in _files_under(hit):
                key = _display(root, file)
                if negated:
                    excluded.add(key)
                else:
                    included.setdefault(key, None)
    return [path for path in included if path not in excluded]


def glob_assets(
    cwd: str | os.PathLike[str], specs: Iterable[AssetSpec]
) -> list[ResolvedAsset]:
    logger = get_logger()
    resolved: list[ResolvedAsset] = []
    for spec in specs:
        if not spec.path:
            continue
        if len(spec.path) == 1 and spec.path[0].startswith("!"):
            logger.debug("skipping lone negated glob", glob=spec.path[0])
            continue
        matches = match_globs(cwd, spec.path)
        if spec.is_object:
            if len(matches) > 1:
                resolved.extend(
                    ResolvedAsset(
                        path=match,
                        name=PurePosixPath(match).name,
                        label=spec.label,
                        is_object=True,
                    )
                    for match in matches
                )
            else:
                resolved.append(
                    ResolvedAsset(
                        path=matches[0] if matches else spec.path[0],
                        name=spec.name,
                        label=spec.label,
                        is_object=True,
                    )
                )
        elif matches:
            resolved.extend(ResolvedAsset(path=match) for match in matches)
        else:
            resolved.extend(ResolvedAsset(path=glob) for glob in spec.path)

    # Objects first so their name/label survive deduplication
    resolved.sort(key=lambda asset: not asset.is_object)
    unique: dict[str, ResolvedAsset] = {}
    for asset in resolved:
        unique.setdefault(asset.path, asset)
    return list(unique.values())


__all__ = ["DEFAULT_CONTENT_TYPE", "content_type_for", "glob_assets", "match_globs"]
