"""Release creation, asset upload and channel promotion.

``publish_release`` walks a small state machine::

    NONE -> DRAFT_CREATED -> (ASSETS_ATTACHED)* -> PUBLISHED | DRAFT

The release is always created as a draft first so the upload endpoint
exists before any asset is attached and webhooks fire only once, on
publish.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from .assets import content_type_for, glob_assets
from .bulk import RECOVERABLE_ERRORS
from .context import RELEASE_NAME, Branch, ReleaseContext
from .github_rest import GitHubAPIError
from .models import AssetSpec, ReleaseDescriptor, ReleaseResult, ResolvedAsset
from .repository import RepositoryRef
from .session import ReleaseSession
from .templates import TemplateRenderError, render


class ReleaseState(str, Enum):
    NONE = "none"
    DRAFT_CREATED = "draft_created"
    ASSETS_ATTACHED = "assets_attached"
    PUBLISHED = "published"
    DRAFT = "draft"


def is_prerelease(branch: Branch) -> bool:
    if isinstance(branch.prerelease, bool):
        return branch.prerelease
    if isinstance(branch.prerelease, str) and branch.prerelease:
        return True
    return branch.type == "prerelease" or (branch.type == "release" and branch.main is False)


def is_latest_release(branch: Branch) -> str:
    return "true" if branch.type == "release" and branch.main else "false"


def build_release_descriptor(context: ReleaseContext) -> ReleaseDescriptor:
    nxt = context.next_release
    return ReleaseDescriptor(
        tag_name=nxt.git_tag,
        target_branch=context.branch.name,
        name=nxt.name,
        notes_body=nxt.notes,
        is_prerelease=is_prerelease(context.branch),
        make_latest=is_latest_release(context.branch),
    )


def upload_asset(
    session: ReleaseSession,
    context: ReleaseContext,
    upload_url: str,
    asset: ResolvedAsset,
) -> str | None:
    """Upload one asset; return its download URL or ``None`` when skipped."""
    logger = session.logger
    file_path = Path(context.cwd, asset.path)
    try:
        stat = file_path.stat()
    except OSError:
        logger.error(
            f"The asset {asset.path} cannot be read, and will be ignored.", asset=asset.path
        )
        return None
    if not file_path.is_file():
        logger.error(
            f"The asset {asset.path} is not a file, and will be ignored.", asset=asset.path
        )
        return None

    template_ctx = context.template_context()
    try:
        name = render(asset.name or os.path.basename(asset.path), template_ctx)
        label = render(asset.label, template_ctx) if asset.label else None
    except TemplateRenderError as exc:
        logger.log_error(f"Failed to name asset {asset.path}", error=str(exc), asset=asset.path)
        return None
    logger.debug("uploading asset", asset=asset.path, asset_name=name, size=stat.st_size)
    try:
        data = session.client.upload_release_asset(
            upload_url,
            name=name,
            data=file_path.read_bytes(),
            content_type=content_type_for(name),
            label=label,
        )
    except RECOVERABLE_ERRORS as exc:
        # Upload failures do not fail the release
        logger.log_error(f"Failed to upload asset {asset.path}", error=str(exc), asset=asset.path)
        return None
    download_url = data.get("browser_download_url")
    logger.info(f"Published file {download_url}", asset=asset.path, url=download_url)
    return str(download_url) if download_url else name


async def publish_release(session: ReleaseSession, context: ReleaseContext) -> ReleaseResult:
    config = session.config
    repo = session.require_repo()
    descriptor = build_release_descriptor(context)
    logger = session.logger

    draft = session.client.create_release(repo, descriptor.to_payload(draft=True))
    release_id = draft.get("id")
    result = ReleaseResult(
        url=draft.get("html_url"),
        name=RELEASE_NAME,
        id=int(release_id) if release_id is not None else None,
        state=ReleaseState.DRAFT_CREATED,
    )
    logger.debug("created draft release", url=result.url, release_id=result.id)

    specs = [AssetSpec.from_config(raw) for raw in config.assets or []]
    if specs:
        resolved = glob_assets(context.cwd, specs)
        logger.debug("resolved assets", assets=[asset.path for asset in resolved])
        upload_url = str(draft.get("upload_url") or "")
        outcomes = await session.processor.map(
            resolved,
            lambda asset: upload_asset(session, context, upload_url, asset),
            operation="upload_assets",
        )
        for asset, outcome in zip(resolved, outcomes):
            if outcome is None:
                result.skipped_assets.append(asset.path)
            else:
                result.uploaded.append(outcome)
        if result.uploaded:
            result.state = ReleaseState.ASSETS_ATTACHED

    if config.draft_release:
        result.state = ReleaseState.DRAFT
        logger.info(f"Created GitHub draft release: {result.url}", url=result.url)
        return result

    if result.id is None:
        raise GitHubAPIError("Release creation response did not include an id")
    published = session.client.update_release(repo, result.id, {"draft": False})
    result.url = published.get("html_url") or result.url
    result.state = ReleaseState.PUBLISHED
    logger.info(f"Published GitHub release: {result.url}", url=result.url)
    return result


def add_channel(session: ReleaseSession, context: ReleaseContext) -> ReleaseResult:
    """Promote the current release to the next channel, creating it when missing."""
    repo: RepositoryRef = session.require_repo()
    logger = session.logger
    current = context.current_release
    nxt = context.next_release
    prerelease = is_prerelease(context.branch)
    current_tag = current.git_tag if current else nxt.git_tag

    try:
        existing = session.client.get_release_by_tag(repo, current_tag)
    except GitHubAPIError as exc:
        if exc.status != 404:
            raise
        logger.info(f"There is no release for tag {current_tag}, creating a new one")
        created = session.client.create_release(
            repo,
            {
                "tag_name": nxt.git_tag,
                "name": nxt.name,
                "body": nxt.notes,
                "prerelease": prerelease,
            },
        )
        url = created.get("html_url")
        logger.info(f"Published GitHub release: {url}", url=url)
        return ReleaseResult(url=url, name=RELEASE_NAME, state=ReleaseState.PUBLISHED)

    release_id = int(existing["id"])
    payload = {
        "name": nxt.name,
        "prerelease": prerelease,
        "tag_name": nxt.git_tag if current and current.channel else None,
    }
    updated = session.client.update_release(repo, release_id, payload)
    url = updated.get("html_url")
    logger.info(f"Updated GitHub release: {url}", url=url, release_id=release_id)
    return ReleaseResult(url=url, name=RELEASE_NAME, state=ReleaseState.PUBLISHED)


__all__ = [
    "ReleaseState",
    "add_channel",
    "build_release_descriptor",
    "is_latest_release",
    "is_prerelease",
    "publish_release",
    "upload_asset",
]
