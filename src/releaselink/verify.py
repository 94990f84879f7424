"""Pre-flight checks run before anything is published.

All problems are gathered and raised together so a misconfigured pipeline
fails once with the full list instead of one error per run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from .config import ReleaseLinkConfig
from .errors import AggregateReleaseError, ConfigError
from .github_rest import GitHubAPIError
from .session import ReleaseSession
from .templates import check_template

Validator = Callable[[Any], bool]


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_string_or_string_list(value: Any) -> bool:
    return _is_non_empty_string(value) or (
        isinstance(value, list) and bool(value) and all(_is_non_empty_string(v) for v in value)
    )


def _is_list_of(validator: Validator) -> Validator:
    return lambda value: isinstance(value, list) and all(validator(v) for v in value)


def _can_be_disabled(validator: Validator) -> Validator:
    return lambda value: value is False or validator(value)


def _is_proxy(value: Any) -> bool:
    if _is_non_empty_string(value):
        return True
    return (
        isinstance(value, Mapping)
        and _is_non_empty_string(value.get("host"))
        and isinstance(value.get("port"), int)
        and not isinstance(value.get("port"), bool)
    )


def _is_asset(value: Any) -> bool:
    return _is_string_or_string_list(value) or (
        isinstance(value, Mapping) and _is_string_or_string_list(value.get("path"))
    )


VALIDATORS: dict[str, Validator] = {
    "proxy": _can_be_disabled(_is_proxy),
    "assets": _is_list_of(_is_asset),
    "successComment": _can_be_disabled(_is_non_empty_string),
    "successCommentCondition": _can_be_disabled(_is_non_empty_string),
    "failTitle": _can_be_disabled(_is_non_empty_string),
    "failComment": _can_be_disabled(_is_non_empty_string),
    "labels": _can_be_disabled(_is_list_of(_is_non_empty_string)),
    "assignees": _is_list_of(_is_non_empty_string),
    "releasedLabels": _can_be_disabled(_is_list_of(_is_non_empty_string)),
    "addReleases": lambda value: value is False or value in ("top", "bottom"),
}


def _resolved_values(config: ReleaseLinkConfig) -> dict[str, Any]:
    return {
        "proxy": config.raw_options.get("proxy"),
        "assets": config.assets,
        "successComment": config.success_comment,
        "successCommentCondition": config.success_comment_condition,
        "failTitle": config.fail_title,
        "failComment": config.fail_comment,
        "labels": config.labels,
        "assignees": config.assignees,
        "releasedLabels": config.released_labels,
        "addReleases": config.add_releases,
    }


def _template_sources(config: ReleaseLinkConfig) -> list[tuple[str, str]]:
    sources: list[tuple[str, str]] = []
    for option, value in (
        ("successComment", config.success_comment),
        ("successCommentCondition", config.success_comment_condition),
    ):
        if isinstance(value, str) and value.strip():
            sources.append((option, value))
    if isinstance(config.released_labels, list):
        sources.extend(("releasedLabels", v) for v in config.released_labels if isinstance(v, str))
    for asset in config.assets or []:
        if isinstance(asset, Mapping):
            for key in ("name", "label"):
                if isinstance(asset.get(key), str):
                    sources.append(("assets", asset[key]))
    return sources


def validate_options(config: ReleaseLinkConfig) -> list[ConfigError]:
    errors: list[ConfigError] = []
    for option, value in _resolved_values(config).items():
        if value is None or VALIDATORS[option](value):
            continue
        errors.append(
            ConfigError(
                f"Invalid `{option}` option: {value!r}",
                code=f"EINVALID{option.upper()}",
                details=f"The `{option}` option, if defined, has an unsupported value.",
            )
        )
    for option, source in _template_sources(config):
        error = check_template(source, option)
        if error is not None:
            errors.append(error)
    return errors


def verify_conditions(session: ReleaseSession) -> None:
    """Validate options, token and repository access; raise every problem at once.

    Configuration problems are reported without touching the network.
    """
    config = session.config
    errors: list[BaseException] = list(validate_options(config))
    logger = session.logger
    if config.github_url:
        logger.info(f"Verify GitHub authentication ({session.client.base_url})")
    else:
        logger.info("Verify GitHub authentication")

    repo = session.repo
    if repo is None:
        errors.append(
            ConfigError(
                "The git repository URL is not a valid GitHub URL.",
                code="EINVALIDGITHUBURL",
            )
        )
    if not config.github_token:
        errors.append(ConfigError("No GitHub token specified.", code="ENOGHTOKEN"))
    if errors:
        raise AggregateReleaseError(errors)
    repo = session.require_repo()

    try:
        data = session.client.get_repository(repo)
    except GitHubAPIError as exc:
        if exc.status == 401:
            errors.append(
                ConfigError(f"Invalid GitHub token for {repo.slug}.", code="EINVALIDGHTOKEN")
            )
        elif exc.status == 404:
            errors.append(
                ConfigError(f"The repository {repo.slug} doesn't exist.", code="EMISSINGREPO")
            )
        else:
            raise
    else:
        permissions = data.get("permissions") or {}
        if not permissions.get("push"):
            errors.append(
                ConfigError(
                    f"The GitHub token doesn't allow to push on the repository {repo.slug}.",
                    code="EGHNOPERMISSION",
                )
            )

    if errors:
        raise AggregateReleaseError(errors)
    session.verified = True


__all__ = ["VALIDATORS", "validate_options", "verify_conditions"]
