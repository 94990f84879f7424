from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .concurrency import DEFAULT_MAX_WORKERS
from .env_auth import EnvAuthConfig, create_env_auth_manager
from .errors import ConfigError
from .proxy import resolve_proxy
from .templates import DEFAULT_RELEASED_LABEL

DEFAULT_FAIL_TITLE = "The automated release is failing 🚨"
DEFAULT_FAIL_LABELS = ["semantic-release"]

# Options recognised at the top level of the config file / plugin mapping
OPTION_KEYS = (
    "githubToken",
    "githubUrl",
    "githubApiPathPrefix",
    "proxy",
    "assets",
    "draftRelease",
    "successComment",
    "successCommentCondition",
    "failComment",
    "failTitle",
    "labels",
    "assignees",
    "releasedLabels",
    "addReleases",
)

__all__ = [
    "ConfigError",
    "DEFAULT_FAIL_TITLE",
    "ReleaseLinkConfig",
    "cast_array",
    "load_config",
    "resolve_config",
]


def cast_array(value: Any) -> Any:
    """Wrap scalars in a list; ``None`` and ``False`` pass through untouched."""
    if value is None or value is False:
        return value
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass
class ReleaseLinkConfig:
    github_token: str | None = None
    github_url: str | None = None
    github_api_path_prefix: str | None = None
    proxy: Any = None
    assets: list[Any] | None = None
    draft_release: bool = False
    # ``False`` disables the feature, ``None`` selects the built-in default
    success_comment: str | bool | None = None
    # Per-target template; ``False`` disables commenting and labelling
    success_comment_condition: str | bool | None = None
    fail_comment: str | bool | None = None
    fail_title: str | bool = DEFAULT_FAIL_TITLE
    labels: list[str] | bool = field(default_factory=lambda: list(DEFAULT_FAIL_LABELS))
    assignees: list[str] | None = None
    released_labels: list[str] | bool = field(
        default_factory=lambda: [DEFAULT_RELEASED_LABEL]
    )
    add_releases: str | bool = False
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    # Concurrency configuration
    max_workers: int = DEFAULT_MAX_WORKERS
    # Options exactly as supplied, for validation error reports
    raw_options: dict[str, Any] = field(default_factory=dict)

    @property
    def comments_enabled(self) -> bool:
        return self.success_comment is not False and self.success_comment_condition is not False

    @property
    def labels_enabled(self) -> bool:
        return self.released_labels is not False and bool(self.released_labels)

    @property
    def close_tracking_enabled(self) -> bool:
        return self.fail_comment is not False and self.fail_title is not False


def resolve_config(
    options: Mapping[str, Any] | None,
    env: Mapping[str, str] | None = None,
    *,
    env_auth: EnvAuthConfig | None = None,
) -> ReleaseLinkConfig:
    """Normalise plugin options and fill credentials/endpoints from ``env``."""
    opts = dict(options or {})
    manager = create_env_auth_manager(env_auth, env)
    resolved_env = manager.resolve()
    github_url = opts.get("githubUrl") or resolved_env.github_url
    released_labels = opts.get("releasedLabels")
    labels = opts.get("labels")
    logging_section = cast(dict[str, Any], opts.get("logging") or {})
    concurrency_section = cast(dict[str, Any], opts.get("concurrency") or {})
    fail_title = opts.get("failTitle")
    add_releases = opts.get("addReleases")
    return ReleaseLinkConfig(
        github_token=opts.get("githubToken") or resolved_env.github_token,
        github_url=github_url,
        github_api_path_prefix=opts.get("githubApiPathPrefix")
        or resolved_env.github_api_path_prefix,
        proxy=opts.get("proxy") or resolve_proxy(github_url, manager.env),
        assets=cast_array(opts.get("assets")),
        draft_release=bool(opts.get("draftRelease", False)),
        success_comment=opts.get("successComment"),
        success_comment_condition=opts.get("successCommentCondition"),
        fail_comment=opts.get("failComment"),
        fail_title=DEFAULT_FAIL_TITLE if fail_title is None else fail_title,
        labels=list(DEFAULT_FAIL_LABELS) if labels is None else cast_array(labels),
        assignees=cast_array(opts.get("assignees")),
        released_labels=[DEFAULT_RELEASED_LABEL]
        if released_labels is None
        else cast_array(released_labels),
        add_releases=False if add_releases is None else add_releases,
        logging_json_enabled=bool(logging_section.get("json_enabled", False)),
        logging_level=str(logging_section.get("level", "INFO")),
        max_workers=int(concurrency_section.get("max_workers", DEFAULT_MAX_WORKERS)),
        raw_options={k: opts[k] for k in OPTION_KEYS if k in opts},
    )


def load_config(
    path: str | Path, env: Mapping[str, str] | None = None
) -> ReleaseLinkConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Configuration file not found: {p}", code="ENOCONFIG")
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Configuration file is not valid YAML: {p}: {exc}", code="ENOCONFIG"
        ) from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {p}", code="ENOCONFIG")
    environment = cast(dict[str, Any], raw.get("environment") or {})
    env_auth = EnvAuthConfig(
        load_dotenv=bool(environment.get("load_dotenv", False)),
        dotenv_path=environment.get("dotenv_path"),
    )
    return resolve_config(raw, env, env_auth=env_auth)
