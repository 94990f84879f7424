"""Comment, label and link rendering.

User-supplied templates (``successComment``, ``successCommentCondition``,
``releasedLabels``, asset ``name``/``label``) are Jinja2 templates evaluated
in a sandbox against the release context using the pipeline's camelCase keys,
e.g. ``released on {{ nextRelease.gitTag }}``. Undefined names fail loudly.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

from jinja2 import StrictUndefined, Template, TemplateError, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from .context import RELEASE_NAME, ReleaseInfo
from .errors import ConfigError, ReleaseLinkError
from .models import Target

DEFAULT_RELEASED_LABEL = (
    "released{% if nextRelease.channel %} on @{{ nextRelease.channel }}{% endif %}"
)
COMMENT_SIGNATURE = "Your **releaselink** bot :package::rocket:"

# Rendered condition values that disable commenting on a target
_FALSY_RESULTS = frozenset({"", "false", "0", "no", "none"})

_ENV = SandboxedEnvironment(
    autoescape=False, keep_trailing_newline=True, undefined=StrictUndefined
)


class TemplateRenderError(ReleaseLinkError):
    """A template referenced something the context does not provide."""


@lru_cache(maxsize=256)
def _compile(source: str) -> Template:
    return _ENV.from_string(source)


def check_template(source: str, option: str) -> ConfigError | None:
    """Compile ``source`` up front; return a config error on bad syntax."""
    try:
        _compile(source)
    except TemplateSyntaxError as exc:
        return ConfigError(
            f"Invalid `{option}` template: {exc.message} (line {exc.lineno})",
            code=f"EINVALID{option.upper()}",
            details=f"The `{option}` option must be a valid Jinja2 template.",
        )
    return None


def render(source: str, context: Mapping[str, Any]) -> str:
    try:
        return _compile(source).render(**context)
    except TemplateError as exc:
        raise TemplateRenderError(
            f"Cannot render template {source!r}: {exc}", code="ETEMPLATE"
        ) from exc


def render_condition(condition: str | bool | None, context: Mapping[str, Any]) -> bool:
    """Evaluate a boolean template; ``None`` and ``True`` always pass."""
    if condition is None or condition is True:
        return True
    if condition is False:
        return False
    return render(condition, context).strip().lower() not in _FALSY_RESULTS


def _link_line(release: ReleaseInfo) -> str:
    return f"[{release.name}]({release.url})" if release.url else f"`{release.name}`"


def get_success_comment(
    target: Target, releases: Iterable[ReleaseInfo], version: str
) -> str:
    """Default comment posted on resolved issues and included pull requests."""
    named = [r for r in releases if r.name]
    if target.is_pull_request:
        headline = f":tada: This PR is included in version {version} :tada:"
    else:
        headline = f":tada: This issue has been resolved in version {version} :tada:"
    parts = [headline]
    if len(named) == 1:
        parts.append(f"The release is available on {_link_line(named[0])}")
    elif named:
        lines = "\n".join(f"- {_link_line(r)}" for r in named)
        parts.append(f"The release is available on:\n{lines}")
    parts.append(COMMENT_SIGNATURE)
    return "\n\n".join(parts)


def get_release_links(releases: Iterable[ReleaseInfo]) -> str:
    """Markdown list of every other channel the release is published on."""
    lines: list[str] = []
    for release in releases:
        if not release.name or release.name == RELEASE_NAME:
            continue
        if not release.url:
            lines.append(f"- `{release.name}`")
        elif release.url.startswith(("http://", "https://")):
            lines.append(f"- [{release.name}]({release.url})")
        else:
            lines.append(f"- {release.name}: `{release.url}`")
    if not lines:
        return ""
    return "This release is also available on:\n" + "\n".join(lines)


def render_labels(templates: Iterable[str], context: Mapping[str, Any]) -> list[str]:
    labels: list[str] = []
    for source in templates:
        label = render(source, context).strip()
        if label and label not in labels:
            labels.append(label)
    return labels


__all__ = [
    "COMMENT_SIGNATURE",
    "DEFAULT_RELEASED_LABEL",
    "TemplateRenderError",
    "check_template",
    "get_release_links",
    "get_success_comment",
    "render",
    "render_condition",
    "render_labels",
]
