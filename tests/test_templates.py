from __future__ import annotations

import pytest

from releaselink.context import NextRelease, ReleaseInfo
from releaselink.models import Issue, PullRequest
from releaselink.templates import (
    COMMENT_SIGNATURE,
    DEFAULT_RELEASED_LABEL,
    TemplateRenderError,
    check_template,
    get_release_links,
    get_success_comment,
    render,
    render_condition,
    render_labels,
)

GH = ReleaseInfo("GitHub release", "https://github.com/owner/repo/releases/tag/v1.0.0", 1)
NPM = ReleaseInfo("npm package (@latest dist-tag)", "https://www.npmjs.com/package/pkg")


def test_success_comment_for_issue_with_single_release() -> None:
    body = get_success_comment(Issue(3), [GH], "1.0.0")
    assert body.startswith(":tada: This issue has been resolved in version 1.0.0 :tada:")
    assert f"The release is available on [GitHub release]({GH.url})" in body
    assert body.endswith(COMMENT_SIGNATURE)


def test_success_comment_for_pull_request_lists_releases() -> None:
    body = get_success_comment(PullRequest(4), [GH, NPM, ReleaseInfo("docker")], "1.0.0")
    assert ":tada: This PR is included in version 1.0.0 :tada:" in body
    assert "The release is available on:\n- [GitHub release]" in body
    assert "- `docker`" in body


def test_success_comment_without_releases() -> None:
    body = get_success_comment(Issue(1), [], "1.0.0")
    assert "available on" not in body


def test_release_links_skip_own_release() -> None:
    links = get_release_links(
        [
            GH,
            NPM,
            ReleaseInfo("Docker image", "docker.io/owner/repo:1.0.0"),
            ReleaseInfo("PyPI"),
        ]
    )
    assert links == (
        "This release is also available on:\n"
        "- [npm package (@latest dist-tag)](https://www.npmjs.com/package/pkg)\n"
        "- Docker image: `docker.io/owner/repo:1.0.0`\n"
        "- `PyPI`"
    )


def test_release_links_empty_when_only_own_release() -> None:
    assert get_release_links([GH]) == ""
    assert get_release_links([]) == ""


def test_release_links_skip_unnamed_channels() -> None:
    links = get_release_links([GH, ReleaseInfo(""), NPM])
    assert links == (
        "This release is also available on:\n"
        "- [npm package (@latest dist-tag)](https://www.npmjs.com/package/pkg)"
    )
    assert get_release_links([GH, ReleaseInfo("", "https://example.com")]) == ""


def test_default_released_label() -> None:
    ctx = {"nextRelease": NextRelease(version="1.0.0").as_template()}
    assert render_labels([DEFAULT_RELEASED_LABEL], ctx) == ["released"]
    ctx = {"nextRelease": NextRelease(version="2.0.0", channel="next").as_template()}
    assert render_labels([DEFAULT_RELEASED_LABEL], ctx) == ["released on @next"]


def test_render_labels_drops_blank_and_duplicates() -> None:
    ctx = {"nextRelease": NextRelease(version="1.0.0").as_template()}
    labels = render_labels(["released", "{{ '' }}", "released", "v{{ nextRelease.version }}"], ctx)
    assert labels == ["released", "v1.0.0"]


def test_render_uses_camel_case_context(make_context) -> None:
    ctx = make_context(branch={"name": "beta", "channel": "beta"}).template_context()
    out = render("{{ nextRelease.gitTag }} from {{ branch.name }} (@{{ branch.channel }})", ctx)
    assert out == "v1.0.0 from beta (@beta)"


def test_render_fails_on_undefined_names(make_context) -> None:
    ctx = make_context().template_context()
    with pytest.raises(TemplateRenderError) as excinfo:
        render("{{ nextRelease.git_tag }}", ctx)
    assert excinfo.value.code == "ETEMPLATE"


def test_render_is_sandboxed() -> None:
    with pytest.raises(TemplateRenderError):
        render("{{ ''.__class__ }}", {})


@pytest.mark.parametrize(
    ("condition", "expected"),
    [
        (None, True),
        (True, True),
        (False, False),
        ("{{ issue.pull_request }}", True),
        ("{{ not issue.pull_request }}", False),
        ("{% if issue.number > 10 %}yes{% endif %}", False),
        ("{{ 'wip' in issue.labels }}", True),
    ],
)
def test_render_condition(condition, expected) -> None:
    ctx = {"issue": PullRequest(4, labels=("wip",)).as_template()}
    assert render_condition(condition, ctx) is expected


def test_check_template_reports_syntax_errors() -> None:
    assert check_template("released on {{ nextRelease.version }}", "releasedLabels") is None
    error = check_template("{% if issue.number %}", "successComment")
    assert error is not None
    assert error.code == "EINVALIDSUCCESSCOMMENT"
    assert "successComment" in str(error)
