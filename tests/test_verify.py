from __future__ import annotations

import pytest

from conftest import FakeResponse
from releaselink.config import resolve_config
from releaselink.errors import AggregateReleaseError
from releaselink.github_rest import GitHubAPIError
from releaselink.verify import validate_options, verify_conditions

REPO_PATH = "/repos/owner/repo"


def _codes(err: AggregateReleaseError) -> set[str]:
    return {getattr(e, "code", "") for e in err.errors}


def test_missing_token_and_bad_url_fail_before_any_request(make_session, make_context, fake_http) -> None:
    session = make_session(context=make_context(options={"repositoryUrl": "not a url"}), env={})

    with pytest.raises(AggregateReleaseError) as excinfo:
        verify_conditions(session)

    assert _codes(excinfo.value) == {"ENOGHTOKEN", "EINVALIDGITHUBURL"}
    assert fake_http.calls == []
    assert session.verified is False


@pytest.mark.parametrize(
    ("options", "code"),
    [
        ({"assets": [""]}, "EINVALIDASSETS"),
        ({"assets": [{"name": "no-path"}]}, "EINVALIDASSETS"),
        ({"successComment": ""}, "EINVALIDSUCCESSCOMMENT"),
        ({"successCommentCondition": ""}, "EINVALIDSUCCESSCOMMENTCONDITION"),
        ({"successComment": "{% if issue.number %}"}, "EINVALIDSUCCESSCOMMENT"),
        ({"successCommentCondition": "{{ issue.pull_request "}, "EINVALIDSUCCESSCOMMENTCONDITION"),
        ({"releasedLabels": ["{% for %}"]}, "EINVALIDRELEASEDLABELS"),
        ({"assets": [{"path": "x", "name": "{{ nextRelease.gitTag "}]}, "EINVALIDASSETS"),
        ({"failTitle": 3}, "EINVALIDFAILTITLE"),
        ({"labels": [""]}, "EINVALIDLABELS"),
        ({"assignees": [1]}, "EINVALIDASSIGNEES"),
        ({"releasedLabels": [""]}, "EINVALIDRELEASEDLABELS"),
        ({"addReleases": "middle"}, "EINVALIDADDRELEASES"),
        ({"proxy": {"host": "proxy"}}, "EINVALIDPROXY"),
    ],
)
def test_invalid_options(options, code) -> None:
    errors = validate_options(resolve_config(options, env={}))
    assert [e.code for e in errors] == [code]


def test_valid_options_pass() -> None:
    cfg = resolve_config(
        {
            "assets": ["dist/*", ["a", "b"], {"path": "x", "name": "y"}],
            "successComment": False,
            "successCommentCondition": "{{ not issue.pull_request }}",
            "failTitle": "broken",
            "labels": False,
            "assignees": "octocat",
            "releasedLabels": ["released"],
            "addReleases": "top",
            "proxy": {"host": "proxy", "port": 8080},
        },
        env={},
    )
    assert validate_options(cfg) == []


def test_option_errors_are_raised_without_network(make_session, fake_http) -> None:
    session = make_session({"addReleases": "middle"})
    with pytest.raises(AggregateReleaseError) as excinfo:
        verify_conditions(session)
    assert _codes(excinfo.value) == {"EINVALIDADDRELEASES"}
    assert fake_http.calls == []


def test_template_syntax_errors_are_raised_without_network(make_session, fake_http) -> None:
    session = make_session(
        {"successComment": "{{ nextRelease.version ", "releasedLabels": ["released", "{% endif %}"]}
    )
    with pytest.raises(AggregateReleaseError) as excinfo:
        verify_conditions(session)
    assert _codes(excinfo.value) == {"EINVALIDSUCCESSCOMMENT", "EINVALIDRELEASEDLABELS"}
    assert fake_http.calls == []


@pytest.mark.parametrize(
    ("response", "code"),
    [
        (FakeResponse(401, {"message": "Bad credentials"}), "EINVALIDGHTOKEN"),
        (FakeResponse(404, {"message": "Not Found"}), "EMISSINGREPO"),
        (FakeResponse(200, {"permissions": {"push": False}}), "EGHNOPERMISSION"),
    ],
)
def test_repository_access_problems(response, code, make_session, fake_http) -> None:
    fake_http.add("GET", REPO_PATH, response)
    session = make_session()

    with pytest.raises(AggregateReleaseError) as excinfo:
        verify_conditions(session)

    assert _codes(excinfo.value) == {code}


def test_unexpected_error_propagates(make_session, fake_http) -> None:
    fake_http.add("GET", REPO_PATH, FakeResponse(500, {"message": "boom"}))
    with pytest.raises(GitHubAPIError):
        verify_conditions(make_session())


def test_successful_verification_marks_session(make_session, fake_http) -> None:
    fake_http.add("GET", REPO_PATH, FakeResponse(200, {"permissions": {"push": True}}))
    session = make_session()

    verify_conditions(session)

    assert session.verified is True
    assert fake_http.calls[0].headers["Authorization"] == "Bearer tkn"
