from __future__ import annotations

import argparse
import json

import pytest

from conftest import FakeResponse, context_mapping
from releaselink import ReleaseLinker, cli
from releaselink.retry import RetryConfig
from releaselink.throttle import ThrottleConfig


@pytest.fixture
def context_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("GH_TOKEN", "GITHUB_TOKEN", "RELEASELINK_OTEL_EXPORTER", "RELEASELINK_QUIET"):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "context.json"
    path.write_text(json.dumps(context_mapping(cwd=str(tmp_path))), encoding="utf-8")
    return path


def test_help_exits_cleanly(capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    for command in ("verify", "publish", "add-channel", "success"):
        assert command in out


def test_missing_token_is_reported(context_file, capsys) -> None:
    rc = cli.main(["verify", "--context", str(context_file)])
    assert rc == 1
    err = capsys.readouterr().err
    assert "[error] EAGGREGATE" in err
    assert "ENOGHTOKEN: No GitHub token specified." in err


def test_missing_context_file(tmp_path, capsys) -> None:
    rc = cli.main(["verify", "--context", str(tmp_path / "missing.json")])
    assert rc == 1
    assert "ENOCONTEXT" in capsys.readouterr().err


def test_invalid_option_is_reported(context_file, tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("GH_TOKEN", "tkn")
    config = tmp_path / "custom.yaml"
    config.write_text("addReleases: middle\n", encoding="utf-8")
    rc = cli.main(["verify", "--config", str(config), "--context", str(context_file)])
    assert rc == 1
    assert "EINVALIDADDRELEASES" in capsys.readouterr().err


def test_quiet_lowers_log_level(context_file) -> None:
    args = argparse.Namespace(context=str(context_file), config=None, quiet=True)
    linker = cli._build_linker(args)
    assert linker.cfg.logging_level == "WARNING"


def test_publish_prints_and_writes_json(
    monkeypatch, fake_http, recorder, make_context, tmp_path, capsys
) -> None:
    fake_http.add("GET", r"/repos/owner/repo", FakeResponse(200, {"permissions": {"push": True}}))
    fake_http.add(
        "POST", r"/repos/owner/repo/releases", FakeResponse(201, {"id": 3, "html_url": "draft"})
    )
    fake_http.add(
        "PATCH",
        r"/repos/owner/repo/releases/3",
        FakeResponse(200, {"id": 3, "html_url": "https://github.com/owner/repo/releases/tag/v1.0.0"}),
    )
    linker = ReleaseLinker.from_options(
        {},
        make_context(),
        http_session=fake_http,
        retry=RetryConfig(attempts=0, sleep=lambda _s: None),
        throttle=ThrottleConfig.disabled(),
        logger=recorder,
    )
    monkeypatch.setattr(cli, "_build_linker", lambda _args: linker)
    output = tmp_path / "result.json"

    rc = cli.main(["publish", "--output", str(output)])

    assert rc == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed == {
        "url": "https://github.com/owner/repo/releases/tag/v1.0.0",
        "name": "GitHub release",
        "id": 3,
    }
    assert json.loads(output.read_text(encoding="utf-8")) == printed
    perf = [extra for _lvl, msg, extra in recorder.records if msg.startswith("Performance: cli_publish")]
    assert perf and perf[0]["exit_code"] == 0
