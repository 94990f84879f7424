from __future__ import annotations

import os
from pathlib import Path

from releaselink.env_auth import EnvAuthConfig, create_env_auth_manager


def test_gh_token_takes_precedence() -> None:
    manager = create_env_auth_manager(env={"GITHUB_TOKEN": "b", "GH_TOKEN": "a"})
    assert manager.get_github_token() == "a"


def test_blank_values_are_ignored() -> None:
    manager = create_env_auth_manager(env={"GH_TOKEN": "  ", "GITHUB_TOKEN": "b"})
    assert manager.get_github_token() == "b"


def test_resolve_endpoints() -> None:
    resolved = create_env_auth_manager(
        env={"GH_URL": "https://ghe.local", "GITHUB_PREFIX": "/api/v3"}
    ).resolve()
    assert resolved.github_token is None
    assert resolved.github_url == "https://ghe.local"
    assert resolved.github_api_path_prefix == "/api/v3"


def test_dotenv_is_layered_under_environment(tmp_path: Path) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("GH_TOKEN=dotenv\nGH_URL=https://dotenv.local\n", encoding="utf-8")
    config = EnvAuthConfig(load_dotenv=True, dotenv_path=str(dotenv))

    manager = create_env_auth_manager(config, env={"GH_TOKEN": "process"})

    assert manager.get_github_token() == "process"
    assert manager.get_github_url() == "https://dotenv.local"
    assert "GH_URL" not in os.environ or os.environ["GH_URL"] != "https://dotenv.local"


def test_missing_dotenv_is_tolerated(tmp_path: Path) -> None:
    config = EnvAuthConfig(load_dotenv=True, dotenv_path=str(tmp_path / "absent.env"))
    assert create_env_auth_manager(config, env={}).get_github_token() is None
