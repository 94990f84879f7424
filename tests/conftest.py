"""Pytest configuration for releaselink tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and provides the
fakes shared by the suite: a routing stand-in for `requests.Session` and a
logger that records instead of printing.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from releaselink.config import resolve_config  # noqa: E402
from releaselink.context import ReleaseContext  # noqa: E402
from releaselink.logging import StructuredLogger  # noqa: E402
from releaselink.retry import RetryConfig  # noqa: E402
from releaselink.session import ReleaseSession  # noqa: E402
from releaselink.throttle import ThrottleConfig  # noqa: E402

_TEST_START_TIMES: dict[str, float] = {}
_TEST_DURATIONS: list[tuple[str, float]] = []


# --- HTTP fakes -------------------------------------------------------------


@dataclass
class FakeResponse:
    status_code: int
    payload: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return self.payload

    @property
    def text(self) -> str:
        if self.payload is None:
            return ""
        if isinstance(self.payload, (dict, list)):
            return json.dumps(self.payload)
        return str(self.payload)


@dataclass
class Call:
    method: str
    url: str
    params: dict[str, Any] | None
    json: Any
    data: bytes | None
    headers: dict[str, str]

    @property
    def path(self) -> str:
        return urlparse(self.url).path


Handler = Callable[[Call], FakeResponse]


class FakeSession:
    """Routes ``(method, path regex)`` to queued responses or handlers.

    A queue keeps returning its last response once drained. Unrouted
    requests fail the test.
    """

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[Call] = []
        self._routes: list[tuple[str, re.Pattern[str], list[FakeResponse] | Handler]] = []
        self._lock = threading.Lock()

    def add(self, method: str, pattern: str, *responses: FakeResponse) -> FakeSession:
        self._routes.append((method.upper(), re.compile(pattern), list(responses)))
        return self

    def on(self, method: str, pattern: str, handler: Handler) -> FakeSession:
        self._routes.append((method.upper(), re.compile(pattern), handler))
        return self

    def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        proxies: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> FakeResponse:
        call = Call(method.upper(), url, params, json, data, dict(headers or {}))
        with self._lock:
            self.calls.append(call)
            for route_method, pattern, target in self._routes:
                if route_method != call.method or not pattern.fullmatch(call.path):
                    continue
                if callable(target):
                    break
                if len(target) > 1:
                    return target.pop(0)
                return target[0]
            else:
                raise AssertionError(f"unexpected request {call.method} {call.url}")
        return target(call)

    def calls_to(self, method: str, pattern: str) -> list[Call]:
        regex = re.compile(pattern)
        return [c for c in self.calls if c.method == method.upper() and regex.fullmatch(c.path)]


# --- Logging fake -----------------------------------------------------------


class RecordingLogger(StructuredLogger):
    def __init__(self) -> None:
        super().__init__(name="releaselink.tests", level="DEBUG")
        self.records: list[tuple[str, str, dict[str, Any]]] = []
        self._record_lock = threading.Lock()

    def _record(self, level: str, message: str, extra: dict[str, Any]) -> None:
        with self._record_lock:
            self.records.append((level, message, dict(extra)))

    def _emit(self, level: int, message: str, extra: dict[str, Any]) -> None:
        self._record(logging.getLevelName(level), message, extra)

    def log_error(self, message: str, error: str | None = None, **kw: Any) -> None:
        self._record("ERROR", message, {"error": error, **kw})

    def debug(self, message: str, **kw: Any) -> None:
        self._record("DEBUG", message, kw)

    def info(self, message: str, **kw: Any) -> None:
        self._record("INFO", message, kw)

    def warning(self, message: str, **kw: Any) -> None:
        self._record("WARNING", message, kw)

    def error(self, message: str, **kw: Any) -> None:
        self._record("ERROR", message, kw)

    def messages(self, level: str | None = None) -> list[str]:
        return [msg for lvl, msg, _ in self.records if level is None or lvl == level]


# --- Builders ---------------------------------------------------------------

REPO_URL = "https://github.com/owner/repo.git"


def context_mapping(**overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "options": {"repositoryUrl": REPO_URL},
        "branch": {"name": "main", "type": "release", "main": True},
        "commits": [],
        "nextRelease": {
            "version": "1.0.0",
            "gitTag": "v1.0.0",
            "name": "v1.0.0",
            "notes": "Release notes",
        },
        "releases": [],
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def fake_http() -> FakeSession:
    return FakeSession()


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., ReleaseContext]:
    def _make(**overrides: Any) -> ReleaseContext:
        raw = context_mapping(**overrides)
        raw.setdefault("cwd", str(tmp_path))
        return ReleaseContext.from_mapping(raw, env={"GH_TOKEN": "tkn"})

    return _make


@pytest.fixture
def make_session(
    fake_http: FakeSession, recorder: RecordingLogger, make_context: Callable[..., ReleaseContext]
) -> Callable[..., ReleaseSession]:
    def _make(
        options: dict[str, Any] | None = None,
        context: ReleaseContext | None = None,
        env: dict[str, str] | None = None,
    ) -> ReleaseSession:
        ctx = context or make_context()
        cfg = resolve_config(options or {}, env if env is not None else {"GH_TOKEN": "tkn"})
        return ReleaseSession.create(
            cfg,
            ctx,
            http_session=fake_http,  # type: ignore[arg-type]
            retry=RetryConfig(attempts=0, base_sleep=0.0, sleep=lambda _s: None),
            throttle=ThrottleConfig.disabled(),
            logger=recorder,
        )

    return _make


# --- Timing utilities to help identify slow/stalling tests ---


def pytest_runtest_setup(item):  # type: ignore
    _TEST_START_TIMES[item.nodeid] = time.perf_counter()


def pytest_runtest_teardown(item):  # type: ignore
    start = _TEST_START_TIMES.pop(item.nodeid, None)
    if start is not None:
        _TEST_DURATIONS.append((item.nodeid, time.perf_counter() - start))


def pytest_sessionfinish(session, exitstatus):  # type: ignore
    if not _TEST_DURATIONS:
        return
    slow = sorted(_TEST_DURATIONS, key=lambda x: x[1], reverse=True)[:10]
    print("\n=== Slowest Tests (top 10) ===")
    for nodeid, secs in slow:
        print(f"{secs:0.3f}s  {nodeid}")
