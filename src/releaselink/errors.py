"""Error taxonomy & redaction helpers.

Every failure raised by releaselink derives from :class:`ReleaseLinkError`
so a host pipeline can catch one type and still inspect the machine code.
Fan-out stages (commenting, labelling, closing tracking issues) never raise
per target; they record :class:`OperationError` entries in an
:class:`ErrorCollector` and raise one :class:`AggregateReleaseError` at the
end.

Public API:
- ReleaseLinkError / ConfigError / AggregateReleaseError
- OperationError, ErrorCollector
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

# Simple token patterns; can be expanded (e.g., GitHub App installation tokens)
_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"ghs_[A-Za-z0-9]{20,40}"),  # GitHub Actions / App tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class ReleaseLinkError(RuntimeError):
    """Base error carrying a stable machine-readable ``code``."""

    def __init__(self, message: str, code: str = "ERELEASELINK", details: str | None = None):
        super().__init__(message)
        self.code = code
        self.details = details


class ConfigError(ReleaseLinkError):
    """Invalid or missing configuration; raised before any network activity."""


@dataclass(frozen=True)
class OperationError:
    target_number: int
    http_status: int | None
    message: str
    cause: BaseException | None = None


class ErrorCollector:
    """Append-only, lock-guarded list shared by concurrent per-target tasks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._errors: list[OperationError] = []

    def add(self, error: OperationError) -> None:
        with self._lock:
            self._errors.append(error)

    def extend(self, errors: Iterable[OperationError]) -> None:
        with self._lock:
            self._errors.extend(errors)

    def snapshot(self) -> list[OperationError]:
        with self._lock:
            return list(self._errors)

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def __iter__(self) -> Iterator[OperationError]:
        return iter(self.snapshot())

    def raise_if_any(self) -> None:
        errors = self.snapshot()
        if errors:
            raise AggregateReleaseError.from_operation_errors(errors)


class AggregateReleaseError(ReleaseLinkError):
    """Bundle of independent failures surfaced as one raised error."""

    def __init__(
        self,
        errors: Iterable[BaseException],
        *,
        operation_errors: Iterable[OperationError] = (),
    ):
        self.errors: list[BaseException] = list(errors)
        self.operation_errors: list[OperationError] = list(operation_errors)
        lines = [redact(str(err)) for err in self.errors]
        message = f"{len(self.errors)} error(s) occurred"
        if lines:
            message += ":\n" + "\n".join(f"  - {line}" for line in lines)
        super().__init__(message, code="EAGGREGATE")

    @classmethod
    def from_operation_errors(cls, errors: Iterable[OperationError]) -> AggregateReleaseError:
        op_errors = list(errors)
        causes: list[BaseException] = []
        for op in op_errors:
            if op.cause is not None:
                causes.append(op.cause)
            else:
                causes.append(ReleaseLinkError(op.message, code="EOPERATION"))
        return cls(causes, operation_errors=op_errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact sensitive tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


_NETWORK_HINTS = ("timeout", "timed out", "connection reset", "temporarily unavailable")


def _status_category(status: int) -> tuple[str, bool]:
    if status in (401, 403):
        return "github.permission", False
    if status == 404:
        return "github.not_found", False
    if status >= 500:
        return "github.server", True
    return "github.request", False


def classify_error(exc: BaseException) -> ErrorInfo:
    """Sort a failure into a log category.

    Rate-limit wording wins over the HTTP status; API errors are then sorted
    by status, other errors by network keywords. Messages are redacted.
    """
    msg = redact(str(exc))
    low = msg.lower()
    kind = type(exc).__name__
    status = getattr(exc, "status", None)

    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", msg, kind, transient=True)
    if isinstance(status, int):
        category, transient = _status_category(status)
        return ErrorInfo(category, msg, kind, transient=transient, details={"status": status})
    if "abuse" in low:
        return ErrorInfo("github.abuse", msg, kind, transient=True)
    if any(k in low for k in _NETWORK_HINTS):
        return ErrorInfo("network", msg, kind, transient=True)
    if getattr(exc, "code", None) == "ETEMPLATE":
        return ErrorInfo("template", msg, kind)
    return ErrorInfo("generic", msg, kind)


__all__ = [
    "AggregateReleaseError",
    "ConfigError",
    "ErrorCollector",
    "ErrorInfo",
    "OperationError",
    "ReleaseLinkError",
    "classify_error",
    "redact",
]
