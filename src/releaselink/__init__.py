"""releaselink - publish GitHub releases and cross-link them to issues and PRs.

High-level public API (stable):

from releaselink import ReleaseLinker, ReleaseContext, load_config

context = ReleaseContext.from_mapping(pipeline_context)
linker = ReleaseLinker.from_config_path('releaselink.yaml', context)
linker.verify_conditions()
release = linker.publish()
summary = linker.success()
print(summary.as_dict())

The CLI delegates to this library so the same steps can run from any
release pipeline that can write its context to a JSON file.
"""

from __future__ import annotations

# Defined before the submodule imports: the HTTP client reads it for its User-Agent
__version__ = "0.1.0"

from .config import ReleaseLinkConfig, load_config, resolve_config  # noqa: E402
from .context import ReleaseContext  # noqa: E402
from .core import ReleaseLinker  # noqa: E402
from .errors import AggregateReleaseError, ConfigError, ReleaseLinkError  # noqa: E402
from .github_rest import GitHubAPIError  # noqa: E402
from .models import Issue, PullRequest  # noqa: E402

__all__ = [
    "AggregateReleaseError",
    "ConfigError",
    "GitHubAPIError",
    "Issue",
    "PullRequest",
    "ReleaseContext",
    "ReleaseLinkConfig",
    "ReleaseLinkError",
    "ReleaseLinker",
    "load_config",
    "resolve_config",
    "__version__",
]
