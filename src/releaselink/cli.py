"""releaselink CLI.

Subcommands (one per release lifecycle step):
  verify       -> check token, repository access and options
  publish      -> create the GitHub release and upload assets
  add-channel  -> move an existing release to another distribution channel
  success      -> comment on resolved issues/PRs and close tracking issues

Each step reads the pipeline context from ``--context`` (JSON) and the
options from ``--config`` (YAML) and prints its result as JSON.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Callable
from typing import Any

from releaselink.config import ReleaseLinkConfig
from releaselink.context import ReleaseContext
from releaselink.core import ReleaseLinker
from releaselink.errors import AggregateReleaseError, ReleaseLinkError, redact
from releaselink.logging import get_logger
from releaselink.observability import configure_telemetry
from releaselink.runtime import CONFIG_DEFAULT, execute_command, load_context, prepare_config

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", help=f"YAML options file (default: {CONFIG_DEFAULT} when present)"
    )
    parser.add_argument("--context", help="JSON file with the release pipeline context")
    parser.add_argument("--output", help="Also write the JSON result to this file")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="releaselink",
        description="Publish GitHub releases and cross-link them to issues and pull requests",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors (env: RELEASELINK_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )
    _add_common(sub.add_parser("verify", help="Verify token, repository access and options"))
    _add_common(sub.add_parser("publish", help="Create the release and upload its assets"))
    _add_common(
        sub.add_parser("add-channel", help="Update (or create) the release for a new channel")
    )
    _add_common(
        sub.add_parser("success", help="Comment on resolved issues/PRs, close tracking issues")
    )
    return p


def _emit(payload: Any, args: argparse.Namespace) -> None:
    text = json.dumps(payload, indent=2, default=str)
    print(text)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text + "\n")


def _cmd_verify(linker: ReleaseLinker, args: argparse.Namespace) -> int:
    linker.verify_conditions()
    _emit({"verified": True, "repository": linker.session.require_repo().slug}, args)
    return 0


def _cmd_publish(linker: ReleaseLinker, args: argparse.Namespace) -> int:
    _emit(linker.publish(), args)
    return 0


def _cmd_add_channel(linker: ReleaseLinker, args: argparse.Namespace) -> int:
    _emit(linker.add_channel(), args)
    return 0


def _cmd_success(linker: ReleaseLinker, args: argparse.Namespace) -> int:
    _emit(linker.success().as_dict(), args)
    return 0


_HANDLERS: dict[str, Callable[[ReleaseLinker, argparse.Namespace], int]] = {
    "verify": _cmd_verify,
    "publish": _cmd_publish,
    "add-channel": _cmd_add_channel,
    "success": _cmd_success,
}


def _report_failure(exc: ReleaseLinkError) -> None:
    print(f"[error] {exc.code}: {redact(str(exc).splitlines()[0])}", file=sys.stderr)
    if isinstance(exc, AggregateReleaseError):
        for err in exc.errors:
            code = getattr(err, "code", type(err).__name__)
            print(f"  - {code}: {redact(str(err))}", file=sys.stderr)
    details = getattr(exc, "details", None)
    if details:
        print(f"  {details}", file=sys.stderr)


def _build_linker(args: argparse.Namespace) -> ReleaseLinker:
    context: ReleaseContext = load_context(args.context)
    cfg: ReleaseLinkConfig = prepare_config(args, context)
    if args.quiet:
        cfg.logging_level = "WARNING"
    return ReleaseLinker(cfg, context)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    exporter = os.environ.get("RELEASELINK_OTEL_EXPORTER")
    if exporter:
        configure_telemetry(
            service_name=os.environ.get("RELEASELINK_SERVICE_NAME", "releaselink-cli"),
            exporter="otlp" if exporter.lower() == "otlp" else "console",
            endpoint=os.environ.get("RELEASELINK_OTEL_ENDPOINT"),
        )
    if not args.quiet and os.environ.get("RELEASELINK_QUIET") == "1":
        args.quiet = True
    handler = _HANDLERS.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        linker = _build_linker(args)
        return execute_command(lambda: handler(linker, args), args.cmd, linker.session.logger)
    except ReleaseLinkError as exc:
        get_logger().log_error(f"{args.cmd} failed", error=str(exc), code=exc.code)
        _report_failure(exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
