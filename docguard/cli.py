"""CLI entrypoints for docguard commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .commit_message import annotate_commit_message
from .config import CONFIG_FILENAME, ConfigError, DocGuardConfig, load_config
from .logging import configure_logging, get_logger
from .orchestrator import Orchestrator
from .reporting import TerminalReporter


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Show classification details and debug logs.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Project root containing the config file (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docguard",
        description="Keep project documentation in step with source changes at commit time.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help=f"Path to the config file (defaults to <path>/{CONFIG_FILENAME}).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Pre-commit check of staged files. Never blocks the commit.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_path_argument(check_parser)

    sync_parser = subparsers.add_parser(
        "sync",
        help="Regenerate inventories and run a full documentation audit.",
    )
    _add_verbose_option(sync_parser, suppress_default=True)
    _add_path_argument(sync_parser)

    gen_parser = subparsers.add_parser(
        "gen",
        help="Run every configured inventory generator.",
    )
    _add_verbose_option(gen_parser, suppress_default=True)
    _add_path_argument(gen_parser)

    commit_msg_parser = subparsers.add_parser(
        "commit-msg",
        help="Annotate the commit message after a documentation auto-fix.",
    )
    commit_msg_parser.add_argument("message_file", help="Commit message file passed by git.")
    _add_path_argument(commit_msg_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for docguard commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(getattr(args, "verbose", False)), log_file=args.log_file)
    reporter = TerminalReporter()

    if args.command == "commit-msg":
        try:
            annotate_commit_message(Path(args.message_file), Path(args.path).resolve())
        except OSError as exc:
            get_logger("cli").warning("Could not annotate commit message: %s", exc)
        return 0

    try:
        config = _load(args)
    except ConfigError as exc:
        if args.command == "check":
            # Commits are never blocked, not even by a broken config.
            reporter.write(f"docguard: {exc}")
            return 0
        parser.exit(1, f"docguard {args.command} failed: {exc}\n")

    orchestrator = Orchestrator.from_config(config, reporter=reporter)
    if args.command == "check":
        return orchestrator.run_check()
    if args.command == "sync":
        return orchestrator.run_sync()
    if args.command == "gen":
        return orchestrator.run_gen()
    parser.exit(1, "Unknown command\n")  # pragma: no cover - argparse enforces choices
    return 1


def _load(args: argparse.Namespace) -> DocGuardConfig:
    config_path = getattr(args, "config", None)
    if config_path:
        return load_config(Path(config_path))
    return load_config(Path(args.path) / CONFIG_FILENAME)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
