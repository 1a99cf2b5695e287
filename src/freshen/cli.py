"""Command-line entry point.

Usage:
    freshen update --name NAME [--repo-path PATH] [--check]
    freshen remote-update --name NAME --config GIT_CONFIG
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from freshen.backends.nix import NixFlake
from freshen.config import CONFIG_FILENAME, read_config, read_git_config
from freshen.credentials import load_github_token
from freshen.errors import ConfigParseError, FreshenError
from freshen.observability import StructuredLogger
from freshen.orchestrator import UpdateSpec
from freshen.publish.github import GitHubPublisher
from freshen.remote import run_remote_task


def cmd_update(args: argparse.Namespace, logger: StructuredLogger) -> None:
    repo_path = Path(args.repo_path or Path.cwd()).resolve()
    logger.log(
        operation="update",
        task=args.name,
        phase=None,
        message="starting local update",
        extra={"repo_path": str(repo_path)},
    )
    validate_repo_path(repo_path)
    config = read_config(repo_path / CONFIG_FILENAME)
    spec = UpdateSpec(config=config, build_tool=NixFlake(root=repo_path), logger=logger)
    result = spec.run_task(args.name, check=args.check)
    for rel_path in result:
        print(rel_path)


def cmd_remote_update(args: argparse.Namespace, logger: StructuredLogger) -> None:
    git_config = read_git_config(args.config)
    publisher = GitHubPublisher(
        config=git_config,
        token=load_github_token(git_config.github),
        logger=logger,
    )
    commit = run_remote_task(args.name, publisher, logger=logger)
    if commit is not None:
        print(commit)


def validate_repo_path(repo_path: Path) -> None:
    if not (repo_path / "flake.nix").is_file():
        raise ConfigParseError(
            "Repository path does not look like a flake.",
            hint="Pass --repo-path pointing at the directory containing flake.nix.",
            context={"repo_path": str(repo_path)},
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freshen",
        description="Keep flake inputs and derived hashes up to date",
    )
    parser.add_argument("--log-json", type=Path, help="Write the structured log as JSON lines")
    sub = parser.add_subparsers(dest="command", required=True)

    update_p = sub.add_parser("update", help="Run local update task")
    update_p.add_argument("--name", required=True, help="Name of update task to run")
    update_p.add_argument("--repo-path", help="Path of repository root (default: cwd)")
    update_p.add_argument(
        "--check",
        action="store_true",
        help="Always run all build and test steps (even if no inputs changed)",
    )

    remote_p = sub.add_parser("remote-update", help="Run remote update task")
    remote_p.add_argument("--name", required=True, help="Name of update task to run")
    remote_p.add_argument("--config", required=True, type=Path, help="Path to git config file")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = StructuredLogger(stream=sys.stderr)
    try:
        if args.command == "update":
            cmd_update(args, logger)
        elif args.command == "remote-update":
            cmd_remote_update(args, logger)
    except FreshenError as exc:
        print(f"error[{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.log_json is not None:
            logger.to_json_lines(args.log_json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
