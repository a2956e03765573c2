#!/usr/bin/env python3
"""Command line argument parsing and configuration building."""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional, Sequence

from config import (BatchConfig, Config, GitOperationConfig, Operation,
                    RemoteConfig)
from logging_utils import Logger
from security import SecurityValidator
from utils import load_repository_list

# Exit codes
EXIT_MISSING_ARGUMENTS = 2

DEFAULT_AZURE_BASE_URL = "git@ssh.dev.azure.com:v3/my-org/my-project"
DEFAULT_GITHUB_BASE_URL = "git@github.com:my-org"


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Mirror branches from Azure DevOps to GitHub across local checkouts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  setup-remotes    configure both the Azure and the GitHub remote
  verify-remotes   check that both remotes are configured
  fetch-source     fetch all branches from Azure DevOps
  list-branches    list all branches available for syncing
  sync-branch      sync the branch named by --branch
  sync-all         push all branches from Azure DevOps to GitHub
  verify-commits   verify branch tips match between both remotes
  full-sync        setup-remotes, sync-all and verify-commits
  set-origin       point the origin remote at GitHub

Examples:
  %(prog)s full-sync
  %(prog)s sync-branch --branch release/1.2
  %(prog)s --repo-base-dir ~/repos --repo api --repo web verify-commits
  %(prog)s --repos-file repos.txt --jobs 4 full-sync
        """,
    )
    parser.add_argument(
        "command",
        choices=[operation.value for operation in Operation],
        help="Operation to run against every repository",
    )
    return parser


def _add_remote_arguments(parser: argparse.ArgumentParser) -> None:
    """Add remote-related arguments to parser."""
    parser.add_argument(
        "--azure-base-url",
        dest="source_base_url",
        default=os.getenv("AZURE_BASE_URL", DEFAULT_AZURE_BASE_URL),
        help="Azure DevOps base URL, joined with the repository name "
        "(or set AZURE_BASE_URL env var)",
    )
    parser.add_argument(
        "--github-base-url",
        dest="dest_base_url",
        default=os.getenv("GITHUB_BASE_URL", DEFAULT_GITHUB_BASE_URL),
        help="GitHub base URL, joined with '<repository name>.git' "
        "(or set GITHUB_BASE_URL env var)",
    )
    parser.add_argument(
        "--azure-remote",
        dest="source_remote",
        default=os.getenv("AZURE_REMOTE", "azure"),
        help="Name of the Azure DevOps remote (default: azure)",
    )
    parser.add_argument(
        "--github-remote",
        dest="dest_remote",
        default=os.getenv("GITHUB_REMOTE", "github"),
        help="Name of the GitHub remote (default: github)",
    )
    parser.add_argument(
        "-b",
        "--branch",
        dest="branch",
        help="Branch to sync with sync-branch (required for that command)",
    )


def _add_batch_arguments(parser: argparse.ArgumentParser) -> None:
    """Add repository selection and behavior arguments to parser."""
    parser.add_argument(
        "--repo-base-dir",
        dest="repo_base_dir",
        default=os.getenv("REPO_BASE_DIR", os.getcwd()),
        help="Directory containing the repositories (default: current directory)",
    )
    parser.add_argument(
        "-r",
        "--repo",
        dest="repos",
        action="append",
        default=[],
        help="Repository folder name under --repo-base-dir; may be repeated",
    )
    parser.add_argument(
        "--repos-file",
        dest="repos_file",
        help="File listing repository folder names, one per line",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="Report the pushes that would happen without pushing",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        dest="jobs",
        type=int,
        default=1,
        help="Number of repositories processed in parallel (default: 1)",
    )
    parser.add_argument(
        "--timeout",
        dest="timeout_s",
        type=float,
        default=300.0,
        help="Seconds allowed for each git fetch/push (default: 300, 0 disables)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        dest="verbose",
        help="Show git commands and other debug output",
    )


def _collect_repositories(args) -> List[str]:
    repositories = [SecurityValidator.validate_repo_name(name) for name in args.repos]
    if args.repos_file:
        repos_file = SecurityValidator.validate_file_path(args.repos_file)
        try:
            repositories.extend(load_repository_list(repos_file))
        except OSError as e:
            raise ValueError(f"cannot read repository list '{repos_file}': {e}")
    return list(dict.fromkeys(repositories))


def _validate_parsed_arguments(args) -> Config:
    """Validate parsed arguments and build the configuration."""
    try:
        source_base_url = SecurityValidator.validate_url(
            args.source_base_url, ["https", "ssh"]
        )
        dest_base_url = SecurityValidator.validate_url(
            args.dest_base_url, ["https", "ssh"]
        )

        source_remote = SecurityValidator.validate_remote_name(args.source_remote)
        dest_remote = SecurityValidator.validate_remote_name(args.dest_remote)
        if source_remote == dest_remote:
            raise ValueError("Azure and GitHub remotes must have different names")

        branch: Optional[str] = None
        if args.branch:
            branch = SecurityValidator.validate_branch_name(args.branch)
        elif args.command == Operation.SYNC_BRANCH.value:
            raise ValueError("sync-branch requires --branch")

        repo_base_dir = SecurityValidator.validate_file_path(args.repo_base_dir)
        repositories = _collect_repositories(args)

        if args.jobs < 1 or args.jobs > 32:
            raise ValueError("jobs must be between 1 and 32")
        if args.timeout_s < 0:
            raise ValueError("timeout must not be negative")

        Logger.security_event(
            "CONFIG_VALIDATION", "successfully validated all configuration inputs"
        )

    except ValueError as e:
        Logger.security_event(
            "CONFIG_VALIDATION_FAILED", f"configuration validation failed: {e}"
        )
        Logger.error(f"configuration validation error: {e}")
        sys.exit(EXIT_MISSING_ARGUMENTS)

    return Config(
        remotes=RemoteConfig(
            source_base_url=source_base_url,
            dest_base_url=dest_base_url,
            source_remote=source_remote,
            dest_remote=dest_remote,
        ),
        git=GitOperationConfig(timeout_s=args.timeout_s or None),
        batch=BatchConfig(
            repo_base_dir=repo_base_dir,
            repositories=repositories,
            max_workers=args.jobs,
            dry_run=args.dry_run,
        ),
        operation=Operation(args.command),
        branch=branch,
        verbose=args.verbose,
    )


def parse_arguments(argv: Optional[Sequence[str]] = None) -> Config:
    """Parse command line arguments and return configuration object."""
    parser = _create_argument_parser()
    _add_remote_arguments(parser)
    _add_batch_arguments(parser)

    args = parser.parse_args(argv)
    return _validate_parsed_arguments(args)
