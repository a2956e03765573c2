#!/usr/bin/env python3
"""Configuration dataclasses for azure-mirror-sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RemoteRole(Enum):
    """Logical role of a remote within a mirrored repository."""
    SOURCE = "source"
    DESTINATION = "destination"


class Operation(Enum):
    """Operations the batch orchestrator can run against each repository."""
    SETUP = "setup-remotes"
    VERIFY_REMOTES = "verify-remotes"
    FETCH_SOURCE = "fetch-source"
    LIST_BRANCHES = "list-branches"
    SYNC_BRANCH = "sync-branch"
    SYNC_ALL = "sync-all"
    VERIFY_COMMITS = "verify-commits"
    FULL_SYNC = "full-sync"
    SET_ORIGIN = "set-origin"


@dataclass
class RemoteConfig:
    """Base URLs and remote names for both ends of the mirror."""
    source_base_url: str
    dest_base_url: str
    source_remote: str = "azure"
    dest_remote: str = "github"


@dataclass
class GitOperationConfig:
    """Git operation configuration."""
    timeout_s: Optional[float] = 300.0
    git_executable: str = "git"


@dataclass
class BatchConfig:
    """Which repositories to process and how."""
    repo_base_dir: str
    repositories: List[str] = field(default_factory=list)
    max_workers: int = 1
    dry_run: bool = False


@dataclass
class Config:
    """Main configuration for Azure DevOps to GitHub mirroring."""
    remotes: RemoteConfig
    git: GitOperationConfig
    batch: BatchConfig
    operation: Operation = Operation.FULL_SYNC
    branch: Optional[str] = None
    verbose: bool = False
