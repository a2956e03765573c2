#!/usr/bin/env python3
"""Lists the branches a remote currently has."""

from __future__ import annotations

from typing import Tuple

from git_client import GitClient
from logging_utils import Logger
from models import Remote, Repository


class BranchEnumerator:
    def __init__(self, git: GitClient) -> None:
        self.git = git

    def fetch(self, repo: Repository, remote: Remote) -> None:
        """Fetch ``remote`` with pruning; raises FetchError on transport failure."""
        Logger.info(f"[{repo.name}] fetching all branches from {remote.name}")
        self.git.fetch(repo, remote.name, prune=True)

    def list_branches(self, repo: Repository, remote: Remote) -> Tuple[str, ...]:
        """Fetch ``remote`` and return its branch names in ref order.

        Every call fetches again, so the result reflects the remote at the
        time of the call.
        """
        self.fetch(repo, remote)
        branches = self.tracked_branches(repo, remote)
        Logger.debug(f"[{repo.name}] {len(branches)} branches in {remote.name}")
        return branches

    def tracked_branches(self, repo: Repository, remote: Remote) -> Tuple[str, ...]:
        """Branch names from the current tracking refs, without fetching."""
        names = self.git.list_tracking_branches(repo, remote.name)
        return tuple(dict.fromkeys(names))
