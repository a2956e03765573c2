#!/usr/bin/env python3
"""Pushes source branches to the destination remote."""

from __future__ import annotations

from typing import Collection, List, Optional, Tuple

from branch_enumerator import BranchEnumerator
from errors import BranchNotFound, MirrorError, NoBranchesFound, PushError
from git_client import GitClient
from logging_utils import Logger
from models import BranchRef, Remote, Repository, SyncOutcome, SyncResult
from security import SecurityValidator


class SyncExecutor:
    """Mirrors branches by force-pushing source tracking refs.

    The destination branch is overwritten to match the source, discarding
    any destination-only commits on it.
    """

    def __init__(
        self, git: GitClient, enumerator: BranchEnumerator, dry_run: bool = False
    ) -> None:
        self.git = git
        self.enumerator = enumerator
        self.dry_run = dry_run

    def sync_branch(
        self,
        repo: Repository,
        source: Remote,
        dest: Remote,
        branch: str,
        known_branches: Optional[Collection[str]] = None,
    ) -> SyncResult:
        """Push ``branch`` from the source tracking refs to the destination.

        Raises BranchNotFound before any push when the source has no such
        branch. ``known_branches`` is the source branch listing when the
        caller already has one. Push failures are returned as a FAILED result.
        """
        try:
            SecurityValidator.validate_branch_name(branch)
        except ValueError as e:
            Logger.security_event("BRANCH_VALIDATION_FAILED", str(e))
            raise BranchNotFound(branch, source.name)

        if known_branches is None:
            known_branches = self.enumerator.tracked_branches(repo, source)
        if branch not in known_branches:
            raise BranchNotFound(branch, source.name)

        if self.dry_run:
            Logger.info(f"[{repo.name}] would push {branch} to {dest.name}")
            return SyncResult(branch=branch, outcome=SyncOutcome.SKIPPED)

        Logger.info(f"[{repo.name}] pushing {branch} to {dest.name}")
        try:
            self.git.push(
                repo,
                dest.name,
                BranchRef(branch, source).tracking_ref,
                f"refs/heads/{branch}",
                force=True,
            )
        except PushError as e:
            Logger.error(f"[{repo.name}] ❌ {e.message}")
            return SyncResult(
                branch=branch, outcome=SyncOutcome.FAILED, error=e.detail
            )

        Logger.success(f"[{repo.name}] ✅ branch {branch} synced to {dest.name}")
        return SyncResult(branch=branch, outcome=SyncOutcome.PUSHED)

    def sync_all(
        self, repo: Repository, source: Remote, dest: Remote
    ) -> Tuple[SyncResult, ...]:
        """Sync every source branch; one result per branch, never fail-fast."""
        branches = self.enumerator.list_branches(repo, source)
        if not branches:
            raise NoBranchesFound(source.name)
        known_branches = frozenset(branches)

        Logger.info(
            f"[{repo.name}] syncing {len(branches)} branches from "
            f"{source.name} to {dest.name}"
        )
        results: List[SyncResult] = []
        for branch in branches:
            try:
                results.append(
                    self.sync_branch(repo, source, dest, branch, known_branches)
                )
            except MirrorError as e:
                Logger.error(f"[{repo.name}] ❌ {branch}: {e}")
                results.append(
                    SyncResult(branch=branch, outcome=SyncOutcome.FAILED, error=str(e))
                )
        return tuple(results)
