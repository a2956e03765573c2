#!/usr/bin/env python3
"""Compares branch tips between the source and destination remotes."""

from __future__ import annotations

from typing import Collection, List, Optional

from branch_enumerator import BranchEnumerator
from errors import HashResolutionError
from git_client import GitClient
from logging_utils import Logger
from models import (BranchRef, Remote, Repository, VerificationSummary,
                    VerifyResult, VerifyStatus)


class Verifier:
    def __init__(self, git: GitClient, enumerator: BranchEnumerator) -> None:
        self.git = git
        self.enumerator = enumerator

    def _refresh(self, repo: Repository, source: Remote, dest: Remote) -> None:
        Logger.info(f"[{repo.name}] fetching latest from both remotes")
        self.enumerator.fetch(repo, source)
        self.enumerator.fetch(repo, dest)

    def verify_branch(
        self,
        repo: Repository,
        source: Remote,
        dest: Remote,
        branch: str,
        refresh: bool = True,
        dest_branches: Optional[Collection[str]] = None,
    ) -> VerifyResult:
        """Classify ``branch`` as MATCH, MISMATCH or MISSING_ON_DESTINATION.

        With ``refresh`` both remotes are fetched first so stale tracking
        refs cannot report a match. ``dest_branches`` is the destination
        branch listing when the caller already has one.
        """
        if refresh:
            self._refresh(repo, source, dest)

        try:
            if dest_branches is None:
                dest_branches = self.enumerator.tracked_branches(repo, dest)
            dest_hash = None
            if branch in dest_branches:
                dest_hash = self.git.resolve_commit(
                    repo, BranchRef(branch, dest).tracking_ref
                )
            source_hash = self.git.resolve_commit(
                repo, BranchRef(branch, source).tracking_ref
            )
        except HashResolutionError as e:
            Logger.error(f"[{repo.name}] ❌ branch {branch}: {e.message}")
            return VerifyResult(
                branch=branch, status=VerifyStatus.MISMATCH, error=e.message
            )

        if dest_hash is None:
            Logger.warn(f"[{repo.name}] ⚠️ branch {branch}: not found in {dest.name}")
            return VerifyResult(
                branch=branch,
                status=VerifyStatus.MISSING_ON_DESTINATION,
                source_hash=source_hash,
            )

        if source_hash is not None and source_hash == dest_hash:
            Logger.success(
                f"[{repo.name}] ✅ branch {branch}: commits match ({source_hash})"
            )
            return VerifyResult(
                branch=branch,
                status=VerifyStatus.MATCH,
                source_hash=source_hash,
                dest_hash=dest_hash,
            )

        Logger.error(
            f"[{repo.name}] ❌ branch {branch}: commits differ "
            f"({source.name}: {source_hash}, {dest.name}: {dest_hash})"
        )
        return VerifyResult(
            branch=branch,
            status=VerifyStatus.MISMATCH,
            source_hash=source_hash,
            dest_hash=dest_hash,
        )

    def verify_all(
        self, repo: Repository, source: Remote, dest: Remote
    ) -> VerificationSummary:
        """Verify every source branch against the destination.

        Both remotes are fetched once up front; every branch is checked even
        after a mismatch.
        """
        self._refresh(repo, source, dest)
        Logger.info(f"[{repo.name}] checking commit synchronization between remotes")

        dest_branches = frozenset(self.enumerator.tracked_branches(repo, dest))
        results: List[VerifyResult] = []
        for branch in self.enumerator.tracked_branches(repo, source):
            results.append(
                self.verify_branch(
                    repo, source, dest, branch,
                    refresh=False, dest_branches=dest_branches,
                )
            )

        summary = VerificationSummary(tuple(results))
        Logger.info(
            f"[{repo.name}] summary: {summary.matched} branches in sync, "
            f"{summary.out_of_sync} branches out of sync or missing"
        )
        return summary
