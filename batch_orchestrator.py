#!/usr/bin/env python3
"""Runs one mirroring operation across a list of repositories."""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from branch_enumerator import BranchEnumerator
from config import Config, Operation, RemoteRole
from errors import MirrorError, RepositoryNotFound
from git_client import GitClient
from logging_utils import Logger
from models import BatchReport, Repository, RepositoryReport, VerifyStatus
from remote_registry import RemoteRegistry
from security import SecurityValidator
from sync_executor import SyncExecutor
from utils import build_repository
from verifier import Verifier

SEPARATOR = "-" * 52


class BatchOrchestrator:
    """Applies an operation to each repository, isolating failures.

    A failure in one repository (missing directory, fetch error, mismatch)
    is recorded in that repository's report and never stops the rest of
    the batch.
    """

    def __init__(
        self,
        cfg: Config,
        git: Optional[GitClient] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.cfg = cfg
        self.git = git or GitClient(
            timeout_s=cfg.git.timeout_s, git_executable=cfg.git.git_executable
        )
        self.registry = RemoteRegistry(self.git)
        self.enumerator = BranchEnumerator(self.git)
        self.executor = SyncExecutor(
            self.git, self.enumerator, dry_run=cfg.batch.dry_run
        )
        self.verifier = Verifier(self.git, self.enumerator)
        self.cancel_event = cancel_event or threading.Event()

    def repositories(self) -> List[Repository]:
        """Repository handles for the configured batch, in order."""
        names = self.cfg.batch.repositories
        if not names:
            return [build_repository(os.getcwd(), self.cfg.remotes)]
        return [
            build_repository(
                os.path.join(self.cfg.batch.repo_base_dir, name), self.cfg.remotes
            )
            for name in names
        ]

    def run(self) -> int:
        repositories = self.repositories()
        Logger.info(f"operation to perform: {self.cfg.operation.value}")
        Logger.info(f"repository base directory: {self.cfg.batch.repo_base_dir}")
        Logger.info(f"number of repositories: {len(repositories)}")

        report = self.run_batch(repositories, self.cfg.operation, self.cfg.branch)
        log_report(report)
        return report.exit_code

    def run_batch(
        self,
        repositories: Sequence[Repository],
        operation: Operation,
        branch: Optional[str] = None,
    ) -> BatchReport:
        if operation == Operation.SYNC_BRANCH and not branch:
            raise ValueError("sync-branch requires a branch name")
        if self.cfg.batch.max_workers > 1 and len(repositories) > 1:
            reports = self._run_pool(repositories, operation, branch)
        else:
            reports = [
                self._run_guarded(repo, operation, branch) for repo in repositories
            ]
        return BatchReport(operation=operation, repositories=tuple(reports))

    def cancel(self) -> None:
        """Stop before the next repository; the current one runs to completion."""
        self.cancel_event.set()

    def _run_pool(
        self,
        repositories: Sequence[Repository],
        operation: Operation,
        branch: Optional[str],
    ) -> List[RepositoryReport]:
        pool = ThreadPoolExecutor(max_workers=self.cfg.batch.max_workers)
        try:
            futures = [
                pool.submit(self._run_guarded, repo, operation, branch)
                for repo in repositories
            ]
            try:
                return [self._result(future) for future in futures]
            except KeyboardInterrupt:
                Logger.warn("interrupted; skipping remaining repositories")
                self.cancel()
                for future in futures:
                    future.cancel()
                return [
                    self._cancelled(repo, operation)
                    if future.cancelled()
                    else self._result(future)
                    for repo, future in zip(repositories, futures)
                ]
        finally:
            pool.shutdown(wait=True)

    @staticmethod
    def _result(future: Future) -> RepositoryReport:
        return future.result()

    @staticmethod
    def _cancelled(repo: Repository, operation: Operation) -> RepositoryReport:
        return RepositoryReport(
            repository=repo.snapshot(), operation=operation, cancelled=True
        )

    def _run_guarded(
        self, repo: Repository, operation: Operation, branch: Optional[str]
    ) -> RepositoryReport:
        if self.cancel_event.is_set():
            Logger.warn(f"[{repo.name}] cancelled before start")
            return self._cancelled(repo, operation)
        try:
            return self.run_repository(repo, operation, branch)
        except KeyboardInterrupt:
            Logger.warn(f"[{repo.name}] interrupted; skipping remaining repositories")
            self.cancel_event.set()
            return self._cancelled(repo, operation)

    def run_repository(
        self, repo: Repository, operation: Operation, branch: Optional[str] = None
    ) -> RepositoryReport:
        Logger.info(SEPARATOR)
        Logger.info(f"processing repository: {repo.path}")
        Logger.info(SEPARATOR)

        state: Dict[str, object] = {}
        try:
            if not repo.exists:
                raise RepositoryNotFound(repo.path)
            self._dispatch(repo, operation, branch, state)
        except MirrorError as e:
            Logger.error(f"[{repo.name}] ❌ {e}")
            return self._failed(repo, operation, e, state)
        except Exception as e:
            Logger.security_event(
                "REPOSITORY_EXCEPTION", f"unexpected exception in {repo.name}"
            )
            safe_error = SecurityValidator.sanitize_for_logging(str(e))
            Logger.error(f"[{repo.name}] ❌ unexpected error: {safe_error}")
            return self._failed(
                repo, operation, MirrorError(f"unexpected error: {safe_error}"), state
            )

        report = RepositoryReport(
            repository=repo.snapshot(), operation=operation, **state
        )
        if report.succeeded:
            Logger.success(f"successfully completed {operation.value} for {repo.path}")
        else:
            Logger.error(f"failed to run {operation.value} for {repo.path}")
        return report

    @staticmethod
    def _failed(
        repo: Repository,
        operation: Operation,
        error: MirrorError,
        state: Dict[str, object],
    ) -> RepositoryReport:
        Logger.error(f"failed to run {operation.value} for {repo.path}")
        return RepositoryReport(
            repository=repo.snapshot(),
            operation=operation,
            fatal_error=error,
            **state,
        )

    def _dispatch(
        self,
        repo: Repository,
        operation: Operation,
        branch: Optional[str],
        state: Dict[str, object],
    ) -> None:
        """Run ``operation``, storing partial results in ``state`` as they arrive."""
        if operation in (Operation.SETUP, Operation.FULL_SYNC):
            self._setup(repo)
            if operation == Operation.SETUP:
                return

        source, dest = self.registry.verify_remotes(repo)
        Logger.success(f"[{repo.name}] ✅ both remotes verified")
        for name, url in self.registry.describe(repo):
            Logger.debug(f"[{repo.name}]   {name}\t{url}")

        if operation == Operation.VERIFY_REMOTES:
            return

        if operation == Operation.FETCH_SOURCE:
            self.enumerator.fetch(repo, source)
            Logger.success(f"[{repo.name}] ✅ fetched successfully")
        elif operation == Operation.LIST_BRANCHES:
            branches = self.enumerator.list_branches(repo, source)
            state["branches"] = branches
            Logger.info(f"[{repo.name}] available branches in {source.name}:")
            for name in branches:
                Logger.info(f"  {name}")
        elif operation == Operation.SYNC_BRANCH:
            self.enumerator.fetch(repo, source)
            state["sync_results"] = (
                self.executor.sync_branch(repo, source, dest, branch),
            )
        elif operation == Operation.SYNC_ALL:
            state["sync_results"] = self.executor.sync_all(repo, source, dest)
        elif operation == Operation.VERIFY_COMMITS:
            state["verify_results"] = self.verifier.verify_all(
                repo, source, dest
            ).results
        elif operation == Operation.FULL_SYNC:
            state["sync_results"] = self.executor.sync_all(repo, source, dest)
            state["verify_results"] = self.verifier.verify_all(
                repo, source, dest
            ).results
        elif operation == Operation.SET_ORIGIN:
            self.registry.set_origin(repo, dest.url)
            Logger.success(f"[{repo.name}] ✅ origin remote now points to {dest.url}")

    def _setup(self, repo: Repository) -> None:
        Logger.info(f"[{repo.name}] setting up remotes")
        for role in (RemoteRole.SOURCE, RemoteRole.DESTINATION):
            remote = repo.remotes.get(role)
            if remote is None:
                continue
            self.registry.ensure_remote(repo, role, remote.name, remote.url)
        Logger.success(f"[{repo.name}] ✅ remotes configured successfully")


def log_report(report: BatchReport) -> None:
    """Print per-repository outcomes followed by aggregate counts."""
    Logger.info("=" * 52)
    Logger.info(f"summary for {report.operation.value}")
    for entry in report.repositories:
        repo = entry.repository
        if entry.cancelled:
            Logger.warn(f"  {repo.name}: cancelled")
        elif entry.fatal_error is not None:
            Logger.error(f"  {repo.name}: {entry.fatal_error}")
        elif entry.succeeded:
            Logger.success(f"  {repo.name}: ok")
        else:
            Logger.error(f"  {repo.name}: completed with failures")

        for result in entry.failed_syncs:
            Logger.error(f"    push failed: {result.branch}: {result.error}")
        for result in entry.verify_results:
            if result.status == VerifyStatus.MISMATCH:
                Logger.error(
                    f"    mismatch: {result.branch} "
                    f"(source {result.source_hash}, destination {result.dest_hash})"
                )
            elif result.status == VerifyStatus.MISSING_ON_DESTINATION:
                Logger.warn(f"    missing on destination: {result.branch}")

    Logger.info(
        f"repositories: {report.succeeded} succeeded, {report.failed} failed, "
        f"{report.cancelled} cancelled"
    )
    if any(entry.sync_results for entry in report.repositories):
        Logger.info(
            f"branches pushed: {report.pushed}, skipped: {report.skipped}, "
            f"failed: {report.push_failures}"
        )
    if any(entry.verify_results for entry in report.repositories):
        Logger.info(
            f"branches matched: {report.matched}, mismatched: {report.mismatched}, "
            f"missing: {report.missing}"
        )
    if report.exit_code == 0:
        Logger.success("all repositories processed")
    else:
        Logger.error("all repositories processed, with failures")
