#!/usr/bin/env python3
"""Data model shared by the mirroring components."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Optional, Tuple

from config import Operation, RemoteRole
from errors import MirrorError

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1


@dataclass(frozen=True)
class Remote:
    name: str
    url: str
    role: RemoteRole


@dataclass
class Repository:
    """Handle for one local checkout.

    Every git command runs against ``path``; the process working directory
    is never changed.
    """
    path: str
    name: str
    remotes: Dict[RemoteRole, Remote] = field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return os.path.isdir(self.path)

    def remote(self, role: RemoteRole) -> Optional[Remote]:
        return self.remotes.get(role)

    def snapshot(self) -> Repository:
        """Copy of this handle whose remotes can no longer be changed."""
        return Repository(
            path=self.path,
            name=self.name,
            remotes=MappingProxyType(dict(self.remotes)),
        )


@dataclass(frozen=True)
class BranchRef:
    name: str
    remote: Remote
    commit_hash: Optional[str] = None

    @property
    def tracking_ref(self) -> str:
        return f"refs/remotes/{self.remote.name}/{self.name}"


class SyncOutcome(Enum):
    PUSHED = "pushed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    branch: str
    outcome: SyncOutcome
    error: Optional[str] = None


class VerifyStatus(Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING_ON_DESTINATION = "missing_on_destination"


@dataclass(frozen=True)
class VerifyResult:
    branch: str
    status: VerifyStatus
    source_hash: Optional[str] = None
    dest_hash: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class VerificationSummary:
    """All verification results for one repository."""
    results: Tuple[VerifyResult, ...] = ()

    def _count(self, status: VerifyStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def matched(self) -> int:
        return self._count(VerifyStatus.MATCH)

    @property
    def mismatched(self) -> int:
        return self._count(VerifyStatus.MISMATCH)

    @property
    def missing(self) -> int:
        return self._count(VerifyStatus.MISSING_ON_DESTINATION)

    @property
    def out_of_sync(self) -> int:
        """Branches that fail verification, missing ones included."""
        return self.mismatched + self.missing


@dataclass(frozen=True)
class RepositoryReport:
    repository: Repository
    operation: Operation
    branches: Tuple[str, ...] = ()
    sync_results: Tuple[SyncResult, ...] = ()
    verify_results: Tuple[VerifyResult, ...] = ()
    fatal_error: Optional[MirrorError] = None
    cancelled: bool = False

    @property
    def failed_syncs(self) -> Tuple[SyncResult, ...]:
        return tuple(
            r for r in self.sync_results if r.outcome == SyncOutcome.FAILED
        )

    @property
    def verification(self) -> VerificationSummary:
        return VerificationSummary(self.verify_results)

    @property
    def succeeded(self) -> bool:
        return (
            not self.cancelled
            and self.fatal_error is None
            and not self.failed_syncs
            and self.verification.out_of_sync == 0
        )


@dataclass(frozen=True)
class BatchReport:
    """Outcome of one orchestrator invocation, in input order."""
    operation: Operation
    repositories: Tuple[RepositoryReport, ...] = ()

    def _sync_count(self, outcome: SyncOutcome) -> int:
        return sum(
            1
            for report in self.repositories
            for result in report.sync_results
            if result.outcome == outcome
        )

    def _verify_count(self, status: VerifyStatus) -> int:
        return sum(
            1
            for report in self.repositories
            for result in report.verify_results
            if result.status == status
        )

    @property
    def succeeded(self) -> int:
        return sum(1 for report in self.repositories if report.succeeded)

    @property
    def cancelled(self) -> int:
        return sum(1 for report in self.repositories if report.cancelled)

    @property
    def failed(self) -> int:
        return len(self.repositories) - self.succeeded - self.cancelled

    @property
    def pushed(self) -> int:
        return self._sync_count(SyncOutcome.PUSHED)

    @property
    def skipped(self) -> int:
        return self._sync_count(SyncOutcome.SKIPPED)

    @property
    def push_failures(self) -> int:
        return self._sync_count(SyncOutcome.FAILED)

    @property
    def matched(self) -> int:
        return self._verify_count(VerifyStatus.MATCH)

    @property
    def mismatched(self) -> int:
        return self._verify_count(VerifyStatus.MISMATCH)

    @property
    def missing(self) -> int:
        return self._verify_count(VerifyStatus.MISSING_ON_DESTINATION)

    @property
    def exit_code(self) -> int:
        if all(report.succeeded for report in self.repositories):
            return EXIT_SUCCESS
        return EXIT_EXECUTION_ERROR
