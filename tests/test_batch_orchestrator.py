"""Tests for BatchOrchestrator isolation and reporting."""

from __future__ import annotations

import os
import subprocess
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from batch_orchestrator import BatchOrchestrator, log_report
from conftest import GIT_ENV, bare_head, git, make_mirror, requires_git
from config import (BatchConfig, Config, GitOperationConfig, Operation,
                    RemoteConfig, RemoteRole)
from errors import MirrorError, RemoteMissing, RepositoryNotFound
from models import Remote, RepositoryReport, SyncOutcome, VerifyStatus

pytestmark = requires_git


def _make_config(root: Path, repositories, **batch_kwargs) -> Config:
    return Config(
        remotes=RemoteConfig(
            source_base_url=str(root / "sources"),
            dest_base_url=str(root / "dests"),
        ),
        git=GitOperationConfig(timeout_s=60),
        batch=BatchConfig(
            repo_base_dir=str(root / "repos"),
            repositories=list(repositories),
            **batch_kwargs,
        ),
    )


def test_missing_repository_does_not_stop_batch(tmp_path) -> None:
    r1 = make_mirror(tmp_path, "r1")
    r3 = make_mirror(tmp_path, "r3")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1", "r2", "r3"]))

    report = orchestrator.run_batch(orchestrator.repositories(), Operation.FULL_SYNC)

    assert [entry.repository.name for entry in report.repositories] == ["r1", "r2", "r3"]
    first, missing, third = report.repositories
    assert isinstance(missing.fatal_error, RepositoryNotFound)
    assert first.succeeded and third.succeeded
    for entry, fixture in ((first, r1), (third, r3)):
        assert [r.outcome for r in entry.sync_results] == [SyncOutcome.PUSHED] * 2
        assert {r.status for r in entry.verify_results} == {VerifyStatus.MATCH}
        assert bare_head(fixture.dest, "main") == bare_head(fixture.source, "main")
    assert (report.succeeded, report.failed) == (2, 1)
    assert report.exit_code == 1


def test_parallel_batch_keeps_input_order(tmp_path) -> None:
    for name in ("a", "b", "c"):
        make_mirror(tmp_path, name)
    orchestrator = BatchOrchestrator(
        _make_config(tmp_path, ["c", "a", "b"], max_workers=3)
    )

    report = orchestrator.run_batch(orchestrator.repositories(), Operation.FULL_SYNC)

    assert [entry.repository.name for entry in report.repositories] == ["c", "a", "b"]
    assert report.exit_code == 0
    assert report.pushed == 6
    assert report.matched == 6


def test_operations_require_configured_remotes(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))

    report = orchestrator.run_batch(orchestrator.repositories(), Operation.SYNC_ALL)

    assert isinstance(report.repositories[0].fatal_error, RemoteMissing)
    assert report.exit_code == 1


def test_verify_before_sync_reports_missing_branches(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))
    repositories = orchestrator.repositories()

    setup = orchestrator.run_batch(repositories, Operation.SETUP)
    assert setup.exit_code == 0

    report = orchestrator.run_batch(repositories, Operation.VERIFY_COMMITS)
    entry = report.repositories[0]
    assert entry.fatal_error is None
    assert report.missing == 2
    assert not entry.succeeded
    assert report.exit_code == 1


def test_sync_branch_pushes_only_the_named_branch(tmp_path) -> None:
    fixture = make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))
    repositories = orchestrator.repositories()
    orchestrator.run_batch(repositories, Operation.SETUP)

    report = orchestrator.run_batch(
        repositories, Operation.SYNC_BRANCH, "feature/login"
    )

    assert [(r.branch, r.outcome) for r in report.repositories[0].sync_results] == [
        ("feature/login", SyncOutcome.PUSHED)
    ]
    assert bare_head(fixture.dest, "feature/login") == bare_head(
        fixture.source, "feature/login"
    )
    assert git(fixture.dest, "for-each-ref", "--format=%(refname)") == (
        "refs/heads/feature/login"
    )


def test_sync_branch_without_branch_is_rejected(tmp_path) -> None:
    fixture = make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))
    repositories = orchestrator.repositories()
    orchestrator.run_batch(repositories, Operation.SETUP)

    with pytest.raises(ValueError):
        orchestrator.run_batch(repositories, Operation.SYNC_BRANCH)

    assert git(fixture.dest, "for-each-ref") == ""


def test_list_branches_records_names(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))
    repositories = orchestrator.repositories()
    orchestrator.run_batch(repositories, Operation.SETUP)

    report = orchestrator.run_batch(repositories, Operation.LIST_BRANCHES)

    assert report.repositories[0].branches == ("feature/login", "main")


def test_cancel_stops_before_next_repository(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    make_mirror(tmp_path, "r2")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1", "r2"]))
    original = orchestrator.run_repository

    def run_then_cancel(*args, **kwargs):
        result = original(*args, **kwargs)
        orchestrator.cancel()
        return result

    with patch.object(orchestrator, "run_repository", side_effect=run_then_cancel):
        report = orchestrator.run_batch(orchestrator.repositories(), Operation.SETUP)

    first, second = report.repositories
    assert first.succeeded
    assert second.cancelled
    assert report.cancelled == 1
    assert report.exit_code == 1


def test_log_report_prints_aggregate_counts(tmp_path, capsys) -> None:
    make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1", "gone"]))

    log_report(orchestrator.run_batch(orchestrator.repositories(), Operation.FULL_SYNC))

    out = capsys.readouterr().out
    assert "repositories: 1 succeeded, 1 failed, 0 cancelled" in out
    assert "branches pushed: 2, skipped: 0, failed: 0" in out
    assert "branches matched: 2, mismatched: 0, missing: 0" in out


def test_undecodable_branch_name_does_not_abort_batch(tmp_path, capsys) -> None:
    """A Latin-1 ref name in one repository must not stop the others."""
    r1 = make_mirror(tmp_path, "r1")
    make_mirror(tmp_path, "r2")
    env = os.environ.copy()
    env.update(GIT_ENV)
    subprocess.run(
        [b"git", b"update-ref", b"refs/heads/caf\xe9",
         bare_head(r1.source, "main").encode()],
        cwd=str(r1.source),
        check=True,
        env=env,
    )
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1", "r2"]))

    report = orchestrator.run_batch(orchestrator.repositories(), Operation.FULL_SYNC)

    first, second = report.repositories
    assert first.fatal_error is None
    assert [r.branch for r in first.sync_results] == [
        "caf\udce9", "feature/login", "main"
    ]
    assert first.succeeded and second.succeeded
    assert report.pushed == 5
    assert report.matched == 5
    assert bare_head(r1.dest, "main") == bare_head(r1.source, "main")
    assert "branch caf\\udce9 synced to github" in capsys.readouterr().out


def test_unexpected_error_is_recorded_for_that_repository(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    make_mirror(tmp_path, "r2")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1", "r2"]))
    original = orchestrator._dispatch

    def dispatch(repo, *args):
        if repo.name == "r1":
            raise RuntimeError("decoder exploded")
        return original(repo, *args)

    with patch.object(orchestrator, "_dispatch", side_effect=dispatch):
        report = orchestrator.run_batch(orchestrator.repositories(), Operation.SETUP)

    first, second = report.repositories
    assert isinstance(first.fatal_error, MirrorError)
    assert "decoder exploded" in str(first.fatal_error)
    assert second.succeeded
    assert (report.succeeded, report.failed) == (1, 1)


def test_interrupt_cancels_queued_repositories(tmp_path) -> None:
    names = ["r1", "r2", "r3", "r4"]
    orchestrator = BatchOrchestrator(_make_config(tmp_path, names, max_workers=2))
    started = []
    lock = threading.Lock()
    both_started = threading.Event()

    def run_repository(repo, operation, branch=None):
        with lock:
            started.append(repo.name)
            if len(started) == 2:
                both_started.set()
        # Stay busy until the interrupt is handled
        orchestrator.cancel_event.wait(5)
        return RepositoryReport(repository=repo.snapshot(), operation=operation)

    real_result = orchestrator._result
    seen = []

    def result(future):
        seen.append(future)
        if len(seen) == 1:
            both_started.wait(5)
            raise KeyboardInterrupt
        return real_result(future)

    with patch.object(orchestrator, "run_repository", side_effect=run_repository), \
            patch.object(orchestrator, "_result", side_effect=result):
        report = orchestrator.run_batch(orchestrator.repositories(), Operation.SETUP)

    assert [entry.repository.name for entry in report.repositories] == names
    assert [entry.cancelled for entry in report.repositories] == [
        False, False, True, True
    ]
    assert sorted(started) == ["r1", "r2"]
    assert report.cancelled == 2
    assert report.exit_code == 1


def test_report_keeps_remotes_as_they_were(tmp_path) -> None:
    make_mirror(tmp_path, "r1")
    orchestrator = BatchOrchestrator(_make_config(tmp_path, ["r1"]))
    repositories = orchestrator.repositories()

    report = orchestrator.run_batch(repositories, Operation.SETUP)
    repositories[0].remotes[RemoteRole.DESTINATION] = Remote(
        "elsewhere", "git@example.com:other.git", RemoteRole.DESTINATION
    )

    recorded = report.repositories[0].repository
    assert recorded is not repositories[0]
    assert recorded.remote(RemoteRole.DESTINATION).name == "github"
    with pytest.raises(TypeError):
        recorded.remotes[RemoteRole.SOURCE] = recorded.remote(RemoteRole.DESTINATION)
