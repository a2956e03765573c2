"""Shared fixtures: throwaway bare repositories standing in for both hosts."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from config import RemoteRole
from git_client import GitClient
from models import Remote, Repository

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Mirror Test",
    "GIT_AUTHOR_EMAIL": "mirror@example.com",
    "GIT_COMMITTER_NAME": "Mirror Test",
    "GIT_COMMITTER_EMAIL": "mirror@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
    "GIT_CONFIG_GLOBAL": os.devnull,
}

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def git(cwd: Path, *args: str) -> str:
    env = os.environ.copy()
    env.update(GIT_ENV)
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
        env=env,
    )
    return result.stdout.strip()


def commit(work: Path, message: str) -> str:
    with (work / "history.txt").open("a", encoding="utf-8") as handle:
        handle.write(message + "\n")
    git(work, "add", "history.txt")
    git(work, "commit", "-q", "-m", message)
    return git(work, "rev-parse", "HEAD")


def bare_head(bare: Path, branch: str) -> str:
    return git(bare, "rev-parse", f"refs/heads/{branch}")


@dataclass
class MirrorFixture:
    """A seed work tree, a source and a destination bare repo, and a checkout."""
    seed: Path
    source: Path
    dest: Path
    repo: Repository

    def push_dest(self, branch: str) -> None:
        git(self.seed, "push", "-q", "--force", str(self.dest), f"HEAD:refs/heads/{branch}")


def make_mirror(root: Path, name: str = "checkout") -> MirrorFixture:
    """Lay out ``root`` the way a batch run expects it.

    sources/<name> and dests/<name>.git are bare repositories, repos/<name>
    is the checkout being mirrored and seeds/<name> produces commits.
    """
    source = root / "sources" / name
    dest = root / "dests" / f"{name}.git"
    seed = root / "seeds" / name
    checkout = root / "repos" / name
    for bare in (source, dest):
        bare.mkdir(parents=True)
        git(bare, "init", "-q", "--bare")
    for work in (seed, checkout):
        work.mkdir(parents=True)
        git(work, "init", "-q")
    git(seed, "symbolic-ref", "HEAD", "refs/heads/main")

    commit(seed, "initial")
    git(seed, "push", "-q", str(source), "HEAD:refs/heads/main")
    git(seed, "checkout", "-q", "-b", "feature/login")
    commit(seed, "login form")
    git(seed, "push", "-q", str(source), "HEAD:refs/heads/feature/login")
    git(seed, "checkout", "-q", "main")

    repo = Repository(
        path=str(checkout),
        name=name,
        remotes={
            RemoteRole.SOURCE: Remote("azure", str(source), RemoteRole.SOURCE),
            RemoteRole.DESTINATION: Remote("github", str(dest), RemoteRole.DESTINATION),
        },
    )
    return MirrorFixture(seed=seed, source=source, dest=dest, repo=repo)


@pytest.fixture
def git_client() -> GitClient:
    return GitClient(timeout_s=60)


@pytest.fixture
def mirror(tmp_path: Path) -> MirrorFixture:
    return make_mirror(tmp_path)
