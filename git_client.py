#!/usr/bin/env python3
"""Thin wrapper around the git command line.

This is the only module that spawns git. Every call runs with ``cwd`` set
to the repository handle's path, so concurrent callers never share a
working directory.
"""

from __future__ import annotations

import os
import subprocess
from typing import Dict, List, Optional, Sequence, Tuple

from errors import FetchError, GitCommandError, HashResolutionError, PushError
from logging_utils import Logger
from models import Repository
from security import SecurityValidator


class GitClient:
    """Runs git subprocesses against a repository handle."""

    def __init__(
        self, timeout_s: Optional[float] = 300.0, git_executable: str = "git"
    ) -> None:
        self.timeout_s = timeout_s
        self.git_executable = git_executable

    def _env(self) -> Dict[str, str]:
        env = os.environ.copy()
        # Never block on an interactive credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"
        return env

    def _run(
        self,
        repo: Repository,
        args: Sequence[str],
        *,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        """Run git and return the completed process without checking its status."""
        cmd = [self.git_executable, *args]
        Logger.debug(f"[{repo.name}] git {' '.join(args)}")
        return subprocess.run(
            cmd,
            cwd=repo.path,
            capture_output=True,
            # Ref names and stderr are bytes; undecodable ones must not raise
            encoding="utf-8",
            errors="surrogateescape",
            timeout=timeout,
            env=self._env(),
        )

    def _check(
        self, repo: Repository, args: Sequence[str]
    ) -> subprocess.CompletedProcess:
        """Run a local (non-network) git command and raise on failure."""
        try:
            result = self._run(repo, args, timeout=self.timeout_s)
        except subprocess.TimeoutExpired:
            raise GitCommandError(f"git {' '.join(args)}", None, "timed out")
        except OSError as e:
            raise GitCommandError(f"git {' '.join(args)}", None, str(e))
        if result.returncode != 0:
            raise GitCommandError(
                f"git {' '.join(args)}",
                result.returncode,
                self._error_detail(result),
            )
        return result

    @staticmethod
    def _error_detail(result: subprocess.CompletedProcess) -> str:
        detail = (result.stderr or result.stdout or "").strip()
        return SecurityValidator.sanitize_for_logging(detail) or "no output"

    # Remote metadata

    def list_remotes(self, repo: Repository) -> List[str]:
        result = self._check(repo, ["remote"])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_remote_url(self, repo: Repository, name: str) -> str:
        result = self._check(repo, ["remote", "get-url", name])
        return result.stdout.strip()

    def add_remote(self, repo: Repository, name: str, url: str) -> None:
        self._check(repo, ["remote", "add", name, url])

    def remove_remote(self, repo: Repository, name: str) -> None:
        self._check(repo, ["remote", "remove", name])

    def set_remote_url(self, repo: Repository, name: str, url: str) -> None:
        self._check(repo, ["remote", "set-url", name, url])

    # Transport

    def fetch(self, repo: Repository, remote: str, prune: bool = True) -> None:
        """Fetch all branches of ``remote``; raises FetchError with git's message."""
        args = ["fetch", remote]
        if prune:
            args.append("--prune")
        try:
            result = self._run(repo, args, timeout=self.timeout_s)
        except subprocess.TimeoutExpired:
            Logger.security_event(
                "GIT_FETCH_TIMEOUT", f"git fetch timeout for {repo.name} ({remote})"
            )
            raise FetchError(remote, f"timed out after {self.timeout_s}s")
        except OSError as e:
            raise FetchError(remote, str(e))
        if result.returncode != 0:
            Logger.security_event(
                "GIT_FETCH_FAILED", f"git fetch failed for {repo.name} ({remote})"
            )
            raise FetchError(remote, self._error_detail(result))

    def push(
        self,
        repo: Repository,
        remote: str,
        src_ref: str,
        dst_ref: str,
        force: bool = True,
    ) -> None:
        refspec = f"{src_ref}:{dst_ref}"
        args = ["push"]
        if force:
            args.append("--force")
        args.extend([remote, refspec])
        try:
            result = self._run(repo, args, timeout=self.timeout_s)
        except subprocess.TimeoutExpired:
            Logger.security_event(
                "GIT_PUSH_TIMEOUT", f"git push timeout for {repo.name} ({refspec})"
            )
            raise PushError(remote, refspec, f"timed out after {self.timeout_s}s")
        except OSError as e:
            raise PushError(remote, refspec, str(e))
        if result.returncode != 0:
            Logger.security_event(
                "GIT_PUSH_FAILED", f"git push failed for {repo.name} ({refspec})"
            )
            raise PushError(remote, refspec, self._error_detail(result))

    # Refs

    def list_tracking_branches(self, repo: Repository, remote: str) -> List[str]:
        """Return branch names under refs/remotes/<remote>, skipping symbolic refs."""
        result = self._check(
            repo,
            [
                "for-each-ref",
                "--sort=refname",
                "--format=%(refname:lstrip=3)%09%(symref)",
                f"refs/remotes/{remote}",
            ],
        )
        branches: List[str] = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            name, _, symref = line.partition("\t")
            if symref.strip():
                Logger.debug(f"[{repo.name}] skipping symbolic ref {remote}/{name}")
                continue
            branches.append(name)
        return branches

    def resolve_commit(self, repo: Repository, ref: str) -> Optional[str]:
        """Return the commit hash ``ref`` points at, or None if it does not exist."""
        try:
            result = self._run(
                repo,
                ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired:
            raise HashResolutionError(ref, "timed out")
        except OSError as e:
            raise HashResolutionError(ref, str(e))
        if result.returncode == 0:
            return result.stdout.strip()
        detail = (result.stderr or "").strip()
        # --quiet: a missing ref exits 1 without printing anything
        if result.returncode == 1 and not detail:
            return None
        raise HashResolutionError(ref, self._error_detail(result))

    def remote_pairs(self, repo: Repository) -> List[Tuple[str, str]]:
        """(name, url) for every configured remote."""
        return [(name, self.get_remote_url(repo, name)) for name in self.list_remotes(repo)]
