#!/usr/bin/env python3
"""Error types raised by the mirroring engine."""

from __future__ import annotations

from typing import Optional

from config import RemoteRole


class MirrorError(Exception):
    """Base class for every error the mirroring engine reports."""

    kind = "MirrorError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class GitCommandError(MirrorError):
    """A git invocation failed in a way no more specific error covers."""

    kind = "GitCommandError"

    def __init__(self, command: str, returncode: Optional[int], detail: str) -> None:
        super().__init__(f"'{command}' exited with {returncode}: {detail}")
        self.command = command
        self.returncode = returncode
        self.detail = detail


class RemoteMissing(MirrorError):
    kind = "RemoteMissing"

    def __init__(self, role: RemoteRole, name: Optional[str] = None) -> None:
        if name:
            message = f"{role.value} remote '{name}' is not configured"
        else:
            message = f"no {role.value} remote is registered"
        super().__init__(message)
        self.role = role
        self.name = name


class FetchError(MirrorError):
    """Fetching from a remote failed (auth, unreachable host, missing repo, timeout)."""

    kind = "FetchError"

    def __init__(self, remote: str, detail: str) -> None:
        super().__init__(f"fetch from '{remote}' failed: {detail}")
        self.remote = remote
        self.detail = detail


class BranchNotFound(MirrorError):
    kind = "BranchNotFound"

    def __init__(self, branch: str, remote: str) -> None:
        super().__init__(f"branch '{branch}' does not exist in '{remote}'")
        self.branch = branch
        self.remote = remote


class NoBranchesFound(MirrorError):
    kind = "NoBranchesFound"

    def __init__(self, remote: str) -> None:
        super().__init__(f"no branches found in '{remote}'")
        self.remote = remote


class PushError(MirrorError):
    kind = "PushError"

    def __init__(self, remote: str, refspec: str, detail: str) -> None:
        super().__init__(f"push of '{refspec}' to '{remote}' failed: {detail}")
        self.remote = remote
        self.refspec = refspec
        self.detail = detail


class RepositoryNotFound(MirrorError):
    kind = "RepositoryNotFound"

    def __init__(self, path: str) -> None:
        super().__init__(f"repository directory not found: {path}")
        self.path = path


class HashResolutionError(MirrorError):
    kind = "HashResolutionError"

    def __init__(self, ref: str, detail: str) -> None:
        super().__init__(f"could not resolve '{ref}': {detail}")
        self.ref = ref
        self.detail = detail
