#!/usr/bin/env python3
"""Tracks the source and destination remotes of each repository."""

from __future__ import annotations

from typing import List, Tuple

from config import RemoteRole
from errors import RemoteMissing
from git_client import GitClient
from logging_utils import Logger
from models import Remote, Repository


class RemoteRegistry:
    """Creates, replaces and verifies the two mirror remotes.

    Only local git configuration is touched; nothing here talks to the
    network.
    """

    def __init__(self, git: GitClient) -> None:
        self.git = git

    def ensure_remote(
        self, repo: Repository, role: RemoteRole, name: str, url: str
    ) -> Remote:
        """Bind ``role`` to a remote ``name`` pointing at ``url``.

        An existing remote with the same name is removed first, so repeated
        calls with the same arguments leave a single identical remote.
        """
        if name in self.git.list_remotes(repo):
            Logger.debug(f"[{repo.name}] removing existing remote '{name}'")
            self.git.remove_remote(repo, name)
        self.git.add_remote(repo, name, url)

        remote = Remote(name=name, url=url, role=role)
        previous = repo.remotes.get(role)
        if previous is not None and previous.name != name:
            Logger.warn(
                f"[{repo.name}] {role.value} role moved from remote "
                f"'{previous.name}' to '{name}'"
            )
        repo.remotes[role] = remote
        Logger.info(f"[{repo.name}] {role.value} remote '{name}' -> {url}")
        return remote

    def verify_remotes(self, repo: Repository) -> Tuple[Remote, Remote]:
        """Return (source, destination) as configured in git.

        Raises RemoteMissing for the first role that is unbound or whose
        remote is absent from the repository.
        """
        configured = self.git.list_remotes(repo)
        resolved = []
        for role in (RemoteRole.SOURCE, RemoteRole.DESTINATION):
            expected = repo.remotes.get(role)
            if expected is None:
                raise RemoteMissing(role)
            if expected.name not in configured:
                raise RemoteMissing(role, expected.name)
            url = self.git.get_remote_url(repo, expected.name)
            resolved.append(Remote(name=expected.name, url=url, role=role))
        source, destination = resolved
        return source, destination

    def set_origin(self, repo: Repository, url: str) -> None:
        """Point the ``origin`` remote at ``url``, creating it when absent."""
        if "origin" in self.git.list_remotes(repo):
            Logger.info(f"[{repo.name}] updating existing origin remote")
            self.git.set_remote_url(repo, "origin", url)
        else:
            Logger.info(f"[{repo.name}] creating new origin remote")
            self.git.add_remote(repo, "origin", url)

    def describe(self, repo: Repository) -> List[Tuple[str, str]]:
        return self.git.remote_pairs(repo)
