#!/usr/bin/env python3
"""Utility functions for azure-mirror-sync."""

import os
from typing import List, Tuple

from config import RemoteConfig, RemoteRole
from models import Remote, Repository
from security import SecurityValidator


def derive_remote_urls(remotes: RemoteConfig, repo_name: str) -> Tuple[str, str]:
    """Return (source_url, dest_url) for a repository.

    Azure DevOps SSH paths take the bare name; GitHub expects a ``.git``
    suffix.
    Example: ('git@ssh.dev.azure.com:v3/org/project', 'git@github.com:org')
    with 'api' -> ('git@ssh.dev.azure.com:v3/org/project/api',
    'git@github.com:org/api.git')
    """
    source_url = f"{remotes.source_base_url.rstrip('/')}/{repo_name}"
    dest_url = f"{remotes.dest_base_url.rstrip('/')}/{repo_name}.git"
    return source_url, dest_url


def build_repository(path: str, remotes: RemoteConfig) -> Repository:
    """Create a repository handle with both remote roles bound from config."""
    path = os.path.abspath(path)
    name = os.path.basename(path.rstrip(os.sep))
    source_url, dest_url = derive_remote_urls(remotes, name)
    return Repository(
        path=path,
        name=name,
        remotes={
            RemoteRole.SOURCE: Remote(
                name=remotes.source_remote, url=source_url, role=RemoteRole.SOURCE
            ),
            RemoteRole.DESTINATION: Remote(
                name=remotes.dest_remote, url=dest_url, role=RemoteRole.DESTINATION
            ),
        },
    )


def load_repository_list(path: str) -> List[str]:
    """Read repository names from a file, one per line; '#' starts a comment."""
    names: List[str] = []
    with open(path, encoding="utf-8") as handle:
        for raw in handle:
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            names.append(SecurityValidator.validate_repo_name(line))
    return names
