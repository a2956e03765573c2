#!/usr/bin/env python3
"""Security validation utilities for azure-mirror-sync."""

import os
import re
from typing import List, Optional


class SecurityValidator:
    """Security validation utilities for input sanitization and validation."""

    # Maximum lengths to prevent buffer overflow attacks
    MAX_REPO_NAME_LENGTH = 100
    MAX_URL_LENGTH = 2048
    MAX_REMOTE_NAME_LENGTH = 100
    MAX_BRANCH_NAME_LENGTH = 255
    MAX_PATH_LENGTH = 500

    # Allowed characters for various inputs
    SAFE_REPO_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    SAFE_REMOTE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    # Characters git itself refuses in ref names (see git-check-ref-format)
    UNSAFE_BRANCH_CHARS = re.compile(r"[\s~^:?*\[\\]")

    @classmethod
    def validate_repo_name(cls, name: str) -> str:
        """Validate a repository name used to derive remote URLs."""
        if not name or not isinstance(name, str):
            raise ValueError("Repository name must be a non-empty string")

        if len(name) > cls.MAX_REPO_NAME_LENGTH:
            raise ValueError(
                f"Repository name exceeds maximum length of {cls.MAX_REPO_NAME_LENGTH}"
            )

        # Check for path traversal attempts
        if ".." in name or "/" in name or "\\" in name:
            raise ValueError("Repository name contains invalid path characters")

        # Check for null bytes and control characters
        if "\x00" in name or any(ord(c) < 32 for c in name):
            raise ValueError(
                "Repository name contains null bytes or control characters"
            )

        if not cls.SAFE_REPO_NAME_PATTERN.match(name):
            raise ValueError("Repository name contains invalid characters")

        return name

    @classmethod
    def validate_url(cls, url: str, allowed_schemes: Optional[List[str]] = None) -> str:
        """Validate a remote base URL."""
        if not url or not isinstance(url, str):
            raise ValueError("URL must be a non-empty string")

        if len(url) > cls.MAX_URL_LENGTH:
            raise ValueError(f"URL exceeds maximum length of {cls.MAX_URL_LENGTH}")

        # Check for null bytes and control characters
        if "\x00" in url or any(ord(c) < 32 for c in url):
            raise ValueError("URL contains null bytes or control characters")

        # scp-like SSH URLs (git@host:path) have no scheme separator
        if "://" in url:
            scheme = url.split("://")[0].lower()
        elif re.match(r"^[A-Za-z0-9._-]+@[A-Za-z0-9.-]+:", url):
            scheme = "ssh"
        else:
            raise ValueError("URL must use http, https, ssh, or scp-like (git@host:) form")

        if allowed_schemes and scheme not in allowed_schemes:
            raise ValueError(
                f"URL scheme '{scheme}' not in allowed schemes: {allowed_schemes}"
            )

        return url.rstrip("/")

    @classmethod
    def validate_remote_name(cls, name: str) -> str:
        """Validate a git remote name."""
        if not name or not isinstance(name, str):
            raise ValueError("Remote name must be a non-empty string")

        if len(name) > cls.MAX_REMOTE_NAME_LENGTH:
            raise ValueError(
                f"Remote name exceeds maximum length of {cls.MAX_REMOTE_NAME_LENGTH}"
            )

        if name.startswith("-"):
            raise ValueError("Remote name must not start with '-'")

        if not cls.SAFE_REMOTE_NAME_PATTERN.match(name):
            raise ValueError("Remote name contains invalid characters")

        return name

    @classmethod
    def validate_branch_name(cls, name: str) -> str:
        """Validate a branch name before it is placed in a refspec."""
        if not name or not isinstance(name, str):
            raise ValueError("Branch name must be a non-empty string")

        if len(name) > cls.MAX_BRANCH_NAME_LENGTH:
            raise ValueError(
                f"Branch name exceeds maximum length of {cls.MAX_BRANCH_NAME_LENGTH}"
            )

        if "\x00" in name or any(ord(c) < 32 or ord(c) == 127 for c in name):
            raise ValueError("Branch name contains null bytes or control characters")

        # A leading dash would be parsed as a git option
        if name.startswith("-"):
            raise ValueError("Branch name must not start with '-'")

        if (
            ".." in name
            or "@{" in name
            or name.startswith("/")
            or name.endswith(("/", ".", ".lock"))
            or "//" in name
            or cls.UNSAFE_BRANCH_CHARS.search(name)
        ):
            raise ValueError(f"Branch name is not a valid git ref name: {name}")

        return name

    @classmethod
    def validate_file_path(cls, path: str) -> str:
        """Validate file path for security."""
        if not path or not isinstance(path, str):
            raise ValueError("File path must be a non-empty string")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise ValueError(
                f"File path exceeds maximum length of {cls.MAX_PATH_LENGTH}"
            )

        # Check for null bytes
        if "\x00" in path:
            raise ValueError("File path contains null bytes")

        return os.path.normpath(os.path.expanduser(path))

    @classmethod
    def sanitize_for_logging(cls, message: str) -> str:
        """Sanitize message for safe logging by removing potential credentials."""
        if not message:
            return message

        # Patterns to redact
        patterns = [
            (r"https?://[^:/@\s]+:[^@\s]+@", "https://[REDACTED]@"),  # URLs with user:secret
            (r"https?://[^/@\s]{20,}@", "https://[REDACTED]@"),  # URLs with a bare PAT
            (r"token[=:\s]+[^\s]+", "token=[REDACTED]"),  # Token assignments
            (r"password[=:\s]+[^\s]+", "password=[REDACTED]"),  # Password assignments
            (r"authorization:\s*(basic|bearer)\s+[^\s]+", "authorization: [REDACTED]"),
            (r"ghp_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub tokens
            (r"gho_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub OAuth tokens
            (r"ghu_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub user tokens
            (r"ghs_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub server tokens
            (r"github_pat_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # Fine-grained tokens
        ]

        sanitized = message
        for pattern, replacement in patterns:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

        return sanitized
