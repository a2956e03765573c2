#!/usr/bin/env python3
"""Logging utilities for azure-mirror-sync."""

import os
import sys
import threading
import time

import colorama

from security import SecurityValidator

# Initialize colorama for cross-platform colored output
colorama.init(autoreset=True)


class Logger:
    """Handles formatted console output with colors and security-aware logging."""

    PROCESS_NAME = "azure-mirror-sync"
    verbose = False

    # Repositories may be processed from worker threads
    _lock = threading.Lock()

    @classmethod
    def set_verbose(cls, verbose: bool) -> None:
        cls.verbose = verbose

    @classmethod
    def debug(cls, *messages: str) -> None:
        if not cls.verbose:
            return
        sanitized_messages = [
            SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages
        ]
        cls._write_stdout(colorama.Fore.LIGHTBLACK_EX, *sanitized_messages)

    @classmethod
    def info(cls, *messages: str) -> None:
        sanitized_messages = [
            SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages
        ]
        cls._write_stdout(colorama.Fore.CYAN, *sanitized_messages)

    @classmethod
    def success(cls, *messages: str) -> None:
        sanitized_messages = [
            SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages
        ]
        cls._write_stdout(colorama.Fore.GREEN, *sanitized_messages)

    @classmethod
    def warn(cls, *messages: str) -> None:
        sanitized_messages = [
            SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages
        ]
        cls._write_stdout(colorama.Fore.YELLOW, *sanitized_messages)

    @classmethod
    def error(cls, *messages: str) -> None:
        sanitized_messages = [
            SecurityValidator.sanitize_for_logging(str(msg)) for msg in messages
        ]
        cls._write_stderr(colorama.Fore.RED, *sanitized_messages)

    @classmethod
    def security_event(cls, event_type: str, details: str) -> None:
        """Log security events with appropriate sanitization."""
        sanitized_details = SecurityValidator.sanitize_for_logging(details)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        cls._write_stderr(
            colorama.Fore.MAGENTA,
            f"[SECURITY:{event_type}] {timestamp}: {sanitized_details}",
        )

    @classmethod
    def _write_stdout(cls, color: str, *messages: str) -> None:
        with cls._lock:
            sys.stdout.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _write_stderr(cls, color: str, *messages: str) -> None:
        with cls._lock:
            sys.stderr.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _get_header(cls) -> str:
        return f"[{cls.PROCESS_NAME}:{os.getpid()}]"

    @classmethod
    def _format_line(cls, color: str, *messages: str) -> str:
        header = cls._get_header()
        message = " ".join(str(m) for m in messages)
        # Undecodable git output arrives as lone surrogates
        message = message.encode("utf-8", "backslashreplace").decode("utf-8")
        return f"{color}{header}{colorama.Style.RESET_ALL} {message}"
