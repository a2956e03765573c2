#!/usr/bin/env python3
"""
Azure Mirror Sync - Mirror branches from Azure DevOps repositories to GitHub.

This tool configures an Azure DevOps remote and a GitHub remote in each
local checkout, force-pushes every Azure branch to GitHub and verifies that
the branch tips match afterwards. It is a one-way mirror: GitHub-only
commits on mirrored branches are discarded.
"""

from __future__ import annotations

import sys
from typing import NoReturn, Optional, Sequence

from argument_parser import parse_arguments
from batch_orchestrator import BatchOrchestrator
from logging_utils import Logger

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1
EXIT_INTERRUPTED = 130


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    cfg = parse_arguments(argv)
    Logger.set_verbose(cfg.verbose)
    orchestrator = BatchOrchestrator(cfg)
    try:
        sys.exit(orchestrator.run())
    except KeyboardInterrupt:
        Logger.warn("interrupted")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
