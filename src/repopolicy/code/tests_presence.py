"""Tests domain: require a minimum number of test files."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repopolicy.config.globs import glob_match
from repopolicy.findings import Finding, error
from repopolicy.workspace import iter_files

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import TestsConfig

logger = logging.getLogger(__name__)

DOMAIN = "tests"


def count_test_files(project_root: Path, pattern: str) -> int:
    return sum(1 for rel_path in iter_files(project_root) if glob_match(rel_path, pattern))


def check_tests(config: TestsConfig, project_root: Path) -> list[Finding]:
    if not config.enabled:
        return []

    found = count_test_files(project_root, config.pattern)
    logger.debug("Tests: %d file(s) match %s", found, config.pattern)
    if found >= config.min_test_files:
        return []
    return [
        error(
            DOMAIN,
            "tests/min-test-files",
            f"Found {found} test file(s) matching '{config.pattern}', "
            f"expected at least {config.min_test_files} (min_test_files)",
        )
    ]
