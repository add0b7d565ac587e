"""Forbidden-files domain: files that must never be committed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repopolicy.config.globs import glob_match, matches_any
from repopolicy.findings import Finding, error
from repopolicy.workspace import iter_files

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import ForbiddenFilesConfig

logger = logging.getLogger(__name__)

DOMAIN = "forbidden-files"


def check_forbidden_files(config: ForbiddenFilesConfig, project_root: Path) -> list[Finding]:
    """Report every file matching a forbidden pattern and no ignore pattern.

    The walk itself excludes nothing: ``config.ignore`` is the only filter, so
    a custom ignore list fully replaces the default one.  Directories never
    match, only the files inside them.
    """
    if not config.enabled or not config.files:
        return []

    findings: list[Finding] = []
    for rel_path in iter_files(project_root, excluded_dirs=None):
        pattern = next((p for p in config.files if glob_match(rel_path, p)), None)
        if pattern is None:
            continue
        if config.ignore and matches_any(rel_path, config.ignore):
            logger.debug("Forbidden-files: %s ignored", rel_path)
            continue

        message = config.message or f"Forbidden file matches pattern '{pattern}'"
        findings.append(error(DOMAIN, "forbidden-files/forbidden", message, rel_path))

    return findings
