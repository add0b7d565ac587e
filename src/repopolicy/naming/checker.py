"""Naming domain: validate file and folder names against per-extension rules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repopolicy.config.globs import matches_any
from repopolicy.findings import Finding, error
from repopolicy.naming.cases import file_base_name, is_valid_case
from repopolicy.workspace import iter_files

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import NamingConfig, NamingRule

logger = logging.getLogger(__name__)

DOMAIN = "naming"


def _extension(filename: str) -> str | None:
    """Final extension without the dot (``a.test.ts`` -> ``ts``)."""
    if "." not in filename.lstrip("."):
        return None
    return filename.rsplit(".", 1)[1]


def check_path(rel_path: str, rule: NamingRule) -> list[tuple[str, str, str, str]]:
    """Validate one file path against *rule*.

    Returns ``(kind, segment, convention, path)`` tuples for every failing
    segment, folders first from the root down, then the file name.  *path*
    is the folder path for folders and *rel_path* for the file.
    """
    parts = rel_path.split("/")
    folders, filename = parts[:-1], parts[-1]
    failures: list[tuple[str, str, str, str]] = []

    if rule.folder_case is not None:
        for depth, folder in enumerate(folders):
            if not is_valid_case(
                folder, rule.folder_case, allow_dynamic_routes=rule.allow_dynamic_routes
            ):
                folder_path = "/".join(folders[: depth + 1])
                failures.append(("folder", folder, rule.folder_case, folder_path))

    if rule.file_case is not None:
        base = file_base_name(filename)
        if not is_valid_case(base, rule.file_case, allow_dynamic_routes=rule.allow_dynamic_routes):
            failures.append(("file", base, rule.file_case, rel_path))

    return failures


def check_naming(config: NamingConfig, project_root: Path) -> list[Finding]:
    """Walk the repository and report naming violations.

    A misnamed folder is reported once per rule, at its first offending
    path, not once per file inside it.
    """
    if not config.enabled or not config.rules:
        return []

    findings: list[Finding] = []
    reported_folders: set[tuple[str, int]] = set()

    for rel_path in iter_files(project_root):
        ext = _extension(rel_path.rsplit("/", 1)[-1])
        if ext is None:
            continue
        rule = config.rule_for(ext)
        if rule is None:
            continue
        if rule.exclude and matches_any(rel_path, rule.exclude):
            logger.debug("Naming: %s excluded", rel_path)
            continue

        rule_idx = config.rules.index(rule)
        for kind, segment, convention, path in check_path(rel_path, rule):
            if kind == "folder":
                if (path, rule_idx) in reported_folders:
                    continue
                reported_folders.add((path, rule_idx))
                rule_id = "naming/folder-case"
                message = f"Folder '{segment}' should be {convention}"
            else:
                rule_id = "naming/file-case"
                message = f"File '{segment}' should be {convention}"
            findings.append(error(DOMAIN, rule_id, message, path))

    return findings
