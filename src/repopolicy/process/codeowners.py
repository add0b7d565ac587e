"""Codeowners domain: the CODEOWNERS file must mirror the configured rules exactly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from repopolicy.findings import Finding, error
from repopolicy.workspace import read_lines

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import CodeownersConfig

logger = logging.getLogger(__name__)

DOMAIN = "codeowners"

# GitHub's lookup order.
CODEOWNERS_LOCATIONS: tuple[str, ...] = (".github/CODEOWNERS", "CODEOWNERS", "docs/CODEOWNERS")


@dataclass(frozen=True)
class CodeownersEntry:
    pattern: str
    owners: tuple[str, ...]
    line: int


def find_codeowners(project_root: Path) -> str | None:
    """Return the relative path of the CODEOWNERS file GitHub would use."""
    for rel_path in CODEOWNERS_LOCATIONS:
        if (project_root / rel_path).is_file():
            return rel_path
    return None


def parse_codeowners(lines: list[str]) -> tuple[list[CodeownersEntry], list[tuple[int, str]]]:
    """Split CODEOWNERS lines into entries and malformed ``(line, pattern)`` pairs.

    Blank lines, full-line comments and `` #`` trailing comments are ignored.
    """
    entries: list[CodeownersEntry] = []
    malformed: list[tuple[int, str]] = []
    for lineno, raw in enumerate(lines, start=1):
        text = raw.split(" #", 1)[0].strip()
        if not text or text.startswith("#"):
            continue
        pattern, *owners = text.split()
        if not owners:
            malformed.append((lineno, pattern))
            continue
        entries.append(CodeownersEntry(pattern, tuple(owners), lineno))
    return entries, malformed


def check_codeowners(config: CodeownersConfig, project_root: Path) -> list[Finding]:
    """Compare the CODEOWNERS file with ``process.codeowners.rules``.

    With no rules configured every rule in the file is unexpected.
    """
    if not config.enabled:
        return []

    rel_path = find_codeowners(project_root)
    if rel_path is None:
        locations = ", ".join(CODEOWNERS_LOCATIONS)
        return [
            error(
                DOMAIN,
                "codeowners/missing-file",
                f"CODEOWNERS file not found (looked in {locations})",
            )
        ]

    lines = read_lines(project_root, rel_path, DOMAIN)
    entries, malformed = parse_codeowners(lines)
    logger.debug("Codeowners: %d rule(s) in %s", len(entries), rel_path)

    findings: list[Finding] = [
        error(
            DOMAIN,
            "codeowners/malformed",
            f"Malformed CODEOWNERS line: pattern '{pattern}' has no owner",
            rel_path,
            lineno,
        )
        for lineno, pattern in malformed
    ]

    # A later line for the same pattern overrides earlier ones.
    by_pattern: dict[str, CodeownersEntry] = {e.pattern: e for e in entries}
    configured = {rule.pattern for rule in config.rules}

    for rule in config.rules:
        entry = by_pattern.get(rule.pattern)
        if entry is None:
            findings.append(
                error(
                    DOMAIN,
                    "codeowners/missing-rule",
                    f"Missing required rule '{rule.pattern} {' '.join(rule.owners)}' "
                    f"configured in check.toml",
                    rel_path,
                )
            )
        elif entry.owners != rule.owners:
            findings.append(
                error(
                    DOMAIN,
                    "codeowners/owner-mismatch",
                    f"Owner mismatch for '{rule.pattern}': expected "
                    f"{' '.join(rule.owners)}, found {' '.join(entry.owners)}",
                    rel_path,
                    entry.line,
                )
            )

    for entry in entries:
        if entry.pattern not in configured:
            findings.append(
                error(
                    DOMAIN,
                    "codeowners/unexpected-rule",
                    f"Unexpected rule '{entry.pattern}' is not in config",
                    rel_path,
                    entry.line,
                )
            )

    return findings
