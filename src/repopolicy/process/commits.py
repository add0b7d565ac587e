"""Commits domain: conventional commit format and ticket references.

Only the first non-comment line of a message (the header) is checked for
format and length.  Merge, revert and autosquash commits are skipped.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from repopolicy.findings import Finding, error
from repopolicy.workspace import git_output

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import CommitsConfig, TicketsConfig

logger = logging.getLogger(__name__)

DOMAIN = "commits"
TICKETS_DOMAIN = "tickets"

_SKIPPED_COMMIT_RE = re.compile(r"^(?:Merge\b|Revert\b|fixup!|squash!|amend!)")
_CONVENTIONAL_RE = re.compile(
    r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^()\r\n]*)\))?(?P<breaking>!)?: (?P<subject>\S.*)$"
)


# ---------------------------------------------------------------------------
# Message parsing
# ---------------------------------------------------------------------------


def commit_header(message: str) -> str:
    """Return the first line git would keep: comment and blank lines are dropped."""
    for line in message.splitlines():
        if line.startswith("#") or not line.strip():
            continue
        return line.rstrip()
    return ""


def is_skipped_commit(header: str) -> bool:
    """Merge, revert, fixup!, squash! and amend! commits are never validated."""
    return _SKIPPED_COMMIT_RE.match(header) is not None


def _check_format(config: CommitsConfig, header: str) -> list[Finding]:
    if config.pattern is not None:
        if re.search(config.pattern, header) is None:
            return [
                error(
                    DOMAIN,
                    "commits/format",
                    f"Commit message '{header}' does not match pattern '{config.pattern}'",
                )
            ]
        return []

    if not config.types:
        logger.debug("Commits: no types or pattern configured, format not checked")
        return []

    match = _CONVENTIONAL_RE.match(header)
    if match is None or match.group("type") not in config.types:
        allowed = ", ".join(config.types)
        return [
            error(
                DOMAIN,
                "commits/format",
                f"Commit message '{header}' does not match conventional format "
                f"'type(scope): subject' (types: {allowed})",
            )
        ]
    if config.require_scope and not match.group("scope"):
        return [
            error(
                DOMAIN,
                "commits/scope",
                f"Commit message '{header}' is missing a scope, "
                f"expected '{match.group('type')}(scope): ...'",
            )
        ]
    return []


def check_commit_message(
    commits: CommitsConfig, tickets: TicketsConfig, message: str
) -> list[Finding]:
    """Validate one commit message against the commits and tickets policies."""
    header = commit_header(message)
    if is_skipped_commit(header):
        logger.debug("Commits: skipping '%s'", header)
        return []

    findings: list[Finding] = []
    if commits.enabled:
        findings.extend(_check_format(commits, header))
        limit = commits.max_subject_length
        if limit is not None and len(header) > limit:
            findings.append(
                error(
                    DOMAIN,
                    "commits/subject-length",
                    f"Commit subject is {len(header)} characters, exceeds maximum length {limit}",
                )
            )

    if tickets.enabled and tickets.require_in_commits and tickets.pattern is not None:
        if re.search(tickets.pattern, message) is None:
            findings.append(
                error(
                    TICKETS_DOMAIN,
                    "tickets/missing",
                    f"Commit message does not reference a ticket matching '{tickets.pattern}'",
                )
            )

    return findings


def check_commit_file(
    commits: CommitsConfig, tickets: TicketsConfig, msg_file: Path
) -> list[Finding]:
    """Validate the commit message stored in *msg_file* (the ``commit-msg`` hook argument)."""
    try:
        message = msg_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return [
            error(
                DOMAIN,
                "commits/unreadable",
                f"Could not read commit message file: {exc}",
                str(msg_file),
            )
        ]
    return check_commit_message(commits, tickets, message)


# ---------------------------------------------------------------------------
# Repository check
# ---------------------------------------------------------------------------


def read_head_commit_message(project_root: Path) -> str | None:
    """Return the message of ``HEAD``, or ``None`` outside a git repository."""
    return git_output(project_root, "log", "-1", "--format=%B")


def check_commits(
    commits: CommitsConfig, tickets: TicketsConfig, project_root: Path
) -> list[Finding]:
    """Validate the most recent commit, skipping when there is none to read."""
    if not commits.enabled and not (tickets.enabled and tickets.require_in_commits):
        return []

    message = read_head_commit_message(project_root)
    if message is None:
        logger.debug("Commits: no git history under %s, skipping", project_root)
        return []
    return check_commit_message(commits, tickets, message)
