"""Hooks domain: husky git hooks must exist and run what the policy requires."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from repopolicy.findings import Finding, error
from repopolicy.workspace import read_text

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import HooksConfig

logger = logging.getLogger(__name__)

DOMAIN = "hooks"
HUSKY_DIR = ".husky"

# Shell idioms that read the current branch name.
BRANCH_DETECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"git\s+rev-parse\s+--abbrev-ref\s+HEAD"),
    re.compile(r"git\s+branch\s+--show-current"),
    re.compile(r"git\s+symbolic-ref"),
)


def detects_branch(script: str) -> bool:
    return any(p.search(script) for p in BRANCH_DETECTION_PATTERNS)


def mentions_branch(script: str, branch: str) -> bool:
    """True if *branch* appears as a whole word (``main`` does not match ``maintain``)."""
    return re.search(rf"(?<![\w/-]){re.escape(branch)}(?![\w/-])", script) is not None


def _check_protected_branches(
    config: HooksConfig, script: str, rel_path: str
) -> list[Finding]:
    if not detects_branch(script):
        return [
            error(
                DOMAIN,
                "hooks/branch-detection",
                "pre-push hook has no branch detection (expected 'git rev-parse --abbrev-ref "
                "HEAD', 'git branch --show-current' or 'git symbolic-ref')",
                rel_path,
            )
        ]
    return [
        error(
            DOMAIN,
            "hooks/protected-branch",
            f"pre-push hook does not check protected branch '{branch}'",
            rel_path,
        )
        for branch in config.protected_branches
        if not mentions_branch(script, branch)
    ]


def check_hooks(config: HooksConfig, project_root: Path) -> list[Finding]:
    """Validate ``.husky/`` hooks against ``process.hooks``."""
    if not config.enabled:
        return []

    if config.require_husky and not (project_root / HUSKY_DIR).is_dir():
        return [
            error(
                DOMAIN,
                "hooks/husky-missing",
                f"Husky directory {HUSKY_DIR}/ not found (require_husky = true)",
                HUSKY_DIR,
            )
        ]

    configured: dict[str, tuple[str, ...]] = dict(config.commands)
    required = dict(configured)
    if config.protected_branches:
        required.setdefault("pre-push", ())

    findings: list[Finding] = []
    for hook, commands in required.items():
        rel_path = f"{HUSKY_DIR}/{hook}"
        if not (project_root / rel_path).is_file():
            reason = "hooks.commands" if hook in configured else "protected_branches"
            findings.append(
                error(
                    DOMAIN,
                    "hooks/missing-hook",
                    f"Hook '{hook}' not found in {HUSKY_DIR}/ (required by {reason})",
                    rel_path,
                )
            )
            continue

        script = read_text(project_root, rel_path, DOMAIN)
        logger.debug("Hooks: checking %s for %d command(s)", rel_path, len(commands))
        for command in commands:
            if command not in script:
                findings.append(
                    error(
                        DOMAIN,
                        "hooks/missing-command",
                        f"Hook '{hook}' does not contain required command '{command}'",
                        rel_path,
                    )
                )

        if hook == "pre-push" and config.protected_branches:
            findings.extend(_check_protected_branches(config, script, rel_path))

    return findings
