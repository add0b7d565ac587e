"""Changesets domain: release notes in ``.changeset/`` are well formed.

A changeset is a markdown file whose frontmatter maps package names to a
bump type (``"my-package": minor``) and whose body describes the change.
``README.md`` in the directory is documentation, not a changeset.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from repopolicy.config.globs import matches_any
from repopolicy.config.schema import VALID_BUMP_TYPES
from repopolicy.findings import Finding, error
from repopolicy.process.markdown import FrontmatterError, parse_markdown
from repopolicy.workspace import git_output, read_text

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import ChangesetsConfig

logger = logging.getLogger(__name__)

DOMAIN = "changesets"
CHANGESET_DIR = ".changeset"


def is_changeset_file(rel_path: str) -> bool:
    """True for ``.changeset/<name>.md`` other than the directory's README."""
    parent, _, name = rel_path.rpartition("/")
    return parent == CHANGESET_DIR and name.endswith(".md") and name.lower() != "readme.md"


def list_changesets(project_root: Path) -> list[str]:
    directory = project_root / CHANGESET_DIR
    return sorted(
        f"{CHANGESET_DIR}/{p.name}"
        for p in directory.iterdir()
        if p.is_file() and is_changeset_file(f"{CHANGESET_DIR}/{p.name}")
    )


# ---------------------------------------------------------------------------
# One changeset
# ---------------------------------------------------------------------------


def _check_releases(
    config: ChangesetsConfig, releases: dict[object, object], rel_path: str
) -> list[Finding]:
    findings: list[Finding] = []
    if config.validate_format and not releases:
        findings.append(
            error(
                DOMAIN,
                "changesets/invalid-format",
                "Changeset frontmatter has no package entries",
                rel_path,
            )
        )

    for package, bump in releases.items():
        if config.validate_format and (not isinstance(bump, str) or bump not in VALID_BUMP_TYPES):
            findings.append(
                error(
                    DOMAIN,
                    "changesets/invalid-format",
                    f"Invalid bump type '{bump}' for package '{package}' "
                    f"(must be one of {', '.join(sorted(VALID_BUMP_TYPES))})",
                    rel_path,
                )
            )
        elif config.allowed_bump_types and bump not in config.allowed_bump_types:
            findings.append(
                error(
                    DOMAIN,
                    "changesets/bump-type",
                    f"Bump type '{bump}' for package '{package}' is not allowed "
                    f"(allowed_bump_types: {', '.join(config.allowed_bump_types)})",
                    rel_path,
                )
            )
    return findings


def check_changeset(config: ChangesetsConfig, rel_path: str, text: str) -> list[Finding]:
    """Validate one changeset file's frontmatter, bump types and description."""
    findings: list[Finding] = []
    try:
        doc = parse_markdown(text)
    except FrontmatterError as exc:
        if config.validate_format:
            return [
                error(DOMAIN, "changesets/invalid-format", f"Invalid changeset: {exc}", rel_path)
            ]
        releases: dict[object, object] = {}
        description = text.strip()
    else:
        if doc.frontmatter is None and config.validate_format:
            return [
                error(
                    DOMAIN,
                    "changesets/invalid-format",
                    "Changeset has no frontmatter (expected '---' delimiters)",
                    rel_path,
                )
            ]
        releases = dict(doc.frontmatter or {})
        description = doc.body.strip()

    findings.extend(_check_releases(config, releases, rel_path))

    if config.require_description and not description:
        findings.append(
            error(
                DOMAIN, "changesets/missing-description", "Changeset has no description", rel_path
            )
        )
    elif (
        config.min_description_length is not None
        and description
        and len(description) < config.min_description_length
    ):
        findings.append(
            error(
                DOMAIN,
                "changesets/description-length",
                f"Description is {len(description)} characters, minimum is "
                f"{config.min_description_length} (min_description_length)",
                rel_path,
            )
        )
    return findings


# ---------------------------------------------------------------------------
# Repository check
# ---------------------------------------------------------------------------


def changed_files(project_root: Path, base_branch: str) -> list[str] | None:
    """Paths changed on this branch since it left *base_branch*, or ``None`` without git."""
    output = git_output(project_root, "diff", "--name-only", f"{base_branch}...HEAD")
    if output is None:
        return None
    return [line.strip() for line in output.splitlines() if line.strip()]


def _check_required(config: ChangesetsConfig, project_root: Path) -> list[Finding]:
    changed = changed_files(project_root, config.base_branch)
    if changed is None:
        logger.warning(
            "Changesets: cannot diff against '%s', skipping require_for_paths", config.base_branch
        )
        return []

    relevant = [p for p in changed if matches_any(p, config.require_for_paths)]
    if not relevant or any(is_changeset_file(p) for p in changed):
        return []
    shown = ", ".join(relevant[:5])
    if len(relevant) > 5:
        shown += f" and {len(relevant) - 5} more"
    return [
        error(
            DOMAIN,
            "changesets/required",
            f"Changes to {shown} require a changeset (require_for_paths)",
        )
    ]


def check_changesets(config: ChangesetsConfig, project_root: Path) -> list[Finding]:
    """Validate every changeset and, when configured, that this branch adds one."""
    if not config.enabled:
        return []

    if not (project_root / CHANGESET_DIR).is_dir():
        return [
            error(
                DOMAIN,
                "changesets/missing-directory",
                f"Changeset directory {CHANGESET_DIR}/ not found",
                CHANGESET_DIR,
            )
        ]

    findings: list[Finding] = []
    changesets = list_changesets(project_root)
    logger.debug("Changesets: %d file(s) in %s/", len(changesets), CHANGESET_DIR)
    for rel_path in changesets:
        text = read_text(project_root, rel_path, DOMAIN)
        findings.extend(check_changeset(config, rel_path, text))

    if config.require_for_paths:
        findings.extend(_check_required(config, project_root))
    return findings
