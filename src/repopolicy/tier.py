"""Tier validation: the repository tier must match the rulesets it extends.

The tier comes from ``repo-metadata.yaml`` at the project root.  A ruleset
matches tier ``t`` when its name ends in ``-t`` (``typescript-internal``
serves ``internal``).  Ruleset contents are never fetched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

from repopolicy.workspace import read_text

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import PolicyConfig

logger = logging.getLogger(__name__)

DOMAIN = "tier"
METADATA_FILENAME = "repo-metadata.yaml"
VALID_TIERS: tuple[str, ...] = ("production", "internal", "prototype")
DEFAULT_TIER = "internal"

SOURCE_METADATA = METADATA_FILENAME
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class RepoTier:
    tier: str
    source: str  # SOURCE_METADATA | SOURCE_DEFAULT
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class TierResult:
    """Outcome of ``validate tier``."""

    valid: bool
    tier: str
    source: str
    rulesets: tuple[str, ...] = ()
    matched: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.valid,
            "tier": self.tier,
            "source": self.source,
            "rulesets": list(self.rulesets),
            "matched": list(self.matched),
            "warnings": list(self.warnings),
            "error": self.error,
        }


def _default(reason: str) -> RepoTier:
    return RepoTier(
        DEFAULT_TIER, SOURCE_DEFAULT, (f"{reason}, using default tier '{DEFAULT_TIER}'",)
    )


def read_repo_tier(project_root: Path) -> RepoTier:
    """Read the tier from ``repo-metadata.yaml``, falling back to the default tier.

    Every fallback carries a warning naming why the default was used.  A
    metadata file that exists but cannot be read raises ``ToolRuntimeError``.
    """
    if not (project_root / METADATA_FILENAME).is_file():
        return _default(f"{METADATA_FILENAME} not found")

    text = read_text(project_root, METADATA_FILENAME, DOMAIN)
    if not text.strip():
        return _default(f"{METADATA_FILENAME} is empty")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        problem = str(exc).splitlines()[0]
        return _default(f"Could not parse {METADATA_FILENAME} (YAML parse error: {problem})")

    value = data.get("tier") if isinstance(data, dict) else None
    if value is None:
        return _default(f"tier not specified in {METADATA_FILENAME}")
    if value not in VALID_TIERS:
        return _default(
            f"Invalid tier '{value}' in {METADATA_FILENAME} "
            f"(must be one of {', '.join(VALID_TIERS)})"
        )
    return RepoTier(str(value), SOURCE_METADATA)


def validate_tier(policy: PolicyConfig, project_root: Path) -> TierResult:
    """Check that at least one extended ruleset serves the repository tier.

    A policy without ``[extends]`` places no constraint on the tier.
    """
    repo_tier = read_repo_tier(project_root)
    for message in repo_tier.warnings:
        logger.debug("Tier: %s", message)

    if policy.extends is None:
        return TierResult(True, repo_tier.tier, repo_tier.source, warnings=repo_tier.warnings)

    rulesets = policy.extends.rulesets
    if not rulesets:
        warnings = (*repo_tier.warnings, "extends.rulesets is empty, no tier constraint applies")
        return TierResult(True, repo_tier.tier, repo_tier.source, warnings=warnings)

    suffix = f"-{repo_tier.tier}"
    matched = tuple(r for r in rulesets if r.endswith(suffix))
    problem = None
    if not matched:
        problem = (
            f"No ruleset matches tier '{repo_tier.tier}' (expected a ruleset ending in "
            f"'{suffix}', got: {', '.join(rulesets)})"
        )
    return TierResult(
        valid=bool(matched),
        tier=repo_tier.tier,
        source=repo_tier.source,
        rulesets=rulesets,
        matched=matched,
        warnings=repo_tier.warnings,
        error=problem,
    )
