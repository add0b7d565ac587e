"""Findings: the single result type every domain checker produces.

The :class:`FindingAggregator` merges findings from all domains, removes
duplicates and computes the run verdict.  Text and JSON output are both
plain serializations of the aggregated list.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
VALID_SEVERITIES: frozenset[str] = frozenset({SEVERITY_ERROR, SEVERITY_WARNING})


class ExitCode(IntEnum):
    """Process exit codes shared by every command."""

    PASS = 0
    VIOLATIONS = 1
    CONFIG_ERROR = 2
    RUNTIME_ERROR = 3


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Location:
    file: str
    line: int | None = None

    def __str__(self) -> str:
        return self.file if self.line is None else f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Finding:
    """One compliance result produced by a single domain checker."""

    domain: str  # "naming" | "ci" | "forbidden-files" | ...
    rule_id: str  # e.g. "ci/not-found"
    severity: str  # "error" | "warning"
    message: str
    location: Location | None = None

    @property
    def key(self) -> tuple[str, str, Location | None, str]:
        """Identity used for de-duplication.

        The message is part of the identity, not only domain, rule and
        location: one rule may report several distinct problems at a single
        location, and each must survive aggregation.
        """
        return (self.domain, self.rule_id, self.location, self.message)

    def to_dict(self) -> dict[str, object]:
        return {
            "domain": self.domain,
            "rule": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "file": self.location.file if self.location is not None else None,
            "line": self.location.line if self.location is not None else None,
        }


def error(
    domain: str, rule_id: str, message: str, file: str | None = None, line: int | None = None
) -> Finding:
    """Shorthand for an error-severity finding."""
    location = Location(file, line) if file is not None else None
    return Finding(domain, rule_id, SEVERITY_ERROR, message, location)


def warning(
    domain: str, rule_id: str, message: str, file: str | None = None, line: int | None = None
) -> Finding:
    """Shorthand for a warning-severity finding."""
    location = Location(file, line) if file is not None else None
    return Finding(domain, rule_id, SEVERITY_WARNING, message, location)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


@dataclass
class FindingAggregator:
    """Collects findings from every enabled domain, preserving arrival order.

    Two findings with the same domain, rule, location and message are one
    finding; a rule that reports distinct messages at the same location
    (for example two missing commands in one workflow) keeps all of them.
    """

    findings: list[Finding] = field(default_factory=list)
    domains_checked: list[str] = field(default_factory=list)
    _seen: set[tuple[str, str, Location | None, str]] = field(default_factory=set, repr=False)

    def add(self, finding: Finding) -> None:
        if finding.key in self._seen:
            return
        self._seen.add(finding.key)
        self.findings.append(finding)

    def extend(self, domain: str, findings: list[Finding]) -> None:
        self.domains_checked.append(domain)
        for finding in findings:
            self.add(finding)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == SEVERITY_ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == SEVERITY_WARNING]

    @property
    def passed(self) -> bool:
        """Warnings never fail a run."""
        return not self.errors

    @property
    def exit_code(self) -> ExitCode:
        return ExitCode.PASS if self.passed else ExitCode.VIOLATIONS


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_text(result: FindingAggregator) -> str:
    """Format findings as human-readable text.

    Example output::

        ✗ [ci] ci/not-found
          .github/workflows/ci.yml → Required command 'npm test' not found

        1 error, 0 warnings (2 domains checked)
    """
    lines: list[str] = []
    for f in result.findings:
        marker = "✗" if f.severity == SEVERITY_ERROR else "⚠"
        lines.append(f"{marker} [{f.domain}] {f.rule_id}")
        if f.location is not None:
            lines.append(f"  {f.location} → {f.message}")
        else:
            lines.append(f"  {f.message}")
        lines.append("")

    domains = len(result.domains_checked)
    if result.findings:
        n_err = len(result.errors)
        n_warn = len(result.warnings)
        lines.append(
            f"{n_err} error{'s' if n_err != 1 else ''}, "
            f"{n_warn} warning{'s' if n_warn != 1 else ''} ({domains} domains checked)"
        )
    else:
        lines.append(f"✓ All checks passed ({domains} domains checked)")
    return "\n".join(lines)


def format_json(result: FindingAggregator) -> str:
    """Format findings as ``{"valid": ..., "findings": [...], "summary": {...}}``."""
    output: dict[str, object] = {
        "valid": result.passed,
        "findings": [f.to_dict() for f in result.findings],
        "summary": {
            "domains_checked": list(result.domains_checked),
            "errors": len(result.errors),
            "warnings": len(result.warnings),
        },
    }
    return json.dumps(output, indent=2)
