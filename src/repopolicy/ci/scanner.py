"""Locate a required command inside one job's steps.

Matching is substring containment per line of each ``run:`` script.  Lines
whose first non-blank character is ``#`` are comments: a command that only
appears there is reported as commented out, not as missing.  Quoting and
inline ``cmd # comment`` tails are not interpreted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from repopolicy.ci.conditions import is_always_true

if TYPE_CHECKING:
    from repopolicy.ci.workflow import Job, Step

# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

FOUND = "found"
CONDITIONAL = "conditional"
COMMENTED_OUT = "commented-out"
NOT_FOUND = "not-found"
REUSABLE_WORKFLOW_JOB = "reusable-workflow"


@dataclass(frozen=True)
class ScanResult:
    """Outcome of scanning one job for one command."""

    status: str  # FOUND | CONDITIONAL | COMMENTED_OUT | NOT_FOUND | REUSABLE_WORKFLOW_JOB
    job: Job
    command: str
    step: Step | None = None

    @property
    def unconditional(self) -> bool:
        return self.status == FOUND

    def describe_condition(self) -> str:
        """Name the gating ``if:`` for a CONDITIONAL result."""
        parts: list[str] = []
        if not is_always_true(self.job.condition):
            parts.append(f"job '{self.job.job_id}' if: {self.job.condition}")
        if self.step is not None and not is_always_true(self.step.condition):
            parts.append(f"step if: {self.step.condition}")
        return ", ".join(parts)


def match_run_script(script: str, command: str) -> str | None:
    """Classify how *command* occurs in a ``run:`` script.

    Returns ``"match"`` for an active occurrence, ``"commented"`` when it
    only occurs on comment lines, or ``None``.
    """
    commented = False
    for line in script.splitlines():
        if line.strip().startswith("#"):
            if command in line:
                commented = True
            continue
        if command in line:
            return "match"
    return "commented" if commented else None


def scan_job(job: Job, command: str) -> ScanResult:
    """Find *command* in *job*.

    The job condition and the step condition must both be always-true for
    the command to count as unconditional.  An unconditional occurrence
    anywhere in the job wins over an earlier conditional one; otherwise the
    first conditional occurrence is returned.
    """
    if job.uses_reusable_workflow:
        return ScanResult(REUSABLE_WORKFLOW_JOB, job, command)

    job_always = is_always_true(job.condition)
    first_conditional: Step | None = None
    first_commented: Step | None = None

    for step in job.steps:
        if step.run_script is None:
            continue
        kind = match_run_script(step.run_script, command)
        if kind == "match":
            if job_always and is_always_true(step.condition):
                return ScanResult(FOUND, job, command, step)
            if first_conditional is None:
                first_conditional = step
        elif kind == "commented" and first_commented is None:
            first_commented = step

    if first_conditional is not None:
        return ScanResult(CONDITIONAL, job, command, first_conditional)
    if first_commented is not None:
        return ScanResult(COMMENTED_OUT, job, command, first_commented)
    return ScanResult(NOT_FOUND, job, command)
