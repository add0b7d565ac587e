"""CI domain: verify workflows run the required commands on every pull request.

Per workflow file the analysis moves through
``unparsed -> parsed -> triggers validated -> commands resolved -> reported``;
invalid YAML ends it early with a single ``ci/malformed-workflow`` finding
and never affects other workflow files.
"""

from __future__ import annotations

import fnmatch
import logging
from typing import TYPE_CHECKING

from repopolicy.adapters import ToolRuntimeError
from repopolicy.ci.scanner import (
    COMMENTED_OUT,
    CONDITIONAL,
    FOUND,
    REUSABLE_WORKFLOW_JOB,
    ScanResult,
    scan_job,
)
from repopolicy.ci.workflow import MalformedWorkflowError, parse_workflow
from repopolicy.config.model import JobCommandRequirement, WorkflowCommandRequirement
from repopolicy.findings import Finding, error

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.ci.workflow import TriggerFilter, WorkflowDocument
    from repopolicy.config.model import CiConfig, CommandRequirement, TriggerPolicy

logger = logging.getLogger(__name__)

DOMAIN = "ci"
WORKFLOWS_DIR = ".github/workflows"

# Pull request activity types that fire on ordinary pushes to a PR branch.
_QUALIFYING_PR_TYPES: frozenset[str] = frozenset({"opened", "synchronize", "reopened"})


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


def _branch_matches(branch: str, patterns: tuple[str, ...]) -> bool:
    return any(p == "*" or p == "**" or fnmatch.fnmatchcase(branch, p) for p in patterns)


def trigger_targets_branch(event: str, spec: TriggerFilter, branch: str) -> bool:
    """Return True if the *event* trigger with filter *spec* fires for *branch*."""
    if spec.types is not None and event != "push" and not _QUALIFYING_PR_TYPES & set(spec.types):
        return False
    if spec.branches_ignore and _branch_matches(branch, spec.branches_ignore):
        return False
    return spec.branches is None or _branch_matches(branch, spec.branches)


def validate_triggers(
    doc: WorkflowDocument, policy: TriggerPolicy, file: str
) -> list[Finding]:
    """At least one accepted event must target the base branch.

    Returns one finding per declared accepted event that misses the branch,
    or a single finding when no accepted event is declared at all.
    """
    branch = policy.base_branch
    declared = [e for e in policy.accepted_events if e in doc.triggers]
    if any(trigger_targets_branch(e, doc.triggers[e], branch) for e in declared):
        return []

    wanted = " or ".join(policy.accepted_events)
    if not declared:
        return [
            error(
                DOMAIN,
                "ci/trigger",
                f"Workflow does not trigger on pull_request to '{branch}' "
                f"(expected one of: {wanted})",
                file,
            )
        ]

    findings: list[Finding] = []
    for event in declared:
        spec = doc.triggers[event]
        detail = f"branches: {', '.join(spec.branches)}" if spec.branches else "filtered out"
        if spec.types is not None and not _QUALIFYING_PR_TYPES & set(spec.types):
            detail = f"types: {', '.join(spec.types)}"
        findings.append(
            error(
                DOMAIN,
                "ci/trigger",
                f"Workflow does not trigger on pull_request to '{branch}' "
                f"({event} trigger {detail})",
                file,
            )
        )
    return findings


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _result_finding(result: ScanResult, file: str, *, scope: str) -> Finding | None:
    """Translate a non-FOUND scan result into a finding."""
    cmd = result.command
    job_id = result.job.job_id
    line = result.step.line if result.step is not None else result.job.line

    if result.status == FOUND:
        return None
    if result.status == CONDITIONAL:
        return error(
            DOMAIN,
            "ci/conditional",
            f"Required command '{cmd}' only runs conditionally in job '{job_id}' "
            f"({result.describe_condition()})",
            file,
            line,
        )
    if result.status == COMMENTED_OUT:
        return error(
            DOMAIN,
            "ci/commented-out",
            f"Required command '{cmd}' is commented out in job '{job_id}'",
            file,
            line,
        )
    if result.status == REUSABLE_WORKFLOW_JOB:
        return error(
            DOMAIN,
            "ci/reusable-workflow",
            f"Job '{job_id}' calls reusable workflow '{result.job.reusable_workflow}'; "
            f"required command '{cmd}' cannot be verified",
            file,
            line,
        )
    return error(
        DOMAIN,
        "ci/not-found",
        f"Required command '{cmd}' not found in {scope}",
        file,
        line if scope != "any job" else None,
    )


def _check_workflow_command(doc: WorkflowDocument, command: str, file: str) -> Finding | None:
    """Workflow scope: the command must run unconditionally in at least one job."""
    results = [scan_job(job, command) for job in doc.jobs.values()]
    if any(r.status == FOUND for r in results):
        return None

    for status in (CONDITIONAL, COMMENTED_OUT):
        for result in results:
            if result.status == status:
                return _result_finding(result, file, scope="any job")

    reusable = [r.job.job_id for r in results if r.status == REUSABLE_WORKFLOW_JOB]
    message = f"Required command '{command}' not found in any job"
    if reusable:
        message += f" (reusable workflow jobs not scanned: {', '.join(reusable)})"
    return error(DOMAIN, "ci/not-found", message, file)


def _check_job_command(
    doc: WorkflowDocument, job_id: str, command: str, file: str
) -> Finding | None:
    """Job scope: resolve the named job, then scan only its steps."""
    job = doc.jobs.get(job_id)
    if job is None:
        return error(
            DOMAIN, "ci/job-not-found", f"Job '{job_id}' not found in workflow", file
        )
    return _result_finding(scan_job(job, command), file, scope=f"job '{job_id}'")


def analyze_workflow(
    doc: WorkflowDocument,
    requirements: tuple[CommandRequirement, ...],
    triggers: TriggerPolicy,
    *,
    file: str,
) -> list[Finding]:
    """Check one parsed workflow against its trigger policy and command requirements.

    Findings follow the order of requirements, then commands, as configured.
    A missing job is reported once per job, not once per command.
    """
    findings = validate_triggers(doc, triggers, file)

    for req in requirements:
        if isinstance(req, WorkflowCommandRequirement):
            for command in req.commands:
                finding = _check_workflow_command(doc, command, file)
                if finding is not None:
                    findings.append(finding)
        elif isinstance(req, JobCommandRequirement):
            if req.job_id not in doc.jobs:
                findings.append(
                    error(
                        DOMAIN,
                        "ci/job-not-found",
                        f"Job '{req.job_id}' not found in workflow",
                        file,
                    )
                )
                continue
            for command in req.commands:
                finding = _check_job_command(doc, req.job_id, command, file)
                if finding is not None:
                    findings.append(finding)

    return findings


def analyze_workflow_text(
    text: str,
    requirements: tuple[CommandRequirement, ...],
    triggers: TriggerPolicy,
    *,
    file: str,
) -> list[Finding]:
    """Parse and analyze one workflow file's contents."""
    try:
        doc = parse_workflow(text)
    except MalformedWorkflowError as exc:
        return [error(DOMAIN, "ci/malformed-workflow", f"Invalid YAML in workflow: {exc}", file)]
    return analyze_workflow(doc, requirements, triggers, file=file)


# ---------------------------------------------------------------------------
# Domain entry point
# ---------------------------------------------------------------------------


def check_ci(config: CiConfig, project_root: Path) -> list[Finding]:
    """Run the CI domain over ``.github/workflows``.

    Raises ``ToolRuntimeError`` when a workflow file exists but cannot be read.
    """
    if not config.enabled:
        return []
    if not config.requirements and not config.require_workflows:
        return []

    workflows_dir = project_root / WORKFLOWS_DIR
    if not workflows_dir.is_dir():
        return [
            error(
                DOMAIN,
                "ci/workflows-dir-missing",
                f"Workflows directory {WORKFLOWS_DIR} not found",
                WORKFLOWS_DIR,
            )
        ]

    findings: list[Finding] = []
    names = list(dict.fromkeys([*config.require_workflows, *config.workflows]))
    for name in names:
        rel = f"{WORKFLOWS_DIR}/{name}"
        path = workflows_dir / name
        if not path.is_file():
            findings.append(
                error(DOMAIN, "ci/workflow-missing", f"Workflow {name} not found", rel)
            )
            continue

        requirements = config.requirements_for(name)
        if not requirements:
            continue

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ToolRuntimeError(DOMAIN, f"could not read {rel}: {exc}") from exc

        logger.debug("Analyzing %s (%d requirements)", rel, len(requirements))
        findings.extend(analyze_workflow_text(text, requirements, config.triggers, file=rel))

    return findings
