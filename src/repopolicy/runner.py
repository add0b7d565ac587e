"""Run orchestrator: load the policy, run every enabled domain, aggregate findings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from repopolicy.adapters import AdapterRegistry, enabled_tool_domains, run_adapter
from repopolicy.ci.analyzer import check_ci
from repopolicy.code.disable_comments import check_disable_comments
from repopolicy.code.tests_presence import check_tests
from repopolicy.config.loader import load_policy
from repopolicy.findings import FindingAggregator
from repopolicy.naming.checker import check_naming
from repopolicy.process.changesets import check_changesets
from repopolicy.process.codeowners import check_codeowners
from repopolicy.process.commits import check_commit_file, check_commits
from repopolicy.process.docs import check_docs
from repopolicy.process.forbidden_files import check_forbidden_files
from repopolicy.process.hooks import check_hooks

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from repopolicy.config.model import PolicyConfig
    from repopolicy.findings import Finding

logger = logging.getLogger(__name__)

SCOPE_ALL = "all"
SCOPE_CODE = "code"
SCOPE_PROCESS = "process"
VALID_SCOPES: frozenset[str] = frozenset({SCOPE_ALL, SCOPE_CODE, SCOPE_PROCESS})


# ---------------------------------------------------------------------------
# Domain table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DomainCheck:
    """A built-in domain checker and how to tell whether it is switched on."""

    name: str
    scope: str  # SCOPE_CODE | SCOPE_PROCESS
    enabled: Callable[[PolicyConfig], bool]
    run: Callable[[PolicyConfig, Path], list[Finding]]


DOMAIN_CHECKS: tuple[DomainCheck, ...] = (
    DomainCheck(
        "disable-comments",
        SCOPE_CODE,
        lambda p: p.disable_comments.enabled,
        lambda p, root: check_disable_comments(p.disable_comments, root),
    ),
    DomainCheck(
        "tests",
        SCOPE_CODE,
        lambda p: p.tests.enabled,
        lambda p, root: check_tests(p.tests, root),
    ),
    DomainCheck(
        "naming",
        SCOPE_CODE,
        lambda p: p.naming.enabled,
        lambda p, root: check_naming(p.naming, root),
    ),
    DomainCheck(
        "ci",
        SCOPE_PROCESS,
        lambda p: p.ci.enabled,
        lambda p, root: check_ci(p.ci, root),
    ),
    DomainCheck(
        "forbidden-files",
        SCOPE_PROCESS,
        lambda p: p.forbidden_files.enabled,
        lambda p, root: check_forbidden_files(p.forbidden_files, root),
    ),
    DomainCheck(
        "commits",
        SCOPE_PROCESS,
        lambda p: p.commits.enabled or (p.tickets.enabled and p.tickets.require_in_commits),
        lambda p, root: check_commits(p.commits, p.tickets, root),
    ),
    DomainCheck(
        "codeowners",
        SCOPE_PROCESS,
        lambda p: p.codeowners.enabled,
        lambda p, root: check_codeowners(p.codeowners, root),
    ),
    DomainCheck(
        "hooks",
        SCOPE_PROCESS,
        lambda p: p.hooks.enabled,
        lambda p, root: check_hooks(p.hooks, root),
    ),
    DomainCheck(
        "docs",
        SCOPE_PROCESS,
        lambda p: p.docs.enabled,
        lambda p, root: check_docs(p.docs, root),
    ),
    DomainCheck(
        "changesets",
        SCOPE_PROCESS,
        lambda p: p.changesets.enabled,
        lambda p, root: check_changesets(p.changesets, root),
    ),
)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def evaluate(
    policy: PolicyConfig,
    project_root: Path,
    *,
    scope: str = SCOPE_ALL,
    registry: AdapterRegistry | None = None,
) -> FindingAggregator:
    """Run every enabled domain in *scope* against an already-loaded policy.

    Raises ``ToolRuntimeError`` when a tool adapter or a filesystem read fails.
    """
    if scope not in VALID_SCOPES:
        msg = f"Invalid scope '{scope}', must be one of {sorted(VALID_SCOPES)}"
        raise ValueError(msg)

    result = FindingAggregator()

    if scope in (SCOPE_ALL, SCOPE_CODE):
        registry = registry or AdapterRegistry()
        for domain in enabled_tool_domains(policy):
            adapter = registry.get(domain)
            if adapter is None:
                logger.warning("No adapter registered for enabled domain '%s', skipping", domain)
                continue
            tool_result = run_adapter(adapter, policy, project_root)
            result.extend(domain, tool_result.findings)

    for check in DOMAIN_CHECKS:
        if scope != SCOPE_ALL and check.scope != scope:
            continue
        if not check.enabled(policy):
            logger.debug("Domain '%s' disabled, skipping", check.name)
            continue
        findings = check.run(policy, project_root)
        logger.debug("Domain '%s': %d finding(s)", check.name, len(findings))
        result.extend(check.name, findings)

    return result


def run_checks(
    project_root: Path,
    *,
    scope: str = SCOPE_ALL,
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> FindingAggregator:
    """Load ``check.toml`` under *project_root* and evaluate it.

    Raises ``ConfigError`` before any domain runs when the policy is invalid.
    """
    policy = load_policy(project_root, config_path=config_path)
    return evaluate(policy, project_root, scope=scope, registry=registry)


def audit_code(project_root: Path, *, config_path: Path | None = None) -> FindingAggregator:
    """Configuration-level audit of the code domains.

    Every consistency rule is enforced by the schema, so a policy that loads
    passes; the result lists the code domains the policy switches on.
    """
    policy = load_policy(project_root, config_path=config_path)
    result = FindingAggregator()
    for domain in enabled_tool_domains(policy):
        result.extend(domain, [])
    for check in DOMAIN_CHECKS:
        if check.scope == SCOPE_CODE and check.enabled(policy):
            result.extend(check.name, [])
    return result


def check_commit(
    project_root: Path, msg_file: Path, *, config_path: Path | None = None
) -> FindingAggregator:
    """Validate one commit message file against ``process.commits`` and ``process.tickets``."""
    policy = load_policy(project_root, config_path=config_path)
    result = FindingAggregator()
    if not policy.commits.enabled and not (
        policy.tickets.enabled and policy.tickets.require_in_commits
    ):
        logger.debug("Commit checks disabled, skipping %s", msg_file)
        return result
    result.extend("commits", check_commit_file(policy.commits, policy.tickets, msg_file))
    return result
