"""Boundary for tool-backed domains (ESLint, Prettier, tsc, Knip, gitleaks, audits).

Adapters are external collaborators: each wraps one tool and returns its
findings plus the tool's exit code.  Repopolicy never re-implements a tool's
logic; it only invokes registered adapters for enabled domains and
classifies their failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import PolicyConfig
    from repopolicy.findings import Finding

logger = logging.getLogger(__name__)

# Tool domain name -> PolicyConfig attribute holding its section.
TOOL_DOMAINS: dict[str, str] = {
    "eslint": "eslint",
    "prettier": "prettier",
    "tsc": "tsc",
    "knip": "knip",
    "secrets": "secrets",
    "npmaudit": "npmaudit",
    "coverage-run": "coverage_run",
}

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ToolRuntimeError(Exception):
    """Raised when a tool or filesystem operation fails unexpectedly.

    Distinct from a policy violation: it maps to exit code 3 and is never
    downgraded to a finding.
    """

    def __init__(self, tool: str, detail: str) -> None:
        self.tool = tool
        self.detail = detail
        super().__init__(f"{tool}: {detail}")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolResult:
    findings: list[Finding] = field(default_factory=list)
    tool_exit_code: int = 0


class ToolAdapter(Protocol):
    """One wrapped external tool."""

    name: str
    domain: str  # key of TOOL_DOMAINS

    def run(self, config: PolicyConfig, project_root: Path) -> ToolResult: ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass
class AdapterRegistry:
    """Adapters keyed by tool domain."""

    adapters: dict[str, ToolAdapter] = field(default_factory=dict)

    def register(self, adapter: ToolAdapter) -> None:
        if adapter.domain not in TOOL_DOMAINS:
            msg = f"Unknown tool domain '{adapter.domain}', must be one of {sorted(TOOL_DOMAINS)}"
            raise ValueError(msg)
        self.adapters[adapter.domain] = adapter

    def get(self, domain: str) -> ToolAdapter | None:
        return self.adapters.get(domain)


def enabled_tool_domains(config: PolicyConfig) -> list[str]:
    """Tool domains switched on in *config*, in declaration order."""
    return [
        domain
        for domain, attr in TOOL_DOMAINS.items()
        if getattr(config, attr).enabled
    ]


def run_adapter(adapter: ToolAdapter, config: PolicyConfig, project_root: Path) -> ToolResult:
    """Invoke *adapter*, classifying raw failures as :class:`ToolRuntimeError`.

    A missing binary, an unreadable file or an unexpected exception from type
    coercion inside the adapter all surface as ``ToolRuntimeError``.
    """
    try:
        result = adapter.run(config, project_root)
    except ToolRuntimeError:
        raise
    except FileNotFoundError as exc:
        raise ToolRuntimeError(adapter.name, f"executable or file not found: {exc}") from exc
    except (OSError, TypeError, ValueError, KeyError) as exc:
        raise ToolRuntimeError(adapter.name, f"{type(exc).__name__}: {exc}") from exc

    if not isinstance(result, ToolResult):
        raise ToolRuntimeError(adapter.name, f"returned {type(result).__name__}, not ToolResult")

    logger.debug(
        "Adapter %s finished with exit code %d (%d findings)",
        adapter.name,
        result.tool_exit_code,
        len(result.findings),
    )
    return result
