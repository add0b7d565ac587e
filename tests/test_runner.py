"""Tests for repopolicy.runner: domain selection and aggregation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from repopolicy.adapters import AdapterRegistry, ToolResult
from repopolicy.config.loader import ConfigError
from repopolicy.config.model import (
    ChangesetsConfig,
    DocsConfig,
    EslintConfig,
    ForbiddenFilesConfig,
    PolicyConfig,
    TestsConfig,
    TicketsConfig,
)
from repopolicy.findings import error
from repopolicy.runner import audit_code, check_commit, evaluate, run_checks

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class _EslintAdapter:
    name = "eslint"
    domain = "eslint"

    def run(self, config: PolicyConfig, project_root: Path) -> ToolResult:
        finding = error("eslint", "eslint/no-var", "Unexpected var", "a.js", 1)
        return ToolResult(findings=[finding])


POLICY = PolicyConfig(
    tests=TestsConfig(enabled=True, pattern="**/*.test.ts"),
    forbidden_files=ForbiddenFilesConfig(enabled=True, files=("**/.env",)),
)


class TestEvaluate:
    def test_all_scope(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file(".env", "")
        result = evaluate(POLICY, repo)
        assert result.domains_checked == ["tests", "forbidden-files"]
        assert [f.rule_id for f in result.findings] == [
            "tests/min-test-files",
            "forbidden-files/forbidden",
        ]

    def test_code_scope(self, repo: Path) -> None:
        result = evaluate(POLICY, repo, scope="code")
        assert result.domains_checked == ["tests"]

    def test_process_scope(self, repo: Path) -> None:
        result = evaluate(POLICY, repo, scope="process")
        assert result.domains_checked == ["forbidden-files"]
        assert result.passed

    def test_invalid_scope(self, repo: Path) -> None:
        with pytest.raises(ValueError, match="Invalid scope 'everything'"):
            evaluate(POLICY, repo, scope="everything")

    def test_nothing_enabled(self, repo: Path) -> None:
        result = evaluate(PolicyConfig(), repo)
        assert result.domains_checked == []
        assert result.passed

    def test_missing_adapter_warns(self, repo: Path, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="repopolicy.runner")
        result = evaluate(PolicyConfig(eslint=EslintConfig(enabled=True)), repo)
        assert result.domains_checked == []
        assert "No adapter registered for enabled domain 'eslint'" in caplog.text

    def test_registered_adapter_runs(self, repo: Path) -> None:
        registry = AdapterRegistry()
        registry.register(_EslintAdapter())
        policy = PolicyConfig(eslint=EslintConfig(enabled=True))
        result = evaluate(policy, repo, registry=registry)
        assert result.domains_checked == ["eslint"]
        assert [f.rule_id for f in result.findings] == ["eslint/no-var"]

    @pytest.mark.parametrize(("enforcement", "passed"), [("warn", True), ("block", False)])
    def test_docs_enforcement(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        enforcement: str,
        passed: bool,
    ) -> None:
        write_file("notes.md", "# Notes")
        policy = PolicyConfig(docs=DocsConfig(enabled=True, enforcement=enforcement))
        result = evaluate(policy, repo, scope="process")
        assert result.domains_checked == ["docs"]
        assert [f.rule_id for f in result.findings] == ["docs/outside-docs"]
        assert result.passed is passed

    def test_changesets_domain(self, repo: Path) -> None:
        policy = PolicyConfig(changesets=ChangesetsConfig(enabled=True))
        result = evaluate(policy, repo)
        assert result.domains_checked == ["changesets"]
        assert not result.passed

    def test_adapters_skipped_for_process_scope(self, repo: Path) -> None:
        registry = AdapterRegistry()
        registry.register(_EslintAdapter())
        policy = PolicyConfig(eslint=EslintConfig(enabled=True))
        assert evaluate(policy, repo, scope="process", registry=registry).domains_checked == []

    def test_tickets_enable_commit_domain(
        self, repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "repopolicy.process.commits.read_head_commit_message", lambda root: "chore: x\n"
        )
        policy = PolicyConfig(
            tickets=TicketsConfig(enabled=True, pattern=r"[A-Z]+-\d+", require_in_commits=True)
        )
        result = evaluate(policy, repo, scope="process")
        assert result.domains_checked == ["commits"]
        assert [f.rule_id for f in result.findings] == ["tickets/missing"]


class TestRunChecks:
    def test_invalid_config_stops_before_checks(
        self, repo: Path, write_policy: Callable[[str], Path]
    ) -> None:
        write_policy("[process.forbidden_files]\nenabled = 1\n")
        with pytest.raises(ConfigError):
            run_checks(repo)

    def test_loads_and_evaluates(
        self,
        repo: Path,
        write_policy: Callable[[str], Path],
        write_file: Callable[[str, str], Path],
    ) -> None:
        write_policy('[process.forbidden_files]\nenabled = true\nfiles = ["**/*.pem"]\n')
        write_file("certs/server.pem", "")
        result = run_checks(repo, scope="process")
        assert [f.location.file for f in result.findings if f.location] == ["certs/server.pem"]


class TestAuditCode:
    def test_lists_enabled_code_domains(
        self, repo: Path, write_policy: Callable[[str], Path]
    ) -> None:
        write_policy(
            "[code.linting.eslint]\nenabled = true\n\n"
            "[code.naming]\nenabled = true\n\n"
            "[process.forbidden_files]\nenabled = true\n"
        )
        result = audit_code(repo)
        assert result.domains_checked == ["eslint", "naming"]
        assert result.passed


class TestCheckCommit:
    def test_disabled_passes(self, repo: Path, write_policy: Callable[[str], Path]) -> None:
        write_policy("")
        msg = repo / "MSG"
        msg.write_text("anything\n", encoding="utf-8")
        result = check_commit(repo, msg)
        assert result.domains_checked == []
        assert result.passed

    def test_validates_file(self, repo: Path, write_policy: Callable[[str], Path]) -> None:
        write_policy('[process.commits]\nenabled = true\ntypes = ["feat", "fix"]\n')
        msg = repo / "MSG"
        msg.write_text("update things\n", encoding="utf-8")
        result = check_commit(repo, msg)
        assert [f.rule_id for f in result.findings] == ["commits/format"]
