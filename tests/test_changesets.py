"""Tests for repopolicy.process.changesets: changeset files and their requirement."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from repopolicy.adapters import ToolRuntimeError
from repopolicy.config.model import ChangesetsConfig
from repopolicy.process.changesets import (
    check_changeset,
    check_changesets,
    is_changeset_file,
    list_changesets,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

VALID = '---\n"my-package": minor\n---\n\nAdded a new feature for users.\n'


def _messages(config: ChangesetsConfig, text: str) -> list[str]:
    return [f.message for f in check_changeset(config, ".changeset/change.md", text)]


class TestChangesetFile:
    def test_valid(self) -> None:
        assert _messages(ChangesetsConfig(enabled=True), VALID) == []

    def test_multiple_packages(self) -> None:
        text = '---\n"pkg-a": patch\n"pkg-b": major\n---\nBreaking rename.\n'
        assert _messages(ChangesetsConfig(enabled=True), text) == []

    def test_no_frontmatter(self) -> None:
        assert _messages(ChangesetsConfig(enabled=True), "Just a description\n") == [
            "Changeset has no frontmatter (expected '---' delimiters)"
        ]

    def test_unclosed_frontmatter(self) -> None:
        text = '---\n"my-package": minor\nDescription without closing\n'
        assert _messages(ChangesetsConfig(enabled=True), text) == [
            "Invalid changeset: frontmatter has no closing '---' delimiter"
        ]

    def test_invalid_bump_type(self) -> None:
        text = '---\n"my-package": huge\n---\nSomething.\n'
        assert _messages(ChangesetsConfig(enabled=True), text) == [
            "Invalid bump type 'huge' for package 'my-package' "
            "(must be one of major, minor, patch)"
        ]

    def test_no_package_entries(self) -> None:
        assert _messages(ChangesetsConfig(enabled=True), "---\n---\nSomething.\n") == [
            "Changeset frontmatter has no package entries"
        ]

    def test_format_validation_disabled(self) -> None:
        config = ChangesetsConfig(enabled=True, validate_format=False)
        assert _messages(config, "Just a description\n") == []

    def test_bump_type_not_allowed(self) -> None:
        config = ChangesetsConfig(enabled=True, allowed_bump_types=("patch", "minor"))
        text = '---\n"my-package": major\n---\nBreaking change.\n'
        findings = check_changeset(config, ".changeset/change.md", text)
        assert [(f.rule_id, f.message) for f in findings] == [
            (
                "changesets/bump-type",
                "Bump type 'major' for package 'my-package' is not allowed "
                "(allowed_bump_types: patch, minor)",
            )
        ]

    def test_missing_description(self) -> None:
        text = '---\n"my-package": patch\n---\n\n'
        assert _messages(ChangesetsConfig(enabled=True), text) == ["Changeset has no description"]

    def test_description_optional(self) -> None:
        config = ChangesetsConfig(enabled=True, require_description=False)
        assert _messages(config, '---\n"my-package": patch\n---\n') == []

    def test_description_too_short(self) -> None:
        config = ChangesetsConfig(enabled=True, min_description_length=10)
        text = '---\n"my-package": patch\n---\nFix\n'
        assert _messages(config, text) == [
            "Description is 3 characters, minimum is 10 (min_description_length)"
        ]


class TestListing:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            (".changeset/brave-lions.md", True),
            (".changeset/README.md", False),
            (".changeset/config.json", False),
            (".changeset/nested/change.md", False),
            ("docs/change.md", False),
        ],
    )
    def test_is_changeset_file(self, path: str, expected: bool) -> None:
        assert is_changeset_file(path) is expected

    def test_list_changesets(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file(".changeset/b.md", VALID)
        write_file(".changeset/a.md", VALID)
        write_file(".changeset/README.md", "# Changesets")
        write_file(".changeset/config.json", "{}")
        assert list_changesets(repo) == [".changeset/a.md", ".changeset/b.md"]


class TestCheckChangesets:
    def test_missing_directory(self, repo: Path) -> None:
        findings = check_changesets(ChangesetsConfig(enabled=True), repo)
        assert [(f.rule_id, f.message) for f in findings] == [
            ("changesets/missing-directory", "Changeset directory .changeset/ not found")
        ]

    def test_readme_only_directory_passes(
        self, repo: Path, write_file: Callable[[str, str], Path]
    ) -> None:
        write_file(".changeset/README.md", "# Changesets\n\nNo frontmatter here.")
        assert check_changesets(ChangesetsConfig(enabled=True), repo) == []

    def test_invalid_file_reported_with_location(
        self, repo: Path, write_file: Callable[[str, str], Path]
    ) -> None:
        write_file(".changeset/bad.md", "No frontmatter")
        findings = check_changesets(ChangesetsConfig(enabled=True), repo)
        assert [str(f.location) for f in findings] == [".changeset/bad.md"]

    def test_disabled(self, repo: Path) -> None:
        assert check_changesets(ChangesetsConfig(), repo) == []

    def test_unreadable_changeset_is_runtime_error(
        self, repo: Path, write_file: Callable[[str, str], Path]
    ) -> None:
        write_file(".changeset/bad.md").write_bytes(b"---\n\xff\xfe\n---\n")
        with pytest.raises(ToolRuntimeError, match="could not read .changeset/bad.md"):
            check_changesets(ChangesetsConfig(enabled=True), repo)


class TestRequireForPaths:
    @pytest.fixture()
    def config(self) -> ChangesetsConfig:
        return ChangesetsConfig(enabled=True, require_for_paths=("src/**",))

    def test_source_change_without_changeset(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        monkeypatch: pytest.MonkeyPatch,
        config: ChangesetsConfig,
    ) -> None:
        write_file(".changeset/README.md", "# Changesets")
        monkeypatch.setattr(
            "repopolicy.process.changesets.git_output",
            lambda root, *args: "src/index.ts\nREADME.md\n",
        )
        findings = check_changesets(config, repo)
        assert [(f.rule_id, f.message) for f in findings] == [
            (
                "changesets/required",
                "Changes to src/index.ts require a changeset (require_for_paths)",
            )
        ]

    def test_source_change_with_changeset(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        monkeypatch: pytest.MonkeyPatch,
        config: ChangesetsConfig,
    ) -> None:
        write_file(".changeset/brave-lions.md", VALID)
        monkeypatch.setattr(
            "repopolicy.process.changesets.git_output",
            lambda root, *args: "src/index.ts\n.changeset/brave-lions.md\n",
        )
        assert check_changesets(config, repo) == []

    def test_unrelated_change(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        monkeypatch: pytest.MonkeyPatch,
        config: ChangesetsConfig,
    ) -> None:
        write_file(".changeset/README.md", "# Changesets")
        monkeypatch.setattr(
            "repopolicy.process.changesets.git_output", lambda root, *args: "docs/guide.md\n"
        )
        assert check_changesets(config, repo) == []

    def test_diff_uses_base_branch(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_file(".changeset/README.md", "# Changesets")
        calls: list[tuple[str, ...]] = []

        def fake_git(root: Path, *args: str) -> str:
            calls.append(args)
            return ""

        monkeypatch.setattr("repopolicy.process.changesets.git_output", fake_git)
        config = ChangesetsConfig(
            enabled=True, require_for_paths=("src/**",), base_branch="develop"
        )
        check_changesets(config, repo)
        assert calls == [("diff", "--name-only", "develop...HEAD")]

    def test_git_unavailable_skips(
        self,
        repo: Path,
        write_file: Callable[[str, str], Path],
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
        config: ChangesetsConfig,
    ) -> None:
        write_file(".changeset/README.md", "# Changesets")
        monkeypatch.setattr(
            "repopolicy.process.changesets.git_output", lambda root, *args: None
        )
        with caplog.at_level(logging.WARNING, logger="repopolicy.process.changesets"):
            assert check_changesets(config, repo) == []
        assert "cannot diff against 'main'" in caplog.text
