"""Tests for repopolicy.process.commits."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

import pytest

from repopolicy.config.model import CommitsConfig, TicketsConfig
from repopolicy.process.commits import (
    check_commit_file,
    check_commit_message,
    check_commits,
    commit_header,
    is_skipped_commit,
)

if TYPE_CHECKING:
    from pathlib import Path

CONVENTIONAL = CommitsConfig(enabled=True, types=("feat", "fix", "chore"))
NO_TICKETS = TicketsConfig()


def _rules(
    message: str, commits: CommitsConfig = CONVENTIONAL, tickets: TicketsConfig = NO_TICKETS
) -> list[str]:
    return [f.rule_id for f in check_commit_message(commits, tickets, message)]


class TestCommitHeader:
    def test_skips_comments_and_blank_lines(self) -> None:
        message = "# Please enter the commit message\n\nfeat: add login\n\nBody text\n"
        assert commit_header(message) == "feat: add login"

    def test_empty_message(self) -> None:
        assert commit_header("# only comments\n") == ""

    @pytest.mark.parametrize(
        "header",
        [
            "Merge branch 'main' into feature",
            'Revert "feat: add login"',
            "fixup! feat: add login",
            "squash! fix: typo",
            "amend! chore: bump",
        ],
    )
    def test_skipped_commits(self, header: str) -> None:
        assert is_skipped_commit(header)
        assert _rules(header) == []


class TestFormat:
    @pytest.mark.parametrize(
        "message",
        [
            "feat: add login",
            "fix(auth): handle expiry",
            "feat!: drop node 16",
            "chore(deps)!: bump",
        ],
    )
    def test_valid(self, message: str) -> None:
        assert _rules(message) == []

    @pytest.mark.parametrize(
        "message",
        ["add login", "docs: update readme", "feat:missing space", "feat(: broken"],
    )
    def test_invalid(self, message: str) -> None:
        assert _rules(message) == ["commits/format"]

    def test_message_lists_types(self) -> None:
        findings = check_commit_message(CONVENTIONAL, NO_TICKETS, "oops")
        assert findings[0].message == (
            "Commit message 'oops' does not match conventional format "
            "'type(scope): subject' (types: feat, fix, chore)"
        )

    def test_require_scope(self) -> None:
        config = CommitsConfig(enabled=True, types=("feat",), require_scope=True)
        assert _rules("feat: no scope", config) == ["commits/scope"]
        assert _rules("feat(api): scoped", config) == []

    def test_custom_pattern_overrides_types(self) -> None:
        config = CommitsConfig(enabled=True, types=("feat",), pattern=r"^\[[A-Z]+-\d+\] ")
        assert _rules("[PROJ-1] anything goes", config) == []
        assert _rules("feat: conventional", config) == ["commits/format"]

    def test_no_types_or_pattern_skips_format(self) -> None:
        assert _rules("whatever", CommitsConfig(enabled=True)) == []

    def test_only_header_is_checked(self) -> None:
        assert _rules("feat: add login\n\nnot conventional body line\n") == []

    def test_disabled(self) -> None:
        assert _rules("garbage", CommitsConfig(types=("feat",))) == []


class TestSubjectLength:
    def test_exceeds_limit(self) -> None:
        config = CommitsConfig(enabled=True, max_subject_length=20)
        findings = check_commit_message(config, NO_TICKETS, "feat: a very long subject line")
        assert [f.rule_id for f in findings] == ["commits/subject-length"]
        assert findings[0].message == (
            "Commit subject is 30 characters, exceeds maximum length 20"
        )

    def test_at_limit(self) -> None:
        config = CommitsConfig(enabled=True, max_subject_length=15)
        assert _rules("feat: 123456789", config) == []


class TestTickets:
    TICKETS = TicketsConfig(enabled=True, pattern=r"[A-Z]+-\d+", require_in_commits=True)

    def test_missing_ticket(self) -> None:
        findings = check_commit_message(CONVENTIONAL, self.TICKETS, "feat: add login")
        assert [(f.domain, f.rule_id) for f in findings] == [("tickets", "tickets/missing")]

    def test_ticket_in_body(self) -> None:
        assert _rules("feat: add login\n\nRefs PROJ-42\n", tickets=self.TICKETS) == []

    def test_not_required_in_commits(self) -> None:
        tickets = TicketsConfig(enabled=True, pattern=r"[A-Z]+-\d+")
        assert _rules("feat: add login", tickets=tickets) == []

    def test_tickets_without_commits(self) -> None:
        assert _rules("no ticket here", CommitsConfig(), self.TICKETS) == ["tickets/missing"]


class TestCheckCommitFile:
    def test_reads_message(self, tmp_path: Path) -> None:
        msg = tmp_path / "COMMIT_EDITMSG"
        msg.write_text("fix: correct typo\n", encoding="utf-8")
        assert check_commit_file(CONVENTIONAL, NO_TICKETS, msg) == []

    def test_unreadable_file(self, tmp_path: Path) -> None:
        findings = check_commit_file(CONVENTIONAL, NO_TICKETS, tmp_path / "missing")
        assert [f.rule_id for f in findings] == ["commits/unreadable"]
        assert findings[0].message.startswith("Could not read commit message file:")


class TestCheckCommits:
    def test_no_git_repository(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(args=[], returncode=128, stdout="", stderr="fatal")

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert check_commits(CONVENTIONAL, NO_TICKETS, tmp_path) == []

    def test_git_not_installed(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert check_commits(CONVENTIONAL, NO_TICKETS, tmp_path) == []

    def test_validates_head(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_run(*args: object, **kwargs: object) -> subprocess.CompletedProcess[str]:
            return subprocess.CompletedProcess(args=[], returncode=0, stdout="update stuff\n\n")

        monkeypatch.setattr(subprocess, "run", fake_run)
        findings = check_commits(CONVENTIONAL, NO_TICKETS, tmp_path)
        assert [f.rule_id for f in findings] == ["commits/format"]
