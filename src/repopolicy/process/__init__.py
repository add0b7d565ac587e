"""Process domains: forbidden files, commits, CODEOWNERS, git hooks."""

from repopolicy.process.codeowners import check_codeowners
from repopolicy.process.commits import check_commit_file, check_commit_message, check_commits
from repopolicy.process.forbidden_files import check_forbidden_files
from repopolicy.process.hooks import check_hooks

__all__ = [
    "check_codeowners",
    "check_commit_file",
    "check_commit_message",
    "check_commits",
    "check_forbidden_files",
    "check_hooks",
]
