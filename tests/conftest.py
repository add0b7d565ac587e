"""Shared test fixtures for repopolicy."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    """Create an empty repository root for testing."""
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture()
def write_file(repo: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes ``content`` to ``repo/rel_path``, creating parents."""

    def _write(rel_path: str, content: str = "") -> Path:
        path = repo / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def write_policy(write_file: Callable[[str, str], Path]) -> Callable[[str], Path]:
    """Return a helper that writes ``check.toml`` at the repository root."""

    def _write(content: str) -> Path:
        return write_file("check.toml", content)

    return _write
