"""Repository file listing and reading shared by the file-based checkers."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import TYPE_CHECKING

from repopolicy.adapters import ToolRuntimeError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_DIRS: frozenset[str] = frozenset(
    {"node_modules", ".git", "dist", "build", "coverage", ".next", ".turbo", "__pycache__"}
)


def iter_files(
    project_root: Path, *, excluded_dirs: frozenset[str] | None = DEFAULT_EXCLUDED_DIRS
) -> Iterator[str]:
    """Yield POSIX-style paths of every file under *project_root*, sorted per directory.

    Directories named in *excluded_dirs* are pruned at any depth.  Pass
    ``None`` to walk everything.
    """
    excluded = excluded_dirs or frozenset()
    for dirpath, dirnames, filenames in os.walk(project_root):
        pruned = [d for d in dirnames if d in excluded]
        if pruned:
            logger.debug("Skipping %s under %s", pruned, dirpath)
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        rel_dir = os.path.relpath(dirpath, project_root)
        for name in sorted(filenames):
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            yield rel.replace(os.sep, "/")


def read_text(project_root: Path, rel_path: str, domain: str) -> str:
    """Read a UTF-8 text file under *project_root*.

    A file that exists but cannot be read or decoded is a runtime failure of
    the *domain* check, never a policy violation.
    """
    try:
        return (project_root / rel_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ToolRuntimeError(domain, f"could not read {rel_path}: {exc}") from exc


def read_lines(project_root: Path, rel_path: str, domain: str) -> list[str]:
    return read_text(project_root, rel_path, domain).splitlines()


def git_output(project_root: Path, *args: str) -> str | None:
    """Return the stdout of ``git <args>``, or ``None`` if git is unavailable or fails."""
    try:
        result = subprocess.run(
            ["git", *args],  # noqa: S607
            cwd=str(project_root),
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        logger.debug("git %s failed: %s", " ".join(args), result.stderr.strip())
        return None
    return result.stdout
