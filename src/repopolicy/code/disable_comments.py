"""Disable-comments domain: report lint and type-check suppression comments.

Source files are tokenised just enough to tell comments from code: string,
character and template literals are skipped, and ``/* ... */`` block
comments are tracked across lines.  Only text inside comments is searched.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from repopolicy.config.globs import matches_any
from repopolicy.findings import Finding, error
from repopolicy.workspace import iter_files, read_lines

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from repopolicy.config.model import DisableCommentsConfig

logger = logging.getLogger(__name__)

DOMAIN = "disable-comments"

DEFAULT_EXTENSIONS: tuple[str, ...] = ("ts", "tsx", "js", "jsx")

# Extensions whose comments start with ``#`` instead of ``//`` and ``/*``.
HASH_COMMENT_EXTENSIONS: frozenset[str] = frozenset({"py", "pyi", "sh", "rb"})

# Longer directives first so ``eslint-disable-next-line`` wins over ``eslint-disable``.
DISABLE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("eslint-disable", re.compile(r"\beslint-disable(?:-next-line|-line)?\b")),
    ("@ts-ignore", re.compile(r"@ts-ignore\b")),
    ("@ts-expect-error", re.compile(r"@ts-expect-error\b")),
    ("@ts-nocheck", re.compile(r"@ts-nocheck\b")),
    ("prettier-ignore", re.compile(r"\bprettier-ignore\b")),
    ("noqa", re.compile(r"^\s*noqa\b", re.IGNORECASE)),
    ("type: ignore", re.compile(r"^\s*type:\s*ignore\b")),
    ("pylint: disable", re.compile(r"^\s*pylint:\s*disable\b")),
)


# ---------------------------------------------------------------------------
# Comment extraction
# ---------------------------------------------------------------------------


def iter_slash_comments(lines: list[str]) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, text)`` for every ``//`` and ``/* */`` comment fragment.

    A block comment spanning several lines yields one fragment per line.
    Line numbers are 1-based.
    """
    in_block = False
    quote: str | None = None  # active string delimiter: ', " or `

    for lineno, line in enumerate(lines, start=1):
        i = 0
        start = 0
        n = len(line)
        while i < n:
            ch = line[i]
            if in_block:
                if line.startswith("*/", i):
                    yield lineno, line[start:i]
                    in_block = False
                    i += 2
                    continue
                i += 1
                continue
            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
                i += 1
                continue
            if ch in "'\"`":
                quote = ch
            elif line.startswith("//", i):
                yield lineno, line[i + 2 :]
                break
            elif line.startswith("/*", i):
                in_block = True
                i += 2
                start = i
                continue
            i += 1

        if in_block:
            yield lineno, line[start:]
        # Only template literals may span lines.
        if quote in ("'", '"'):
            quote = None
        start = 0


def iter_hash_comments(lines: list[str]) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, text)`` for ``#`` comments outside quoted strings."""
    for lineno, line in enumerate(lines, start=1):
        quote: str | None = None
        i = 0
        while i < len(line):
            ch = line[i]
            if quote is not None:
                if ch == "\\":
                    i += 2
                    continue
                if ch == quote:
                    quote = None
            elif ch in "'\"":
                quote = ch
            elif ch == "#":
                yield lineno, line[i + 1 :]
                break
            i += 1


def find_disable_comments(lines: list[str], extension: str) -> list[tuple[int, str]]:
    """Return ``(line_number, directive)`` for each suppression directive found."""
    if extension in HASH_COMMENT_EXTENSIONS:
        comments = iter_hash_comments(lines)
    else:
        comments = iter_slash_comments(lines)

    hits: list[tuple[int, str]] = []
    for lineno, text in comments:
        for label, pattern in DISABLE_PATTERNS:
            match = pattern.search(text)
            if match is not None:
                directive = match.group(0).strip() if label == "eslint-disable" else label
                hits.append((lineno, directive))
    return hits


# ---------------------------------------------------------------------------
# Domain entry point
# ---------------------------------------------------------------------------


def check_disable_comments(config: DisableCommentsConfig, project_root: Path) -> list[Finding]:
    """Report every suppression comment in files with a configured extension."""
    if not config.enabled:
        return []

    extensions = frozenset(e.lstrip(".") for e in (config.extensions or DEFAULT_EXTENSIONS))
    findings: list[Finding] = []

    for rel_path in iter_files(project_root):
        name = rel_path.rsplit("/", 1)[-1]
        if "." not in name:
            continue
        ext = name.rsplit(".", 1)[1]
        if ext not in extensions:
            continue
        if config.exclude and matches_any(rel_path, config.exclude):
            logger.debug("Disable-comments: %s excluded", rel_path)
            continue

        lines = read_lines(project_root, rel_path, DOMAIN)
        for lineno, directive in find_disable_comments(lines, ext):
            findings.append(
                error(
                    DOMAIN,
                    "disable-comments/found",
                    f"Found '{directive}' comment",
                    rel_path,
                    lineno,
                )
            )

    return findings
