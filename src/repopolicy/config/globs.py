"""Glob syntax validation and path matching for policy patterns.

Validation is purely syntactic: a pattern is well-formed when it is non-empty
and its ``[...]`` and ``{...}`` delimiters balance.  Matching is a thin layer
over :mod:`fnmatch` that adds ``{a,b}`` alternation and lets every
``**/`` also match zero directories.
"""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass

_BRACE_GROUP_RE = re.compile(r"\{([^{}]*)\}")


@dataclass(frozen=True)
class DelimiterCount:
    """Unclosed delimiter counts for one pattern, tracked per delimiter kind."""

    brackets: int = 0
    braces: int = 0

    @property
    def total(self) -> int:
        return self.brackets + self.braces


def count_unclosed_delimiters(pattern: str) -> DelimiterCount:
    """Count delimiters that are opened but never closed, or closed but never opened.

    Brackets and braces are tracked independently, so ``"[{]}"`` is balanced
    for both kinds.  A stray ``]`` or ``}`` counts as one unclosed delimiter.
    """
    open_brackets = 0
    open_braces = 0
    stray_brackets = 0
    stray_braces = 0

    for ch in pattern:
        if ch == "[":
            open_brackets += 1
        elif ch == "]":
            if open_brackets:
                open_brackets -= 1
            else:
                stray_brackets += 1
        elif ch == "{":
            open_braces += 1
        elif ch == "}":
            if open_braces:
                open_braces -= 1
            else:
                stray_braces += 1

    return DelimiterCount(
        brackets=open_brackets + stray_brackets,
        braces=open_braces + stray_braces,
    )


def validate_glob(pattern: str) -> str | None:
    """Return ``None`` for a well-formed glob, otherwise the reason it is malformed."""
    if not pattern:
        return "pattern must not be empty"

    counts = count_unclosed_delimiters(pattern)
    reasons: list[str] = []
    if counts.brackets:
        reasons.append(f"{counts.brackets} unbalanced bracket(s)")
    if counts.braces:
        reasons.append(f"{counts.braces} unbalanced brace(s)")
    if reasons:
        return ", ".join(reasons)
    return None


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternations, innermost group first.

    ``"**/*.{env,key}"`` becomes ``["**/*.env", "**/*.key"]``.  A pattern
    without braces expands to itself.
    """
    match = _BRACE_GROUP_RE.search(pattern)
    if match is None:
        return [pattern]

    head = pattern[: match.start()]
    tail = pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


def _globstar_variants(pattern: str) -> list[str]:
    """Variants of *pattern* with each ``**/`` either kept or dropped."""
    idx = pattern.find("**/")
    if idx == -1:
        return [pattern]
    head = pattern[:idx]
    variants: list[str] = []
    for rest in _globstar_variants(pattern[idx + 3 :]):
        variants.append(f"{head}**/{rest}")
        variants.append(f"{head}{rest}")
    return variants


def glob_match(path: str, pattern: str) -> bool:
    """Return True if the POSIX-style relative *path* matches *pattern*."""
    for candidate in expand_braces(pattern):
        for variant in _globstar_variants(candidate):
            if fnmatch.fnmatchcase(path, variant):
                return True
    return False


def matches_any(path: str, patterns: tuple[str, ...] | list[str]) -> bool:
    """Return True if *path* matches at least one of *patterns*."""
    return any(glob_match(path, pattern) for pattern in patterns)
