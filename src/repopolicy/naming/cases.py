"""Case convention classification for file and folder names."""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KEBAB_CASE = "kebab-case"
SNAKE_CASE = "snake_case"
CAMEL_CASE = "camelCase"
PASCAL_CASE = "PascalCase"

VALID_CASES: frozenset[str] = frozenset({KEBAB_CASE, SNAKE_CASE, CAMEL_CASE, PASCAL_CASE})

_CASE_PATTERNS: dict[str, re.Pattern[str]] = {
    KEBAB_CASE: re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$"),
    SNAKE_CASE: re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$"),
    CAMEL_CASE: re.compile(r"^[a-z][a-zA-Z0-9]*$"),
    PASCAL_CASE: re.compile(r"^[A-Z][a-zA-Z0-9]*$"),
}

_NUMERIC_RE = re.compile(r"^\d+$")


# ---------------------------------------------------------------------------
# Segment helpers
# ---------------------------------------------------------------------------


def file_base_name(filename: str) -> str:
    """Reduce a filename to the part validated against a case convention.

    Everything from the first dot on is dropped, so ``my-utils.test.ts``
    yields ``my-utils``.  Bracketed route names keep their spread dots:
    ``[...slug].tsx`` yields ``[...slug]``.
    """
    if filename.startswith("[") and "]" in filename:
        return filename[: filename.rfind("]") + 1]
    return filename.split(".", 1)[0]


def _unwrap_dynamic(segment: str) -> str | None:
    """Return the inner identifier of a dynamic route segment, or None.

    Handles ``[id]``, ``[...slug]``, ``[[...slug]]``, ``(group)`` and
    ``@slot``.  Nested wrappers are unwrapped one level per call.
    """
    if len(segment) > 2 and segment.startswith("[") and segment.endswith("]"):
        inner = segment[1:-1]
        if inner.startswith("..."):
            inner = inner[3:]
        return inner
    if len(segment) > 2 and segment.startswith("(") and segment.endswith(")"):
        return segment[1:-1]
    if len(segment) > 1 and segment.startswith("@"):
        return segment[1:]
    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def is_valid_case(segment: str, convention: str, *, allow_dynamic_routes: bool = False) -> bool:
    """Return True if *segment* satisfies *convention*.

    Purely numeric segments (``404``) and segments starting with ``_``
    always pass.  With *allow_dynamic_routes*, route wrappers are stripped
    and the inner identifier is validated recursively.

    Raises ``ValueError`` for an unknown convention name.
    """
    pattern = _CASE_PATTERNS.get(convention)
    if pattern is None:
        msg = f"Unknown case convention '{convention}', must be one of {sorted(VALID_CASES)}"
        raise ValueError(msg)

    if not segment or segment.startswith("_") or _NUMERIC_RE.match(segment):
        return True

    if allow_dynamic_routes:
        inner = _unwrap_dynamic(segment)
        if inner is not None:
            return is_valid_case(inner, convention, allow_dynamic_routes=True)

    return pattern.match(segment) is not None


def is_valid_file_name(
    filename: str, convention: str, *, allow_dynamic_routes: bool = False
) -> bool:
    """Validate a filename (with extension) against *convention*.

    Dotfiles such as ``.eslintrc.js`` reduce to an empty base and pass.
    """
    return is_valid_case(
        file_base_name(filename), convention, allow_dynamic_routes=allow_dynamic_routes
    )
