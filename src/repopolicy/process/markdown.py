"""Markdown helpers shared by the docs and changesets domains.

Frontmatter is a YAML mapping between a leading ``---`` line and the next
``---`` line.  Headings and links inside fenced code blocks are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import yaml

FRONTMATTER_DELIMITER = "---"

_HEADING_RE = re.compile(r"^#{1,6}\s+(.+?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
# [text](target) and ![alt](target "title"); the target stops at whitespace.
_LINK_RE = re.compile(r"!?\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+[\"'][^)]*[\"'])?\s*\)")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


class FrontmatterError(ValueError):
    """Raised when a document opens frontmatter it never closes, or it is not a mapping."""


@dataclass(frozen=True)
class MarkdownDocument:
    """A markdown file split into frontmatter and body."""

    frontmatter: dict[str, Any] | None
    body: str
    body_start: int = 1  # 1-based line number of the first body line

    @property
    def has_frontmatter(self) -> bool:
        return self.frontmatter is not None


def parse_markdown(text: str) -> MarkdownDocument:
    """Split *text* into frontmatter and body.

    Raises ``FrontmatterError`` when the opening delimiter has no closing
    one, the YAML is invalid, or it decodes to something other than a
    mapping.  An empty frontmatter block is an empty mapping.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return MarkdownDocument(frontmatter=None, body=text)

    closing = next(
        (i for i in range(1, len(lines)) if lines[i].strip() == FRONTMATTER_DELIMITER), None
    )
    if closing is None:
        msg = f"frontmatter has no closing '{FRONTMATTER_DELIMITER}' delimiter"
        raise FrontmatterError(msg)

    try:
        data = yaml.safe_load("\n".join(lines[1:closing]))
    except yaml.YAMLError as exc:
        msg = f"invalid YAML in frontmatter: {exc}"
        raise FrontmatterError(msg) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"frontmatter must be a mapping, got {type(data).__name__}"
        raise FrontmatterError(msg)

    body = "\n".join(lines[closing + 1 :])
    return MarkdownDocument(frontmatter=data, body=body, body_start=closing + 2)


def _outside_fences(text: str, first_line: int) -> list[tuple[int, str]]:
    """``(line_number, line)`` pairs not inside a fenced code block."""
    result: list[tuple[int, str]] = []
    fence: str | None = None
    for offset, line in enumerate(text.splitlines()):
        match = _FENCE_RE.match(line)
        if match:
            if fence is None:
                fence = match.group(1)
            elif match.group(1) == fence:
                fence = None
            continue
        if fence is None:
            result.append((first_line + offset, line))
    return result


def headings(doc: MarkdownDocument) -> list[str]:
    """Heading texts of any level, in document order."""
    found: list[str] = []
    for _, line in _outside_fences(doc.body, doc.body_start):
        match = _HEADING_RE.match(line)
        if match:
            found.append(match.group(1).strip())
    return found


def is_local_link(target: str) -> bool:
    """True for links into the repository: no URL scheme and not a bare ``#anchor``."""
    if target.startswith(("#", "//")):
        return False
    return _SCHEME_RE.match(target) is None


def local_links(doc: MarkdownDocument) -> list[tuple[int, str]]:
    """``(line, path)`` for every repository-local link, anchors and queries stripped."""
    links: list[tuple[int, str]] = []
    for lineno, line in _outside_fences(doc.body, doc.body_start):
        for match in _LINK_RE.finditer(line):
            target = match.group(1)
            if not is_local_link(target):
                continue
            path = re.split(r"[#?]", target, maxsplit=1)[0]
            if path:
                links.append((lineno, path))
    return links
