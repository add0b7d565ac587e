"""Docs domain: markdown lives under the docs directory and stays healthy.

Checks, in report order: markdown outside the docs directory, the file
count and total size budget, per-file line limits, per-type required
sections and frontmatter, broken local links, staleness against mapped
sources, and export coverage of the source tree.

With ``enforcement = "warn"`` (the default) every problem is a warning and
the run still passes; ``"block"`` turns them into errors.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import TYPE_CHECKING

from repopolicy.config.globs import matches_any
from repopolicy.findings import Finding, error, warning
from repopolicy.process.markdown import FrontmatterError, headings, local_links, parse_markdown
from repopolicy.workspace import git_output, iter_files, read_text

if TYPE_CHECKING:
    from pathlib import Path

    from repopolicy.config.model import DocsConfig
    from repopolicy.process.markdown import MarkdownDocument

logger = logging.getLogger(__name__)

DOMAIN = "docs"
MARKDOWN_EXTENSIONS: tuple[str, ...] = (".md", ".mdx")
SECONDS_PER_DAY = 86_400

# export function f / export default class C / export const x / export interface I ...
_EXPORT_RE = re.compile(
    r"^\s*export\s+(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
    r"(?:function\*?|class|const|let|var|interface|type|enum)\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)


def _finding(
    config: DocsConfig,
    rule_id: str,
    message: str,
    file: str | None = None,
    line: int | None = None,
) -> Finding:
    make = error if config.enforcement == "block" else warning
    return make(DOMAIN, rule_id, message, file, line)


def _is_markdown(rel_path: str) -> bool:
    return rel_path.lower().endswith(MARKDOWN_EXTENSIONS)


def _in_docs(config: DocsConfig, rel_path: str) -> bool:
    return rel_path.startswith(config.directory + "/")


# ---------------------------------------------------------------------------
# Per-document checks
# ---------------------------------------------------------------------------


def _check_type(
    config: DocsConfig, doc: MarkdownDocument, rel_path: str
) -> list[Finding]:
    doc_type = (doc.frontmatter or {}).get("type")
    if not isinstance(doc_type, str):
        return []
    rule = config.type_rule(doc_type)
    if rule is None:
        return []

    findings: list[Finding] = []
    present = {h.casefold() for h in headings(doc)}
    for section in rule.required_sections:
        if section.casefold() not in present:
            findings.append(
                _finding(
                    config,
                    "docs/missing-section",
                    f"Missing required section '{section}' for doc type '{doc_type}'",
                    rel_path,
                )
            )
    for key in rule.frontmatter:
        if key not in (doc.frontmatter or {}):
            findings.append(
                _finding(
                    config,
                    "docs/missing-frontmatter",
                    f"Missing required frontmatter '{key}' for doc type '{doc_type}'",
                    rel_path,
                )
            )
    return findings


def _check_links(
    config: DocsConfig, doc: MarkdownDocument, rel_path: str, project_root: Path
) -> list[Finding]:
    findings: list[Finding] = []
    base = posixpath.dirname(rel_path)
    for lineno, target in local_links(doc):
        if target.startswith("/"):
            resolved = posixpath.normpath(target.lstrip("/"))
        else:
            resolved = posixpath.normpath(posixpath.join(base, target))
        if resolved.startswith("../") or not (project_root / resolved).exists():
            findings.append(
                _finding(
                    config, "docs/broken-link", f"Broken link to '{target}'", rel_path, lineno
                )
            )
    return findings


def _check_document(
    config: DocsConfig, rel_path: str, text: str, project_root: Path
) -> list[Finding]:
    findings: list[Finding] = []

    line_count = len(text.splitlines())
    if config.max_file_lines is not None and line_count > config.max_file_lines:
        findings.append(
            _finding(
                config,
                "docs/max-file-lines",
                f"File has {line_count} lines, max is {config.max_file_lines} (max_file_lines)",
                rel_path,
            )
        )

    try:
        doc = parse_markdown(text)
    except FrontmatterError as exc:
        findings.append(
            _finding(config, "docs/invalid-frontmatter", f"Invalid frontmatter: {exc}", rel_path)
        )
        return findings

    findings.extend(_check_type(config, doc, rel_path))
    findings.extend(_check_links(config, doc, rel_path, project_root))
    return findings


# ---------------------------------------------------------------------------
# Repository-level checks
# ---------------------------------------------------------------------------


def _last_commit_time(project_root: Path, rel_path: str) -> int | None:
    output = git_output(project_root, "log", "-1", "--format=%ct", "--", rel_path)
    if output is None or not output.strip():
        return None
    return int(output.strip())


def _check_staleness(config: DocsConfig, project_root: Path) -> list[Finding]:
    findings: list[Finding] = []
    for doc_path, source_path in config.stale_mappings:
        doc_time = _last_commit_time(project_root, doc_path)
        source_time = _last_commit_time(project_root, source_path)
        if doc_time is None or source_time is None:
            logger.debug("Docs: no git history for %s or %s, skipping", doc_path, source_path)
            continue
        lag_days = (source_time - doc_time) // SECONDS_PER_DAY
        if lag_days > config.staleness_days:
            findings.append(
                _finding(
                    config,
                    "docs/stale",
                    f"Doc is {lag_days} days older than {source_path} "
                    f"(staleness_days = {config.staleness_days})",
                    doc_path,
                )
            )
    return findings


def find_exports(source: str) -> list[str]:
    """Names exported by a JavaScript or TypeScript module, in source order."""
    return list(dict.fromkeys(_EXPORT_RE.findall(source)))


def _mentions(text: str, name: str) -> bool:
    return re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", text) is not None


def _check_coverage(
    config: DocsConfig, project_root: Path, docs_text: str
) -> list[Finding]:
    if config.min_coverage is None:
        return []

    exports: list[str] = []
    for rel_path in iter_files(project_root):
        if not matches_any(rel_path, config.coverage_paths):
            continue
        if config.exclude_patterns and matches_any(rel_path, config.exclude_patterns):
            logger.debug("Docs: %s excluded from coverage", rel_path)
            continue
        exports.extend(find_exports(read_text(project_root, rel_path, DOMAIN)))

    names = list(dict.fromkeys(exports))
    if not names:
        return []

    undocumented = [name for name in names if not _mentions(docs_text, name)]
    coverage = 100.0 * (len(names) - len(undocumented)) / len(names)
    if coverage >= config.min_coverage:
        return []
    return [
        _finding(
            config,
            "docs/coverage",
            f"Documentation coverage {coverage:.0f}% is below {config.min_coverage:g}% "
            f"(undocumented: {', '.join(undocumented)})",
        )
    ]


def check_docs(config: DocsConfig, project_root: Path) -> list[Finding]:
    """Validate markdown placement, size, structure, links, freshness and coverage."""
    if not config.enabled:
        return []

    findings: list[Finding] = []
    docs: list[tuple[str, str]] = []
    for rel_path in iter_files(project_root):
        if not _is_markdown(rel_path):
            continue
        if _in_docs(config, rel_path):
            docs.append((rel_path, read_text(project_root, rel_path, DOMAIN)))
        elif not matches_any(rel_path, config.allowlist):
            findings.append(
                _finding(
                    config,
                    "docs/outside-docs",
                    f"Markdown file outside {config.directory}/ (move it or add it to allowlist)",
                    rel_path,
                )
            )
    logger.debug("Docs: %d markdown file(s) under %s/", len(docs), config.directory)

    if config.max_files is not None and len(docs) > config.max_files:
        findings.append(
            _finding(
                config,
                "docs/max-files",
                f"{config.directory}/ has {len(docs)} files, max is {config.max_files} "
                "(max_files)",
            )
        )

    total_kb = sum(len(text.encode("utf-8")) for _, text in docs) / 1024
    if config.max_total_kb is not None and total_kb > config.max_total_kb:
        findings.append(
            _finding(
                config,
                "docs/max-total-size",
                f"{config.directory}/ total size is {total_kb:.1f} KB, max is "
                f"{config.max_total_kb:g} KB (max_total_kb)",
            )
        )

    for rel_path, text in docs:
        findings.extend(_check_document(config, rel_path, text, project_root))

    findings.extend(_check_staleness(config, project_root))
    findings.extend(_check_coverage(config, project_root, "\n".join(t for _, t in docs)))
    return findings
