"""Declared shape of ``check.toml`` and the exhaustive schema validator.

The shape is declared once as a tree of spec objects.  The same tree drives
validation (:func:`validate_config`) and JSON Schema export
(:func:`to_json_schema`), so the two cannot drift apart.

Validation collects every problem in one pass and returns them as
human-readable ``"<dotted.path>: <reason>"`` strings, in document order
followed by cross-field problems.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Union

from repopolicy.config.globs import validate_glob
from repopolicy.naming.cases import VALID_CASES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_ESLINT_SEVERITIES: frozenset[str] = frozenset({"off", "warn", "error"})
VALID_COVERAGE_RUNNERS: frozenset[str] = frozenset({"vitest", "jest", "pytest", "auto"})
VALID_DOCS_ENFORCEMENT: frozenset[str] = frozenset({"warn", "block"})
VALID_BUMP_TYPES: frozenset[str] = frozenset({"patch", "minor", "major"})
VALID_HOOK_NAMES: frozenset[str] = frozenset(
    {
        "pre-commit",
        "prepare-commit-msg",
        "commit-msg",
        "post-commit",
        "pre-rebase",
        "post-checkout",
        "post-merge",
        "pre-push",
    }
)

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

# ---------------------------------------------------------------------------
# Spec objects
# ---------------------------------------------------------------------------

_SCALAR_KINDS = frozenset({"bool", "int", "number", "string", "enum", "regex", "glob"})
_LIST_KINDS = frozenset({"string_list", "glob_list"})


@dataclass(frozen=True)
class FieldSpec:
    """A leaf value: scalar or list of strings."""

    kind: str
    description: str = ""
    choices: frozenset[str] | None = None
    minimum: float | None = None
    maximum: float | None = None
    unique: bool = False
    non_empty: bool = False
    item_name: str = "value"


@dataclass(frozen=True)
class TableSpec:
    """A TOML table with a closed set of keys (unless *open* is set).

    Every key in *required* must be present, and at least one key of
    *any_of* when it is non-empty.
    """

    fields: dict[str, Spec]
    description: str = ""
    required: frozenset[str] = frozenset()
    any_of: frozenset[str] = frozenset()
    open: bool = False


@dataclass(frozen=True)
class ArrayOfTablesSpec:
    """A ``[[repeated]]`` block."""

    item: TableSpec
    description: str = ""


@dataclass(frozen=True)
class MapSpec:
    """A table with user-chosen keys whose values all share one spec."""

    value: Spec
    description: str = ""
    key_description: str = "key"
    key_choices: frozenset[str] | None = None


@dataclass(frozen=True)
class OneOfSpec:
    """A value that may take one of several shapes, chosen by its TOML type."""

    options: tuple[Spec, ...]
    description: str = ""


Spec = Union[FieldSpec, TableSpec, ArrayOfTablesSpec, MapSpec, OneOfSpec]


def _toggle(description: str) -> TableSpec:
    return TableSpec({"enabled": FieldSpec("bool", "Enable this check.")}, description)


_ENABLED = FieldSpec("bool", "Enable this check.")


def _globs(description: str) -> FieldSpec:
    """A list of glob patterns; duplicates are rejected."""
    return FieldSpec("glob_list", description, unique=True, item_name="pattern")


# ---------------------------------------------------------------------------
# Declared shape
# ---------------------------------------------------------------------------

_ESLINT_RULE = OneOfSpec(
    (
        FieldSpec("enum", "Rule severity.", choices=VALID_ESLINT_SEVERITIES),
        TableSpec(
            {"severity": FieldSpec("enum", "Rule severity.", choices=VALID_ESLINT_SEVERITIES)},
            "Rule severity plus tool-owned options.",
            required=frozenset({"severity"}),
            open=True,
        ),
    ),
    "ESLint rule severity or severity with options.",
)

_ESLINT = TableSpec(
    {
        "enabled": _ENABLED,
        "files": _globs("Files to lint."),
        "ignore": _globs("Files excluded from linting."),
        "max-warnings": FieldSpec("int", "Maximum allowed warnings.", minimum=0),
        "rules": MapSpec(_ESLINT_RULE, "Required ESLint rules.", key_description="rule name"),
    },
    "ESLint linting.",
)

_TSC = TableSpec(
    {
        "enabled": _ENABLED,
        "require": MapSpec(
            FieldSpec("bool"), "Required compiler options.", key_description="compiler option"
        ),
    },
    "TypeScript type checking.",
)

_COVERAGE_RUN = TableSpec(
    {
        "enabled": _ENABLED,
        "min_threshold": FieldSpec(
            "number", "Minimum coverage percentage.", minimum=0, maximum=100
        ),
        "runner": FieldSpec("enum", "Coverage runner.", choices=VALID_COVERAGE_RUNNERS),
    },
    "Run tests with coverage.",
)

_DISABLE_COMMENTS = TableSpec(
    {
        "enabled": _ENABLED,
        "extensions": FieldSpec(
            "string_list", "File extensions to scan.", unique=True, item_name="extension"
        ),
        "exclude": _globs("Files excluded from scanning."),
    },
    "Forbid lint-suppression comments.",
)

_TESTS = TableSpec(
    {
        "enabled": _ENABLED,
        "pattern": FieldSpec("glob", "Glob identifying test files."),
        "min_test_files": FieldSpec("int", "Minimum number of test files.", minimum=0),
    },
    "Require test files.",
)

_NAMING_RULE = TableSpec(
    {
        "extensions": FieldSpec(
            "string_list",
            "File extensions this rule applies to.",
            unique=True,
            non_empty=True,
            item_name="extension",
        ),
        "file_case": FieldSpec("enum", "Case convention for file names.", choices=VALID_CASES),
        "folder_case": FieldSpec(
            "enum", "Case convention for folder names.", choices=VALID_CASES
        ),
        "exclude": _globs("Paths excluded from this rule."),
        "allow_dynamic_routes": FieldSpec(
            "bool", "Accept [id], [...slug], (group) and @slot route segments."
        ),
    },
    "Naming rule.",
    required=frozenset({"extensions"}),
    any_of=frozenset({"file_case", "folder_case"}),
)

_NAMING = TableSpec(
    {"enabled": _ENABLED, "rules": ArrayOfTablesSpec(_NAMING_RULE, "Naming rules.")},
    "File and folder naming conventions.",
)

_COMMAND_LIST = FieldSpec(
    "string_list", "Commands that must run.", non_empty=True, item_name="command"
)

_CI = TableSpec(
    {
        "enabled": _ENABLED,
        "require_workflows": FieldSpec(
            "string_list", "Workflow files that must exist.", unique=True, item_name="workflow"
        ),
        "base_branch": FieldSpec("string", "Branch pull requests target.", non_empty=True),
        "allow_push_trigger": FieldSpec("bool", "Accept push triggers on the base branch."),
        "commands": MapSpec(
            OneOfSpec(
                (
                    _COMMAND_LIST,
                    MapSpec(_COMMAND_LIST, "Job-scoped commands.", key_description="job id"),
                ),
            ),
            "Required commands per workflow file.",
            key_description="workflow file",
        ),
    },
    "CI workflow requirements.",
)

_FORBIDDEN_FILES = TableSpec(
    {
        "enabled": _ENABLED,
        "files": _globs("Forbidden file patterns."),
        "ignore": _globs("Paths never reported (replaces defaults)."),
        "message": FieldSpec("string", "Custom message for violations."),
    },
    "Files that must not exist in the repository.",
)

_COMMITS = TableSpec(
    {
        "enabled": _ENABLED,
        "types": FieldSpec("string_list", "Allowed commit types.", unique=True, item_name="type"),
        "pattern": FieldSpec("regex", "Custom commit subject regex."),
        "require_scope": FieldSpec("bool", "Require a (scope)."),
        "max_subject_length": FieldSpec("int", "Maximum subject length.", minimum=1),
    },
    "Commit message format.",
)

_TICKETS = TableSpec(
    {
        "enabled": _ENABLED,
        "pattern": FieldSpec("regex", "Ticket reference regex."),
        "require_in_commits": FieldSpec("bool", "Require a ticket in commit messages."),
    },
    "Ticket references.",
)

_CODEOWNERS_RULE = TableSpec(
    {
        "pattern": FieldSpec("string", "CODEOWNERS path pattern.", non_empty=True),
        "owners": FieldSpec("string_list", "Owners, in order.", non_empty=True, item_name="owner"),
    },
    "Required CODEOWNERS rule.",
    required=frozenset({"pattern", "owners"}),
)

_CODEOWNERS = TableSpec(
    {"enabled": _ENABLED, "rules": ArrayOfTablesSpec(_CODEOWNERS_RULE, "Required rules.")},
    "CODEOWNERS validation.",
)

_HOOKS = TableSpec(
    {
        "enabled": _ENABLED,
        "require_husky": FieldSpec("bool", "Require a .husky directory."),
        "protected_branches": FieldSpec(
            "string_list", "Branches pre-push must guard.", unique=True, item_name="branch"
        ),
        "commands": MapSpec(
            FieldSpec("string_list", "Commands the hook must run.", item_name="command"),
            "Required commands per hook.",
            key_description="hook name",
            key_choices=VALID_HOOK_NAMES,
        ),
    },
    "Git hook requirements.",
)

_PR = TableSpec(
    {
        "enabled": _ENABLED,
        "max_files": FieldSpec("int", "Maximum changed files.", minimum=1),
        "max_lines": FieldSpec("int", "Maximum changed lines.", minimum=1),
        "exclude": _globs("Files not counted."),
    },
    "Pull request size limits.",
)

_DOC_TYPE = TableSpec(
    {
        "required_sections": FieldSpec(
            "string_list",
            "Headings every doc of this type must have.",
            unique=True,
            item_name="section",
        ),
        "frontmatter": FieldSpec(
            "string_list",
            "Frontmatter keys every doc of this type must set.",
            unique=True,
            item_name="field",
        ),
    },
    "Requirements for docs whose frontmatter sets this type.",
)

_DOCS = TableSpec(
    {
        "enabled": _ENABLED,
        "path": FieldSpec("string", "Directory holding the documentation.", non_empty=True),
        "enforcement": FieldSpec(
            "enum", "Report problems as warnings or errors.", choices=VALID_DOCS_ENFORCEMENT
        ),
        "allowlist": _globs("Markdown files permitted outside the docs directory."),
        "max_files": FieldSpec("int", "Maximum markdown files in the docs directory.", minimum=1),
        "max_file_lines": FieldSpec("int", "Maximum lines per doc.", minimum=1),
        "max_total_kb": FieldSpec("number", "Maximum total docs size in KB.", minimum=0),
        "types": MapSpec(_DOC_TYPE, "Per doc type requirements.", key_description="doc type"),
        "staleness_days": FieldSpec(
            "int", "Days a doc may lag behind its mapped source.", minimum=0
        ),
        "stale_mappings": MapSpec(
            FieldSpec("string", "Source path the doc describes.", non_empty=True),
            "Doc to source mappings checked for staleness.",
            key_description="doc path",
        ),
        "min_coverage": FieldSpec(
            "number", "Minimum percent of exports named in the docs.", minimum=0, maximum=100
        ),
        "coverage_paths": _globs("Source files whose exports must be documented."),
        "exclude_patterns": _globs("Source files left out of coverage."),
    },
    "Documentation hygiene.",
)

_CHANGESETS = TableSpec(
    {
        "enabled": _ENABLED,
        "validate_format": FieldSpec("bool", "Check frontmatter and bump types."),
        "require_description": FieldSpec("bool", "Require a description body."),
        "min_description_length": FieldSpec("int", "Minimum description length.", minimum=1),
        "allowed_bump_types": FieldSpec(
            "string_list",
            "Bump types changesets may use.",
            choices=VALID_BUMP_TYPES,
            unique=True,
            item_name="bump type",
        ),
        "require_for_paths": _globs("Changed paths that require a changeset."),
        "base_branch": FieldSpec("string", "Branch changes are compared with.", non_empty=True),
    },
    "Changeset files in .changeset/.",
)

_EXTENDS = TableSpec(
    {
        "registry": FieldSpec("string", "Registry the rulesets come from.", non_empty=True),
        "rulesets": FieldSpec(
            "string_list", "Rulesets this policy builds on.", unique=True, item_name="ruleset"
        ),
    },
    "Shared rulesets; their names are checked against the repository tier.",
)

POLICY_SCHEMA = TableSpec(
    {
        "code": TableSpec(
            {
                "linting": TableSpec({"eslint": _ESLINT}),
                "formatting": TableSpec({"prettier": _toggle("Prettier formatting.")}),
                "types": TableSpec({"tsc": _TSC}),
                "unused": TableSpec({"knip": _toggle("Unused code detection with Knip.")}),
                "security": TableSpec(
                    {
                        "secrets": _toggle("Secret scanning with gitleaks."),
                        "npmaudit": _toggle("Dependency audit."),
                    }
                ),
                "coverage_run": _COVERAGE_RUN,
                "quality": TableSpec({"disable-comments": _DISABLE_COMMENTS}),
                "tests": _TESTS,
                "naming": _NAMING,
            },
            "Code domains.",
        ),
        "process": TableSpec(
            {
                "ci": _CI,
                "forbidden_files": _FORBIDDEN_FILES,
                "commits": _COMMITS,
                "tickets": _TICKETS,
                "codeowners": _CODEOWNERS,
                "hooks": _HOOKS,
                "pr": _PR,
                "docs": _DOCS,
                "changesets": _CHANGESETS,
            },
            "Process domains.",
        ),
        "extends": _EXTENDS,
    },
    "Repository policy (check.toml).",
)

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_TYPE_NAMES: dict[str, str] = {
    "bool": "boolean",
    "int": "integer",
    "number": "number",
    "string": "string",
    "enum": "string",
    "regex": "string",
    "glob": "string",
    "string_list": "array",
    "glob_list": "array",
}


def _type_name(value: object) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "table"
    return type(value).__name__


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


@dataclass
class _Collector:
    errors: list[str] = field(default_factory=list)

    def add(self, path: str, reason: str) -> None:
        self.errors.append(f"{path or '<root>'}: {reason}")


def _check_scalar(value: object, spec: FieldSpec, path: str, out: _Collector) -> None:
    kind = spec.kind

    if kind == "bool":
        if not isinstance(value, bool):
            out.add(path, f"expected boolean, got {_type_name(value)}")
        return

    if kind in ("int", "number"):
        ok = isinstance(value, int) or (kind == "number" and isinstance(value, float))
        if isinstance(value, bool) or not ok:
            out.add(path, f"expected {_TYPE_NAMES[kind]}, got {_type_name(value)}")
            return
        number = float(value)  # type: ignore[arg-type]
        if spec.minimum is not None and number < spec.minimum:
            out.add(path, f"must be >= {spec.minimum:g}, got {value}")
        if spec.maximum is not None and number > spec.maximum:
            out.add(path, f"must be <= {spec.maximum:g}, got {value}")
        return

    if not isinstance(value, str):
        out.add(path, f"expected string, got {_type_name(value)}")
        return

    if kind == "string" and spec.non_empty and not value.strip():
        out.add(path, "must not be empty")
    elif kind == "enum" and spec.choices is not None and value not in spec.choices:
        out.add(path, f"invalid value '{value}', must be one of {sorted(spec.choices)}")
    elif kind == "glob":
        reason = validate_glob(value)
        if reason is not None:
            out.add(path, f"invalid glob pattern '{value}': {reason}")
    elif kind == "regex":
        try:
            re.compile(value)
        except re.error as exc:
            out.add(path, f"invalid regular expression '{value}': {exc}")


def _check_list(value: object, spec: FieldSpec, path: str, out: _Collector) -> None:
    if not isinstance(value, list):
        out.add(path, f"expected array, got {_type_name(value)}")
        return

    if spec.non_empty and not value:
        out.add(path, f"must contain at least one {spec.item_name}")

    seen: set[str] = set()
    for idx, item in enumerate(value):
        item_path = f"{path}[{idx}]"
        if not isinstance(item, str):
            out.add(item_path, f"expected string, got {_type_name(item)}")
            continue
        if spec.kind == "glob_list":
            reason = validate_glob(item)
            if reason is not None:
                out.add(item_path, f"invalid glob pattern '{item}': {reason}")
        elif not item.strip():
            out.add(item_path, f"{spec.item_name} must not be empty")
        elif spec.choices is not None and item not in spec.choices:
            out.add(
                item_path,
                f"invalid {spec.item_name} '{item}', must be one of {sorted(spec.choices)}",
            )
        if spec.unique:
            if item in seen:
                out.add(path, f"duplicate {spec.item_name} '{item}'")
            seen.add(item)


def _check_table(value: object, spec: TableSpec, path: str, out: _Collector) -> None:
    if not isinstance(value, dict):
        out.add(path, f"expected table, got {_type_name(value)}")
        return

    for key in sorted(spec.required):
        if key not in value:
            out.add(path, f"missing required key '{key}'")

    if spec.any_of and not spec.any_of.intersection(value):
        names = ", ".join(f"'{key}'" for key in sorted(spec.any_of))
        out.add(path, f"must set at least one of {names}")

    for key, item in value.items():
        child = spec.fields.get(key)
        if child is None:
            if not spec.open:
                out.add(path, f"unknown key '{key}'")
            continue
        _check(item, child, _join(path, key), out)


def _shape_accepts(spec: Spec, value: object) -> bool:
    """Return True if *spec* is the option intended for a value of this TOML type."""
    if isinstance(spec, FieldSpec):
        if spec.kind in _LIST_KINDS:
            return isinstance(value, list)
        return not isinstance(value, (list, dict))
    if isinstance(spec, ArrayOfTablesSpec):
        return isinstance(value, list)
    if isinstance(spec, OneOfSpec):
        return any(_shape_accepts(opt, value) for opt in spec.options)
    return isinstance(value, dict)


def _check(value: object, spec: Spec, path: str, out: _Collector) -> None:
    if isinstance(spec, FieldSpec):
        if spec.kind in _LIST_KINDS:
            _check_list(value, spec, path, out)
        else:
            _check_scalar(value, spec, path, out)
    elif isinstance(spec, TableSpec):
        _check_table(value, spec, path, out)
    elif isinstance(spec, ArrayOfTablesSpec):
        if not isinstance(value, list):
            out.add(path, f"expected array of tables, got {_type_name(value)}")
            return
        for idx, item in enumerate(value):
            _check_table(item, spec.item, f"{path}[{idx}]", out)
    elif isinstance(spec, MapSpec):
        if not isinstance(value, dict):
            out.add(path, f"expected table, got {_type_name(value)}")
            return
        for key, item in value.items():
            if not str(key).strip():
                out.add(path, f"{spec.key_description} must not be empty")
            elif spec.key_choices is not None and key not in spec.key_choices:
                out.add(
                    path,
                    f"invalid {spec.key_description} '{key}', "
                    f"must be one of {sorted(spec.key_choices)}",
                )
            _check(item, spec.value, _join(path, str(key)), out)
    else:
        for option in spec.options:
            if _shape_accepts(option, value):
                _check(value, option, path, out)
                return
        out.add(path, f"unexpected {_type_name(value)} value")


def _naming_extension_conflicts(raw: dict[str, Any]) -> list[str]:
    """Report extensions claimed by more than one naming rule.

    Builds one extension -> rule-index multiset over all rules, so every
    conflicting rule is named, independent of rule order.
    """
    code = raw.get("code")
    naming = code.get("naming") if isinstance(code, dict) else None
    rules = naming.get("rules") if isinstance(naming, dict) else None
    if not isinstance(rules, list):
        return []

    owners: dict[str, list[int]] = defaultdict(list)
    for idx, rule in enumerate(rules):
        if not isinstance(rule, dict) or not isinstance(rule.get("extensions"), list):
            continue
        for ext in dict.fromkeys(e for e in rule["extensions"] if isinstance(e, str)):
            owners[ext].append(idx)

    errors: list[str] = []
    for ext, indices in owners.items():
        if len(indices) > 1:
            where = ", ".join(f"code.naming.rules[{i}]" for i in indices)
            errors.append(
                f"code.naming.rules: extension '{ext}' appears in multiple rules ({where})"
            )
    return errors


def validate_config(raw: object) -> list[str]:
    """Validate a decoded ``check.toml`` document.

    Returns every problem found (empty list when the document is valid).
    An empty document is valid: all domains default to disabled.
    """
    out = _Collector()
    _check(raw, POLICY_SCHEMA, "", out)
    if isinstance(raw, dict):
        out.errors.extend(_naming_extension_conflicts(raw))
    return out.errors


# ---------------------------------------------------------------------------
# JSON Schema export
# ---------------------------------------------------------------------------


def _field_schema(spec: FieldSpec) -> dict[str, Any]:
    result: dict[str, Any]
    if spec.kind in _LIST_KINDS:
        result = {"type": "array", "items": {"type": "string"}}
        if spec.choices is not None:
            result["items"]["enum"] = sorted(spec.choices)
        if spec.unique:
            result["uniqueItems"] = True
        if spec.non_empty:
            result["minItems"] = 1
    else:
        result = {"type": _TYPE_NAMES[spec.kind]}
        if spec.kind == "enum" and spec.choices is not None:
            result["enum"] = sorted(spec.choices)
        if spec.minimum is not None:
            result["minimum"] = spec.minimum
        if spec.maximum is not None:
            result["maximum"] = spec.maximum
        if spec.kind == "regex":
            result["format"] = "regex"
        if spec.kind == "string" and spec.non_empty:
            result["minLength"] = 1
    return result


def _spec_schema(spec: Spec) -> dict[str, Any]:
    if isinstance(spec, FieldSpec):
        result = _field_schema(spec)
    elif isinstance(spec, TableSpec):
        result = {
            "type": "object",
            "properties": {key: _spec_schema(child) for key, child in spec.fields.items()},
            "additionalProperties": spec.open,
        }
        if spec.required:
            result["required"] = sorted(spec.required)
        if spec.any_of:
            result["anyOf"] = [{"required": [key]} for key in sorted(spec.any_of)]
    elif isinstance(spec, ArrayOfTablesSpec):
        result = {"type": "array", "items": _spec_schema(spec.item)}
    elif isinstance(spec, MapSpec):
        result = {"type": "object", "additionalProperties": _spec_schema(spec.value)}
        if spec.key_choices is not None:
            result["propertyNames"] = {"enum": sorted(spec.key_choices)}
    else:
        result = {"oneOf": [_spec_schema(option) for option in spec.options]}

    if spec.description:
        result["description"] = spec.description
    return result


def to_json_schema() -> dict[str, Any]:
    """Return a JSON Schema document describing ``check.toml``."""
    schema = _spec_schema(POLICY_SCHEMA)
    return {"$schema": JSON_SCHEMA_DIALECT, "title": "check.toml", **schema}
