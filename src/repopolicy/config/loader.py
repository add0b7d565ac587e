"""Load ``check.toml`` and build the immutable :class:`PolicyConfig`."""

from __future__ import annotations

import logging
import tomllib
from typing import TYPE_CHECKING, Any

from repopolicy.config.model import (
    DEFAULT_COVERAGE_PATHS,
    DEFAULT_FORBIDDEN_IGNORE,
    DEFAULT_STALENESS_DAYS,
    ChangesetsConfig,
    CiConfig,
    CodeownersConfig,
    CodeownersRule,
    CommandRequirement,
    CommitsConfig,
    CoverageRunConfig,
    DisableCommentsConfig,
    DocsConfig,
    DocTypeRule,
    EslintConfig,
    EslintRule,
    ExtendsConfig,
    ForbiddenFilesConfig,
    HooksConfig,
    JobCommandRequirement,
    NamingConfig,
    NamingRule,
    PolicyConfig,
    PrConfig,
    TestsConfig,
    TicketsConfig,
    ToolToggle,
    TriggerPolicy,
    TscConfig,
    WorkflowCommandRequirement,
)
from repopolicy.config.schema import validate_config

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "check.toml"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when the policy document is invalid.  Always fatal to the run."""

    def __init__(self, reasons: list[str], *, path: Path | None = None) -> None:
        self.reasons = list(reasons)
        self.path = path
        where = f"{path}: " if path is not None else ""
        super().__init__(where + "; ".join(self.reasons))


class ConfigNotFoundError(ConfigError):
    """Raised when no ``check.toml`` exists at the repository root."""


# ---------------------------------------------------------------------------
# Section builders (input already passed validate_config)
# ---------------------------------------------------------------------------


def _section(raw: dict[str, Any], *keys: str) -> dict[str, Any]:
    node: Any = raw
    for key in keys:
        node = node.get(key, {}) if isinstance(node, dict) else {}
    return node if isinstance(node, dict) else {}


def _strings(value: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in value or ())


def _toggle(data: dict[str, Any]) -> ToolToggle:
    return ToolToggle(enabled=bool(data.get("enabled", False)))


def _build_eslint(data: dict[str, Any]) -> EslintConfig:
    rules: list[EslintRule] = []
    for name, value in data.get("rules", {}).items():
        if isinstance(value, dict):
            options = tuple((k, v) for k, v in value.items() if k != "severity")
            rules.append(EslintRule(name=name, severity=value["severity"], options=options))
        else:
            rules.append(EslintRule(name=name, severity=str(value)))
    return EslintConfig(
        enabled=bool(data.get("enabled", False)),
        files=_strings(data.get("files")),
        ignore=_strings(data.get("ignore")),
        max_warnings=data.get("max-warnings"),
        rules=tuple(rules),
    )


def _build_naming(data: dict[str, Any]) -> NamingConfig:
    rules = tuple(
        NamingRule(
            extensions=frozenset(str(e) for e in rule["extensions"]),
            file_case=rule.get("file_case"),
            folder_case=rule.get("folder_case"),
            exclude=_strings(rule.get("exclude")),
            allow_dynamic_routes=bool(rule.get("allow_dynamic_routes", False)),
        )
        for rule in data.get("rules", [])
    )
    return NamingConfig(enabled=bool(data.get("enabled", False)), rules=rules)


def _build_ci(data: dict[str, Any]) -> CiConfig:
    requirements: list[CommandRequirement] = []
    for workflow, value in data.get("commands", {}).items():
        if isinstance(value, list):
            requirements.append(
                WorkflowCommandRequirement(workflow=workflow, commands=_strings(value))
            )
        else:
            for job_id, commands in value.items():
                requirements.append(
                    JobCommandRequirement(
                        workflow=workflow, job_id=job_id, commands=_strings(commands)
                    )
                )
    return CiConfig(
        enabled=bool(data.get("enabled", False)),
        require_workflows=_strings(data.get("require_workflows")),
        requirements=tuple(requirements),
        triggers=TriggerPolicy(
            base_branch=str(data.get("base_branch", "main")),
            allow_push=bool(data.get("allow_push_trigger", True)),
        ),
    )


def _build_docs(data: dict[str, Any]) -> DocsConfig:
    types = tuple(
        DocTypeRule(
            name=name,
            required_sections=_strings(rule.get("required_sections")),
            frontmatter=_strings(rule.get("frontmatter")),
        )
        for name, rule in data.get("types", {}).items()
    )
    return DocsConfig(
        enabled=bool(data.get("enabled", False)),
        path=str(data.get("path", DocsConfig.path)),
        enforcement=str(data.get("enforcement", DocsConfig.enforcement)),
        allowlist=_strings(data.get("allowlist")),
        max_files=data.get("max_files"),
        max_file_lines=data.get("max_file_lines"),
        max_total_kb=data.get("max_total_kb"),
        types=types,
        staleness_days=int(data.get("staleness_days", DEFAULT_STALENESS_DAYS)),
        stale_mappings=tuple(
            (doc, str(source)) for doc, source in data.get("stale_mappings", {}).items()
        ),
        min_coverage=data.get("min_coverage"),
        coverage_paths=(
            _strings(data["coverage_paths"])
            if "coverage_paths" in data
            else DEFAULT_COVERAGE_PATHS
        ),
        exclude_patterns=_strings(data.get("exclude_patterns")),
    )


def _build_changesets(data: dict[str, Any]) -> ChangesetsConfig:
    return ChangesetsConfig(
        enabled=bool(data.get("enabled", False)),
        validate_format=bool(data.get("validate_format", True)),
        require_description=bool(data.get("require_description", True)),
        min_description_length=data.get("min_description_length"),
        allowed_bump_types=_strings(data.get("allowed_bump_types")),
        require_for_paths=_strings(data.get("require_for_paths")),
        base_branch=str(data.get("base_branch", ChangesetsConfig.base_branch)),
    )


def _build_extends(raw: dict[str, Any]) -> ExtendsConfig | None:
    if "extends" not in raw:
        return None
    data = _section(raw, "extends")
    return ExtendsConfig(registry=data.get("registry"), rulesets=_strings(data.get("rulesets")))


def build_policy(raw: dict[str, Any]) -> PolicyConfig:
    """Validate *raw* and convert it into a :class:`PolicyConfig`.

    Raises ``ConfigError`` carrying every validation problem.
    """
    errors = validate_config(raw)
    if errors:
        raise ConfigError(errors)

    forbidden = _section(raw, "process", "forbidden_files")
    commits = _section(raw, "process", "commits")
    tickets = _section(raw, "process", "tickets")
    hooks = _section(raw, "process", "hooks")
    pr = _section(raw, "process", "pr")
    coverage = _section(raw, "code", "coverage_run")
    disable = _section(raw, "code", "quality", "disable-comments")
    tests = _section(raw, "code", "tests")
    tsc = _section(raw, "code", "types", "tsc")

    return PolicyConfig(
        eslint=_build_eslint(_section(raw, "code", "linting", "eslint")),
        prettier=_toggle(_section(raw, "code", "formatting", "prettier")),
        tsc=TscConfig(
            enabled=bool(tsc.get("enabled", False)),
            require=tuple((k, bool(v)) for k, v in tsc.get("require", {}).items()),
        ),
        knip=_toggle(_section(raw, "code", "unused", "knip")),
        secrets=_toggle(_section(raw, "code", "security", "secrets")),
        npmaudit=_toggle(_section(raw, "code", "security", "npmaudit")),
        coverage_run=CoverageRunConfig(
            enabled=bool(coverage.get("enabled", False)),
            min_threshold=coverage.get("min_threshold"),
            runner=str(coverage.get("runner", "auto")),
        ),
        disable_comments=DisableCommentsConfig(
            enabled=bool(disable.get("enabled", False)),
            extensions=_strings(disable.get("extensions")),
            exclude=_strings(disable.get("exclude")),
        ),
        tests=TestsConfig(
            enabled=bool(tests.get("enabled", False)),
            pattern=str(tests.get("pattern", TestsConfig.pattern)),
            min_test_files=int(tests.get("min_test_files", 1)),
        ),
        naming=_build_naming(_section(raw, "code", "naming")),
        ci=_build_ci(_section(raw, "process", "ci")),
        forbidden_files=ForbiddenFilesConfig(
            enabled=bool(forbidden.get("enabled", False)),
            files=_strings(forbidden.get("files")),
            ignore=(
                _strings(forbidden["ignore"])
                if "ignore" in forbidden
                else DEFAULT_FORBIDDEN_IGNORE
            ),
            message=forbidden.get("message"),
        ),
        commits=CommitsConfig(
            enabled=bool(commits.get("enabled", False)),
            types=_strings(commits.get("types")),
            pattern=commits.get("pattern"),
            require_scope=bool(commits.get("require_scope", False)),
            max_subject_length=commits.get("max_subject_length"),
        ),
        tickets=TicketsConfig(
            enabled=bool(tickets.get("enabled", False)),
            pattern=tickets.get("pattern"),
            require_in_commits=bool(tickets.get("require_in_commits", False)),
        ),
        codeowners=CodeownersConfig(
            enabled=bool(_section(raw, "process", "codeowners").get("enabled", False)),
            rules=tuple(
                CodeownersRule(pattern=str(r["pattern"]), owners=_strings(r["owners"]))
                for r in _section(raw, "process", "codeowners").get("rules", [])
            ),
        ),
        hooks=HooksConfig(
            enabled=bool(hooks.get("enabled", False)),
            require_husky=bool(hooks.get("require_husky", False)),
            protected_branches=_strings(hooks.get("protected_branches")),
            commands=tuple(
                (name, _strings(cmds)) for name, cmds in hooks.get("commands", {}).items()
            ),
        ),
        pr=PrConfig(
            enabled=bool(pr.get("enabled", False)),
            max_files=pr.get("max_files"),
            max_lines=pr.get("max_lines"),
            exclude=_strings(pr.get("exclude")),
        ),
        docs=_build_docs(_section(raw, "process", "docs")),
        changesets=_build_changesets(_section(raw, "process", "changesets")),
        extends=_build_extends(raw),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def load_policy(project_root: Path, *, config_path: Path | None = None) -> PolicyConfig:
    """Read, validate and build the policy for *project_root*.

    Raises ``ConfigNotFoundError`` when the file is absent and
    ``ConfigError`` when it is malformed or violates the schema.
    """
    path = config_path or project_root / CONFIG_FILENAME
    if not path.is_file():
        raise ConfigNotFoundError([f"Config file not found: {path.name}"], path=path)

    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError([f"Invalid TOML: {exc}"], path=path) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError([f"Could not read config: {exc}"], path=path) from exc

    try:
        policy = build_policy(raw)
    except ConfigError as exc:
        raise ConfigError(exc.reasons, path=path) from None

    logger.debug("Loaded policy from %s", path)
    return policy
