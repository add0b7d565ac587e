"""Validated, immutable in-memory form of ``check.toml``.

Every section defaults to disabled, so ``PolicyConfig()`` is the policy of an
empty config file.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Code domains
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolToggle:
    """A tool-backed domain that only carries an on/off switch."""

    enabled: bool = False


@dataclass(frozen=True)
class EslintRule:
    """One entry of ``[code.linting.eslint.rules]``."""

    name: str
    severity: str  # "off" | "warn" | "error"
    options: tuple[tuple[str, object], ...] = ()


@dataclass(frozen=True)
class EslintConfig:
    enabled: bool = False
    files: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()
    max_warnings: int | None = None
    rules: tuple[EslintRule, ...] = ()


@dataclass(frozen=True)
class TscConfig:
    enabled: bool = False
    require: tuple[tuple[str, bool], ...] = ()


@dataclass(frozen=True)
class CoverageRunConfig:
    enabled: bool = False
    min_threshold: float | None = None
    runner: str = "auto"


@dataclass(frozen=True)
class DisableCommentsConfig:
    enabled: bool = False
    extensions: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class TestsConfig:
    __test__ = False  # keep pytest from collecting this class

    enabled: bool = False
    pattern: str = "**/*.{test,spec}.{ts,tsx,js,jsx,py}"
    min_test_files: int = 1


@dataclass(frozen=True)
class NamingRule:
    """Case conventions applied to every file with one of *extensions*."""

    extensions: frozenset[str]
    file_case: str | None = None
    folder_case: str | None = None
    exclude: tuple[str, ...] = ()
    allow_dynamic_routes: bool = False


@dataclass(frozen=True)
class NamingConfig:
    enabled: bool = False
    rules: tuple[NamingRule, ...] = ()

    def rule_for(self, extension: str) -> NamingRule | None:
        """Return the rule owning *extension* (extensions are unique across rules)."""
        for rule in self.rules:
            if extension in rule.extensions:
                return rule
        return None


# ---------------------------------------------------------------------------
# Process domains
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowCommandRequirement:
    """Commands that must run unconditionally in *some* job of a workflow."""

    workflow: str
    commands: tuple[str, ...]


@dataclass(frozen=True)
class JobCommandRequirement:
    """Commands that must run unconditionally in one named job of a workflow."""

    workflow: str
    job_id: str
    commands: tuple[str, ...]


CommandRequirement = WorkflowCommandRequirement | JobCommandRequirement


@dataclass(frozen=True)
class TriggerPolicy:
    """Which events must target which branch for a workflow to count."""

    base_branch: str = "main"
    allow_push: bool = True

    @property
    def accepted_events(self) -> tuple[str, ...]:
        events = ("pull_request", "pull_request_target")
        if self.allow_push:
            events = (*events, "push")
        return events


@dataclass(frozen=True)
class CiConfig:
    enabled: bool = False
    require_workflows: tuple[str, ...] = ()
    requirements: tuple[CommandRequirement, ...] = ()
    triggers: TriggerPolicy = field(default_factory=TriggerPolicy)

    def requirements_for(self, workflow: str) -> tuple[CommandRequirement, ...]:
        return tuple(req for req in self.requirements if req.workflow == workflow)

    @property
    def workflows(self) -> tuple[str, ...]:
        """Workflow files referenced by requirements, in declaration order."""
        seen: dict[str, None] = {}
        for req in self.requirements:
            seen.setdefault(req.workflow, None)
        return tuple(seen)


DEFAULT_FORBIDDEN_IGNORE: tuple[str, ...] = ("**/node_modules/**", "**/.git/**")


@dataclass(frozen=True)
class ForbiddenFilesConfig:
    enabled: bool = False
    files: tuple[str, ...] = ()
    ignore: tuple[str, ...] = DEFAULT_FORBIDDEN_IGNORE
    message: str | None = None


@dataclass(frozen=True)
class CommitsConfig:
    enabled: bool = False
    types: tuple[str, ...] = ()
    pattern: str | None = None
    require_scope: bool = False
    max_subject_length: int | None = None


@dataclass(frozen=True)
class TicketsConfig:
    enabled: bool = False
    pattern: str | None = None
    require_in_commits: bool = False


@dataclass(frozen=True)
class CodeownersRule:
    pattern: str
    owners: tuple[str, ...]


@dataclass(frozen=True)
class CodeownersConfig:
    enabled: bool = False
    rules: tuple[CodeownersRule, ...] = ()


@dataclass(frozen=True)
class HooksConfig:
    enabled: bool = False
    require_husky: bool = False
    protected_branches: tuple[str, ...] = ()
    commands: tuple[tuple[str, tuple[str, ...]], ...] = ()


@dataclass(frozen=True)
class PrConfig:
    enabled: bool = False
    max_files: int | None = None
    max_lines: int | None = None
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocTypeRule:
    """Requirements for docs whose frontmatter ``type`` equals *name*."""

    name: str
    required_sections: tuple[str, ...] = ()
    frontmatter: tuple[str, ...] = ()


DEFAULT_STALENESS_DAYS = 30
DEFAULT_COVERAGE_PATHS: tuple[str, ...] = ("src/**/*.{ts,tsx,js,jsx}",)


@dataclass(frozen=True)
class DocsConfig:
    enabled: bool = False
    path: str = "docs/"
    enforcement: str = "warn"  # "warn" | "block"
    allowlist: tuple[str, ...] = ()
    max_files: int | None = None
    max_file_lines: int | None = None
    max_total_kb: float | None = None
    types: tuple[DocTypeRule, ...] = ()
    staleness_days: int = DEFAULT_STALENESS_DAYS
    stale_mappings: tuple[tuple[str, str], ...] = ()
    min_coverage: float | None = None
    coverage_paths: tuple[str, ...] = DEFAULT_COVERAGE_PATHS
    exclude_patterns: tuple[str, ...] = ()

    @property
    def directory(self) -> str:
        """Docs path without surrounding slashes (``"docs/"`` -> ``"docs"``)."""
        return self.path.strip("/")

    def type_rule(self, name: str) -> DocTypeRule | None:
        return next((rule for rule in self.types if rule.name == name), None)


@dataclass(frozen=True)
class ChangesetsConfig:
    enabled: bool = False
    validate_format: bool = True
    require_description: bool = True
    min_description_length: int | None = None
    allowed_bump_types: tuple[str, ...] = ()  # empty: every bump type
    require_for_paths: tuple[str, ...] = ()
    base_branch: str = "main"


@dataclass(frozen=True)
class ExtendsConfig:
    """``[extends]``: rulesets are named, never fetched."""

    registry: str | None = None
    rulesets: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyConfig:
    """The whole policy.  Constructed once per run and never mutated."""

    eslint: EslintConfig = field(default_factory=EslintConfig)
    prettier: ToolToggle = field(default_factory=ToolToggle)
    tsc: TscConfig = field(default_factory=TscConfig)
    knip: ToolToggle = field(default_factory=ToolToggle)
    secrets: ToolToggle = field(default_factory=ToolToggle)
    npmaudit: ToolToggle = field(default_factory=ToolToggle)
    coverage_run: CoverageRunConfig = field(default_factory=CoverageRunConfig)
    disable_comments: DisableCommentsConfig = field(default_factory=DisableCommentsConfig)
    tests: TestsConfig = field(default_factory=TestsConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)
    ci: CiConfig = field(default_factory=CiConfig)
    forbidden_files: ForbiddenFilesConfig = field(default_factory=ForbiddenFilesConfig)
    commits: CommitsConfig = field(default_factory=CommitsConfig)
    tickets: TicketsConfig = field(default_factory=TicketsConfig)
    codeowners: CodeownersConfig = field(default_factory=CodeownersConfig)
    hooks: HooksConfig = field(default_factory=HooksConfig)
    pr: PrConfig = field(default_factory=PrConfig)
    docs: DocsConfig = field(default_factory=DocsConfig)
    changesets: ChangesetsConfig = field(default_factory=ChangesetsConfig)
    extends: ExtendsConfig | None = None
