"""Tests for repopolicy.config.schema: exhaustive validation and JSON Schema export."""

from __future__ import annotations

import tomllib

import pytest

from repopolicy.config.schema import JSON_SCHEMA_DIALECT, to_json_schema, validate_config


def _errors(text: str) -> list[str]:
    return validate_config(tomllib.loads(text))


class TestValidateConfig:
    def test_empty_document_is_valid(self) -> None:
        assert validate_config({}) == []

    def test_full_document_is_valid(self) -> None:
        errors = _errors(
            """
[code.linting.eslint]
enabled = true
files = ["src/**/*.ts"]
max-warnings = 0
[code.linting.eslint.rules]
no-console = "error"
max-lines = { severity = "warn", max = 300 }

[code.types.tsc]
enabled = true
[code.types.tsc.require]
strict = true

[code.coverage_run]
enabled = true
min_threshold = 80
runner = "vitest"

[code.naming]
enabled = true
[[code.naming.rules]]
extensions = ["tsx"]
file_case = "PascalCase"
folder_case = "kebab-case"

[process.ci]
enabled = true
[process.ci.commands]
"ci.yml" = ["npm test"]
"release.yml" = { build = ["npm run build"] }

[process.hooks]
enabled = true
[process.hooks.commands]
pre-commit = ["lint-staged"]

[process.commits]
enabled = true
pattern = '^\\[PROJ-\\d+\\]'
"""
        )
        assert errors == []

    def test_unknown_key(self) -> None:
        errors = _errors("[process.ci]\nenabeld = true\n")
        assert errors == ["process.ci: unknown key 'enabeld'"]

    def test_wrong_type(self) -> None:
        errors = _errors('[process.ci]\nenabled = "yes"\n')
        assert errors == ["process.ci.enabled: expected boolean, got string"]

    def test_bool_is_not_an_integer(self) -> None:
        errors = _errors("[code.tests]\nmin_test_files = true\n")
        assert errors == ["code.tests.min_test_files: expected integer, got boolean"]

    def test_range(self) -> None:
        errors = _errors("[code.coverage_run]\nmin_threshold = 150\n")
        assert errors == ["code.coverage_run.min_threshold: must be <= 100, got 150"]

    def test_enum(self) -> None:
        errors = _errors('[code.coverage_run]\nrunner = "mocha"\n')
        assert len(errors) == 1
        assert "invalid value 'mocha'" in errors[0]

    def test_eslint_rule_severity(self) -> None:
        errors = _errors('[code.linting.eslint.rules]\nno-console = "fatal"\n')
        assert len(errors) == 1
        assert errors[0].startswith("code.linting.eslint.rules.no-console: invalid value 'fatal'")

    def test_eslint_rule_table_requires_severity(self) -> None:
        errors = _errors("[code.linting.eslint.rules]\nmax-lines = { max = 300 }\n")
        assert errors == ["code.linting.eslint.rules.max-lines: missing required key 'severity'"]

    def test_invalid_globs_collected(self) -> None:
        errors = _errors(
            """
[process.forbidden_files]
files = ["[invalid-pattern", "{invalid-pattern", ""]
"""
        )
        assert len(errors) == 3
        assert all("invalid glob pattern" in e for e in errors)

    def test_pr_exclude_globs_validated(self) -> None:
        errors = _errors('[process.pr]\nexclude = ["src/[abc"]\n')
        assert len(errors) == 1
        assert "bracket" in errors[0]

    def test_invalid_regex(self) -> None:
        errors = _errors('[process.commits]\npattern = "[invalid(regex"\n')
        assert len(errors) == 1
        assert "invalid regular expression" in errors[0]

    def test_naming_rule_requires_extension(self) -> None:
        errors = _errors('[[code.naming.rules]]\nextensions = []\nfile_case = "kebab-case"\n')
        assert errors == ["code.naming.rules[0].extensions: must contain at least one extension"]

    def test_naming_rule_duplicate_extension(self) -> None:
        errors = _errors(
            '[[code.naming.rules]]\nextensions = ["ts", "ts"]\nfolder_case = "kebab-case"\n'
        )
        assert errors == ["code.naming.rules[0].extensions: duplicate extension 'ts'"]

    def test_naming_extension_in_multiple_rules(self) -> None:
        errors = _errors(
            """
[[code.naming.rules]]
extensions = ["ts", "tsx"]
file_case = "kebab-case"
[[code.naming.rules]]
extensions = ["js"]
file_case = "kebab-case"
[[code.naming.rules]]
extensions = ["ts"]
file_case = "PascalCase"
"""
        )
        assert errors == [
            "code.naming.rules: extension 'ts' appears in multiple rules "
            "(code.naming.rules[0], code.naming.rules[2])"
        ]

    @pytest.mark.parametrize("swapped", [False, True])
    def test_naming_extension_conflict_is_order_independent(self, swapped: bool) -> None:
        blocks = [
            '[[code.naming.rules]]\nextensions = ["ts", "tsx"]\nfile_case = "kebab-case"\n',
            '[[code.naming.rules]]\nextensions = ["ts"]\nfile_case = "PascalCase"\n',
        ]
        if swapped:
            blocks.reverse()
        errors = _errors("".join(blocks))
        assert errors == [
            "code.naming.rules: extension 'ts' appears in multiple rules "
            "(code.naming.rules[0], code.naming.rules[1])"
        ]

    def test_naming_rule_requires_a_case(self) -> None:
        errors = _errors('[[code.naming.rules]]\nextensions = ["ts"]\nexclude = ["tests/**"]\n')
        assert errors == [
            "code.naming.rules[0]: must set at least one of 'file_case', 'folder_case'"
        ]

    @pytest.mark.parametrize("key", ["file_case", "folder_case"])
    def test_naming_rule_with_one_case_is_valid(self, key: str) -> None:
        assert _errors(f'[[code.naming.rules]]\nextensions = ["ts"]\n{key} = "kebab-case"\n') == []

    @pytest.mark.parametrize(
        ("section", "key"),
        [
            ("process.forbidden_files", "files"),
            ("process.forbidden_files", "ignore"),
            ("code.linting.eslint", "files"),
            ("code.linting.eslint", "ignore"),
            ("code.quality.disable-comments", "exclude"),
            ("process.pr", "exclude"),
        ],
    )
    def test_duplicate_glob_entries(self, section: str, key: str) -> None:
        errors = _errors(f'[{section}]\n{key} = ["**/.env", "src/**", "**/.env"]\n')
        assert errors == [f"{section}.{key}: duplicate pattern '**/.env'"]

    def test_duplicate_naming_exclude(self) -> None:
        errors = _errors(
            '[[code.naming.rules]]\nextensions = ["ts"]\nfile_case = "kebab-case"\n'
            'exclude = ["tests/**", "tests/**"]\n'
        )
        assert errors == ["code.naming.rules[0].exclude: duplicate pattern 'tests/**'"]

    def test_ci_commands_wrong_shape(self) -> None:
        errors = _errors('[process.ci.commands]\n"ci.yml" = "npm test"\n')
        assert errors == ["process.ci.commands.ci.yml: unexpected string value"]

    def test_docs_enforcement(self) -> None:
        errors = _errors('[process.docs]\nenforcement = "strict"\n')
        assert errors == [
            "process.docs.enforcement: invalid value 'strict', must be one of ['block', 'warn']"
        ]

    def test_docs_types_and_mappings(self) -> None:
        errors = _errors(
            """
[process.docs.types.api]
required_sections = ["Overview"]
frontmatter = ["title"]
[process.docs.stale_mappings]
"docs/api.md" = 42
"""
        )
        assert errors == ["process.docs.stale_mappings.docs/api.md: expected string, got integer"]

    def test_changesets_bump_type_choices(self) -> None:
        errors = _errors('[process.changesets]\nallowed_bump_types = ["patch", "huge"]\n')
        assert errors == [
            "process.changesets.allowed_bump_types[1]: invalid bump type 'huge', "
            "must be one of ['major', 'minor', 'patch']"
        ]

    def test_extends(self) -> None:
        assert _errors('[extends]\nregistry = "github:org/standards"\nrulesets = ["base"]\n') == []
        errors = _errors('[extends]\nrulesets = ["base", "base"]\n')
        assert errors == ["extends.rulesets: duplicate ruleset 'base'"]

    def test_unknown_hook_name(self) -> None:
        errors = _errors('[process.hooks.commands]\npre-comit = ["lint-staged"]\n')
        assert len(errors) == 1
        assert "invalid hook name 'pre-comit'" in errors[0]

    def test_errors_are_exhaustive(self) -> None:
        errors = _errors(
            """
[process.ci]
enabled = "yes"
bogus = 1
[code.tests]
min_test_files = -1
"""
        )
        assert len(errors) == 3


class TestJsonSchema:
    def test_document_header(self) -> None:
        schema = to_json_schema()
        assert schema["$schema"] == JSON_SCHEMA_DIALECT
        assert set(schema["properties"]) == {"code", "process", "extends"}
        assert schema["additionalProperties"] is False

    def test_eslint_rules_are_open_tables(self) -> None:
        schema = to_json_schema()
        rules = schema["properties"]["code"]["properties"]["linting"]["properties"]["eslint"][
            "properties"
        ]["rules"]
        options = rules["additionalProperties"]["oneOf"]
        assert options[0]["enum"] == ["error", "off", "warn"]
        assert options[1]["additionalProperties"] is True
        assert options[1]["required"] == ["severity"]

    def test_coverage_bounds(self) -> None:
        schema = to_json_schema()
        threshold = schema["properties"]["code"]["properties"]["coverage_run"]["properties"][
            "min_threshold"
        ]
        assert threshold["minimum"] == 0
        assert threshold["maximum"] == 100

    def test_naming_rule_any_of_cases(self) -> None:
        schema = to_json_schema()
        rule = schema["properties"]["code"]["properties"]["naming"]["properties"]["rules"]["items"]
        assert rule["required"] == ["extensions"]
        assert rule["anyOf"] == [{"required": ["file_case"]}, {"required": ["folder_case"]}]

    def test_glob_lists_are_unique(self) -> None:
        schema = to_json_schema()
        files = schema["properties"]["process"]["properties"]["forbidden_files"]["properties"][
            "files"
        ]
        assert files["uniqueItems"] is True
