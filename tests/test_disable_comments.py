"""Tests for repopolicy.code.disable_comments: suppression comment detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from repopolicy.adapters import ToolRuntimeError
from repopolicy.code.disable_comments import check_disable_comments, find_disable_comments
from repopolicy.config.model import DisableCommentsConfig

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _find(source: str, extension: str = "ts") -> list[tuple[int, str]]:
    return find_disable_comments(source.splitlines(), extension)


class TestFindDisableComments:
    @pytest.mark.parametrize(
        ("source", "directive"),
        [
            ("// eslint-disable-next-line no-console\n", "eslint-disable-next-line"),
            ("foo(); // eslint-disable-line\n", "eslint-disable-line"),
            ("/* eslint-disable */\n", "eslint-disable"),
            ("// @ts-ignore\n", "@ts-ignore"),
            ("// @ts-expect-error wrong types\n", "@ts-expect-error"),
            ("// @ts-nocheck\n", "@ts-nocheck"),
            ("// prettier-ignore\n", "prettier-ignore"),
        ],
    )
    def test_line_comment_directives(self, source: str, directive: str) -> None:
        assert _find(source) == [(1, directive)]

    def test_multi_line_block_comment(self) -> None:
        assert _find("/*\neslint-disable\n*/\nconst x = 1;\n") == [(2, "eslint-disable")]

    def test_block_comment_surrounded_by_code(self) -> None:
        assert _find("const a = 1; /* @ts-ignore */ const b = 2;\n") == [(1, "@ts-ignore")]

    def test_several_directives(self) -> None:
        source = "// @ts-ignore\nconst a = 1;\n\n// eslint-disable-next-line\nconst b = 2;\n"
        assert _find(source) == [(1, "@ts-ignore"), (4, "eslint-disable-next-line")]

    def test_string_literals_ignored(self) -> None:
        assert _find('const m = "Use /* eslint-disable */ to disable rules";\n') == []
        assert _find("const m = 'see // @ts-ignore';\n") == []

    def test_template_literal_ignored(self) -> None:
        assert _find("const m = `Use /* eslint-disable */\n// @ts-ignore`;\n") == []

    def test_escaped_quotes(self) -> None:
        source = (
            'const msg = "He said \\"/* eslint-disable */\\"";\n'
            "/* eslint-disable-next-line */\n"
        )
        assert _find(source) == [(2, "eslint-disable-next-line")]

    def test_jsdoc_without_directive(self) -> None:
        assert _find("/**\n * Adds numbers.\n * @param a first\n */\n") == []

    def test_python_comments(self) -> None:
        source = "import os  # noqa: F401\nx = foo()  # type: ignore[attr]\ns = '# noqa'\n"
        assert _find(source, "py") == [(1, "noqa"), (2, "type: ignore")]


class TestCheckDisableComments:
    def test_reports_each_occurrence_with_line(
        self, repo: Path, write_file: Callable[[str, str], Path]
    ) -> None:
        write_file("src/index.ts", "// @ts-ignore\nconst a = 1;\n// prettier-ignore\n")
        findings = check_disable_comments(
            DisableCommentsConfig(enabled=True, extensions=("ts",)), repo
        )
        assert [(str(f.location), f.message) for f in findings] == [
            ("src/index.ts:1", "Found '@ts-ignore' comment"),
            ("src/index.ts:3", "Found 'prettier-ignore' comment"),
        ]

    def test_extension_filter(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file("docs/readme.md", "```ts\n// @ts-ignore\n```\n")
        write_file("src/index.js", "// @ts-ignore\n")
        config = DisableCommentsConfig(enabled=True, extensions=("ts", "tsx"))
        assert check_disable_comments(config, repo) == []

    def test_exclude(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file("tests/index.test.ts", "// @ts-ignore\n")
        write_file("src/utils.test.ts", "// eslint-disable-next-line\n")
        write_file("src/index.ts", "export const x = 1;\n")
        config = DisableCommentsConfig(
            enabled=True, extensions=("ts",), exclude=("tests/**", "**/*.test.ts")
        )
        assert check_disable_comments(config, repo) == []

    def test_default_extensions(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file("src/App.jsx", "/* eslint-disable react/prop-types */\n")
        findings = check_disable_comments(DisableCommentsConfig(enabled=True), repo)
        assert len(findings) == 1

    def test_disabled(self, repo: Path, write_file: Callable[[str, str], Path]) -> None:
        write_file("src/index.ts", "// @ts-ignore\n")
        assert check_disable_comments(DisableCommentsConfig(extensions=("ts",)), repo) == []

    def test_unreadable_file_is_runtime_error(
        self, repo: Path, write_file: Callable[[str, str], Path]
    ) -> None:
        write_file("src/legacy.js").write_bytes(b"// eslint-disable-next-line\n\xff\xfe\n")
        config = DisableCommentsConfig(enabled=True)
        with pytest.raises(ToolRuntimeError, match="could not read src/legacy.js"):
            check_disable_comments(config, repo)
