"""Repopolicy CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from repopolicy import __version__

_FORMAT_OPTION = click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format.",
)
_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)
    logging.getLogger("repopolicy").setLevel(level)


def _echo(output: str) -> None:
    """Print through rich on a terminal, plain otherwise."""
    if sys.stdout.isatty():
        from rich.console import Console

        # Findings contain "[domain]", which rich would read as markup.
        Console().print(output, markup=False, highlight=False)
    else:
        click.echo(output)


def _run_and_report(project: Path | None, fmt: str, scope: str) -> None:
    from repopolicy.adapters import ToolRuntimeError
    from repopolicy.config.loader import ConfigError
    from repopolicy.findings import format_json, format_text
    from repopolicy.runner import run_checks

    project_root = project or Path.cwd()
    try:
        result = run_checks(project_root, scope=scope)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except ToolRuntimeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(3)

    if fmt == "json":
        click.echo(format_json(result))
    else:
        _echo(format_text(result))
    sys.exit(int(result.exit_code))


@click.group()
@click.version_option(version=__version__, prog_name="repopolicy")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """Repopolicy - repository policy checks driven by check.toml."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    _configure_logging(verbose=verbose, quiet=quiet)


@main.command()
@_FORMAT_OPTION
@_PROJECT_OPTION
def check(*, fmt: str, project: Path | None) -> None:
    """Run every enabled code and process domain.

    Exit codes: 0 = pass, 1 = violations, 2 = configuration error,
    3 = runtime error.
    """
    _run_and_report(project, fmt, "all")


# ---------------------------------------------------------------------------
# code
# ---------------------------------------------------------------------------


@main.group()
def code() -> None:
    """Code domains: linting, types, naming, disable comments, tests."""


@code.command("check")
@_FORMAT_OPTION
@_PROJECT_OPTION
def code_check(*, fmt: str, project: Path | None) -> None:
    """Run the enabled code domains."""
    _run_and_report(project, fmt, "code")


@code.command("audit")
@_FORMAT_OPTION
@_PROJECT_OPTION
def code_audit(*, fmt: str, project: Path | None) -> None:
    """Audit the code configuration without scanning files."""
    from repopolicy.config.loader import ConfigError
    from repopolicy.findings import format_json, format_text
    from repopolicy.runner import audit_code

    try:
        result = audit_code(project or Path.cwd())
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if fmt == "json":
        click.echo(format_json(result))
    else:
        _echo(format_text(result))
    sys.exit(int(result.exit_code))


# ---------------------------------------------------------------------------
# process
# ---------------------------------------------------------------------------


@main.group()
def process() -> None:
    """Process domains: CI, forbidden files, commits, CODEOWNERS, hooks, docs, changesets."""


@process.command("check")
@_FORMAT_OPTION
@_PROJECT_OPTION
def process_check(*, fmt: str, project: Path | None) -> None:
    """Run the enabled process domains."""
    _run_and_report(project, fmt, "process")


@process.command("audit")
@_FORMAT_OPTION
@_PROJECT_OPTION
def process_audit(*, fmt: str, project: Path | None) -> None:
    """Audit the process domains (same evaluation as ``process check``)."""
    _run_and_report(project, fmt, "process")


@process.command("check-commit")
@click.argument("msg_file", type=click.Path(path_type=Path))
@click.option("--quiet", "-q", is_flag=True, help="Print nothing on success.")
@_PROJECT_OPTION
def check_commit_cmd(*, msg_file: Path, quiet: bool, project: Path | None) -> None:
    """Validate a commit message file (for a ``commit-msg`` hook)."""
    from repopolicy.config.loader import ConfigError
    from repopolicy.findings import format_text
    from repopolicy.runner import check_commit

    try:
        result = check_commit(project or Path.cwd(), msg_file)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if not result.passed:
        click.echo(format_text(result), err=True)
        sys.exit(int(result.exit_code))
    if not quiet:
        click.echo("✓ Commit message is valid")


# ---------------------------------------------------------------------------
# validate / schema
# ---------------------------------------------------------------------------


@main.group()
def validate() -> None:
    """Validate repopolicy inputs."""


@validate.command("config")
@_FORMAT_OPTION
@_PROJECT_OPTION
def validate_config_cmd(*, fmt: str, project: Path | None) -> None:
    """Validate check.toml against the schema (exit 2 when invalid)."""
    from repopolicy.config.loader import ConfigError, load_policy

    project_root = project or Path.cwd()
    try:
        load_policy(project_root)
    except ConfigError as exc:
        if fmt == "json":
            click.echo(json.dumps({"valid": False, "errors": exc.reasons}, indent=2))
        else:
            click.echo("✗ Invalid configuration", err=True)
            for reason in exc.reasons:
                click.echo(f"  {reason}", err=True)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps({"valid": True, "errors": []}, indent=2))
    else:
        click.echo("✓ Configuration is valid")


@validate.command("tier")
@_FORMAT_OPTION
@_PROJECT_OPTION
def validate_tier_cmd(*, fmt: str, project: Path | None) -> None:
    """Check repo-metadata.yaml's tier against [extends] rulesets (exit 2 on mismatch)."""
    from repopolicy.adapters import ToolRuntimeError
    from repopolicy.config.loader import ConfigError, load_policy
    from repopolicy.tier import validate_tier

    project_root = project or Path.cwd()
    try:
        result = validate_tier(load_policy(project_root), project_root)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    except ToolRuntimeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(3)

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        for message in result.warnings:
            click.echo(f"⚠ {message}", err=True)
        if result.valid:
            matched = f" (matched: {', '.join(result.matched)})" if result.matched else ""
            click.echo(f"✓ Tier '{result.tier}' is valid{matched}")
        else:
            click.echo(f"✗ {result.error}", err=True)
    if not result.valid:
        sys.exit(2)


@main.group()
def schema() -> None:
    """Print JSON Schemas."""


@schema.command("config")
def schema_config() -> None:
    """Print the JSON Schema for check.toml."""
    from repopolicy.config.schema import to_json_schema

    click.echo(json.dumps(to_json_schema(), indent=2))
