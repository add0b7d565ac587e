"""Decode GitHub Actions workflow YAML into a :class:`WorkflowDocument`.

This module is the only place that looks at raw YAML values.  Trigger forms
(string, list, mapping), ``if:`` literal kinds, reusable-workflow jobs and
missing ``jobs``/``steps`` keys are all normalised here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml

from repopolicy.ci.conditions import ABSENT, RawCondition, decode_condition

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedWorkflowError(Exception):
    """Raised when a workflow file is not valid YAML or not a YAML mapping."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TriggerFilter:
    """Filters attached to one trigger event.

    ``branches is None`` means no branch filter (any branch).
    """

    branches: tuple[str, ...] | None = None
    branches_ignore: tuple[str, ...] = ()
    types: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Step:
    run_script: str | None = None
    condition: RawCondition = ABSENT
    uses_action: str | None = None
    name: str | None = None
    line: int | None = None

    @property
    def label(self) -> str:
        return self.name or self.uses_action or (self.run_script or "").split("\n", 1)[0]


@dataclass(frozen=True)
class Job:
    job_id: str
    uses_reusable_workflow: bool = False
    reusable_workflow: str | None = None
    condition: RawCondition = ABSENT
    steps: tuple[Step, ...] = ()
    line: int | None = None


@dataclass(frozen=True)
class WorkflowDocument:
    triggers: dict[str, TriggerFilter] = field(default_factory=dict)
    jobs: dict[str, Job] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_strings(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, list):
        return tuple(str(v) for v in value)
    return (str(value),)


def _decode_triggers(raw: Any) -> dict[str, TriggerFilter]:
    """Normalise the ``on:`` value in its string, list and mapping forms."""
    if raw is None:
        return {}
    if isinstance(raw, str):
        return {raw: TriggerFilter()}
    if isinstance(raw, list):
        return {str(event): TriggerFilter() for event in raw}
    if not isinstance(raw, dict):
        return {}

    triggers: dict[str, TriggerFilter] = {}
    for event, spec in raw.items():
        if not isinstance(spec, dict):
            triggers[str(event)] = TriggerFilter()
            continue
        branches = spec.get("branches")
        types = spec.get("types")
        triggers[str(event)] = TriggerFilter(
            branches=_as_strings(branches) if branches is not None else None,
            branches_ignore=_as_strings(spec.get("branches-ignore")),
            types=_as_strings(types) if types is not None else None,
        )
    return triggers


def _mapping_child(node: yaml.Node | None, key: str) -> tuple[yaml.Node | None, yaml.Node | None]:
    """Return ``(key_node, value_node)`` for *key* inside a mapping node."""
    if not isinstance(node, yaml.MappingNode):
        return None, None
    for key_node, value_node in node.value:
        if isinstance(key_node, yaml.ScalarNode) and key_node.value == key:
            return key_node, value_node
    return None, None


def _source_lines(root: yaml.Node | None) -> dict[str, tuple[int, list[int]]]:
    """Map job id -> (job line, [step lines]) using composed node marks (1-based)."""
    lines: dict[str, tuple[int, list[int]]] = {}
    _, jobs_node = _mapping_child(root, "jobs")
    if not isinstance(jobs_node, yaml.MappingNode):
        return lines
    for key_node, job_node in jobs_node.value:
        _, steps_node = _mapping_child(job_node, "steps")
        step_lines: list[int] = []
        if isinstance(steps_node, yaml.SequenceNode):
            step_lines = [item.start_mark.line + 1 for item in steps_node.value]
        lines[str(key_node.value)] = (key_node.start_mark.line + 1, step_lines)
    return lines


def _decode_step(raw: Any, line: int | None) -> Step:
    if not isinstance(raw, dict):
        return Step(line=line)
    run = raw.get("run")
    uses = raw.get("uses")
    name = raw.get("name")
    return Step(
        run_script=None if run is None else str(run),
        condition=decode_condition(raw.get("if")),
        uses_action=None if uses is None else str(uses),
        name=None if name is None else str(name),
        line=line,
    )


def _decode_job(job_id: str, raw: Any, lines: tuple[int, list[int]] | None) -> Job:
    job_line, step_lines = lines if lines is not None else (None, [])
    if not isinstance(raw, dict):
        return Job(job_id=job_id, line=job_line)

    uses = raw.get("uses")
    steps_raw = raw.get("steps")
    steps: list[Step] = []
    if isinstance(steps_raw, list):
        for idx, step_raw in enumerate(steps_raw):
            line = step_lines[idx] if idx < len(step_lines) else None
            steps.append(_decode_step(step_raw, line))

    return Job(
        job_id=job_id,
        uses_reusable_workflow=uses is not None,
        reusable_workflow=None if uses is None else str(uses),
        condition=decode_condition(raw.get("if")),
        steps=tuple(steps),
        line=job_line,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_workflow(raw: Any, *, root: yaml.Node | None = None) -> WorkflowDocument:
    """Build a :class:`WorkflowDocument` from an already-parsed YAML tree.

    *root* is the optional composed node tree of the same document, used only
    to attach source line numbers to jobs and steps.
    """
    if not isinstance(raw, dict):
        msg = "workflow must be a YAML mapping"
        raise MalformedWorkflowError(msg)

    # YAML 1.1 reads a bare ``on`` key as boolean True.
    on_value = raw.get("on", raw.get(True))
    lines = _source_lines(root)

    jobs_raw = raw.get("jobs")
    jobs: dict[str, Job] = {}
    if isinstance(jobs_raw, dict):
        for job_id, job_raw in jobs_raw.items():
            jobs[str(job_id)] = _decode_job(str(job_id), job_raw, lines.get(str(job_id)))

    return WorkflowDocument(triggers=_decode_triggers(on_value), jobs=jobs)


def parse_workflow(text: str) -> WorkflowDocument:
    """Parse workflow YAML text.

    Raises ``MalformedWorkflowError`` for invalid YAML or a non-mapping document.
    """
    try:
        raw = yaml.safe_load(text)
        root = yaml.compose(text, Loader=yaml.SafeLoader)
    except yaml.YAMLError as exc:
        msg = f"invalid YAML: {exc}"
        raise MalformedWorkflowError(msg) from exc
    return decode_workflow(raw, root=root)
