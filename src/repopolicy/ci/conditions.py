"""``if:`` conditions on workflow jobs and steps.

YAML hands us booleans, strings, numbers or nothing for ``if:``.  The value
is decoded once, at the workflow boundary, into a :data:`RawCondition` that
keeps its literal kind; everything downstream works on that union only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_EXPRESSION_WRAPPER_RE = re.compile(r"^\$\{\{\s*(.*?)\s*\}\}$", re.DOTALL)

# Conditions GitHub Actions evaluates to true on every qualifying run.
ALWAYS_TRUE_EXPRESSIONS: frozenset[str] = frozenset({"true", "always()", "success()"})


@dataclass(frozen=True)
class AbsentCondition:
    """No ``if:`` key."""

    def __str__(self) -> str:
        return "<none>"


@dataclass(frozen=True)
class BooleanCondition:
    """``if: true`` / ``if: false`` written as a YAML boolean."""

    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class StringCondition:
    """Any other ``if:`` value, as text."""

    expression: str

    def __str__(self) -> str:
        return self.expression


RawCondition = AbsentCondition | BooleanCondition | StringCondition

ABSENT = AbsentCondition()


def decode_condition(value: object) -> RawCondition:
    """Convert a decoded YAML scalar into a :data:`RawCondition`.

    Numbers and other non-string scalars are coerced to their string form so
    later string handling never sees a non-string.
    """
    if value is None:
        return ABSENT
    if isinstance(value, bool):
        return BooleanCondition(value)
    return StringCondition(value if isinstance(value, str) else str(value))


def is_always_true(condition: RawCondition) -> bool:
    """Return True if *condition* cannot evaluate to false on a qualifying run."""
    if isinstance(condition, AbsentCondition):
        return True
    if isinstance(condition, BooleanCondition):
        return condition.value

    text = condition.expression.strip()
    match = _EXPRESSION_WRAPPER_RE.match(text)
    if match is not None:
        text = match.group(1)
    return text.lower() in ALWAYS_TRUE_EXPRESSIONS
