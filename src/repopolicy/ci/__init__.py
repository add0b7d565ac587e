"""CI domain: workflow decoding, condition classification, command scanning."""

from repopolicy.ci.analyzer import analyze_workflow, analyze_workflow_text, check_ci
from repopolicy.ci.conditions import (
    ABSENT,
    AbsentCondition,
    BooleanCondition,
    RawCondition,
    StringCondition,
    decode_condition,
    is_always_true,
)
from repopolicy.ci.scanner import ScanResult, scan_job
from repopolicy.ci.workflow import (
    Job,
    MalformedWorkflowError,
    Step,
    TriggerFilter,
    WorkflowDocument,
    decode_workflow,
    parse_workflow,
)

__all__ = [
    "ABSENT",
    "AbsentCondition",
    "BooleanCondition",
    "Job",
    "MalformedWorkflowError",
    "RawCondition",
    "ScanResult",
    "Step",
    "StringCondition",
    "TriggerFilter",
    "WorkflowDocument",
    "analyze_workflow",
    "analyze_workflow_text",
    "check_ci",
    "decode_condition",
    "decode_workflow",
    "is_always_true",
    "parse_workflow",
    "scan_job",
]
