"""Workflow state machine for processing records.

All step and status changes go through these functions so the legal
transitions are enforced in one place.
"""

from typing import Any

from formflow.processing.exceptions import IllegalTransitionError
from formflow.processing.models import (
    STAGES,
    ErrorEntry,
    ProcessingRecord,
    StageStatus,
    WorkflowStatus,
    WorkflowStep,
    utcnow,
)

TERMINAL_STEPS = frozenset({WorkflowStep.COMPLETED, WorkflowStep.FAILED})

# Forward edges, plus the verification retry edge. FAILED is reachable from
# any non-terminal step and is handled by can_transition.
TRANSITIONS: dict[WorkflowStep, frozenset[WorkflowStep]] = {
    WorkflowStep.ANALYSIS: frozenset({WorkflowStep.DATA_COLLECTION}),
    WorkflowStep.DATA_COLLECTION: frozenset({WorkflowStep.VERIFICATION}),
    WorkflowStep.VERIFICATION: frozenset(
        {WorkflowStep.DATA_COLLECTION, WorkflowStep.FILLING}
    ),
    WorkflowStep.FILLING: frozenset({WorkflowStep.COMPLETED}),
    WorkflowStep.COMPLETED: frozenset(),
    WorkflowStep.FAILED: frozenset(),
}


def can_transition(source: WorkflowStep, target: WorkflowStep) -> bool:
    if source in TERMINAL_STEPS:
        return False
    if target == WorkflowStep.FAILED:
        return True
    return target in TRANSITIONS[source]


def advance(
    record: ProcessingRecord,
    target: WorkflowStep,
    status: WorkflowStatus = WorkflowStatus.PROCESSING,
) -> None:
    source = record.workflow.current_step
    if not can_transition(source, target):
        raise IllegalTransitionError(
            f"Processing {record.id} cannot move from {source.value} to {target.value}"
        )
    record.workflow.current_step = target
    record.workflow.status = status
    record.updated_at = utcnow()


def require_step(record: ProcessingRecord, step: WorkflowStep) -> None:
    if record.workflow.current_step != step:
        raise IllegalTransitionError(
            f"Processing {record.id} is at {record.workflow.current_step.value}, "
            f"expected {step.value}"
        )


def begin_stage(record: ProcessingRecord, step: WorkflowStep) -> None:
    require_step(record, step)
    record.stage(step).status = StageStatus.PROCESSING
    record.workflow.status = WorkflowStatus.PROCESSING
    record.updated_at = utcnow()


def complete_stage(
    record: ProcessingRecord,
    step: WorkflowStep,
    payload: dict[str, Any],
    status: StageStatus = StageStatus.COMPLETED,
) -> None:
    """Store the stage output, replacing any payload from an earlier attempt."""
    stage = record.stage(step)
    stage.status = status
    stage.payload = payload
    stage.completed_at = utcnow()
    record.updated_at = stage.completed_at


def complete_workflow(record: ProcessingRecord, output: dict[str, Any]) -> None:
    advance(record, WorkflowStep.COMPLETED, WorkflowStatus.COMPLETED)
    record.workflow.completed_at = utcnow()
    record.output = output


def fail(record: ProcessingRecord, step: WorkflowStep, message: str) -> None:
    """Record an unrecovered error and halt the workflow.

    A completion that failed to persist is rolled back along with its output.
    """
    record.errors.append(ErrorEntry(step=step.value, message=message))
    if step in STAGES:
        record.stage(step).status = StageStatus.FAILED
    if record.workflow.current_step == WorkflowStep.COMPLETED:
        record.workflow.completed_at = None
    record.workflow.current_step = WorkflowStep.FAILED
    record.output = None
    record.workflow.status = WorkflowStatus.FAILED
    record.updated_at = utcnow()


def await_input(record: ProcessingRecord, payload: dict[str, Any]) -> None:
    """Park the record in data collection until the user submits data."""
    require_step(record, WorkflowStep.DATA_COLLECTION)
    stage = record.stage(WorkflowStep.DATA_COLLECTION)
    stage.status = StageStatus.PENDING
    stage.payload = payload
    record.workflow.status = WorkflowStatus.PENDING
    record.updated_at = utcnow()
