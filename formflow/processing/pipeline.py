from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from formflow.agents.models import (
    AnalysisResult,
    DataRequirements,
    ExtractionResult,
    FillingResult,
    SubmittedDocument,
    VerificationResult,
)
from formflow.ingestion.models import IngestedDocument
from formflow.logging.logger import Log
from formflow.processing.exceptions import (
    ConcurrentModificationError,
    IllegalTransitionError,
    ProcessingFailedError,
)
from formflow.processing.models import ProcessingRecord, WorkflowStep


@dataclass(slots=True)
class PipelineContext:
    record: ProcessingRecord
    document: IngestedDocument | None = None
    analysis: AnalysisResult | None = None
    extraction: ExtractionResult | None = None
    requirements: DataRequirements | None = None
    user_data: dict[str, Any] = field(default_factory=dict)
    documents: list[SubmittedDocument] = field(default_factory=list)
    verification: VerificationResult | None = None
    filling: FillingResult | None = None
    failed_step: WorkflowStep | None = None
    error_message: str = ""
    halted: bool = False


class PipelineStep(ABC):
    @abstractmethod
    async def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError


class Pipeline:
    """Runs steps in order; on an exception runs ``failure_step`` and re-raises.

    A step may set ``context.halted`` to end the run early without failing.
    Lost updates and illegal transitions propagate without touching the record.
    """

    def __init__(self, steps: list[PipelineStep], failure_step: PipelineStep) -> None:
        self._steps = steps
        self._failure_step = failure_step

    async def run(self, context: PipelineContext) -> PipelineContext:
        for step in self._steps:
            if context.halted:
                break
            try:
                context = await step.run(context)
            except (ConcurrentModificationError, IllegalTransitionError):
                raise
            except Exception as exc:
                context.failed_step = context.failed_step or context.record.workflow.current_step
                context.error_message = str(exc) or exc.__class__.__name__
                Log.error(
                    f"Processing {context.record.id} failed in {step.__class__.__name__}: "
                    f"{context.error_message}"
                )
                await self._failure_step.run(context)
                raise ProcessingFailedError(context.error_message, context.record) from exc
        return context
