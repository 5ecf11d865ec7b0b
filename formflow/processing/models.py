from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

TOTAL_STEPS = 4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class WorkflowStep(str, Enum):
    ANALYSIS = "analysis"
    DATA_COLLECTION = "data_collection"
    VERIFICATION = "verification"
    FILLING = "filling"
    COMPLETED = "completed"
    FAILED = "failed"


class WorkflowStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


STAGES: tuple[WorkflowStep, ...] = (
    WorkflowStep.ANALYSIS,
    WorkflowStep.DATA_COLLECTION,
    WorkflowStep.VERIFICATION,
    WorkflowStep.FILLING,
)


@dataclass(slots=True)
class OriginalFormRef:
    file_name: str
    size: int
    mime_type: str
    storage_path: str


@dataclass(slots=True)
class StageRecord:
    """Progress of one stage; ``payload`` is the stage output stored as-is."""

    status: StageStatus = StageStatus.PENDING
    completed_at: datetime | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "completed_at": _iso(self.completed_at),
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StageRecord":
        return cls(
            status=StageStatus(data.get("status", StageStatus.PENDING.value)),
            completed_at=_parse_datetime(data.get("completed_at")),
            payload=dict(data.get("payload") or {}),
        )


@dataclass(slots=True)
class Workflow:
    current_step: WorkflowStep = WorkflowStep.ANALYSIS
    status: WorkflowStatus = WorkflowStatus.PENDING
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    total_steps: int = TOTAL_STEPS


@dataclass(slots=True)
class ErrorEntry:
    step: str
    message: str
    timestamp: datetime = field(default_factory=utcnow)
    resolved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "message": self.message,
            "timestamp": _iso(self.timestamp),
            "resolved": self.resolved,
        }


@dataclass(slots=True)
class Progress:
    completed_steps: int
    total_steps: int
    percentage: int


@dataclass(slots=True)
class ProcessingRecord:
    """Persisted state of one document's trip through the pipeline."""

    id: str
    user_id: str
    original_form: OriginalFormRef
    workflow: Workflow = field(default_factory=Workflow)
    analysis: StageRecord = field(default_factory=StageRecord)
    data_collection: StageRecord = field(default_factory=StageRecord)
    verification: StageRecord = field(default_factory=StageRecord)
    filling: StageRecord = field(default_factory=StageRecord)
    output: dict[str, Any] | None = None
    errors: list[ErrorEntry] = field(default_factory=list)
    processing_time: float | None = None
    preferences: dict[str, Any] = field(default_factory=dict)
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def stage(self, step: WorkflowStep) -> StageRecord:
        if step not in STAGES:
            raise ValueError(f"'{step.value}' is not a stage")
        return getattr(self, step.value)

    def progress(self) -> Progress:
        completed = sum(
            1 for step in STAGES if self.stage(step).status == StageStatus.COMPLETED
        )
        total = self.workflow.total_steps
        return Progress(
            completed_steps=completed,
            total_steps=total,
            percentage=round(completed / total * 100),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "original_form": {
                "file_name": self.original_form.file_name,
                "size": self.original_form.size,
                "mime_type": self.original_form.mime_type,
                "storage_path": self.original_form.storage_path,
            },
            "workflow": {
                "current_step": self.workflow.current_step.value,
                "status": self.workflow.status.value,
                "started_at": _iso(self.workflow.started_at),
                "completed_at": _iso(self.workflow.completed_at),
                "total_steps": self.workflow.total_steps,
            },
            **{step.value: self.stage(step).to_dict() for step in STAGES},
            "output": self.output,
            "errors": [error.to_dict() for error in self.errors],
            "processing_time": self.processing_time,
            "preferences": self.preferences,
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessingRecord":
        workflow = data.get("workflow", {})
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            original_form=OriginalFormRef(**data["original_form"]),
            workflow=Workflow(
                current_step=WorkflowStep(workflow.get("current_step", "analysis")),
                status=WorkflowStatus(workflow.get("status", "pending")),
                started_at=_parse_datetime(workflow.get("started_at")) or utcnow(),
                completed_at=_parse_datetime(workflow.get("completed_at")),
                total_steps=workflow.get("total_steps", TOTAL_STEPS),
            ),
            analysis=StageRecord.from_dict(data.get("analysis", {})),
            data_collection=StageRecord.from_dict(data.get("data_collection", {})),
            verification=StageRecord.from_dict(data.get("verification", {})),
            filling=StageRecord.from_dict(data.get("filling", {})),
            output=data.get("output"),
            errors=[
                ErrorEntry(
                    step=item["step"],
                    message=item["message"],
                    timestamp=_parse_datetime(item.get("timestamp")) or utcnow(),
                    resolved=bool(item.get("resolved", False)),
                )
                for item in data.get("errors", [])
            ],
            processing_time=data.get("processing_time"),
            preferences=dict(data.get("preferences") or {}),
            version=int(data.get("version", 0)),
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
            updated_at=_parse_datetime(data.get("updated_at")) or utcnow(),
        )


@dataclass(frozen=True)
class ProcessingStatus:
    processing_id: str
    status: WorkflowStatus
    current_step: WorkflowStep
    progress: Progress
    started_at: datetime
    completed_at: datetime | None
    errors: list[ErrorEntry]
