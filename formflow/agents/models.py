from dataclasses import dataclass, field
from typing import Any

from formflow.recovery.models import ExtractedField, Section


@dataclass(frozen=True)
class AnalysisResult:
    """Combined output of the four analysis dimensions."""

    form_type: str
    structure: dict[str, Any]
    usability: dict[str, Any]
    performance: dict[str, Any]
    compliance: dict[str, Any]
    confidence: float
    fallback_dimensions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionIssue:
    type: str
    field_id: str | None
    message: str
    severity: str


@dataclass(frozen=True)
class ExtractionResult:
    fields: list[ExtractedField]
    sections: list[Section]
    total_fields: int
    counts: dict[str, int]
    high_confidence_fields: int
    confidence: float
    document_quality: float
    errors: list[ExtractionIssue] = field(default_factory=list)
    recovery_failures: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FieldRequirement:
    field: str
    type: str
    required: bool
    description: str
    validation: dict[str, Any] | None = None
    options: list[str] | None = None
    position: dict[str, float] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldRequirement":
        return cls(
            field=data["field"],
            type=data.get("type", "text"),
            required=bool(data.get("required", False)),
            description=data.get("description", ""),
            validation=data.get("validation"),
            options=data.get("options"),
            position=data.get("position"),
        )


@dataclass(frozen=True)
class DocumentRequirement:
    type: str
    description: str
    required: bool
    accepted_formats: list[str]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentRequirement":
        return cls(
            type=data["type"],
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            accepted_formats=list(data.get("accepted_formats", [])),
        )


@dataclass(frozen=True)
class ValidationRule:
    field: str
    rule: str
    value: Any
    message: str


@dataclass(frozen=True)
class DataRequirements:
    fields: list[FieldRequirement] = field(default_factory=list)
    documents: list[DocumentRequirement] = field(default_factory=list)
    validation_rules: list[ValidationRule] = field(default_factory=list)

    @property
    def required_fields(self) -> list[FieldRequirement]:
        return [item for item in self.fields if item.required]

    @property
    def optional_fields(self) -> list[FieldRequirement]:
        return [item for item in self.fields if not item.required]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DataRequirements":
        return cls(
            fields=[FieldRequirement.from_dict(item) for item in data.get("fields", [])],
            documents=[
                DocumentRequirement.from_dict(item) for item in data.get("documents", [])
            ],
            validation_rules=[
                ValidationRule(**item) for item in data.get("validation_rules", [])
            ],
        )


@dataclass(frozen=True)
class SubmittedDocument:
    """A supporting document uploaded by the user during data collection."""

    type: str
    file_name: str
    mime_type: str = ""
    size: int = 0
    storage_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubmittedDocument":
        return cls(
            type=str(data.get("type", "")),
            file_name=str(data.get("file_name", "")),
            mime_type=str(data.get("mime_type", "")),
            size=int(data.get("size", 0) or 0),
            storage_path=data.get("storage_path"),
        )


@dataclass(frozen=True)
class DocumentCheck:
    missing_types: list[str] = field(default_factory=list)
    invalid_types: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InvalidField:
    field: str
    reason: str


@dataclass(frozen=True)
class VerificationResult:
    verified: bool
    missing_fields: list[str]
    invalid_fields: list[InvalidField]
    documents: DocumentCheck
    warnings: list[str]
    confidence: float


@dataclass(frozen=True)
class FieldMapping:
    """A resolved value for one output field, taken verbatim from user data."""

    field: str
    source: str
    value: Any
    confidence: float
    field_type: str = "text"
    position: dict[str, float] | None = None


@dataclass(frozen=True)
class QualityReport:
    score: float
    issues: list[str]
    warnings: list[str]
    recommendations: list[str]
    completion_rate: float


@dataclass(frozen=True)
class FillingResult:
    mappings: list[FieldMapping]
    unmapped_required: list[str]
    unmapped_optional: list[str]
    data: bytes
    format: str
    quality: QualityReport
