from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of running the recovery cascade over one oracle response.

    ``strategy`` names the strategy that produced ``payload``; it is None
    when every strategy failed.
    """

    payload: Any
    success: bool
    strategy: str | None = None


@dataclass(frozen=True)
class FieldValidation:
    required: bool = False
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None


@dataclass(frozen=True)
class ExtractedField:
    """A single form field recovered from oracle output."""

    id: str
    type: str
    label: str
    confidence: float
    value: str | None = None
    position: dict[str, float] | None = None
    validation: FieldValidation = field(default_factory=FieldValidation)
    attributes: dict[str, Any] = field(default_factory=dict)
    category: str = ""

    @property
    def required(self) -> bool:
        return self.validation.required

    @property
    def kind(self) -> str:
        """Extraction category the field came from; ``type`` is the oracle's own label."""
        return self.category or self.type


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    description: str = ""
    fields: list[str] = field(default_factory=list)
    order: int | None = None
    confidence: float = 0.8
