from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class UsageRecord:
    user_id: str
    plan: str
    analysis: int
    generation: int
    ocr: int
    current_month: str

    def used(self, kind: str) -> int:
        return int(getattr(self, kind))


@dataclass(frozen=True)
class BatchRecord:
    id: str
    user_id: str
    name: str
    status: str
    documents_total: int
    documents_processed: int = 0
    results: list[dict[str, Any]] = field(default_factory=list)
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
