import copy
import json
from typing import Any

import pytest

from formflow.gateway.client_base import BaseCompletionClient
from formflow.gateway.models import ModelConfig
from formflow.processing.exceptions import ConcurrentModificationError
from formflow.processing.models import ProcessingRecord


class ScriptedClient(BaseCompletionClient):
    """Answers prompts by the first rule whose marker appears in the prompt."""

    def __init__(self, rules: list[tuple[str, str]] | None = None, default: str = "[]") -> None:
        self.rules = rules or []
        self.default = default
        self.prompts: list[str] = []

    async def create_chat_completion(
        self,
        *,
        model_config: ModelConfig,
        system_prompt: str | None,
        user_prompt: str,
    ) -> str:
        self.prompts.append(user_prompt)
        for marker, response in self.rules:
            if marker in user_prompt:
                return response
        return self.default


class InMemoryProcessingRepository:
    """Processing store with the same version semantics as the SQL one."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}

    async def create(self, record: ProcessingRecord) -> None:
        self.rows[record.id] = copy.deepcopy(record.to_dict())

    async def find(self, processing_id: str, user_id: str) -> ProcessingRecord | None:
        row = self.rows.get(processing_id)
        if row is None or row["user_id"] != user_id:
            return None
        return ProcessingRecord.from_dict(copy.deepcopy(row))

    async def save(self, record: ProcessingRecord) -> None:
        stored = self.rows.get(record.id)
        if stored is None or stored["version"] != record.version:
            raise ConcurrentModificationError(f"Processing {record.id} was modified concurrently")
        record.version += 1
        self.rows[record.id] = copy.deepcopy(record.to_dict())

    async def list_by_user(self, user_id: str, limit: int) -> list[ProcessingRecord]:
        rows = [row for row in self.rows.values() if row["user_id"] == user_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [ProcessingRecord.from_dict(copy.deepcopy(row)) for row in rows[:limit]]

    async def delete(self, processing_id: str, user_id: str) -> bool:
        row = self.rows.get(processing_id)
        if row is None or row["user_id"] != user_id:
            return False
        del self.rows[processing_id]
        return True


CONTACT_FIELDS = json.dumps(
    [
        {"label": "Name", "type": "text", "required": False, "confidence": 0.9},
        {"label": "Email", "type": "text", "required": False, "confidence": 0.9},
    ]
)


@pytest.fixture
def scripted_client() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture
def contact_form_client() -> ScriptedClient:
    """Oracle that sees the Jane Doe contact form."""
    return ScriptedClient(
        rules=[
            ("Extract all text input fields", CONTACT_FIELDS),
            ("Analyze the structure", '{"formType": "Contact Form", "confidence": 0.9}'),
            ("Review the quality", '{"score": 1.0, "issues": [], "warnings": []}'),
        ],
        default="[]",
    )


@pytest.fixture
def memory_repo() -> InMemoryProcessingRepository:
    return InMemoryProcessingRepository()


@pytest.fixture
def make_client() -> type[ScriptedClient]:
    return ScriptedClient
