import uuid

import pytest

from formflow.database.models import BatchRecord
from formflow.database.repositories.batch_repository import BatchRepository


def _batch(user_id: str) -> BatchRecord:
    return BatchRecord(
        id=str(uuid.uuid4()),
        user_id=user_id,
        name="Invoices",
        status="queued",
        documents_total=2,
    )


@pytest.mark.integration
class TestBatchRepository:
    @pytest.mark.asyncio
    async def test_create_and_find(self, integration_cleanup: None, user_id: str) -> None:
        repo = BatchRepository()
        batch = _batch(user_id)
        await repo.create(batch)

        found = await repo.find(batch.id, user_id)

        assert found is not None
        assert found.name == "Invoices"
        assert found.status == "queued"
        assert found.documents_total == 2
        assert found.documents_processed == 0
        assert found.results == []
        assert found.created_at is not None
        assert found.completed_at is None

    @pytest.mark.asyncio
    async def test_find_for_other_user_returns_none(
        self, integration_cleanup: None, user_id: str
    ) -> None:
        repo = BatchRepository()
        batch = _batch(user_id)
        await repo.create(batch)

        assert await repo.find(batch.id, "someone-else") is None

    @pytest.mark.asyncio
    async def test_progress_then_completed(self, integration_cleanup: None, user_id: str) -> None:
        repo = BatchRepository()
        batch = _batch(user_id)
        await repo.create(batch)

        await repo.mark_processing(batch.id)
        await repo.record_progress(batch.id, {"file_name": "a.pdf", "status": "completed"})
        await repo.record_progress(batch.id, {"file_name": "b.pdf", "status": "error"})
        processing = await repo.find(batch.id, user_id)
        await repo.mark_completed(batch.id)
        completed = await repo.find(batch.id, user_id)

        assert processing is not None and processing.status == "processing"
        assert completed is not None
        assert completed.status == "completed"
        assert completed.documents_processed == 2
        assert [r["file_name"] for r in completed.results] == ["a.pdf", "b.pdf"]
        assert completed.completed_at is not None

    @pytest.mark.asyncio
    async def test_mark_failed(self, integration_cleanup: None, user_id: str) -> None:
        repo = BatchRepository()
        batch = _batch(user_id)
        await repo.create(batch)

        await repo.mark_failed(batch.id, "database gone")

        found = await repo.find(batch.id, user_id)
        assert found is not None
        assert found.status == "failed"
        assert found.error_message == "database gone"
        assert found.completed_at is not None
