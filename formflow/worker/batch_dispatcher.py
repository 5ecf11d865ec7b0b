import asyncio
import uuid

from formflow.database.models import BatchRecord
from formflow.database.repositories.batch_repository import BatchRepository
from formflow.ingestion.models import SourceFile
from formflow.logging.logger import Log
from formflow.quota.quota_guard import QuotaGuard
from formflow.worker.batch_runner import BatchRunner
from formflow.worker.exceptions import BatchNotFoundError, BatchValidationError


class BatchDispatcher:
    """Accepts document batches and runs them as background tasks."""

    def __init__(
        self,
        runner: BatchRunner,
        batch_repo: BatchRepository,
        quota_guard: QuotaGuard,
        max_batch_size: int = 50,
    ) -> None:
        self._runner = runner
        self._batch_repo = batch_repo
        self._quota_guard = quota_guard
        self._max_batch_size = max_batch_size
        self._tasks: set[asyncio.Task[None]] = set()

    async def submit(self, files: list[SourceFile], user_id: str, name: str = "") -> BatchRecord:
        """Queue a batch and return immediately; processing continues in the background.

        Raises:
            BatchValidationError: empty or oversized batch.
            QuotaExceededError: not enough OCR quota for every document.
        """
        if not files:
            raise BatchValidationError("A batch needs at least one document")
        if len(files) > self._max_batch_size:
            raise BatchValidationError(
                f"Maximum {self._max_batch_size} files allowed per batch"
            )
        await self._quota_guard.acquire(user_id, "ocr", count=len(files))

        batch = BatchRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name or f"Batch {len(files)} documents",
            status="queued",
            documents_total=len(files),
        )
        await self._batch_repo.create(batch)
        task = asyncio.create_task(self._runner.run(batch.id, list(files)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        Log.info(f"Batch {batch.id} queued with {len(files)} documents")
        return batch

    async def get_status(self, batch_id: str, user_id: str) -> BatchRecord:
        try:
            uuid.UUID(batch_id)
        except ValueError as exc:
            raise BatchNotFoundError(f"Batch {batch_id} not found") from exc
        batch = await self._batch_repo.find(batch_id, user_id)
        if batch is None:
            raise BatchNotFoundError(f"Batch {batch_id} not found")
        return batch

    async def wait_idle(self) -> None:
        """Wait for every running batch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
