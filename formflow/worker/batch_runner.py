from formflow.agents.extractor import DataExtractor
from formflow.database.repositories.batch_repository import BatchRepository
from formflow.gateway.exceptions import GatewayError
from formflow.ingestion.exceptions import ExtractionError
from formflow.ingestion.ingestor import DocumentIngestor
from formflow.ingestion.models import SourceFile
from formflow.logging.logger import Log


class BatchRunner:
    """Processes the documents of one batch in submission order."""

    def __init__(
        self,
        ingestor: DocumentIngestor,
        extractor: DataExtractor,
        batch_repo: BatchRepository,
    ) -> None:
        self._ingestor = ingestor
        self._extractor = extractor
        self._batch_repo = batch_repo

    async def run(self, batch_id: str, files: list[SourceFile]) -> None:
        """Process every file, recording progress after each one.

        Per-document failures become error entries in the results. Anything
        else marks the whole batch failed.
        """
        Log.info(f"Batch {batch_id}: processing {len(files)} documents")
        try:
            await self._batch_repo.mark_processing(batch_id)
            for source in files:
                result = await self._process(source)
                await self._batch_repo.record_progress(batch_id, result)
            await self._batch_repo.mark_completed(batch_id)
        except Exception as exc:
            Log.error(f"Batch {batch_id} failed: {exc}")
            await self._batch_repo.mark_failed(batch_id, str(exc))
            return
        Log.info(f"Batch {batch_id} completed")

    async def _process(self, source: SourceFile) -> dict[str, object]:
        try:
            document = await self._ingestor.extract(source)
        except ExtractionError as exc:
            Log.warning(f"Batch document '{source.file_name}' unreadable: {exc}")
            return {"file_name": source.file_name, "status": "error", "error": str(exc)}
        try:
            extraction = await self._extractor.extract(document)
        except GatewayError as exc:
            Log.warning(f"Batch document '{source.file_name}' not extracted: {exc}")
            return {"file_name": source.file_name, "status": "error", "error": str(exc)}
        return {
            "file_name": source.file_name,
            "status": "completed",
            "text_length": len(document.content),
            "total_fields": extraction.total_fields,
            "confidence": extraction.confidence,
            "document_quality": extraction.document_quality,
        }
