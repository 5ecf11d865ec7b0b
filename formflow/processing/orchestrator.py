import asyncio
import json
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from formflow.agents.analyzer import FormAnalyzer
from formflow.agents.extractor import DataExtractor
from formflow.agents.filler import FormFiller
from formflow.agents.models import SubmittedDocument
from formflow.agents.verifier import DataVerifier
from formflow.config.settings import Settings
from formflow.database.repositories.processing_repository import ProcessingRepository
from formflow.database.repositories.usage_repository import UsageRepository
from formflow.filling.document_filler import DocumentFiller
from formflow.gateway.factory import GatewayFactory
from formflow.gateway.models import StageModels
from formflow.ingestion.factory import IngestorFactory
from formflow.ingestion.ingestor import DocumentIngestor
from formflow.ingestion.models import SourceFile
from formflow.logging.logger import Log
from formflow.processing import workflow
from formflow.processing.exceptions import (
    ProcessingNotCompletedError,
    ProcessingNotFoundError,
)
from formflow.processing.file_store import FileStore
from formflow.processing.models import (
    ProcessingRecord,
    ProcessingStatus,
    WorkflowStatus,
    WorkflowStep,
)
from formflow.processing.pipeline import Pipeline, PipelineContext
from formflow.processing.steps import (
    AnalyzeFormStep,
    DeriveRequirementsStep,
    FillFormStep,
    FinalizeOutputStep,
    IngestDocumentStep,
    MarkFailedStep,
    RecordSubmissionStep,
    VerifyDataStep,
)
from formflow.quota.quota_guard import QuotaGuard

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_PREFERENCES: dict[str, Any] = {
    "output_format": "PDF",
    "include_preview": True,
    "auto_download": False,
}


def parse_options(options: dict[str, Any] | str | None) -> dict[str, Any]:
    """Accept start options as a mapping or a JSON string."""
    if options is None:
        return {}
    if isinstance(options, str):
        try:
            parsed = json.loads(options)
        except json.JSONDecodeError:
            Log.warning("Ignoring unparseable processing options")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return dict(options)


class Orchestrator:
    """Drives processing records through analysis, data collection,
    verification and filling.

    It is the only writer of processing records. Operations on one record
    are serialized in-process; the repository's version check catches
    writers in other processes.
    """

    def __init__(
        self,
        *,
        repo: ProcessingRepository,
        file_store: FileStore,
        ingestor: DocumentIngestor,
        analyzer: FormAnalyzer,
        extractor: DataExtractor,
        verifier: DataVerifier,
        filler: FormFiller,
        quota_guard: QuotaGuard,
    ) -> None:
        self._repo = repo
        self._file_store = file_store
        self._quota_guard = quota_guard
        failure_step = MarkFailedStep(repo)
        self._analysis_pipeline = Pipeline(
            [
                IngestDocumentStep(ingestor, file_store),
                AnalyzeFormStep(analyzer, extractor, repo),
                DeriveRequirementsStep(repo),
            ],
            failure_step,
        )
        self._submission_pipeline = Pipeline(
            [
                RecordSubmissionStep(repo),
                VerifyDataStep(verifier, repo),
                FillFormStep(filler, file_store, repo),
                FinalizeOutputStep(repo),
            ],
            failure_step,
        )
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    async def start(
        self,
        upload: SourceFile,
        user_id: str,
        options: dict[str, Any] | str | None = None,
    ) -> ProcessingRecord:
        """Store the upload, run analysis and derive the data requirements.

        Raises:
            QuotaExceededError: before anything is stored.
            ProcessingFailedError: if analysis failed; the record is saved
                as failed.
        """
        await self._quota_guard.acquire(user_id, "analysis")

        processing_id = str(uuid.uuid4())
        parsed = parse_options(options)
        original_form = await asyncio.to_thread(
            self._file_store.save_original, user_id, processing_id, upload
        )
        record = ProcessingRecord(
            id=processing_id,
            user_id=user_id,
            original_form=original_form,
            preferences={**DEFAULT_PREFERENCES, **parsed.get("preferences", {})},
        )
        await self._repo.create(record)
        Log.info(f"Processing {processing_id} started for '{upload.file_name}'")

        async with self._locked(processing_id):
            context = await self._analysis_pipeline.run(PipelineContext(record=record))
        return context.record

    async def submit_user_data(
        self,
        processing_id: str,
        user_data: dict[str, Any],
        documents: list[SubmittedDocument | dict[str, Any]] | None,
        user_id: str,
    ) -> ProcessingRecord:
        """Verify submitted data and, when it passes, fill the form.

        On failed verification the record returns to data collection with the
        verdict stored on it.

        Raises:
            ProcessingNotFoundError: unknown id or another user's record.
            IllegalTransitionError: the record is not awaiting data.
            QuotaExceededError: before the record is touched.
            ProcessingFailedError: verification or filling broke.
        """
        submitted = [
            item if isinstance(item, SubmittedDocument) else SubmittedDocument.from_dict(item)
            for item in documents or []
        ]
        async with self._locked(processing_id):
            record = await self._load(processing_id, user_id)
            workflow.require_step(record, WorkflowStep.DATA_COLLECTION)
            await self._quota_guard.acquire(user_id, "generation")
            context = await self._submission_pipeline.run(
                PipelineContext(record=record, user_data=dict(user_data), documents=submitted)
            )
        return context.record

    async def get_status(self, processing_id: str, user_id: str) -> ProcessingStatus:
        record = await self._load(processing_id, user_id)
        return ProcessingStatus(
            processing_id=record.id,
            status=record.workflow.status,
            current_step=record.workflow.current_step,
            progress=record.progress(),
            started_at=record.workflow.started_at,
            completed_at=record.workflow.completed_at,
            errors=list(record.errors),
        )

    async def get_result(self, processing_id: str, user_id: str) -> dict[str, Any]:
        record = await self._load(processing_id, user_id)
        if record.workflow.status != WorkflowStatus.COMPLETED or record.output is None:
            raise ProcessingNotCompletedError("Processing not completed yet")
        return record.output

    async def list_history(
        self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[ProcessingRecord]:
        return await self._repo.list_by_user(user_id, limit)

    async def delete(self, processing_id: str, user_id: str) -> None:
        """Delete the record with its stored form and filled output."""
        async with self._locked(processing_id):
            record = await self._load(processing_id, user_id)
            if not await self._repo.delete(processing_id, user_id):
                raise ProcessingNotFoundError(f"Processing {processing_id} not found")
            paths = [record.original_form.storage_path]
            output_path = record.filling.payload.get("output_path")
            if output_path:
                paths.append(output_path)
            await asyncio.to_thread(self._file_store.remove, *paths)
        Log.info(f"Processing {processing_id} deleted")

    async def _load(self, processing_id: str, user_id: str) -> ProcessingRecord:
        try:
            uuid.UUID(processing_id)
        except ValueError as exc:
            raise ProcessingNotFoundError(f"Processing {processing_id} not found") from exc
        record = await self._repo.find(processing_id, user_id)
        if record is None:
            raise ProcessingNotFoundError(f"Processing {processing_id} not found")
        return record

    @asynccontextmanager
    async def _locked(self, processing_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(processing_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[processing_id] = lock
        async with lock:
            yield


def build_orchestrator(settings: Settings) -> Orchestrator:
    """Wire an orchestrator with the adapters named in settings."""
    gateway = GatewayFactory.create(settings)
    models = StageModels.from_settings(settings)
    return Orchestrator(
        repo=ProcessingRepository(),
        file_store=FileStore(
            forms_root=Path(settings.original_forms_dir),
            filled_root=Path(settings.filled_forms_dir),
        ),
        ingestor=IngestorFactory.create(settings),
        analyzer=FormAnalyzer(gateway, models.analysis),
        extractor=DataExtractor(gateway, models.extraction),
        verifier=DataVerifier(),
        filler=FormFiller(gateway, models.filling, DocumentFiller()),
        quota_guard=QuotaGuard(
            UsageRepository(default_plan=settings.default_plan),
            enabled=settings.quota_enabled,
        ),
    )
