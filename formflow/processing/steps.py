import asyncio
from dataclasses import asdict

from formflow.agents.analyzer import FormAnalyzer
from formflow.agents.extractor import DataExtractor
from formflow.agents.filler import FormFiller
from formflow.agents.models import DataRequirements
from formflow.agents.requirements import derive_requirements
from formflow.agents.verifier import DataVerifier
from formflow.database.repositories.processing_repository import ProcessingRepository
from formflow.filling.models import TemplateDocument
from formflow.ingestion.exceptions import ExtractionError
from formflow.ingestion.ingestor import DocumentIngestor, placeholder_document
from formflow.ingestion.models import SourceFile
from formflow.logging.logger import Log
from formflow.processing import workflow
from formflow.processing.file_store import FileStore
from formflow.processing.models import StageStatus, WorkflowStatus, WorkflowStep, utcnow
from formflow.processing.pipeline import PipelineContext, PipelineStep


class MarkFailedStep(PipelineStep):
    def __init__(self, repo: ProcessingRepository) -> None:
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        step = context.failed_step or WorkflowStep.FAILED
        workflow.fail(context.record, step, context.error_message)
        await self._repo.save(context.record)
        Log.error(
            f"Processing {context.record.id} marked as failed at {step.value}: "
            f"{context.error_message}"
        )
        return context


class IngestDocumentStep(PipelineStep):
    def __init__(self, ingestor: DocumentIngestor, file_store: FileStore) -> None:
        self._ingestor = ingestor
        self._file_store = file_store

    async def run(self, context: PipelineContext) -> PipelineContext:
        form = context.record.original_form
        data = await asyncio.to_thread(self._file_store.load, form.storage_path)
        source = SourceFile(file_name=form.file_name, mime_type=form.mime_type, data=data)
        try:
            context.document = await self._ingestor.extract(source)
        except ExtractionError as exc:
            Log.warning(f"Using placeholder text for '{form.file_name}': {exc}")
            context.document = placeholder_document(source)
        return context


class AnalyzeFormStep(PipelineStep):
    def __init__(
        self,
        analyzer: FormAnalyzer,
        extractor: DataExtractor,
        repo: ProcessingRepository,
    ) -> None:
        self._analyzer = analyzer
        self._extractor = extractor
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None:
            raise ValueError("PipelineContext.document must be set before analysis")
        record = context.record
        workflow.begin_stage(record, WorkflowStep.ANALYSIS)
        await self._repo.save(record)

        analysis, extraction = await asyncio.gather(
            self._analyzer.analyze(context.document),
            self._extractor.extract(context.document),
            return_exceptions=True,
        )
        for outcome in (analysis, extraction):
            if isinstance(outcome, BaseException):
                raise outcome
        context.analysis = analysis  # type: ignore[assignment]
        context.extraction = extraction  # type: ignore[assignment]

        workflow.complete_stage(
            record,
            WorkflowStep.ANALYSIS,
            {
                "form_type": context.analysis.form_type,
                "confidence": context.analysis.confidence,
                "total_fields": context.extraction.total_fields,
                "required_fields": sum(1 for f in context.extraction.fields if f.required),
                "degraded_input": context.document.degraded,
                "analysis": asdict(context.analysis),
                "extraction": asdict(context.extraction),
            },
        )
        await self._repo.save(record)
        Log.info(
            f"Processing {record.id}: analysis completed with "
            f"{context.extraction.total_fields} fields"
        )
        return context


class DeriveRequirementsStep(PipelineStep):
    def __init__(self, repo: ProcessingRepository) -> None:
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.extraction is None:
            raise ValueError("PipelineContext.extraction must be set before requirements")
        record = context.record
        context.requirements = derive_requirements(context.extraction)
        workflow.advance(record, WorkflowStep.DATA_COLLECTION, WorkflowStatus.PENDING)
        workflow.await_input(record, {"requirements": asdict(context.requirements)})
        await self._repo.save(record)
        Log.info(
            f"Processing {record.id}: awaiting data for "
            f"{len(context.requirements.fields)} fields and "
            f"{len(context.requirements.documents)} documents"
        )
        return context


class RecordSubmissionStep(PipelineStep):
    def __init__(self, repo: ProcessingRepository) -> None:
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        record = context.record
        workflow.require_step(record, WorkflowStep.DATA_COLLECTION)
        payload = dict(record.data_collection.payload)
        context.requirements = DataRequirements.from_dict(payload.get("requirements", {}))
        payload.update(
            {
                "user_data": context.user_data,
                "documents": [asdict(document) for document in context.documents],
                "submitted_at": utcnow().isoformat(),
            }
        )
        workflow.complete_stage(record, WorkflowStep.DATA_COLLECTION, payload)
        workflow.advance(record, WorkflowStep.VERIFICATION)
        await self._repo.save(record)
        return context


class VerifyDataStep(PipelineStep):
    def __init__(self, verifier: DataVerifier, repo: ProcessingRepository) -> None:
        self._verifier = verifier
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.requirements is None:
            raise ValueError("PipelineContext.requirements must be set before verification")
        record = context.record
        workflow.begin_stage(record, WorkflowStep.VERIFICATION)
        result = self._verifier.verify(context.user_data, context.documents, context.requirements)
        context.verification = result

        if result.verified:
            workflow.complete_stage(record, WorkflowStep.VERIFICATION, asdict(result))
            workflow.advance(record, WorkflowStep.FILLING)
        else:
            workflow.complete_stage(
                record, WorkflowStep.VERIFICATION, asdict(result), status=StageStatus.FAILED
            )
            workflow.advance(record, WorkflowStep.DATA_COLLECTION, WorkflowStatus.PENDING)
            workflow.await_input(record, record.data_collection.payload)
            context.halted = True
            Log.info(
                f"Processing {record.id}: verification failed, "
                f"missing {result.missing_fields}"
            )
        await self._repo.save(record)
        return context


class FillFormStep(PipelineStep):
    def __init__(
        self,
        filler: FormFiller,
        file_store: FileStore,
        repo: ProcessingRepository,
    ) -> None:
        self._filler = filler
        self._file_store = file_store
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.requirements is None:
            raise ValueError("PipelineContext.requirements must be set before filling")
        record = context.record
        workflow.begin_stage(record, WorkflowStep.FILLING)
        await self._repo.save(record)

        form = record.original_form
        data = await asyncio.to_thread(self._file_store.load, form.storage_path)
        template = TemplateDocument(file_name=form.file_name, mime_type=form.mime_type, data=data)
        result = await self._filler.fill(template, context.requirements, context.user_data)
        output_path = await asyncio.to_thread(
            self._file_store.save_filled,
            record.user_id,
            record.id,
            form.file_name,
            result.data,
            result.format,
        )
        context.filling = result

        workflow.complete_stage(
            record,
            WorkflowStep.FILLING,
            {
                "mappings": [asdict(mapping) for mapping in result.mappings],
                "unmapped_required": result.unmapped_required,
                "unmapped_optional": result.unmapped_optional,
                "format": result.format,
                "output_path": str(output_path),
                "quality": asdict(result.quality),
            },
        )
        completed_at = record.filling.completed_at or utcnow()
        record.processing_time = (completed_at - record.workflow.started_at).total_seconds()
        await self._repo.save(record)
        return context


class FinalizeOutputStep(PipelineStep):
    def __init__(self, repo: ProcessingRepository) -> None:
        self._repo = repo

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.filling is None:
            raise ValueError("PipelineContext.filling must be set before finalizing")
        record = context.record
        output_path = record.filling.payload["output_path"]
        output = {
            "download_path": output_path,
            "preview_path": output_path if record.preferences.get("include_preview", True) else None,
            "formats": [context.filling.format],
            "generated_at": utcnow().isoformat(),
            "quality_score": context.filling.quality.score,
            "metadata": {
                "original_form": record.original_form.file_name,
                "processing_time": record.processing_time,
                "total_fields": len(context.requirements.fields) if context.requirements else 0,
                "filled_fields": len(context.filling.mappings),
            },
        }
        workflow.complete_workflow(record, output)
        await self._repo.save(record)
        Log.info(f"Processing {record.id} completed in {record.processing_time:.1f}s")
        return context
