import asyncio

from formflow.ingestion.exceptions import ExtractionError
from formflow.ingestion.models import IngestedDocument, SourceFile
from formflow.ingestion.ocr import TesseractOcr
from formflow.logging.logger import Log
from formflow.pdf.base import BasePdfExtractor
from formflow.pdf.exceptions import PdfExtractionError

PLACEHOLDER_TEXT = (
    "Document content could not be extracted. "
    "Form analysis will proceed with available data."
)


def placeholder_document(source: SourceFile) -> IngestedDocument:
    """Low-confidence stand-in used when extraction fails."""
    return IngestedDocument(
        name=source.file_name,
        content=PLACEHOLDER_TEXT,
        type=source.mime_type,
        size=source.size,
        degraded=True,
    )


class DocumentIngestor:
    """Turns an uploaded PDF, image or text file into plain text."""

    def __init__(self, pdf_extractor: BasePdfExtractor, ocr: TesseractOcr) -> None:
        self._pdf_extractor = pdf_extractor
        self._ocr = ocr

    async def extract(self, source: SourceFile) -> IngestedDocument:
        """Extract text from ``source``.

        Raises:
            ExtractionError: if the document is unreadable or yields no text.
        """
        content = await asyncio.to_thread(self._read, source)
        if not content.strip():
            raise ExtractionError(f"No text found in '{source.file_name}'")
        Log.info(f"Ingested '{source.file_name}': {len(content)} chars")
        return IngestedDocument(
            name=source.file_name,
            content=content,
            type=source.mime_type,
            size=source.size,
        )

    def _read(self, source: SourceFile) -> str:
        mime_type = source.mime_type.lower()
        if mime_type == "application/pdf":
            try:
                return self._pdf_extractor.extract(source.data)
            except PdfExtractionError as exc:
                raise ExtractionError(str(exc)) from exc
        if mime_type.startswith("image/"):
            return self._ocr.read_text(source.data)
        return source.data.decode("utf-8", errors="replace")
