from formflow.config.settings import Settings
from formflow.ingestion.ingestor import DocumentIngestor
from formflow.ingestion.ocr import TesseractOcr
from formflow.pdf.base import BasePdfExtractor
from formflow.pdf.pdfplumber_adapter import PdfPlumberAdapter
from formflow.pdf.pymupdf_adapter import PyMuPdfAdapter


class IngestorFactory:
    """Builds the document ingestor with the PDF engine named in settings."""

    PDF_ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> DocumentIngestor:
        return DocumentIngestor(
            pdf_extractor=cls.create_pdf_extractor(settings.pdf_engine),
            ocr=TesseractOcr(language=settings.ocr_language),
        )

    @classmethod
    def create_pdf_extractor(cls, engine: str) -> BasePdfExtractor:
        adapter_cls = cls.PDF_ADAPTERS.get(engine.lower())
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.PDF_ADAPTERS)}"
            )
        return adapter_cls()
