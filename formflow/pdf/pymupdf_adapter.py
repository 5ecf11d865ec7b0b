import pymupdf

from formflow.pdf.base import BasePdfExtractor
from formflow.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts page text and appends AcroForm field names with their values."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages: list[str] = []
                for page in doc:
                    text = page.get_text()
                    fields = [
                        f"{widget.field_name}: {widget.field_value or ''}"
                        for widget in page.widgets()
                        if widget.field_name
                    ]
                    pages.append("\n".join([text, *fields]) if fields else text)
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf could not read PDF: {exc}") from exc
        return "\n".join(pages).strip()
