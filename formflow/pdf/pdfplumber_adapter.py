import io

import pdfplumber

from formflow.pdf.base import BasePdfExtractor
from formflow.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Layout-aware extraction; keeps label/value pairs on one line."""

    def extract(self, pdf_bytes: bytes) -> str:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber could not read PDF: {exc}") from exc
        return "\n".join(pages).strip()
