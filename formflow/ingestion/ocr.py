import io

import pytesseract
from PIL import Image, UnidentifiedImageError

from formflow.ingestion.exceptions import ExtractionError


class TesseractOcr:
    """Reads text from raster images with Tesseract."""

    def __init__(self, language: str = "eng") -> None:
        self._language = language

    def read_text(self, image_bytes: bytes) -> str:
        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                text = pytesseract.image_to_string(image.convert("RGB"), lang=self._language)
        except UnidentifiedImageError as exc:
            raise ExtractionError(f"Unreadable image: {exc}") from exc
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as exc:
            raise ExtractionError(f"OCR failed: {exc}") from exc
        return text.strip()
