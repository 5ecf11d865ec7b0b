import re
from pathlib import PurePath
from typing import Any

import pymupdf

from formflow.agents.matching import normalize_key
from formflow.agents.models import FieldMapping
from formflow.filling.base import BaseDocumentFiller
from formflow.filling.exceptions import FillingError
from formflow.filling.models import FilledDocument, TemplateDocument
from formflow.logging.logger import Log

A4_WIDTH = 595
A4_HEIGHT = 842
MARGIN = 50
FONT_SIZE = 10
LINE_HEIGHT = 14

_PLACEHOLDER = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
_TRUTHY = frozenset({"true", "yes", "y", "on", "1", "checked", "x"})


def display_value(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def is_checked(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


class DocumentFiller(BaseDocumentFiller):
    """Writes mapped values into PDF, image or text templates using PyMuPDF."""

    def fill(self, template: TemplateDocument, mappings: list[FieldMapping]) -> FilledDocument:
        mime_type = template.mime_type.lower()
        try:
            if mime_type == "application/pdf":
                return self._fill_pdf(template, mappings)
            if mime_type.startswith("image/"):
                return self._fill_image(template, mappings)
            # Anything else was ingested as text, so it is filled as text.
            return self._fill_text(template, mappings)
        except FillingError:
            raise
        except Exception as exc:
            raise FillingError(f"Failed to fill '{template.file_name}': {exc}") from exc

    def _fill_pdf(
        self, template: TemplateDocument, mappings: list[FieldMapping]
    ) -> FilledDocument:
        by_name = self._index(mappings)
        placed: set[str] = set()
        with pymupdf.open(stream=template.data, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            for page in doc:
                for widget in page.widgets():
                    mapping = by_name.get(normalize_key(widget.field_name or ""))
                    if mapping is None:
                        continue
                    if widget.field_type in (
                        pymupdf.PDF_WIDGET_TYPE_CHECKBOX,
                        pymupdf.PDF_WIDGET_TYPE_RADIOBUTTON,
                    ):
                        checked = (
                            is_checked(mapping.value)
                            if widget.field_type == pymupdf.PDF_WIDGET_TYPE_CHECKBOX
                            else normalize_key(str(widget.on_state()))
                            == normalize_key(display_value(mapping.value))
                        )
                        widget.field_value = widget.on_state() if checked else "Off"
                    else:
                        widget.field_value = display_value(mapping.value)
                    widget.update()
                    placed.add(mapping.field)
            leftover = [m for m in mappings if m.field not in placed]
            if leftover:
                self._append_value_page(doc, leftover)
            data = doc.tobytes(garbage=3, deflate=True)
        Log.info(
            f"Filled {len(placed)} form fields in '{template.file_name}', "
            f"{len(leftover)} listed separately"
        )
        return FilledDocument(data=data, format="PDF")

    def _fill_image(
        self, template: TemplateDocument, mappings: list[FieldMapping]
    ) -> FilledDocument:
        with pymupdf.open() as doc:  # type: ignore[no-untyped-call]
            page = doc.new_page(width=A4_WIDTH, height=A4_HEIGHT)
            page.insert_image(page.rect, stream=template.data, keep_proportion=True)
            leftover: list[FieldMapping] = []
            for mapping in mappings:
                point = self._overlay_point(mapping)
                if point is None:
                    leftover.append(mapping)
                    continue
                page.insert_text(point, display_value(mapping.value), fontsize=FONT_SIZE)
            if leftover:
                self._append_value_page(doc, leftover)
            data = doc.tobytes(garbage=3, deflate=True)
        return FilledDocument(data=data, format="PDF")

    def _fill_text(
        self, template: TemplateDocument, mappings: list[FieldMapping]
    ) -> FilledDocument:
        by_name = self._index(mappings)
        text = template.data.decode("utf-8", errors="replace")

        def substitute(match: re.Match[str]) -> str:
            mapping = by_name.get(normalize_key(match.group(1)))
            return display_value(mapping.value) if mapping is not None else match.group(0)

        filled = _PLACEHOLDER.sub(substitute, text)
        suffix = PurePath(template.file_name).suffix.lstrip(".").upper()
        return FilledDocument(data=filled.encode("utf-8"), format=suffix or "TXT")

    @staticmethod
    def _index(mappings: list[FieldMapping]) -> dict[str, FieldMapping]:
        index: dict[str, FieldMapping] = {}
        for mapping in mappings:
            index.setdefault(normalize_key(mapping.field), mapping)
            index.setdefault(normalize_key(mapping.source), mapping)
        return index

    @staticmethod
    def _overlay_point(mapping: FieldMapping) -> tuple[float, float] | None:
        if not mapping.position:
            return None
        x = mapping.position.get("x", 0.0)
        y = mapping.position.get("y", 0.0) + mapping.position.get("height", 0.0) * 0.7
        if not (0 <= x < A4_WIDTH and 0 < y < A4_HEIGHT):
            return None
        return x, y

    @staticmethod
    def _append_value_page(doc: Any, mappings: list[FieldMapping]) -> None:
        page = doc.new_page(width=A4_WIDTH, height=A4_HEIGHT)
        y = MARGIN
        page.insert_text((MARGIN, y), "Field values", fontsize=FONT_SIZE + 4)
        for mapping in mappings:
            y += LINE_HEIGHT
            if y > A4_HEIGHT - MARGIN:
                page = doc.new_page(width=A4_WIDTH, height=A4_HEIGHT)
                y = MARGIN
            page.insert_text(
                (MARGIN, y), f"{mapping.field}: {display_value(mapping.value)}", fontsize=FONT_SIZE
            )
