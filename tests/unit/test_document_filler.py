import pymupdf
import pytest

from formflow.agents.models import FieldMapping
from formflow.filling.document_filler import DocumentFiller, display_value, is_checked
from formflow.filling.exceptions import FillingError
from formflow.filling.models import TemplateDocument

NAME = FieldMapping(field="full_name", source="full_name", value="Jane Doe", confidence=1.0)
EMAIL = FieldMapping(field="email", source="Email", value="jane@example.com", confidence=0.9)
PHONE = FieldMapping(field="phone", source="phone", value="555-0100", confidence=1.0)


def _widget_values(data: bytes) -> dict[str, str]:
    with pymupdf.open(stream=data, filetype="pdf") as doc:
        return {
            widget.field_name: widget.field_value for page in doc for widget in page.widgets()
        }


def _page_count(data: bytes) -> int:
    with pymupdf.open(stream=data, filetype="pdf") as doc:
        return doc.page_count


def _all_text(data: bytes) -> str:
    with pymupdf.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


class TestHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"), [(True, "Yes"), (False, "No"), (["a", "b"], "a, b"), (42, "42")]
    )
    def test_display_value(self, value: object, expected: str) -> None:
        assert display_value(value) == expected

    @pytest.mark.parametrize(("value", "expected"), [("yes", True), ("X", True), ("no", False), (False, False)])
    def test_is_checked(self, value: object, expected: bool) -> None:
        assert is_checked(value) is expected


class TestDocumentFiller:
    def test_fills_acroform_fields(self, acroform_pdf_bytes: bytes) -> None:
        template = TemplateDocument("form.pdf", "application/pdf", acroform_pdf_bytes)
        result = DocumentFiller().fill(template, [NAME, EMAIL])

        values = _widget_values(result.data)
        assert result.format == "PDF"
        assert values["full_name"] == "Jane Doe"
        assert values["email"] == "jane@example.com"
        assert _page_count(result.data) == 1

    def test_unplaced_values_go_on_an_extra_page(self, acroform_pdf_bytes: bytes) -> None:
        template = TemplateDocument("form.pdf", "application/pdf", acroform_pdf_bytes)
        result = DocumentFiller().fill(template, [NAME, PHONE])

        assert _page_count(result.data) == 2
        assert "phone: 555-0100" in _all_text(result.data)

    def test_flat_pdf_lists_every_value(self, sample_pdf_bytes: bytes) -> None:
        template = TemplateDocument("contact.pdf", "application/pdf", sample_pdf_bytes)
        result = DocumentFiller().fill(template, [NAME])

        assert _page_count(result.data) == 2
        assert "full_name: Jane Doe" in _all_text(result.data)

    def test_fills_text_placeholders(self) -> None:
        template = TemplateDocument(
            "letter.txt",
            "text/plain",
            b"Name: {{full_name}}\nEmail: {{ Email }}\nPhone: {{phone}}\n",
        )
        result = DocumentFiller().fill(template, [NAME, EMAIL])

        assert result.format == "TXT"
        assert result.data.decode() == (
            "Name: Jane Doe\nEmail: jane@example.com\nPhone: {{phone}}\n"
        )

    def test_image_template_becomes_pdf(self, png_bytes: bytes) -> None:
        placed = FieldMapping(
            field="full_name",
            source="full_name",
            value="Jane Doe",
            confidence=1.0,
            position={"x": 100, "y": 100, "width": 200, "height": 20},
        )
        template = TemplateDocument("scan.png", "image/png", png_bytes)
        result = DocumentFiller().fill(template, [placed, PHONE])

        assert result.format == "PDF"
        assert _page_count(result.data) == 2
        text = _all_text(result.data)
        assert "Jane Doe" in text
        assert "phone: 555-0100" in text

    @pytest.mark.parametrize("mime_type", ["application/octet-stream", "application/json"])
    def test_other_types_are_filled_as_text(self, mime_type: str) -> None:
        template = TemplateDocument("form.txt", mime_type, b"Name: {{full_name}}")
        result = DocumentFiller().fill(template, [NAME])

        assert result.data == b"Name: Jane Doe"
        assert result.format == "TXT"

    def test_broken_pdf_raises_filling_error(self) -> None:
        template = TemplateDocument("form.pdf", "application/pdf", b"not a pdf")
        with pytest.raises(FillingError, match="form.pdf"):
            DocumentFiller().fill(template, [NAME])
