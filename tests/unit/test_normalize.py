import pytest

from formflow.recovery.normalize import (
    DEFAULT_CONFIDENCE,
    UNKNOWN_SECTION_TITLE,
    normalize_field,
    normalize_fields,
    normalize_section,
    normalize_sections,
)


class TestNormalizeField:
    def test_complete_item(self) -> None:
        field = normalize_field(
            {
                "id": "f1",
                "type": "text",
                "label": "Email",
                "confidence": 0.95,
                "required": True,
                "pattern": "^.+@.+$",
                "position": {"x": 10, "y": 20, "width": 100, "height": "bad"},
                "placeholder": "you@example.com",
            },
            default_type="text",
        )

        assert field is not None
        assert field.id == "f1"
        assert field.label == "Email"
        assert field.confidence == 0.95
        assert field.required is True
        assert field.validation.pattern == "^.+@.+$"
        assert field.position == {"x": 10.0, "y": 20.0, "width": 100.0, "height": 0.0}
        assert field.attributes == {"placeholder": "you@example.com"}

    def test_defaults_are_filled(self) -> None:
        field = normalize_field({"label": "Phone"}, default_type="checkbox")

        assert field is not None
        assert field.type == "checkbox"
        assert field.confidence == DEFAULT_CONFIDENCE
        assert field.required is False
        assert field.id.startswith("field_")
        assert field.position is None

    def test_oracle_type_kept_beside_category(self) -> None:
        field = normalize_field({"label": "Email", "type": "email"}, default_type="text")

        assert field is not None
        assert field.type == "email"
        assert field.category == "text"
        assert field.kind == "text"

    def test_name_stands_in_for_label(self) -> None:
        field = normalize_field({"name": "Date of Birth"}, default_type="text")
        assert field is not None
        assert field.label == "Date of Birth"

    @pytest.mark.parametrize("raw", [{}, {"label": "  "}, {"label": "Unknown Field"}, "Email", None])
    def test_unlabeled_items_are_dropped(self, raw: object) -> None:
        assert normalize_field(raw, default_type="text") is None

    @pytest.mark.parametrize(
        ("confidence", "expected"),
        [(0, DEFAULT_CONFIDENCE), (-1, DEFAULT_CONFIDENCE), ("high", DEFAULT_CONFIDENCE),
         (True, DEFAULT_CONFIDENCE), (1.7, 1.0), (0.4, 0.4)],
    )
    def test_confidence_is_bounded(self, confidence: object, expected: float) -> None:
        field = normalize_field({"label": "X", "confidence": confidence}, default_type="text")
        assert field is not None
        assert field.confidence == expected

    def test_nested_validation_is_read(self) -> None:
        field = normalize_field(
            {"label": "Zip", "validation": {"required": True, "pattern": "^\\d{5}$", "maxLength": 5}},
            default_type="text",
        )
        assert field is not None
        assert field.required is True
        assert field.validation.pattern == "^\\d{5}$"
        assert field.validation.max_length == 5

    def test_fields_list_skips_invalid_items(self) -> None:
        fields = normalize_fields([{"label": "A"}, {"type": "text"}, 3], default_type="text")
        assert [field.label for field in fields] == ["A"]


class TestNormalizeSection:
    def test_section_defaults(self) -> None:
        section = normalize_section({"fields": ["a", 2], "order": 1})
        assert section is not None
        assert section.title == UNKNOWN_SECTION_TITLE
        assert section.fields == ["a", "2"]
        assert section.order == 1
        assert section.id.startswith("section_")

    def test_sections_list(self) -> None:
        sections = normalize_sections([{"title": "Personal"}, "nope"])
        assert [section.title for section in sections] == ["Personal"]
