import uuid
from typing import Any

from formflow.recovery.models import ExtractedField, FieldValidation, Section

UNKNOWN_FIELD_LABEL = "Unknown Field"
UNKNOWN_SECTION_TITLE = "Unknown Section"
DEFAULT_CONFIDENCE = 0.8

_CORE_FIELD_KEYS = frozenset(
    {"id", "type", "label", "name", "value", "confidence", "position", "validation",
     "required", "pattern", "minLength", "maxLength"}
)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if value <= 0:
        return DEFAULT_CONFIDENCE
    return min(float(value), 1.0)


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _position(value: Any) -> dict[str, float] | None:
    if not isinstance(value, dict):
        return None
    position: dict[str, float] = {}
    for key in ("x", "y", "width", "height"):
        raw = value.get(key, 0)
        position[key] = float(raw) if isinstance(raw, (int, float)) else 0.0
    return position


def _text(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def normalize_field(raw: Any, default_type: str) -> ExtractedField | None:
    """Turn one raw oracle item into a complete field, or None when it has no label."""
    if not isinstance(raw, dict):
        return None

    label = _text(raw.get("label")) or _text(raw.get("name")) or UNKNOWN_FIELD_LABEL
    if label == UNKNOWN_FIELD_LABEL:
        return None

    nested = raw.get("validation") if isinstance(raw.get("validation"), dict) else {}
    pattern = raw.get("pattern") or nested.get("pattern")
    validation = FieldValidation(
        required=bool(raw.get("required") or nested.get("required")),
        pattern=pattern if isinstance(pattern, str) and pattern else None,
        min_length=_optional_int(raw.get("minLength", nested.get("minLength"))),
        max_length=_optional_int(raw.get("maxLength", nested.get("maxLength"))),
    )
    attributes = {key: value for key, value in raw.items() if key not in _CORE_FIELD_KEYS}

    return ExtractedField(
        id=_text(raw.get("id")) or _new_id("field"),
        type=_text(raw.get("type")) or default_type,
        label=label,
        confidence=_confidence(raw.get("confidence")),
        value=_text(raw.get("value")),
        position=_position(raw.get("position")),
        validation=validation,
        attributes=attributes,
        category=default_type,
    )


def normalize_fields(items: list[Any], default_type: str) -> list[ExtractedField]:
    fields = (normalize_field(item, default_type) for item in items)
    return [field for field in fields if field is not None]


def normalize_section(raw: Any) -> Section | None:
    if not isinstance(raw, dict):
        return None
    fields = raw.get("fields")
    return Section(
        id=_text(raw.get("id")) or _new_id("section"),
        title=_text(raw.get("title")) or _text(raw.get("name")) or UNKNOWN_SECTION_TITLE,
        description=_text(raw.get("description")) or "",
        fields=[str(item) for item in fields] if isinstance(fields, list) else [],
        order=_optional_int(raw.get("order")),
        confidence=_confidence(raw.get("confidence")),
    )


def normalize_sections(items: list[Any]) -> list[Section]:
    sections = (normalize_section(item) for item in items)
    return [section for section in sections if section is not None]
