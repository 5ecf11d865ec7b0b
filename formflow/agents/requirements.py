import re

from formflow.agents.models import (
    DataRequirements,
    DocumentRequirement,
    ExtractionResult,
    FieldRequirement,
    ValidationRule,
)
from formflow.recovery.models import ExtractedField

IDENTITY_DOCUMENT_KEYWORDS = ("id", "passport", "license", "certificate", "document", "proof")
SIGNATURE_FORMATS = ["jpg", "png", "pdf"]
IDENTITY_DOCUMENT_FORMATS = ["pdf", "jpg", "png"]
DATA_FIELD_TYPES = frozenset({"text", "radio", "checkbox"})


def field_name(label: str) -> str:
    """Machine name for a field label: lower-cased, whitespace collapsed to ``_``."""
    return re.sub(r"\s+", "_", label.strip().lower())


def _names_identity_document(label: str) -> bool:
    words = re.findall(r"[a-z0-9]+", label.lower())
    return any(keyword in words for keyword in IDENTITY_DOCUMENT_KEYWORDS)


def _field_requirement(field: ExtractedField) -> FieldRequirement:
    # Checkboxes are consent-style inputs; they never block verification.
    required = field.required and field.kind != "checkbox"
    validation = None
    if field.validation.pattern or field.validation.min_length or field.validation.max_length:
        validation = {
            "pattern": field.validation.pattern,
            "min_length": field.validation.min_length,
            "max_length": field.validation.max_length,
        }
    options = field.attributes.get("options")
    return FieldRequirement(
        field=field_name(field.label),
        # Text fields keep the oracle's finer type (email, date, phone) as metadata.
        type=field.type if field.kind == "text" else field.kind,
        required=required,
        description=field.label,
        validation=validation,
        options=[str(option) for option in options] if isinstance(options, list) else None,
        position=field.position,
    )


def _validation_rules(requirement: FieldRequirement) -> list[ValidationRule]:
    if not requirement.validation:
        return []
    rules: list[ValidationRule] = []
    if requirement.validation.get("pattern"):
        rules.append(
            ValidationRule(
                field=requirement.field,
                rule="pattern",
                value=requirement.validation["pattern"],
                message=f"{requirement.description} has an invalid format",
            )
        )
    for rule in ("min_length", "max_length"):
        if requirement.validation.get(rule) is not None:
            rules.append(
                ValidationRule(
                    field=requirement.field,
                    rule=rule,
                    value=requirement.validation[rule],
                    message=f"{requirement.description} violates {rule.replace('_', ' ')}",
                )
            )
    return rules


def derive_requirements(extraction: ExtractionResult) -> DataRequirements:
    """Work out which data and documents the user must supply."""
    fields: list[FieldRequirement] = []
    documents: list[DocumentRequirement] = []
    rules: list[ValidationRule] = []
    seen: set[str] = set()

    for field in extraction.fields:
        if field.kind == "signature":
            if field.required:
                documents.append(
                    DocumentRequirement(
                        type="signature",
                        description=f"Signature for {field.label}",
                        required=True,
                        accepted_formats=list(SIGNATURE_FORMATS),
                    )
                )
            continue
        if field.kind not in DATA_FIELD_TYPES:
            continue

        requirement = _field_requirement(field)
        if requirement.field in seen:
            continue
        seen.add(requirement.field)
        fields.append(requirement)
        rules.extend(_validation_rules(requirement))

        if field.kind == "text" and field.required and _names_identity_document(field.label):
            documents.append(
                DocumentRequirement(
                    type=requirement.field,
                    description=f"Document for {field.label}",
                    required=True,
                    accepted_formats=list(IDENTITY_DOCUMENT_FORMATS),
                )
            )

    return DataRequirements(fields=fields, documents=documents, validation_rules=rules)
