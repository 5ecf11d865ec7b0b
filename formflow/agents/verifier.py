import re
from pathlib import PurePath
from typing import Any

from formflow.agents.matching import find_value, normalize_key
from formflow.agents.models import (
    DataRequirements,
    DocumentCheck,
    DocumentRequirement,
    FieldRequirement,
    InvalidField,
    SubmittedDocument,
    VerificationResult,
)
from formflow.logging.logger import Log


def document_format(document: SubmittedDocument) -> str:
    suffix = PurePath(document.file_name).suffix.lstrip(".").lower()
    if suffix:
        return "jpg" if suffix == "jpeg" else suffix
    subtype = document.mime_type.rpartition("/")[2].lower()
    return "jpg" if subtype == "jpeg" else subtype


class DataVerifier:
    """Checks submitted data and documents against the derived requirements.

    Purely rule based: the result depends only on its inputs.
    """

    def verify(
        self,
        user_data: dict[str, Any],
        documents: list[SubmittedDocument],
        requirements: DataRequirements,
    ) -> VerificationResult:
        missing: list[str] = []
        invalid: list[InvalidField] = []
        warnings: list[str] = []
        checks = 0

        for requirement in requirements.fields:
            match = find_value(requirement, user_data)
            if match is None:
                if requirement.required:
                    checks += 1
                    missing.append(requirement.field)
                else:
                    warnings.append(f"Optional field '{requirement.field}' was not provided")
                continue
            checks += 1
            reason = self._check_value(requirement, match[1], warnings)
            if reason is not None:
                invalid.append(InvalidField(field=requirement.field, reason=reason))

        document_check = self._check_documents(requirements.documents, documents)
        checks += sum(1 for item in requirements.documents if item.required)

        failed = (
            len(missing)
            + len(invalid)
            + len(document_check.missing_types)
            + len(document_check.invalid_types)
        )
        confidence = 1.0 if checks == 0 else max(checks - failed, 0) / checks
        verified = failed == 0
        Log.info(
            f"Verification {'passed' if verified else 'failed'}: "
            f"{len(missing)} missing, {len(invalid)} invalid, "
            f"{len(document_check.missing_types)} documents missing"
        )
        return VerificationResult(
            verified=verified,
            missing_fields=missing,
            invalid_fields=invalid,
            documents=document_check,
            warnings=warnings,
            confidence=confidence,
        )

    def _check_value(
        self, requirement: FieldRequirement, value: Any, warnings: list[str]
    ) -> str | None:
        if requirement.options and requirement.type == "radio":
            options = {normalize_key(option) for option in requirement.options}
            if normalize_key(str(value)) not in options:
                return f"Value must be one of: {', '.join(requirement.options)}"

        if not requirement.validation or not isinstance(value, str):
            return None
        min_length = requirement.validation.get("min_length")
        max_length = requirement.validation.get("max_length")
        if min_length is not None and len(value) < min_length:
            return f"Must be at least {min_length} characters"
        if max_length is not None and len(value) > max_length:
            return f"Must be at most {max_length} characters"

        pattern = requirement.validation.get("pattern")
        if not pattern:
            return None
        try:
            compiled = re.compile(pattern)
        except re.error:
            warnings.append(f"Validation pattern for '{requirement.field}' is not usable")
            return None
        if compiled.search(value) is None:
            return "Value does not match the expected format"
        return None

    def _check_documents(
        self,
        required: list[DocumentRequirement],
        documents: list[SubmittedDocument],
    ) -> DocumentCheck:
        missing: list[str] = []
        invalid: list[str] = []
        for requirement in required:
            if not requirement.required:
                continue
            candidates = [
                document
                for document in documents
                if normalize_key(document.type) == normalize_key(requirement.type)
            ]
            if not candidates:
                missing.append(requirement.type)
                continue
            accepted = {item.lower() for item in requirement.accepted_formats}
            if accepted and not any(document_format(doc) in accepted for doc in candidates):
                invalid.append(requirement.type)
        return DocumentCheck(missing_types=missing, invalid_types=invalid)
