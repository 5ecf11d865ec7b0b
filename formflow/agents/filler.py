import asyncio
import json
from dataclasses import asdict
from typing import Any

from formflow.agents.matching import find_value
from formflow.agents.models import (
    DataRequirements,
    FieldMapping,
    FillingResult,
    QualityReport,
)
from formflow.agents.prompt_loader import load_prompt_template
from formflow.filling.base import BaseDocumentFiller
from formflow.filling.models import TemplateDocument
from formflow.gateway.exceptions import GatewayError
from formflow.gateway.gateway import TextCompletionGateway
from formflow.gateway.models import ModelConfig
from formflow.logging.logger import Log
from formflow.recovery.recovery import ResponseRecovery

REQUIRED_GAP_SCORE_CAP = 0.5


def build_mappings(
    requirements: DataRequirements, user_data: dict[str, Any]
) -> tuple[list[FieldMapping], list[str], list[str]]:
    """Map each requirement to a value the user explicitly submitted.

    Returns the mappings plus the required and optional fields left unmapped.
    Values are copied verbatim; nothing is inferred.
    """
    mappings: list[FieldMapping] = []
    unmapped_required: list[str] = []
    unmapped_optional: list[str] = []
    for requirement in requirements.fields:
        match = find_value(requirement, user_data)
        if match is None:
            target = unmapped_required if requirement.required else unmapped_optional
            target.append(requirement.field)
            continue
        source, value, confidence = match
        mappings.append(
            FieldMapping(
                field=requirement.field,
                source=source,
                value=value,
                confidence=confidence,
                field_type=requirement.type,
                position=requirement.position,
            )
        )
    return mappings, unmapped_required, unmapped_optional


def baseline_quality(
    mappings: list[FieldMapping],
    unmapped_required: list[str],
    unmapped_optional: list[str],
) -> QualityReport:
    total = len(mappings) + len(unmapped_required) + len(unmapped_optional)
    completion_rate = len(mappings) / total if total else 1.0
    issues = [f"Required field '{name}' is empty" for name in unmapped_required]
    warnings = [f"Optional field '{name}' is empty" for name in unmapped_optional]
    recommendations = (
        ["Provide values for the empty required fields"] if unmapped_required else []
    )
    score = completion_rate
    if unmapped_required:
        score = min(score, REQUIRED_GAP_SCORE_CAP)
    return QualityReport(
        score=round(score, 3),
        issues=issues,
        warnings=warnings,
        recommendations=recommendations,
        completion_rate=round(completion_rate, 3),
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


class FormFiller:
    """Produces the filled document from verified user data."""

    def __init__(
        self,
        gateway: TextCompletionGateway,
        model_config: ModelConfig,
        document_filler: BaseDocumentFiller,
        recovery: ResponseRecovery | None = None,
    ) -> None:
        self._gateway = gateway
        self._model_config = model_config
        self._document_filler = document_filler
        self._recovery = recovery or ResponseRecovery()

    async def fill(
        self,
        template: TemplateDocument,
        requirements: DataRequirements,
        user_data: dict[str, Any],
    ) -> FillingResult:
        mappings, unmapped_required, unmapped_optional = build_mappings(requirements, user_data)
        if unmapped_required:
            Log.warning(f"Filling with unmapped required fields: {unmapped_required}")

        filled = await asyncio.to_thread(self._document_filler.fill, template, mappings)
        quality = await self._quality_check(mappings, unmapped_required, unmapped_optional)
        Log.info(
            f"Filled '{template.file_name}': {len(mappings)} mappings, "
            f"quality {quality.score:.2f}"
        )
        return FillingResult(
            mappings=mappings,
            unmapped_required=unmapped_required,
            unmapped_optional=unmapped_optional,
            data=filled.data,
            format=filled.format,
            quality=quality,
        )

    async def _quality_check(
        self,
        mappings: list[FieldMapping],
        unmapped_required: list[str],
        unmapped_optional: list[str],
    ) -> QualityReport:
        baseline = baseline_quality(mappings, unmapped_required, unmapped_optional)
        prompt = load_prompt_template("quality_check").format(
            mappings=json.dumps([asdict(m) for m in mappings], indent=2, default=str),
            unmapped_required=json.dumps(unmapped_required),
        )
        try:
            response = await self._gateway.call_with_retry(self._model_config, prompt)
        except GatewayError as exc:
            Log.warning(f"Quality check unavailable, using baseline: {exc}")
            return baseline

        recovered = self._recovery.recover_object(response, context="quality_check")
        if not recovered.success:
            return baseline
        payload = recovered.payload
        score = payload.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 1:
            score = baseline.score
        return QualityReport(
            score=round(min(float(score), baseline.score), 3),
            issues=baseline.issues + _string_list(payload.get("issues")),
            warnings=baseline.warnings + _string_list(payload.get("warnings")),
            recommendations=baseline.recommendations
            + _string_list(payload.get("recommendations")),
            completion_rate=baseline.completion_rate,
        )
