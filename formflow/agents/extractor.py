from typing import ClassVar

from formflow.agents.fanout import gather_settled
from formflow.agents.models import ExtractionIssue, ExtractionResult
from formflow.agents.prompt_loader import load_prompt_template
from formflow.gateway.exceptions import GatewayError
from formflow.gateway.gateway import TextCompletionGateway
from formflow.gateway.models import ModelConfig
from formflow.ingestion.models import IngestedDocument
from formflow.logging.logger import Log
from formflow.recovery.models import ExtractedField, Section
from formflow.recovery.normalize import normalize_fields, normalize_sections
from formflow.recovery.recovery import ResponseRecovery

HIGH_CONFIDENCE = 0.7
LOW_CONFIDENCE = 0.5


def document_quality(content: str) -> float:
    """Rough quality estimate of the ingested text."""
    lowered = content.lower()
    if len(content) > 1000 and ("form" in lowered or "field" in lowered):
        return 0.9
    if len(content) > 500:
        return 0.7
    return 0.5


def find_extraction_issues(fields: list[ExtractedField]) -> list[ExtractionIssue]:
    issues: list[ExtractionIssue] = []
    for field in fields:
        if field.confidence < LOW_CONFIDENCE:
            issues.append(
                ExtractionIssue(
                    type="low_confidence",
                    field_id=field.id,
                    message=f"Low confidence extraction for field: {field.label}",
                    severity="medium",
                )
            )
    return issues


def unrecognized_items(category: str, count: int) -> list[ExtractionIssue]:
    """Issues for items dropped during normalization because they had no label."""
    return [
        ExtractionIssue(
            type="unrecognized_field",
            field_id=None,
            message=f"Unable to identify field label in '{category}' results",
            severity="high",
        )
        for _ in range(count)
    ]


class DataExtractor:
    """Extracts form fields per category and merges them into one result."""

    FIELD_CATEGORIES: ClassVar[tuple[str, ...]] = (
        "text",
        "checkbox",
        "radio",
        "signature",
        "table",
    )

    def __init__(
        self,
        gateway: TextCompletionGateway,
        model_config: ModelConfig,
        recovery: ResponseRecovery | None = None,
    ) -> None:
        self._gateway = gateway
        self._model_config = model_config
        self._recovery = recovery or ResponseRecovery()

    async def extract(self, document: IngestedDocument) -> ExtractionResult:
        system_prompt = load_prompt_template("extraction_system")
        categories = [*self.FIELD_CATEGORIES, "sections"]
        calls = [
            self._gateway.call_with_retry(
                self._model_config,
                load_prompt_template(f"extract_{category}").format(
                    document_content=document.content
                ),
                system_prompt,
            )
            for category in categories
        ]
        responses = await gather_settled(calls)

        fields: list[ExtractedField] = []
        counts = {category: 0 for category in self.FIELD_CATEGORIES}
        failures: list[str] = []
        unlabeled: list[ExtractionIssue] = []
        sections: list[Section] = []
        for category, response in zip(categories, responses):
            if isinstance(response, GatewayError):
                Log.warning(f"Extraction of '{category}' unavailable: {response}")
                failures.append(category)
                continue
            if category == "sections":
                recovered = self._recovery.recover_array(
                    response, keys=("sections", "data"), item_key="title",
                    context="extraction:sections",
                )
                sections = normalize_sections(recovered.payload)
            else:
                recovered = self._recovery.recover_array(
                    response, context=f"extraction:{category}"
                )
                category_fields = normalize_fields(recovered.payload, category)
                dropped = len(recovered.payload) - len(category_fields)
                if dropped:
                    Log.warning(f"Dropped {dropped} unlabeled '{category}' items")
                    unlabeled.extend(unrecognized_items(category, dropped))
                counts[category] = len(category_fields)
                fields.extend(category_fields)
            if not recovered.success:
                failures.append(category)

        confidence = sum(f.confidence for f in fields) / len(fields) if fields else 0.0
        result = ExtractionResult(
            fields=fields,
            sections=sections,
            total_fields=len(fields),
            counts=counts,
            high_confidence_fields=sum(1 for f in fields if f.confidence > HIGH_CONFIDENCE),
            confidence=confidence,
            document_quality=document_quality(document.content),
            errors=[*find_extraction_issues(fields), *unlabeled],
            recovery_failures=failures,
        )
        Log.info(
            f"Extracted {result.total_fields} fields and {len(sections)} sections "
            f"from '{document.name}'"
        )
        return result
