import copy
from typing import Any, ClassVar

from formflow.agents.fanout import gather_settled
from formflow.agents.models import AnalysisResult
from formflow.agents.prompt_loader import load_prompt_template
from formflow.gateway.exceptions import GatewayError
from formflow.gateway.gateway import TextCompletionGateway
from formflow.gateway.models import ModelConfig
from formflow.ingestion.models import IngestedDocument
from formflow.logging.logger import Log
from formflow.recovery.recovery import ResponseRecovery

MISSING_CONFIDENCE = 0.5

DIMENSION_DEFAULTS: dict[str, dict[str, Any]] = {
    "structure": {
        "formType": "Unknown Form",
        "layout": "Standard layout",
        "complexity": "medium",
        "sections": ["General Information"],
        "fieldTypes": {"text": 0, "checkbox": 0, "radio": 0, "select": 0},
        "totalFields": 0,
        "navigationFlow": "Linear",
        "confidence": 0.5,
    },
    "usability": {
        "clarity": {"score": 0.7, "issues": []},
        "accessibility": {"score": 0.6, "issues": []},
        "userExperience": {"score": 0.7, "issues": []},
        "errorPrevention": {"score": 0.6, "issues": []},
        "completionRate": 0.7,
        "timeToComplete": 300,
        "userSatisfaction": 0.7,
        "improvementAreas": [],
        "confidence": 0.5,
    },
    "performance": {
        "conversionRate": 0.7,
        "dropOffPoints": [],
        "errorRate": 0.1,
        "processingTime": 1000,
        "scalability": "medium",
        "mobilePerformance": "fair",
        "loadTime": 2000,
        "bottlenecks": [],
        "confidence": 0.5,
    },
    "compliance": {
        "gdpr": {"compliant": False, "issues": ["GDPR compliance not verified"]},
        "accessibility": {"compliant": False, "issues": ["Accessibility not verified"]},
        "industryStandards": {
            "compliant": False,
            "issues": ["Industry standards not verified"],
        },
        "dataSecurity": {"compliant": False, "issues": ["Data security not verified"]},
        "legalRequirements": {
            "compliant": False,
            "issues": ["Legal requirements not verified"],
        },
        "consentManagement": {
            "compliant": False,
            "issues": ["Consent management not verified"],
        },
        "dataRetention": {"compliant": False, "issues": ["Data retention not verified"]},
        "complianceRisks": ["Compliance not fully assessed"],
        "confidence": 0.3,
    },
}


def dimension_confidence(payload: dict[str, Any]) -> float:
    value = payload.get("confidence")
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return MISSING_CONFIDENCE
    return min(float(value), 1.0)


class FormAnalyzer:
    """Runs the four analysis dimensions concurrently and merges them."""

    DIMENSIONS: ClassVar[tuple[str, ...]] = ("structure", "usability", "performance", "compliance")

    def __init__(
        self,
        gateway: TextCompletionGateway,
        model_config: ModelConfig,
        recovery: ResponseRecovery | None = None,
    ) -> None:
        self._gateway = gateway
        self._model_config = model_config
        self._recovery = recovery or ResponseRecovery()

    async def analyze(self, document: IngestedDocument) -> AnalysisResult:
        calls = [
            self._gateway.call_with_retry(
                self._model_config,
                load_prompt_template(f"analysis_{dimension}").format(
                    document_content=document.content
                ),
            )
            for dimension in self.DIMENSIONS
        ]
        responses = await gather_settled(calls)

        dimensions: dict[str, dict[str, Any]] = {}
        fallbacks: list[str] = []
        for dimension, response in zip(self.DIMENSIONS, responses):
            payload = self._parse(dimension, response)
            if payload is None:
                payload = copy.deepcopy(DIMENSION_DEFAULTS[dimension])
                fallbacks.append(dimension)
            dimensions[dimension] = payload

        confidence = sum(dimension_confidence(p) for p in dimensions.values()) / len(
            self.DIMENSIONS
        )
        form_type = dimensions["structure"].get("formType") or "Unknown Form"
        Log.info(
            f"Analyzed '{document.name}' as {form_type} "
            f"(confidence {confidence:.2f}, fallbacks: {fallbacks or 'none'})"
        )
        return AnalysisResult(
            form_type=str(form_type),
            structure=dimensions["structure"],
            usability=dimensions["usability"],
            performance=dimensions["performance"],
            compliance=dimensions["compliance"],
            confidence=confidence,
            fallback_dimensions=fallbacks,
        )

    def _parse(self, dimension: str, response: str | GatewayError) -> dict[str, Any] | None:
        if isinstance(response, GatewayError):
            Log.warning(f"Analysis dimension '{dimension}' unavailable: {response}")
            return None
        result = self._recovery.recover_object(response, context=f"analysis:{dimension}")
        return result.payload if result.success else None
