from dataclasses import dataclass

from formflow.config.settings import Settings

DEFAULT_TOP_P = 0.95


@dataclass(frozen=True, slots=True)
class ModelConfig:
    model: str
    temperature: float
    max_completion_tokens: int
    top_p: float = DEFAULT_TOP_P
    reasoning_format: str | None = None


@dataclass(frozen=True, slots=True)
class StageModels:
    """Model configuration for each oracle-backed stage."""

    analysis: ModelConfig
    extraction: ModelConfig
    filling: ModelConfig

    @classmethod
    def from_settings(cls, settings: Settings) -> "StageModels":
        return cls(
            analysis=ModelConfig(
                model=settings.analysis_model_name,
                temperature=0.3,
                max_completion_tokens=8192,
                reasoning_format="raw",
            ),
            extraction=ModelConfig(
                model=settings.extraction_model_name,
                temperature=0.1,
                max_completion_tokens=4096,
            ),
            filling=ModelConfig(
                model=settings.filling_model_name,
                temperature=0.4,
                max_completion_tokens=6144,
            ),
        )
