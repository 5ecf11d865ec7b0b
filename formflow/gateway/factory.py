from typing import ClassVar

from formflow.config.settings import Settings
from formflow.gateway.client_base import BaseCompletionClient
from formflow.gateway.example_client_adapter import ExampleClientAdapter
from formflow.gateway.exceptions import GatewayConfigurationError
from formflow.gateway.gateway import TextCompletionGateway
from formflow.gateway.openai_client_adapter import OpenAIClientAdapter


class GatewayFactory:
    """Creates the text-completion gateway for the configured provider."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "groq": "https://api.groq.com/openai/v1",
        "openrouter": "https://openrouter.ai/api/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> TextCompletionGateway:
        return TextCompletionGateway(
            cls.create_client(settings),
            max_retries=settings.completion_max_retries,
            base_delay_seconds=settings.completion_base_delay_seconds,
        )

    @classmethod
    def create_client(cls, settings: Settings) -> BaseCompletionClient:
        provider = settings.completion_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        return OpenAIClientAdapter(
            api_key=settings.completion_api_key,
            timeout_seconds=settings.completion_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        override = settings.completion_base_url.strip()
        if provider == "openai":
            return override or None
        if provider == "openai_compatible":
            if not override:
                raise GatewayConfigurationError(
                    "completion_base_url is required for "
                    "completion_provider=openai_compatible"
                )
            return override
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return override or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise GatewayConfigurationError(
            f"Unknown completion provider '{provider}'. Choose from: {supported}"
        )
