from abc import ABC, abstractmethod

from formflow.gateway.models import ModelConfig


class BaseCompletionClient(ABC):
    """Contract for provider-specific text-completion clients."""

    @abstractmethod
    async def create_chat_completion(
        self,
        *,
        model_config: ModelConfig,
        system_prompt: str | None,
        user_prompt: str,
    ) -> str:
        """Return the provider response as plain text.

        Raises:
            GatewayError: on any provider failure, with ``transient`` set
                when a retry may succeed.
        """
