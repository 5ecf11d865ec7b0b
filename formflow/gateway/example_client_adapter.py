"""Offline completion client.

Returns canned text without network calls. Useful for local runs and as a
template for new provider adapters: implement BaseCompletionClient and
register the provider in GatewayFactory.
"""

from formflow.gateway.client_base import BaseCompletionClient
from formflow.gateway.models import ModelConfig


class ExampleClientAdapter(BaseCompletionClient):
    """Returns a fixed response for every prompt."""

    DEFAULT_RESPONSE = "[]"

    def __init__(self, response: str | None = None) -> None:
        self._response = self.DEFAULT_RESPONSE if response is None else response

    async def create_chat_completion(
        self,
        *,
        model_config: ModelConfig,
        system_prompt: str | None,
        user_prompt: str,
    ) -> str:
        _ = model_config, system_prompt, user_prompt
        return self._response
