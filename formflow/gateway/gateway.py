import asyncio
import random

from formflow.gateway.client_base import BaseCompletionClient
from formflow.gateway.exceptions import GatewayError
from formflow.gateway.models import ModelConfig
from formflow.logging.logger import Log

MAX_JITTER_SECONDS = 0.25


class TextCompletionGateway:
    """Single entry point for oracle calls, with bounded exponential backoff.

    Holds no state between calls; every ``call_with_retry`` starts with a
    fresh retry budget.
    """

    def __init__(
        self,
        client: BaseCompletionClient,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.8,
    ) -> None:
        self._client = client
        self._max_retries = max_retries
        self._base_delay_seconds = base_delay_seconds

    async def call(
        self,
        model_config: ModelConfig,
        prompt: str,
        system_prompt: str | None = None,
    ) -> str:
        """Send one prompt and return the raw completion text."""
        Log.debug(f"Completion request to {model_config.model}: {prompt[:200]}")
        try:
            text = await self._client.create_chat_completion(
                model_config=model_config,
                system_prompt=system_prompt,
                user_prompt=prompt,
            )
        except GatewayError:
            raise
        except Exception as exc:
            raise GatewayError(f"Completion call failed: {exc}") from exc
        Log.debug(f"Completion response from {model_config.model}: {text[:200]}")
        return text

    async def call_with_retry(
        self,
        model_config: ModelConfig,
        prompt: str,
        system_prompt: str | None = None,
        *,
        max_retries: int | None = None,
        base_delay_seconds: float | None = None,
    ) -> str:
        """Call the oracle, retrying transient failures.

        Raises:
            GatewayError: on a non-transient failure, or the last transient
                failure once ``max_retries`` retries are spent.
        """
        retries = self._max_retries if max_retries is None else max_retries
        base_delay = (
            self._base_delay_seconds if base_delay_seconds is None else base_delay_seconds
        )
        attempt = 0
        while True:
            try:
                return await self.call(model_config, prompt, system_prompt)
            except GatewayError as exc:
                attempt += 1
                if not exc.transient or attempt > retries:
                    raise
                delay = self.backoff_delay(attempt, base_delay)
                Log.warning(
                    f"Completion retry {attempt}/{retries} after {delay:.3f}s due to: {exc}"
                )
                await asyncio.sleep(delay)

    @staticmethod
    def backoff_delay(attempt: int, base_delay_seconds: float) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        return base_delay_seconds * 2 ** (attempt - 1) + random.uniform(0, MAX_JITTER_SECONDS)
