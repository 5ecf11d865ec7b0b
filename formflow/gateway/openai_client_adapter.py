from typing import Any

import httpx
import openai

from formflow.gateway.client_base import BaseCompletionClient
from formflow.gateway.exceptions import GatewayError
from formflow.gateway.models import ModelConfig


class OpenAIClientAdapter(BaseCompletionClient):
    """Completion client for any OpenAI-compatible chat API (OpenAI, Groq, ...)."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    async def create_chat_completion(
        self,
        *,
        model_config: ModelConfig,
        system_prompt: str | None,
        user_prompt: str,
    ) -> str:
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        extra_body: dict[str, Any] | None = None
        if model_config.reasoning_format:
            extra_body = {"reasoning_format": model_config.reasoning_format}

        try:
            response = await self._client.chat.completions.create(
                model=model_config.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=model_config.temperature,
                max_completion_tokens=model_config.max_completion_tokens,
                top_p=model_config.top_p,
                extra_body=extra_body,
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise GatewayError(f"Completion timeout: {exc}", transient=True) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise GatewayError(f"Completion network error: {exc}", transient=True) from exc
        except openai.RateLimitError as exc:
            raise GatewayError(f"Completion rate limit: {exc}", transient=True) from exc
        except openai.AuthenticationError as exc:
            raise GatewayError(
                "Invalid completion API key. Check COMPLETION_API_KEY.", transient=False
            ) from exc
        except openai.APIStatusError as exc:
            raise GatewayError(
                f"Completion API error {exc.status_code}: {exc.message}",
                transient=exc.status_code >= 500,
            ) from exc
        except openai.APIError as exc:
            raise GatewayError(f"Completion API error: {exc}") from exc

        if not response.choices:
            raise GatewayError("Completion returned no choices", transient=False)
        return response.choices[0].message.content or ""
