from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from formflow.gateway.exceptions import GatewayError
from formflow.gateway.models import ModelConfig
from formflow.gateway.openai_client_adapter import OpenAIClientAdapter

MODEL = ModelConfig(model="m", temperature=0.1, max_completion_tokens=100)
REASONING_MODEL = ModelConfig(
    model="r", temperature=0.3, max_completion_tokens=100, reasoning_format="raw"
)


def _make_mock_response(content: str | None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


def _make_adapter(create: AsyncMock) -> tuple[OpenAIClientAdapter, MagicMock]:
    mock_client = MagicMock()
    mock_client.chat.completions.create = create
    with patch(
        "formflow.gateway.openai_client_adapter.openai.AsyncOpenAI",
        return_value=mock_client,
    ):
        adapter = OpenAIClientAdapter(api_key="k", timeout_seconds=30, base_url=None)
    return adapter, mock_client


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://api.example.com/v1/chat/completions")


def _status_error(cls: type[openai.APIStatusError], status: int) -> openai.APIStatusError:
    response = httpx.Response(status, request=_request())
    return cls("upstream failure", response=response, body=None)


class TestOpenAIClientAdapter:
    @pytest.mark.asyncio
    async def test_returns_content(self) -> None:
        create = AsyncMock(return_value=_make_mock_response('[{"label": "Name"}]'))
        adapter, _ = _make_adapter(create)

        content = await adapter.create_chat_completion(
            model_config=MODEL, system_prompt="system", user_prompt="user"
        )

        assert content == '[{"label": "Name"}]'
        kwargs = create.await_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["extra_body"] is None

    @pytest.mark.asyncio
    async def test_omits_empty_system_prompt_and_passes_reasoning_format(self) -> None:
        create = AsyncMock(return_value=_make_mock_response("{}"))
        adapter, _ = _make_adapter(create)

        await adapter.create_chat_completion(
            model_config=REASONING_MODEL, system_prompt=None, user_prompt="user"
        )

        kwargs = create.await_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "user"}]
        assert kwargs["extra_body"] == {"reasoning_format": "raw"}

    @pytest.mark.asyncio
    async def test_empty_content_becomes_empty_string(self) -> None:
        adapter, _ = _make_adapter(AsyncMock(return_value=_make_mock_response(None)))
        content = await adapter.create_chat_completion(
            model_config=MODEL, system_prompt=None, user_prompt="user"
        )
        assert content == ""

    @pytest.mark.asyncio
    async def test_no_choices_is_permanent(self) -> None:
        response = MagicMock()
        response.choices = []
        adapter, _ = _make_adapter(AsyncMock(return_value=response))
        with pytest.raises(GatewayError, match="no choices") as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self) -> None:
        create = AsyncMock(side_effect=openai.APIConnectionError(request=_request()))
        adapter, _ = _make_adapter(create)
        with pytest.raises(GatewayError, match="network error") as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self) -> None:
        create = AsyncMock(side_effect=openai.APITimeoutError(request=_request()))
        adapter, _ = _make_adapter(create)
        with pytest.raises(GatewayError, match="timeout") as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_rate_limit_is_transient(self) -> None:
        create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))
        adapter, _ = _make_adapter(create)
        with pytest.raises(GatewayError) as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is True

    @pytest.mark.asyncio
    async def test_authentication_error_is_permanent(self) -> None:
        create = AsyncMock(side_effect=_status_error(openai.AuthenticationError, 401))
        adapter, _ = _make_adapter(create)
        with pytest.raises(GatewayError, match="Invalid completion API key") as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("status", "transient"), [(502, True), (400, False)])
    async def test_status_errors_by_code(self, status: int, transient: bool) -> None:
        create = AsyncMock(side_effect=_status_error(openai.APIStatusError, status))
        adapter, _ = _make_adapter(create)
        with pytest.raises(GatewayError) as exc_info:
            await adapter.create_chat_completion(
                model_config=MODEL, system_prompt=None, user_prompt="user"
            )
        assert exc_info.value.transient is transient
