"""Tests for the OpenAI adapter and provider factory (SDK calls mocked)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from upfolio.adapters.llm import OpenAIClient, create_llm_client
from upfolio.core.config import LLMSettings
from upfolio.core.errors import LLMAppError


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


@pytest.fixture
def client() -> OpenAIClient:
    return OpenAIClient(api_key="test-key", model="gpt-4o")


class TestOpenAIClient:
    @pytest.mark.asyncio
    async def test_generate_json_parses_object(self, client) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion('{"fit_score": 80, "strengths": ["Python"]}'),
        ) as mock_create:
            result = await client.generate_json("Analyze", schema={"type": "object"})

        assert result == {"fit_score": 80, "strengths": ["Python"]}
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["response_format"] == {"type": "json_object"}
        assert call_kwargs["temperature"] == 0.2
        assert call_kwargs["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_generate_json_without_schema_skips_json_mode(self, client) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion('{"ok": true}'),
        ) as mock_create:
            await client.generate_json("Analyze")

        assert "response_format" not in mock_create.call_args.kwargs

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["This is not JSON", "[1, 2, 3]"])
    async def test_generate_json_rejects_non_objects(self, client, content) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion(content),
        ):
            with pytest.raises(RuntimeError):
                await client.generate_json("Analyze")

    @pytest.mark.asyncio
    async def test_generate_text_forwards_known_options(self, client) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion("  Dear hiring manager,  "),
        ) as mock_create:
            text = await client.generate_text("Write", temperature=0.8, max_tokens=1800, stream=True)

        assert text == "Dear hiring manager,"
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["temperature"] == 0.8
        assert call_kwargs["max_tokens"] == 1800
        assert "stream" not in call_kwargs

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "   "])
    async def test_empty_completion_raises(self, client, content) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_completion(content),
        ):
            with pytest.raises(RuntimeError, match="empty response"):
                await client.generate_text("Write")

    @pytest.mark.asyncio
    async def test_sdk_errors_become_runtime_errors(self, client) -> None:
        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=ConnectionError("connection reset"),
        ):
            with pytest.raises(RuntimeError, match="OpenAI API error"):
                await client.generate_text("Write")


class TestLLMFactory:
    def test_creates_openai_client(self) -> None:
        client = create_llm_client(
            LLMSettings(provider="OpenAI", api_key="test-key", model="gpt-4o-mini", timeout_seconds=30.0)
        )

        assert isinstance(client, OpenAIClient)
        assert client.model == "gpt-4o-mini"
        assert client.provider_name == "openai"

    @pytest.mark.parametrize(
        ("llm_settings", "code"),
        [
            (LLMSettings(provider=None, api_key="test-key"), "llm_not_configured"),
            (LLMSettings(provider="openai", api_key=None), "llm_missing_api_key"),
            (LLMSettings(provider="unknown-provider", api_key="test-key"), "llm_unknown_provider"),
        ],
    )
    def test_configuration_errors(self, llm_settings, code) -> None:
        with pytest.raises(LLMAppError) as exc_info:
            create_llm_client(llm_settings)

        assert exc_info.value.code == code
