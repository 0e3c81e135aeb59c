"""OpenAI chat completions adapter."""

import json
from typing import Any

from openai import AsyncOpenAI

from upfolio.adapters.llm.base import AbstractLLMClient

JSON_SYSTEM_PROMPT = "Respond with a single JSON object. No prose, no markdown fences."

# Options forwarded to chat.completions.create when a caller supplies them
FORWARDED_OPTIONS = ("max_tokens", "top_p", "frequency_penalty", "presence_penalty", "seed")


class OpenAIClient(AbstractLLMClient):
    """Job assistant completions backed by the async OpenAI SDK."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds)

    def _request(self, messages: list[dict[str, str]], options: dict[str, Any]) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": options.get("temperature", 0.7),
        }
        request.update({name: options[name] for name in FORWARDED_OPTIONS if name in options})
        return request

    async def _complete(self, request: dict[str, Any]) -> str:
        try:
            response = await self.client.chat.completions.create(**request)
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {exc}") from exc

        choices = response.choices or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise RuntimeError("LLM returned empty response")
        return content.strip()

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Fit analysis completion, parsed into a dict.

        Raises:
            RuntimeError: If the call fails or the body is not a JSON object.
        """
        kwargs.setdefault("temperature", 0.2)
        request = self._request(
            [
                {"role": "system", "content": JSON_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            kwargs,
        )
        if schema is not None:
            request["response_format"] = {"type": "json_object"}

        content = await self._complete(request)
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"LLM returned invalid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise RuntimeError("LLM returned JSON that is not an object")
        return parsed

    async def generate_text(self, prompt: str, **kwargs: Any) -> str:
        return await self._complete(self._request([{"role": "user", "content": prompt}], kwargs))
