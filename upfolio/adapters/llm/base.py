from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
    """Provider-neutral interface used by the job assistant.

    Implementations raise ``RuntimeError`` for every provider failure
    (transport, empty completion, unparseable JSON). The job assistant turns
    that into a refund plus an ``LLMAppError``.
    """

    provider_name: str = "unknown"

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Return the completion for ``prompt`` parsed as a JSON object.

        ``schema`` switches the provider into structured output mode where it
        supports one. Options such as temperature or max_tokens go in kwargs.
        """

    @abstractmethod
    async def generate_text(self, prompt: str, **kwargs: Any) -> str:
        """Return a markdown completion (tailored resume, cover letter)."""
