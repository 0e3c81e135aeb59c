"""Factory pattern for creating LLM client instances."""

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.adapters.llm.openai_client import OpenAIClient
from upfolio.core.config import LLMSettings, settings
from upfolio.core.errors import LLMAppError


def create_llm_client(llm_settings: LLMSettings | None = None) -> AbstractLLMClient:
    """Instantiate the LLM client for the configured provider.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        LLMAppError: If no provider is configured or its requirements are not met.
    """
    cfg = llm_settings or settings.llm
    provider = (cfg.provider or "").lower()

    if not provider:
        raise LLMAppError(
            code="llm_not_configured",
            message="The job assistant is not available: no LLM provider is configured.",
            details={"hint": "Set LLM_PROVIDER and LLM_API_KEY"},
        )

    if provider == "openai":
        if not cfg.api_key:
            raise LLMAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise LLMAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )
