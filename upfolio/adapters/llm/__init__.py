"""LLM providers behind a single async interface."""

from upfolio.adapters.llm.base import AbstractLLMClient
from upfolio.adapters.llm.factory import create_llm_client
from upfolio.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
