from __future__ import annotations

from typing import Any

from .base import LLMClient, LLMError, LLMMessage, LLMResponse, OpenAICompatibleClient
from .openai import OpenAIClient


def create_llm_client(provider: str, model: str, **kwargs: Any) -> LLMClient:
    provider = provider.lower()
    if provider == "openai":
        return OpenAIClient(model=model, **kwargs)
    if provider == "openai-compatible":
        return OpenAICompatibleClient(model=model, **kwargs)
    raise ValueError(f"Unknown LLM provider: {provider}")


__all__ = [
    "LLMClient",
    "LLMError",
    "LLMMessage",
    "LLMResponse",
    "OpenAICompatibleClient",
    "OpenAIClient",
    "create_llm_client",
]
