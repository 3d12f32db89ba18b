"""LLM Provider implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from podflow.providers.llm.base import (
    LLMProvider,
    LLMUsage,
    Message,
    OutputSchema,
)

if TYPE_CHECKING:
    from podflow.providers.llm.anthropic import AnthropicProvider
    from podflow.providers.llm.openai_compat import OpenAICompatProvider

__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "LLMUsage",
    "Message",
    "OpenAICompatProvider",
    "OutputSchema",
]


def __getattr__(name: str) -> Any:
    if name == "AnthropicProvider":
        from podflow.providers.llm.anthropic import AnthropicProvider

        return AnthropicProvider
    if name == "OpenAICompatProvider":
        from podflow.providers.llm.openai_compat import OpenAICompatProvider

        return OpenAICompatProvider
    raise AttributeError(name)
