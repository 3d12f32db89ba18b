"""LLM Provider base class."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class Message:
    """A chat message."""

    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass
class LLMUsage:
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_counts(cls, prompt: Any, completion: Any, total: Any = None) -> "LLMUsage | None":
        """Build usage from provider-reported counts; non-int values are ignored."""
        p = prompt if isinstance(prompt, int) else None
        c = completion if isinstance(completion, int) else None
        t = total if isinstance(total, int) else None
        if p is None and c is None and t is None:
            return None
        if t is None and p is not None and c is not None:
            t = p + c
        return cls(prompt_tokens=p, completion_tokens=c, total_tokens=t)


@dataclass(frozen=True)
class OutputSchema:
    """JSON Schema the provider is asked to conform to."""

    name: str
    schema: dict[str, Any]


class LLMProvider(ABC):
    """Abstract base class for generative text providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            messages: List of chat messages.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.

        Returns:
            Generated text.
        """
        ...

    async def complete_structured(
        self,
        messages: list[Message],
        schema: OutputSchema,
        temperature: float = 0.3,
    ) -> str:
        """Generate raw text that should satisfy `schema`.

        Providers without native structured output fall back to embedding the
        schema in the system prompt. Callers parse and validate the text.
        """
        hint = (
            "Respond with valid JSON only, matching this JSON schema "
            f"({schema.name}):\n{json.dumps(schema.schema, ensure_ascii=False)}"
        )
        out = list(messages)
        if out and str(out[0].role or "").strip().lower() == "system":
            out[0] = Message(role="system", content=f"{out[0].content}\n\n{hint}")
        else:
            out.insert(0, Message(role="system", content=hint))
        return await self.complete(out, temperature=temperature)

    def log_call(self, logger: logging.Logger, latency_ms: int, usage: LLMUsage | None) -> None:
        logger.info(
            "llm call (provider=%s, model=%s, latency_ms=%s, prompt_tokens=%s, completion_tokens=%s)",
            getattr(self, "provider", type(self).__name__),
            getattr(self, "model", None),
            int(latency_ms),
            usage.prompt_tokens if usage else None,
            usage.completion_tokens if usage else None,
        )

    async def close(self) -> None:
        """Close any underlying resources (optional)."""
        return None


