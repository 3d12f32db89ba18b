"""Anthropic Messages API client (official SDK)."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import anthropic

from podflow.error_codes import ErrorCode
from podflow.exceptions import ConfigurationError, ProviderError
from podflow.providers._retry import TransientNetworkError, TransientProviderError, retry_transient
from podflow.providers.llm.base import LLMProvider, LLMUsage, Message, OutputSchema

logger = logging.getLogger(__name__)

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4096


def _to_request(messages: list[Message]) -> tuple[str | None, list[dict[str, str]]]:
    """Split chat messages into Anthropic's `system` string and turn list."""
    system: list[str] = []
    turns: list[dict[str, str]] = []
    for m in messages:
        role = str(m.role or "").strip().lower()
        if role == "system":
            if m.content:
                system.append(str(m.content))
            continue
        turns.append({"role": role if role == "assistant" else "user", "content": str(m.content or "")})
    return ("\n\n".join(system).strip() or None), turns


@contextmanager
def _translate_errors(provider: str) -> Iterator[None]:
    try:
        yield
    except anthropic.RateLimitError as exc:
        raise TransientProviderError(
            provider, str(exc), rate_limited=True, error_code=ErrorCode.LLM_FAILED
        ) from exc
    except anthropic.APIStatusError as exc:
        if exc.status_code >= 500:
            raise TransientProviderError(provider, str(exc), error_code=ErrorCode.LLM_FAILED) from exc
        raise ProviderError(provider, str(exc), error_code=ErrorCode.LLM_FAILED) from exc
    except anthropic.APITimeoutError as exc:
        raise TransientNetworkError(provider, str(exc), error_code=ErrorCode.LLM_TIMEOUT) from exc
    except anthropic.APIConnectionError as exc:
        raise TransientNetworkError(provider, str(exc)) from exc


class AnthropicProvider(LLMProvider):
    """Streams plain completions; structured output is a forced tool call."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        base_url: str | None = None,
        timeout: float = 120.0,
        max_tokens: int | None = None,
    ) -> None:
        self.provider = "anthropic"
        self.api_key = str(api_key or "").strip()
        if not self.api_key:
            raise ConfigurationError("AnthropicProvider requires api_key")
        self.model = str(model or "").strip() or DEFAULT_ANTHROPIC_MODEL
        self.max_tokens = max_tokens

        # The SDK appends /v1 itself.
        resolved = str(base_url or "").strip().rstrip("/")
        self.base_url = resolved.removesuffix("/v1") or None

        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=float(timeout),
        )

    def _request_kwargs(
        self, messages: list[Message], temperature: float, max_tokens: int | None
    ) -> dict[str, Any]:
        system, turns = _to_request(messages)
        limit = self.max_tokens if max_tokens is None else max_tokens
        return {
            "model": self.model,
            "messages": turns,
            "system": system or anthropic.NOT_GIVEN,
            "temperature": float(temperature),
            "max_tokens": int(limit) if limit is not None else DEFAULT_MAX_TOKENS,
        }

    @retry_transient(logger, kind="llm")
    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        started = time.perf_counter()
        parts: list[str] = []
        with _translate_errors(self.provider):
            async with self._client.messages.stream(
                **self._request_kwargs(messages, temperature, max_tokens)
            ) as stream:
                async for text in stream.text_stream:
                    parts.append(text)
                final = await stream.get_final_message()

        usage = final.usage if final is not None else None
        self.log_call(
            logger,
            int((time.perf_counter() - started) * 1000),
            LLMUsage.from_counts(usage.input_tokens, usage.output_tokens) if usage else None,
        )
        return "".join(parts)

    @retry_transient(logger, kind="llm")
    async def complete_structured(
        self,
        messages: list[Message],
        schema: OutputSchema,
        temperature: float = 0.3,
    ) -> str:
        started = time.perf_counter()
        with _translate_errors(self.provider):
            response = await self._client.messages.create(
                **self._request_kwargs(messages, temperature, None),
                tools=[
                    {
                        "name": schema.name,
                        "description": f"Record the {schema.name} result.",
                        "input_schema": schema.schema,
                    }
                ],
                tool_choice={"type": "tool", "name": schema.name},
            )

        self.log_call(
            logger,
            int((time.perf_counter() - started) * 1000),
            LLMUsage.from_counts(response.usage.input_tokens, response.usage.output_tokens),
        )
        for block in response.content:
            if getattr(block, "type", None) == "tool_use":
                return json.dumps(block.input, ensure_ascii=False)
        raise ProviderError(
            self.provider, f"no {schema.name} tool call in response", error_code=ErrorCode.LLM_FAILED
        )

    async def close(self) -> None:
        await self._client.close()
