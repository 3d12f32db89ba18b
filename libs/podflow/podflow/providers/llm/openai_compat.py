"""Chat-completions client for OpenAI and API-compatible servers (vLLM, etc.)."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from podflow.error_codes import ErrorCode
from podflow.exceptions import ProviderError
from podflow.providers._retry import TransientNetworkError, TransientProviderError, retry_transient
from podflow.providers.llm.base import LLMProvider, LLMUsage, Message, OutputSchema

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
_MAX_ERROR_DETAIL = 2000


async def _sse_payloads(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the joined `data:` lines of each server-sent event."""
    pending: list[str] = []
    async for line in response.aiter_lines():
        if line.startswith("data:"):
            pending.append(line[5:].lstrip())
        elif not line and pending:
            yield "\n".join(pending)
            pending = []
    if pending:
        yield "\n".join(pending)


class _StreamResult:
    """Accumulates streamed deltas and the trailing usage chunk."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        self.parts: list[str] = []
        self.usage: LLMUsage | None = None

    @property
    def text(self) -> str:
        return "".join(self.parts)

    def feed(self, event: Any) -> None:
        if not isinstance(event, dict):
            return
        error = event.get("error")
        if isinstance(error, dict):
            raise ProviderError(
                self.provider,
                str(error.get("message") or error),
                error_code=ErrorCode.LLM_FAILED,
            )

        usage = event.get("usage")
        if isinstance(usage, dict):
            self.usage = LLMUsage.from_counts(
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
                usage.get("total_tokens"),
            ) or self.usage

        for choice in event.get("choices") or []:
            delta = choice.get("delta") if isinstance(choice, dict) else None
            content = delta.get("content") if isinstance(delta, dict) else None
            if isinstance(content, str) and content:
                self.parts.append(content)
            break


class OpenAICompatProvider(LLMProvider):
    """Streams `/chat/completions`; structured calls use `response_format`."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-5-mini",
        base_url: str | None = None,
        provider: str = "openai",
        timeout: float = 120.0,
        max_tokens: int | None = None,
    ) -> None:
        self.provider = provider
        self.base_url = (str(base_url or "").strip() or DEFAULT_OPENAI_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = float(timeout)
        self.max_tokens = max_tokens
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _payload(
        self,
        messages: list[Message],
        temperature: float,
        max_tokens: int | None,
        response_format: dict[str, Any] | None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        limit = self.max_tokens if max_tokens is None else max_tokens
        if limit is not None:
            payload["max_tokens"] = limit
        if response_format is not None:
            payload["response_format"] = response_format
        return payload

    async def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        detail = (await response.aread()).decode("utf-8", errors="replace").strip()
        if len(detail) > _MAX_ERROR_DETAIL:
            detail = detail[:_MAX_ERROR_DETAIL] + "…"
        message = f"HTTP {status} {response.reason_phrase}" + (f": {detail}" if detail else "")
        if status == 429 or status >= 500:
            raise TransientProviderError(
                self.provider, message, rate_limited=status == 429, error_code=ErrorCode.LLM_FAILED
            )
        raise ProviderError(self.provider, message, error_code=ErrorCode.LLM_FAILED)

    @retry_transient(logger, kind="llm")
    async def _stream_chat(
        self,
        messages: list[Message],
        *,
        temperature: float,
        max_tokens: int | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> str:
        client = await self._get_client()
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = self._payload(messages, temperature, max_tokens, response_format)

        result = _StreamResult(self.provider)
        started = time.perf_counter()
        try:
            async with client.stream(
                "POST", f"{self.base_url}/chat/completions", headers=headers, json=body
            ) as response:
                await self._raise_for_status(response)
                async for data in _sse_payloads(response):
                    if data.strip() == "[DONE]":
                        break
                    try:
                        result.feed(json.loads(data))
                    except json.JSONDecodeError:
                        logger.debug("skipping non-json stream chunk: %r", data[:200])
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(self.provider, str(exc), error_code=ErrorCode.LLM_TIMEOUT) from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(self.provider, str(exc)) from exc

        self.log_call(logger, int((time.perf_counter() - started) * 1000), result.usage)
        return result.text

    async def complete(
        self,
        messages: list[Message],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        return await self._stream_chat(messages, temperature=temperature, max_tokens=max_tokens)

    async def complete_structured(
        self,
        messages: list[Message],
        schema: OutputSchema,
        temperature: float = 0.3,
    ) -> str:
        # strict=False: pydantic schemas carry constraints strict mode rejects.
        return await self._stream_chat(
            messages,
            temperature=temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema.name, "schema": schema.schema, "strict": False},
            },
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
