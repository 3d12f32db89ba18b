from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from podflow.config import LLMConfig, Settings, TranscriptionConfig
from podflow.error_codes import ErrorCode
from podflow.exceptions import ConfigurationError, ProviderError
from podflow.providers.llm.anthropic import AnthropicProvider
from podflow.providers.llm.base import LLMProvider, Message, OutputSchema
from podflow.providers.llm.openai_compat import OpenAICompatProvider
from podflow.providers.registry import get_llm_provider, get_transcription_provider
from podflow.providers.transcription.assemblyai import AssemblyAIProvider


def _sse(*chunks: str) -> bytes:
    lines: list[str] = []
    for chunk in chunks:
        event = {"choices": [{"delta": {"content": chunk}}]}
        lines += [f"data: {json.dumps(event)}", ""]
    lines += ['data: {"choices": [], "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7}}', ""]
    lines += ["data: [DONE]", ""]
    return "\n".join(lines).encode("utf-8")


@pytest.mark.asyncio
async def test_openai_structured_completion_sends_json_schema() -> None:
    seen: dict = {}

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.update(json.loads(request.content))
        return httpx.Response(
            200, content=_sse('{"tldr": ', '"hi"}'), headers={"content-type": "text/event-stream"}
        )

    provider = OpenAICompatProvider(api_key="x", model="gpt-5-mini", base_url="https://example.com/v1")
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    try:
        text = await provider.complete_structured(
            [Message(role="user", content="summarize")],
            OutputSchema(name="summary", schema={"type": "object"}),
        )
    finally:
        await provider.close()

    assert text == '{"tldr": "hi"}'
    assert seen["response_format"]["type"] == "json_schema"
    assert seen["response_format"]["json_schema"]["name"] == "summary"
    assert seen["temperature"] == 0.3


@pytest.mark.asyncio
async def test_openai_client_errors_are_not_retried() -> None:
    calls = 0

    def _handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        nonlocal calls
        calls += 1
        return httpx.Response(400, json={"error": {"message": "bad schema"}})

    provider = OpenAICompatProvider(api_key="x", base_url="https://example.com/v1")
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    try:
        with pytest.raises(ProviderError) as excinfo:
            await provider.complete([Message(role="user", content="hi")])
    finally:
        await provider.close()

    assert calls == 1
    assert excinfo.value.error_code == ErrorCode.LLM_FAILED
    assert "bad schema" in str(excinfo.value)


def _assemblyai_handler(statuses: list[str]):  # noqa: ANN202
    requests: list[tuple[str, str]] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append((request.method, request.url.path))
        if request.method == "POST":
            body = json.loads(request.content)
            assert body["speaker_labels"] is True
            assert body["auto_chapters"] is True
            assert request.headers["authorization"] == "key"
            return httpx.Response(200, json={"id": "t1", "status": "queued"})
        if request.url.path.endswith("/sentences"):
            return httpx.Response(
                200, json={"sentences": [{"text": "Hi.", "start": 0, "end": 500, "words": []}]}
            )
        status = statuses.pop(0)
        payload = {"id": "t1", "status": status}
        if status == "completed":
            payload.update(
                text="Hi.",
                audio_duration=1.5,
                utterances=[{"speaker": "A", "start": 0, "end": 500, "text": "Hi."}],
                chapters=[{"start": 0, "end": 1500, "headline": "Hello", "summary": "", "gist": "hi"}],
            )
        if status == "error":
            payload["error"] = "unsupported audio codec"
        return httpx.Response(200, json=payload)

    return _handler, requests


@pytest.mark.asyncio
async def test_assemblyai_submits_polls_and_fetches_sentences() -> None:
    handler, requests = _assemblyai_handler(["processing", "completed"])
    provider = AssemblyAIProvider(api_key="key", poll_interval_s=0.0)
    provider._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), headers={"Authorization": "key"}
    )
    try:
        raw = await provider.transcribe("https://cdn.example.com/a.mp3")
    finally:
        await provider.close()

    assert requests == [
        ("POST", "/v2/transcript"),
        ("GET", "/v2/transcript/t1"),
        ("GET", "/v2/transcript/t1"),
        ("GET", "/v2/transcript/t1/sentences"),
    ]
    assert raw.text == "Hi."
    assert raw.audio_duration == 1.5
    assert raw.sentences[0]["end"] == 500
    assert raw.chapters[0]["headline"] == "Hello"


@pytest.mark.asyncio
async def test_assemblyai_error_status_raises_provider_error() -> None:
    handler, _ = _assemblyai_handler(["error"])
    provider = AssemblyAIProvider(api_key="key", poll_interval_s=0.0)
    provider._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), headers={"Authorization": "key"}
    )
    try:
        with pytest.raises(ProviderError, match="unsupported audio codec") as excinfo:
            await provider.transcribe("https://cdn.example.com/a.mp3")
    finally:
        await provider.close()
    assert excinfo.value.error_code == ErrorCode.TRANSCRIPTION_FAILED


def test_registry_builds_configured_providers() -> None:
    settings = Settings(
        transcription=TranscriptionConfig(api_key="aai-key"),
        llm=LLMConfig(provider="openai", base_url=None, api_key="sk"),
    )
    transcription = get_transcription_provider(settings.transcription_config())
    assert isinstance(transcription, AssemblyAIProvider)
    assert transcription.base_url == "https://api.assemblyai.com/v2"

    llm = get_llm_provider(settings.llm_config())
    assert isinstance(llm, OpenAICompatProvider)
    assert llm.base_url == "https://api.openai.com/v1"

    with pytest.raises(ConfigurationError):
        get_llm_provider({"provider": "nope"})
    with pytest.raises(ConfigurationError):
        get_transcription_provider({"provider": "assemblyai", "api_key": ""})


class _RecordingLLM(LLMProvider):
    def __init__(self) -> None:
        self.seen: list[Message] = []

    async def complete(self, messages, temperature=0.7, max_tokens=None) -> str:  # noqa: ANN001
        self.seen = list(messages)
        return "{}"


@pytest.mark.asyncio
async def test_structured_fallback_embeds_schema_in_system_prompt() -> None:
    llm = _RecordingLLM()
    schema = OutputSchema(name="titles", schema={"type": "object", "required": ["youtubeShort"]})

    await llm.complete_structured(
        [Message(role="system", content="You write titles."), Message(role="user", content="go")],
        schema,
    )

    assert len(llm.seen) == 2
    assert llm.seen[0].content.startswith("You write titles.")
    assert '"youtubeShort"' in llm.seen[0].content

    await llm.complete_structured([Message(role="user", content="go")], schema)
    assert llm.seen[0].role == "system"
    assert "(titles)" in llm.seen[0].content


def test_anthropic_requires_api_key() -> None:
    with pytest.raises(ConfigurationError):
        AnthropicProvider(api_key="")


class _FakeMessages:
    def __init__(self, content: list) -> None:
        self.content = content
        self.kwargs: dict = {}

    async def create(self, **kwargs):  # noqa: ANN003, ANN201
        self.kwargs = kwargs
        return SimpleNamespace(
            content=self.content, usage=SimpleNamespace(input_tokens=12, output_tokens=4)
        )


@pytest.mark.asyncio
async def test_anthropic_structured_output_is_a_forced_tool_call() -> None:
    provider = AnthropicProvider(api_key="sk-ant", base_url="https://proxy.example.com/v1")
    messages = _FakeMessages(
        [
            SimpleNamespace(type="text", text="ok"),
            SimpleNamespace(type="tool_use", input={"tldr": "short"}),
        ]
    )
    provider._client = SimpleNamespace(messages=messages)

    text = await provider.complete_structured(
        [Message(role="system", content="Summarize."), Message(role="user", content="transcript")],
        OutputSchema(name="summary", schema={"type": "object"}),
    )

    assert provider.base_url == "https://proxy.example.com"
    assert json.loads(text) == {"tldr": "short"}
    assert messages.kwargs["tool_choice"] == {"type": "tool", "name": "summary"}
    assert messages.kwargs["system"] == "Summarize."
    assert messages.kwargs["messages"] == [{"role": "user", "content": "transcript"}]


@pytest.mark.asyncio
async def test_anthropic_structured_output_without_tool_call_fails() -> None:
    provider = AnthropicProvider(api_key="sk-ant")
    provider._client = SimpleNamespace(messages=_FakeMessages([SimpleNamespace(type="text", text="no")]))

    with pytest.raises(ProviderError) as excinfo:
        await provider.complete_structured(
            [Message(role="user", content="x")], OutputSchema(name="titles", schema={"type": "object"})
        )

    assert excinfo.value.error_code == ErrorCode.LLM_FAILED
