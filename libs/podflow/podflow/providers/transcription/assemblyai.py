"""AssemblyAI transcription provider (submit + poll over REST)."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
from podflow.error_codes import ErrorCode
from podflow.exceptions import ProviderError
from podflow.providers._retry import TransientNetworkError, TransientProviderError, retry_transient
from podflow.providers.transcription.base import ProviderTranscript, TranscriptionProvider

logger = logging.getLogger(__name__)

DEFAULT_ASSEMBLYAI_BASE_URL = "https://api.assemblyai.com/v2"


class AssemblyAIProvider(TranscriptionProvider):
    """AssemblyAI REST provider.

    Always requests speaker labels, auto chapters and formatted text; callers
    decide what to display.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_ASSEMBLYAI_BASE_URL,
        poll_interval_s: float = 3.0,
        timeout: float = 3600.0,
        request_timeout: float = 60.0,
    ) -> None:
        self.provider = "assemblyai"
        self.api_key = str(api_key or "").strip()
        self.base_url = (str(base_url or "").strip() or DEFAULT_ASSEMBLYAI_BASE_URL).rstrip("/")
        self.poll_interval_s = float(poll_interval_s)
        self.timeout = float(timeout)
        self.request_timeout = float(request_timeout)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.request_timeout),
                headers={"Authorization": self.api_key},
            )
        return self._client

    @retry_transient(logger, kind="transcription")
    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(
                self.provider, f"request timeout: {exc}", error_code=ErrorCode.TRANSCRIPTION_TIMEOUT
            ) from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(self.provider, str(exc)) from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientProviderError(
                self.provider,
                f"HTTP {response.status_code}: {response.text[:500]}",
                rate_limited=response.status_code == 429,
                error_code=ErrorCode.TRANSCRIPTION_FAILED,
            )
        if response.status_code >= 400:
            raise ProviderError(
                self.provider,
                f"HTTP {response.status_code}: {response.text[:500]}",
                error_code=ErrorCode.TRANSCRIPTION_FAILED,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise ProviderError(
                self.provider, "unexpected response body", error_code=ErrorCode.TRANSCRIPTION_FAILED
            )
        return data

    async def _submit(self, audio_url: str) -> str:
        data = await self._request(
            "POST",
            "/transcript",
            json={
                "audio_url": audio_url,
                "speaker_labels": True,
                "auto_chapters": True,
                "format_text": True,
            },
        )
        transcript_id = str(data.get("id") or "").strip()
        if not transcript_id:
            raise ProviderError(
                self.provider, "submit returned no transcript id", error_code=ErrorCode.TRANSCRIPTION_FAILED
            )
        return transcript_id

    async def _poll(self, transcript_id: str) -> dict[str, Any]:
        deadline = time.monotonic() + self.timeout
        while True:
            data = await self._request("GET", f"/transcript/{transcript_id}")
            status = str(data.get("status") or "")
            if status == "completed":
                return data
            if status == "error":
                raise ProviderError(
                    self.provider,
                    str(data.get("error") or "transcription failed"),
                    error_code=ErrorCode.TRANSCRIPTION_FAILED,
                )
            if time.monotonic() >= deadline:
                raise ProviderError(
                    self.provider,
                    f"transcript {transcript_id} not ready after {self.timeout:.0f}s",
                    error_code=ErrorCode.TRANSCRIPTION_TIMEOUT,
                )
            logger.debug("transcription pending (id=%s, status=%s)", transcript_id, status)
            await asyncio.sleep(self.poll_interval_s)

    async def transcribe(self, audio_url: str) -> ProviderTranscript:
        started = time.perf_counter()
        transcript_id = await self._submit(audio_url)
        logger.info("transcription submitted (id=%s)", transcript_id)

        data = await self._poll(transcript_id)
        sentences = await self._request("GET", f"/transcript/{transcript_id}/sentences")

        duration = data.get("audio_duration")
        result = ProviderTranscript(
            text=str(data.get("text") or ""),
            words=list(data.get("words") or []),
            sentences=list(sentences.get("sentences") or []),
            utterances=list(data.get("utterances") or []),
            chapters=list(data.get("chapters") or []),
            audio_duration=float(duration) if isinstance(duration, (int, float)) else None,
        )
        logger.info(
            "transcription done (id=%s, latency_ms=%s, words=%d, chapters=%d)",
            transcript_id,
            int((time.perf_counter() - started) * 1000),
            len(result.words),
            len(result.chapters),
        )
        return result

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
