"""Transcription stage: provider call, normalization and persistence."""

from __future__ import annotations

import logging
from typing import Any

from podflow.exceptions import PodFlowError
from podflow.models.project import PhaseStatus, ProjectError, ProjectPatch, ProjectStatus
from podflow.models.transcript import (
    Chapter,
    SpeakerUtterance,
    Transcript,
    TranscriptSegment,
    Word,
)
from podflow.providers.transcription.base import ProviderTranscript, TranscriptionProvider
from podflow.services.project_store import ProjectGateway
from podflow.utils.timefmt import ms_to_seconds

logger = logging.getLogger(__name__)

STEP_NAME = "transcription"


def _words(items: list[dict[str, Any]]) -> list[Word]:
    out: list[Word] = []
    for w in items:
        if not isinstance(w, dict):
            continue
        text = str(w.get("text") or "").strip()
        if not text:
            continue
        out.append(
            Word(word=text, start=ms_to_seconds(w.get("start")), end=ms_to_seconds(w.get("end")))
        )
    return out


def normalize_transcript(raw: ProviderTranscript) -> Transcript:
    """Convert a provider response into the canonical transcript (seconds)."""
    segments: list[TranscriptSegment] = []
    source = raw.sentences or raw.utterances
    for item in source:
        if not isinstance(item, dict):
            continue
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        segments.append(
            TranscriptSegment(
                id=0,
                start=ms_to_seconds(item.get("start")),
                end=ms_to_seconds(item.get("end")),
                text=text,
                words=_words(list(item.get("words") or [])),
            )
        )
    if not segments and raw.text.strip():
        words = _words(raw.words)
        end = words[-1].end if words else float(raw.audio_duration or 0.0)
        segments.append(TranscriptSegment(id=0, start=0.0, end=end, text=raw.text.strip(), words=words))

    segments.sort(key=lambda s: (s.start, s.end))
    for i, seg in enumerate(segments):
        seg.id = i

    speakers = [
        SpeakerUtterance(
            speaker=str(u.get("speaker") or ""),
            start=ms_to_seconds(u.get("start")),
            end=ms_to_seconds(u.get("end")),
            text=str(u.get("text") or "").strip(),
            confidence=float(u.get("confidence") or 0.0),
        )
        for u in raw.utterances
        if isinstance(u, dict)
    ]
    chapters = [
        Chapter(
            start=ms_to_seconds(c.get("start")),
            end=ms_to_seconds(c.get("end")),
            headline=str(c.get("headline") or "").strip(),
            summary=str(c.get("summary") or "").strip(),
            gist=str(c.get("gist") or "").strip(),
        )
        for c in raw.chapters
        if isinstance(c, dict)
    ]
    chapters.sort(key=lambda c: c.start)

    return Transcript(
        text=raw.text,
        segments=segments,
        speakers=speakers,
        chapters=chapters,
        audio_duration=raw.audio_duration,
    )


class TranscriptionStage:
    """Runs the transcription provider and persists the canonical transcript.

    Full feature extraction is always requested; plan tier only affects
    whether speaker data is shown.
    """

    name = STEP_NAME

    def __init__(self, provider: TranscriptionProvider, gateway: ProjectGateway) -> None:
        self.provider = provider
        self.gateway = gateway

    async def transcribe(self, project_id: str, audio_ref: str) -> Transcript:
        raw = await self.provider.transcribe(audio_ref)
        transcript = normalize_transcript(raw)
        await self.gateway.patch_project(project_id, ProjectPatch(transcript=transcript))
        logger.info(
            "transcript saved (project_id=%s, segments=%d, speakers=%d, chapters=%d)",
            project_id,
            len(transcript.segments),
            len(transcript.speakers),
            len(transcript.chapters),
        )
        return transcript

    async def record_failure(self, project_id: str, exc: BaseException) -> None:
        """Mark the project failed at the transcription step."""
        details: dict[str, Any] = {"type": type(exc).__name__}
        code = getattr(exc, "error_code", None) if isinstance(exc, PodFlowError) else None
        if code is not None:
            details["error_code"] = getattr(code, "value", code)
        await self.gateway.patch_project(
            project_id,
            ProjectPatch(
                status=ProjectStatus.FAILED,
                transcription=PhaseStatus.FAILED,
                error=ProjectError(message=str(exc) or type(exc).__name__, step=STEP_NAME, details=details),
            ),
        )
        logger.error("transcription failed (project_id=%s, error=%s)", project_id, exc)

    async def close(self) -> None:
        await self.provider.close()
