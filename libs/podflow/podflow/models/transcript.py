"""Canonical transcript record (all offsets in seconds)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Word:
    word: str
    start: float
    end: float

    def to_dict(self) -> dict[str, Any]:
        return {"word": self.word, "start": float(self.start), "end": float(self.end)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Word":
        return cls(
            word=str(data.get("word") or ""),
            start=float(data.get("start") or 0.0),
            end=float(data.get("end") or 0.0),
        )


@dataclass
class TranscriptSegment:
    id: int
    start: float
    end: float
    text: str
    words: list[Word] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "start": float(self.start),
            "end": float(self.end),
            "text": self.text,
            "words": [w.to_dict() for w in self.words],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TranscriptSegment":
        return cls(
            id=int(data.get("id") or 0),
            start=float(data.get("start") or 0.0),
            end=float(data.get("end") or 0.0),
            text=str(data.get("text") or ""),
            words=[Word.from_dict(w) for w in list(data.get("words") or []) if isinstance(w, dict)],
        )


@dataclass
class SpeakerUtterance:
    speaker: str
    start: float
    end: float
    text: str
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "speaker": self.speaker,
            "start": float(self.start),
            "end": float(self.end),
            "text": self.text,
            "confidence": float(self.confidence),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpeakerUtterance":
        return cls(
            speaker=str(data.get("speaker") or ""),
            start=float(data.get("start") or 0.0),
            end=float(data.get("end") or 0.0),
            text=str(data.get("text") or ""),
            confidence=float(data.get("confidence") or 0.0),
        )


@dataclass
class Chapter:
    """Auto-detected topic segment."""

    start: float
    end: float
    headline: str
    summary: str = ""
    gist: str = ""

    def is_empty(self) -> bool:
        return not any(s.strip() for s in (self.headline, self.summary, self.gist))

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": float(self.start),
            "end": float(self.end),
            "headline": self.headline,
            "summary": self.summary,
            "gist": self.gist,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chapter":
        return cls(
            start=float(data.get("start") or 0.0),
            end=float(data.get("end") or 0.0),
            headline=str(data.get("headline") or ""),
            summary=str(data.get("summary") or ""),
            gist=str(data.get("gist") or ""),
        )


@dataclass
class Transcript:
    text: str
    segments: list[TranscriptSegment] = field(default_factory=list)
    speakers: list[SpeakerUtterance] = field(default_factory=list)
    chapters: list[Chapter] = field(default_factory=list)
    audio_duration: float | None = None

    def usable_chapters(self) -> list[Chapter]:
        return [c for c in self.chapters if not c.is_empty()]

    def has_text(self) -> bool:
        return bool((self.text or "").strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "segments": [s.to_dict() for s in self.segments],
            "speakers": [s.to_dict() for s in self.speakers],
            "chapters": [c.to_dict() for c in self.chapters],
            "audio_duration": self.audio_duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transcript":
        duration = data.get("audio_duration")
        return cls(
            text=str(data.get("text") or ""),
            segments=[
                TranscriptSegment.from_dict(x)
                for x in list(data.get("segments") or [])
                if isinstance(x, dict)
            ],
            speakers=[
                SpeakerUtterance.from_dict(x)
                for x in list(data.get("speakers") or [])
                if isinstance(x, dict)
            ],
            chapters=[
                Chapter.from_dict(x) for x in list(data.get("chapters") or []) if isinstance(x, dict)
            ],
            audio_duration=float(duration) if isinstance(duration, (int, float)) else None,
        )
