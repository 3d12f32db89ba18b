"""Transcription Provider base class."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProviderTranscript:
    """Raw provider response. Offsets are milliseconds, as providers report them."""

    text: str
    words: list[dict[str, Any]] = field(default_factory=list)
    sentences: list[dict[str, Any]] = field(default_factory=list)
    utterances: list[dict[str, Any]] = field(default_factory=list)
    chapters: list[dict[str, Any]] = field(default_factory=list)
    audio_duration: float | None = None  # seconds


class TranscriptionProvider(ABC):
    """Abstract base class for transcription providers."""

    @abstractmethod
    async def transcribe(self, audio_url: str) -> ProviderTranscript:
        """Transcribe remote audio with word timing, speaker labels and chapters.

        Args:
            audio_url: Publicly fetchable URL of the audio file.

        Returns:
            The provider's transcript.

        Raises:
            ProviderError: The provider reported a failure.
            NetworkError: The provider could not be reached.
        """
        ...

    async def close(self) -> None:  # pragma: no cover
        return None
