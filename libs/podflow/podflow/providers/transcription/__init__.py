"""Transcription provider implementations."""

from podflow.providers.transcription.base import ProviderTranscript, TranscriptionProvider

__all__ = ["ProviderTranscript", "TranscriptionProvider"]
