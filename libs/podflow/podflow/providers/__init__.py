"""Provider abstractions for external services."""

from podflow.providers.registry import get_llm_provider, get_transcription_provider

__all__ = ["get_llm_provider", "get_transcription_provider"]
