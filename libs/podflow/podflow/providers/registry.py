"""Build provider clients from the dicts produced by `Settings.*_config()`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from podflow.exceptions import ConfigurationError
from podflow.providers.llm.base import LLMProvider
from podflow.providers.transcription.base import TranscriptionProvider


def get_transcription_provider(config: Mapping[str, Any]) -> TranscriptionProvider:
    """Return the transcription client named by `config["provider"]`."""
    provider_type = str(config.get("provider", "assemblyai")).strip().lower()

    match provider_type:
        case "assemblyai":
            from podflow.providers.transcription.assemblyai import AssemblyAIProvider

            api_key = str(config.get("api_key") or "").strip()
            if not api_key:
                raise ConfigurationError("AssemblyAI provider requires api_key")
            return AssemblyAIProvider(
                api_key=api_key,
                base_url=str(config.get("base_url") or ""),
                poll_interval_s=float(config.get("poll_interval_s", 3.0)),
                timeout=float(config.get("timeout", 3600.0)),
                request_timeout=float(config.get("request_timeout", 60.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown transcription provider: {provider_type}")


def get_llm_provider(config: Mapping[str, Any]) -> LLMProvider:
    """Return the LLM client named by `config["provider"]`; raises ConfigurationError."""
    provider_type = config.get("provider", "openai")
    timeout = float(config.get("request_timeout", 120.0))
    max_tokens = config.get("max_tokens")

    match provider_type:
        case "openai" | "openai_compat":
            from podflow.providers.llm.openai_compat import OpenAICompatProvider

            return OpenAICompatProvider(
                api_key=config.get("api_key", ""),
                model=config.get("model", "gpt-5-mini"),
                base_url=config.get("base_url"),
                provider=str(provider_type),
                timeout=timeout,
                max_tokens=max_tokens,
            )
        case "anthropic" | "claude":
            from podflow.providers.llm.anthropic import AnthropicProvider

            api_key = str(config.get("api_key") or "").strip()
            if not api_key:
                raise ConfigurationError("Anthropic provider requires api_key")
            model = str(config.get("model") or "claude-sonnet-4-20250514").strip()
            return AnthropicProvider(
                api_key=api_key,
                model=model,
                base_url=config.get("base_url"),
                timeout=timeout,
                max_tokens=max_tokens,
            )
        case _:
            raise ConfigurationError(f"Unknown LLM provider: {provider_type}")
