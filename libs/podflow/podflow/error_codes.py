"""Canonical error codes surfaced to API/UI."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    TRANSCRIPTION_TIMEOUT = "TRANSCRIPTION_TIMEOUT"
    LLM_FAILED = "LLM_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    NETWORK_FAILED = "NETWORK_FAILED"

    VALIDATION_FAILED = "VALIDATION_FAILED"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    NOT_ENTITLED = "NOT_ENTITLED"
    NOT_FOUND = "NOT_FOUND"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"

    PROVIDER_FAILED = "PROVIDER_FAILED"
