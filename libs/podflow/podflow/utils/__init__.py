"""Utility helpers."""

from podflow.utils.llm_json import parse_llm_json
from podflow.utils.timefmt import format_timestamp, ms_to_seconds

__all__ = [
    "format_timestamp",
    "ms_to_seconds",
    "parse_llm_json",
]
