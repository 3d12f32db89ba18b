"""Timestamp formatting for chapter markers and key moments."""

from __future__ import annotations


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``MM:SS`` or ``H:MM:SS`` (hours unpadded).

    Fractions are floored; negative input is clamped to zero.
    """
    total = max(0, int(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def ms_to_seconds(value: float | int | None) -> float:
    return float(value or 0) / 1000.0
