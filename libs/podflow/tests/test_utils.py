from __future__ import annotations

import json

import pytest

from podflow.utils.llm_json import parse_llm_json
from podflow.utils.timefmt import format_timestamp, ms_to_seconds


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "00:00"),
        (5.9, "00:05"),
        (65.4, "01:05"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (3725.9, "1:02:05"),
        (-3, "00:00"),
    ],
)
def test_format_timestamp(seconds: float, expected: str) -> None:
    assert format_timestamp(seconds) == expected


def test_ms_to_seconds() -> None:
    assert ms_to_seconds(1500) == 1.5
    assert ms_to_seconds(None) == 0.0


def test_parse_llm_json_variants() -> None:
    assert parse_llm_json('{"a": 1}') == {"a": 1}
    assert parse_llm_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_llm_json('<think>hmm</think>{"a": 1}') == {"a": 1}
    assert parse_llm_json('Sure! Here it is: [1, 2] Hope that helps.') == [1, 2]


def test_parse_llm_json_rejects_scalars_and_prose() -> None:
    with pytest.raises(json.JSONDecodeError):
        parse_llm_json("42")
    with pytest.raises(json.JSONDecodeError):
        parse_llm_json("no json here")
