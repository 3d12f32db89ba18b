"""Pull a JSON payload out of free-form model output."""

from __future__ import annotations

import json
import re
from typing import Any

_THINK_RE = re.compile(r"<think>[\s\S]*?</think>|</?think>", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

JSONData = dict[str, Any] | list[Any]

_decoder = json.JSONDecoder()


def _strip_wrapping(text: str) -> str:
    text = _THINK_RE.sub("", text or "").strip()
    fenced = _FENCE_RE.search(text)
    return fenced.group(1).strip() if fenced else text


def parse_llm_json(text: str) -> JSONData:
    """Return the first JSON object or array found in `text`.

    Reasoning blocks and Markdown fences are dropped first. When the payload
    is wrapped in prose, each `{` / `[` is tried in order until one decodes.
    Scalars are not accepted.

    Raises:
        json.JSONDecodeError: no object or array could be decoded.
    """
    body = _strip_wrapping(text)

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, (dict, list)):
        return data

    for match in re.finditer(r"[\[{]", body):
        try:
            data, _ = _decoder.raw_decode(body, match.start())
        except json.JSONDecodeError:
            continue
        if isinstance(data, (dict, list)):
            return data

    raise json.JSONDecodeError("no JSON object or array in model output", body, 0)
