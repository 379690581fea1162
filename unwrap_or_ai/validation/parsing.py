"""Syntactic gate: extract a JSON value from free-form model output."""

import json
import re

from unwrap_or_ai.schema import JsonValue

_FENCE = re.compile(r"```(?:json|JSON)?[ \t]*\n?(.*?)```", re.DOTALL)
_DECODER = json.JSONDecoder()


def parse_json_text(text: str) -> JsonValue:
    """Parse the JSON value contained in ``text``.

    Accepts bare JSON, JSON inside a markdown code fence, and a JSON object or
    array surrounded by prose (the first complete one wins).

    Raises:
        ValueError: No JSON value could be extracted.
    """
    stripped = text.strip()
    if not stripped:
        raise ValueError("empty response")

    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        first_error = e

    if match := _FENCE.search(stripped):
        try:
            return json.loads(match.group(1).strip())
        except json.JSONDecodeError:
            pass

    for start, char in enumerate(stripped):
        if char not in "{[":
            continue
        try:
            value, _ = _DECODER.raw_decode(stripped, start)
        except json.JSONDecodeError:
            continue
        return value

    raise ValueError(f"{first_error.msg} at line {first_error.lineno} column {first_error.colno}")


__all__ = ["parse_json_text"]
