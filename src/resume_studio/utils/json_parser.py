"""Helpers for reading JSON out of agent answers.

``extract_json`` raises on failure and is meant for answers that must be
JSON. ``loads_or_none`` and ``json_list_or_none`` return ``None`` instead,
for sub-fields where a missing or malformed value is an expected outcome.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any


def loads_or_none(text: Any) -> Any | None:
    """Parse a JSON string, returning ``None`` if it is not valid JSON."""
    if not isinstance(text, str) or not text.strip():
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def json_list_or_none(value: Any) -> list | None:
    """Return ``value`` as a list, unwrapping a JSON-encoded string if needed.

    Agents asked for a flattened schema deliver arrays as strings holding
    JSON; some deliver them natively anyway. Anything else yields ``None``.
    """
    if isinstance(value, list):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    for candidate in _candidates(value.strip()):
        parsed = loads_or_none(candidate)
        if isinstance(parsed, list):
            return parsed
    return None


def extract_json(text: str) -> dict | list:
    """Extract JSON from an agent answer, handling ```json fences and chatter.

    Tries the whole text, the text without code fences, the outermost
    ``{...}`` and ``[...]`` spans, and finally a repair of truncated output
    that closes any open brackets and braces.
    """
    text = text.strip()
    result = _first_parse(_candidates(text))
    if result is not None:
        return result

    result = _repair_truncated(_strip_code_fences(text))
    if result is not None:
        return result

    raise ValueError(f"Could not extract JSON from text: {text[:200]}...")


def _candidates(text: str) -> Iterator[str]:
    yield text
    stripped = _strip_code_fences(text)
    if stripped != text:
        yield stripped
    for source in (stripped, text):
        for open_ch, close_ch in (("{", "}"), ("[", "]")):
            start = source.find(open_ch)
            end = source.rfind(close_ch)
            if start != -1 and end > start:
                yield source[start : end + 1]


def _first_parse(candidates: Iterator[str]) -> dict | list | None:
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(parsed, (dict, list)):
            return parsed
    return None


def _strip_code_fences(text: str) -> str:
    lines = text.split("\n")
    if lines and lines[0].strip().startswith("```"):
        lines = lines[1:]
    while lines and lines[-1].strip() in ("```", ""):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def _close_open(candidate: str) -> str | None:
    open_braces = candidate.count("{") - candidate.count("}")
    open_brackets = candidate.count("[") - candidate.count("]")
    if open_braces <= 0 and open_brackets <= 0:
        return None
    body = candidate.rstrip().rstrip(",")
    return body + "]" * max(0, open_brackets) + "}" * max(0, open_braces)


def _repair_truncated(text: str) -> dict | None:
    start = text.find("{")
    if start == -1:
        return None
    candidate = text[start:]

    attempts = [_close_open(candidate)]
    # Cut back to the last complete string value and close from there
    last_quote = candidate.rfind('"')
    if last_quote > 0:
        attempts.append(_close_open(candidate[: last_quote + 1]))

    for attempt in attempts:
        if attempt is None:
            continue
        try:
            parsed = json.loads(attempt)
        except (ValueError, RecursionError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
