"""
JSON Extraction
---------------
Pull a JSON value out of free-form model output.

HANDLES:
- Markdown code fences (```json ... ```)
- Prose before or after the JSON
- Trailing commas before } or ]

DOES NOT:
- Close truncated JSON. A cut-off response is a failed generation, and
  guessing the missing tail would invent schedule content.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

_OPENERS = {"{": "}", "[": "]"}


def _strip_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _find_json_span(text: str) -> str:
    """
    Return the first balanced {...} or [...] block in `text`.

    RAISES:
    json.JSONDecodeError if no opener exists or the block never closes
    """
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        raise json.JSONDecodeError("No JSON object or array found", text, 0)
    start = min(starts)

    stack = []
    in_string = False
    escape_next = False

    for i in range(start, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                raise json.JSONDecodeError("Mismatched bracket", text, i)
            if not stack:
                return text[start:i + 1]

    raise json.JSONDecodeError(f"JSON is incomplete ({len(stack)} unclosed)", text, len(text))


def extract_json(text: str) -> Any:
    """
    Parse the JSON value embedded in an LLM response.

    RETURNS:
    Whatever the JSON holds: dict, list, ...

    RAISES:
    json.JSONDecodeError when no complete JSON value can be parsed

    EXAMPLE:
    extract_json('Here you go:\\n```json\\n{"a": 1,}\\n```') -> {"a": 1}
    """
    cleaned = _strip_fences(text.strip())
    json_text = _find_json_span(cleaned)

    try:
        return json.loads(json_text)
    except json.JSONDecodeError:
        fixed = _TRAILING_COMMA_RE.sub(r"\1", json_text)
        if fixed == json_text:
            raise
        logger.debug("Parsed JSON after removing trailing commas")
        return json.loads(fixed)
