"""Best-effort recovery of JSON objects embedded in free-form model output.

Models wrap JSON in prose, emit several independent objects in a row, or put
code snippets containing braces inside string values. A greedy regex cannot
cope with the last case, so the scanner below walks the text once and tracks
string-literal state and brace depth.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


def strip_code_fence(raw: str) -> str:
    """Strip only the outer ```json ... ``` fence, not backticks inside values."""
    cleaned = _FENCE_OPEN_RE.sub("", raw.strip())
    return _FENCE_CLOSE_RE.sub("", cleaned.strip())


def iter_json_segments(text: str) -> Iterator[str]:
    """Yield every top-level balanced ``{...}`` substring of *text*.

    Braces inside double-quoted strings (with backslash escapes) do not count
    towards depth. A segment still open when the text ends is not yielded,
    but balanced segments after its opening brace are.
    Objects nested in a JSON array are yielded one by one.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if depth == 0:
            if ch == "{":
                depth = 1
                start = i
                in_string = False
                escaped = False
            continue

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                yield text[start : i + 1]
                start = -1

    if depth:
        # The opening brace never closed; rescan past it so complete objects
        # that followed it are still recovered.
        logger.warning("Ignoring unterminated JSON segment at offset %d", start)
        yield from iter_json_segments(text[start + 1 :])


def parse_json_object(raw: str) -> dict | None:
    """Parse *raw* as a single JSON object, or return None."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None
