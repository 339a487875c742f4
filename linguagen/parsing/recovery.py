"""
Salvage complete elements of an ``items`` array from truncated JSON.

Models that hit their token limit stop mid-object. Rather than failing the
whole request, keep every object of ``items`` that was fully written and
drop the one in progress.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from linguagen.parsing.json_parser import strip_trailing_commas

logger = logging.getLogger(__name__)

_ITEMS_ARRAY = re.compile(r'"items"\s*:\s*\[|items\s*:\s*\[')


def recover_items(text: str) -> dict[str, list[Any]] | None:
    """Return ``{"items": [...]}`` with every complete object, or None.

    The scanner tracks string literals and escapes so braces and brackets
    inside strings are ignored. It stops at the array's closing ``]`` or at
    the end of the text. Never raises.
    """
    if not text:
        return None
    match = _ITEMS_ARRAY.search(text)
    if match is None:
        return None

    items: list[Any] = []
    start = -1
    depth = 0
    in_string = False
    escaped = False

    for pos in range(match.end(), len(text)):
        ch = text[pos]
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
            if depth == 0:
                start = pos
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                _append_candidate(items, text[start : pos + 1])
        elif ch == "]" and depth == 0:
            break

    if depth > 0 or in_string:
        logger.debug("Discarded truncated item at offset %d", start)

    if not items:
        return None
    return {"items": items}


def _append_candidate(items: list[Any], candidate: str) -> None:
    try:
        items.append(json.loads(strip_trailing_commas(candidate)))
    except ValueError:
        logger.debug("Dropped malformed item: %s", candidate[:80])
