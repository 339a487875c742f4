"""
Tolerant JSON parsing for model output.

Strategies run from least to most destructive so that well-formed output
is returned untouched:

1. the text as-is
2. the slice between the first ``{`` and the last ``}``
3. the same slice with trailing commas removed
4. the text with ASCII control characters stripped
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from linguagen.errors import PREVIEW_CHARS, MalformedOutput

logger = logging.getLogger(__name__)

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f]+")


def strip_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing brace or bracket."""
    return _TRAILING_COMMA.sub(r"\1", text)


def _try_loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def parse_structured(text: str) -> Any:
    """Parse normalized model output, raising MalformedOutput if nothing works."""
    if not text:
        raise MalformedOutput("Empty response", preview="")

    ok, value = _try_loads(text)
    if ok:
        return value

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        sliced = text[first : last + 1]
        ok, value = _try_loads(sliced)
        if ok:
            logger.debug("Parsed JSON after trimming surrounding prose")
            return value
        ok, value = _try_loads(strip_trailing_commas(sliced))
        if ok:
            logger.debug("Parsed JSON after removing trailing commas")
            return value

    stripped = _CONTROL_CHARS.sub("", text)
    try:
        return json.loads(stripped)
    except ValueError as exc:
        raise MalformedOutput(
            f"Model returned invalid JSON: {exc}",
            preview=stripped[:PREVIEW_CHARS],
        ) from exc
