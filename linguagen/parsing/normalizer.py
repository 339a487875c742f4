"""Strip markdown code fences from raw model output."""

from __future__ import annotations

import re

# Opening fence with an optional language tag (```json, ```JSON, ``` ...).
_OPENING_FENCE = re.compile(r"^```[\w+.-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```$")


def normalize_response(raw: str | None) -> str:
    """Return ``raw`` without its leading/trailing code fences, trimmed.

    Absent input yields an empty string. Never raises.
    """
    if not raw:
        return ""
    text = str(raw).strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text.rstrip(), count=1)
    return text.strip()
