"""
Structured logging for the generation service.

Entries are single-line JSON on stdout, tagged with the service name.
API keys are masked before anything is written: provider errors and
request logs routinely echo headers or key fragments.

Set LOG_FORMAT=text for a readable format during local development.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any

_BEARER_TOKEN = re.compile(r"(?i)(bearer\s+)[A-Za-z0-9_\-.]{8,}")
_OPENROUTER_KEY = re.compile(r"sk-or-[A-Za-z0-9_\-]{4,}")
_MASK = "***"


def mask_secrets(text: str) -> str:
    """Replace bearer tokens and OpenRouter keys in ``text``."""
    text = _BEARER_TOKEN.sub(lambda m: m.group(1) + _MASK, text)
    return _OPENROUTER_KEY.sub("sk-or-" + _MASK, text)


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": mask_secrets(record.getMessage()),
        }

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = mask_secrets(self.formatException(record.exc_info))

        extra = getattr(record, "_extra", None)
        if extra:
            entry["extra"] = json.loads(mask_secrets(json.dumps(extra, default=str)))

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self, service_name: str) -> None:
        super().__init__(f"%(asctime)s %(levelname)-7s {service_name} %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        return mask_secrets(super().format(record))


def setup_logging(service_name: str, level_name: str | None = None) -> logging.Logger:
    """
    Configure the root logger for the service.

    Call once at startup (in the FastAPI lifespan).
    Returns the service-specific logger.
    """
    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if os.environ.get("LOG_FORMAT", "json").lower() == "text":
        handler.setFormatter(TextFormatter(service_name))
    else:
        handler.setFormatter(JSONFormatter(service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Request lines and per-call client logs drown out the provider logs.
    for noisy in ("uvicorn.access", "httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(service_name)
    logger.info("Logging initialized", extra={"_extra": {"level": level_name}})
    return logger
