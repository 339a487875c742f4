"""
Error taxonomy for the generation pipeline.

Every failure a caller can observe is one of these. Routes map them to a
response carrying the machine-readable ``kind`` and a human-readable detail.
"""

from __future__ import annotations

from typing import Any

PREVIEW_CHARS = 500


class GenerationError(Exception):
    """Base class for caller-visible pipeline failures."""

    kind = "generation_error"
    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "details": self.detail}


class ValidationError(GenerationError):
    """The request is missing a required field (e.g. an empty user prompt)."""

    kind = "validation_error"
    status_code = 400


class ConfigurationError(GenerationError):
    """The active provider is missing a required setting such as its API key."""

    kind = "configuration_error"
    status_code = 400


class UpstreamError(GenerationError):
    """The active provider answered with a non-success status or was unreachable."""

    kind = "upstream_error"
    status_code = 500

    def __init__(
        self,
        provider: str,
        upstream_status: int | None = None,
        detail: str | None = None,
    ) -> None:
        if detail is None:
            detail = (
                f"{provider} error {upstream_status}"
                if upstream_status is not None
                else f"{provider} unreachable"
            )
        super().__init__(detail)
        self.provider = provider
        self.upstream_status = upstream_status

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["upstream_status"] = self.upstream_status
        return body


class MalformedOutput(GenerationError):
    """The model output failed every parse strategy and could not be salvaged."""

    kind = "malformed_output"
    status_code = 502

    def __init__(self, detail: str, preview: str = "") -> None:
        super().__init__(detail)
        self.preview = preview[:PREVIEW_CHARS]

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["preview"] = self.preview
        return body
