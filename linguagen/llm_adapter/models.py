"""Data models for the LLM adapter layer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class GenerationRequest(BaseModel):
    """One generation call. Wire names follow the front-end client."""

    model_config = ConfigDict(populate_by_name=True)

    system_prompt: str | None = Field(default=None, alias="system")
    user_prompt: str | None = Field(default=None, alias="user")
    response_schema: dict[str, Any] | None = Field(default=None, alias="jsonSchema")
    schema_name: str | None = Field(default=None, alias="schemaName")
    # Accepted for compatibility; always replaced by the global token cap.
    max_tokens: int | None = Field(default=None, alias="maxTokens")


class ResponseShape(str, Enum):
    EXPLANATION = "explanation"
    RECOMMENDATION = "recommendation"
    ITEM_LIST = "item_list"
    OPAQUE = "opaque"

    @classmethod
    def of(cls, request: GenerationRequest) -> ResponseShape:
        if request.schema_name == "explanation":
            return cls.EXPLANATION
        if request.schema_name == "recommendation":
            return cls.RECOMMENDATION
        if expects_items(request.response_schema):
            return cls.ITEM_LIST
        return cls.OPAQUE


def expects_items(schema: dict[str, Any] | None) -> bool:
    """True when the schema describes an object with an ``items`` property."""
    if not isinstance(schema, dict):
        return False
    properties = schema.get("properties")
    return isinstance(properties, dict) and "items" in properties


class ExplanationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str | None = None
    content_markdown: str | None = None
    explanation: str | None = None


class RecommendationPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    recommendation: str
    reasoning: str = ""


class ItemListPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    items: list[Any]


_SHAPE_MODELS: dict[ResponseShape, type[BaseModel]] = {
    ResponseShape.EXPLANATION: ExplanationPayload,
    ResponseShape.RECOMMENDATION: RecommendationPayload,
    ResponseShape.ITEM_LIST: ItemListPayload,
}


def decode_payload(shape: ResponseShape, payload: Any) -> Any:
    """Decode ``payload`` through the model of its shape.

    Payloads that do not fit their shape, and caller-defined shapes, are
    passed through unchanged.
    """
    model = _SHAPE_MODELS.get(shape)
    if model is None:
        return payload
    try:
        decoded = model.model_validate(payload)
    except PydanticValidationError as exc:
        logger.warning(
            "Payload does not match %s shape, passing through: %s",
            shape.value,
            exc.errors()[0].get("msg", "") if exc.errors() else exc,
        )
        return payload
    return decoded.model_dump(exclude_unset=True)
