"""Input normalization: raw request body -> ``GenerationRequest``.

Out-of-range counts are rejected, never clamped; clamping is a client-side
convenience only. Image payloads are passed through undecoded.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from app.core.logging import get_logger
from app.modules.generation.config import GenerationConfig
from app.modules.generation.errors import InvalidArgument, TooManyInputs
from app.modules.generation.models import (
    GenerationRequest,
    ImageContent,
    ItemType,
    TextContent,
)


logger = get_logger(__name__)


class RawGenerationBody(BaseModel):
    """Wire shape accepted from callers."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content_type: Literal["text", "images"] = Field(
        default="text", alias="contentType"
    )
    notes: Optional[str] = None
    images: Optional[list[str]] = None
    number_of_questions: StrictInt = Field(alias="numberOfQuestions")
    question_type: Literal["mcq", "flashcard"] = Field(
        default="mcq", alias="questionType"
    )


def _describe(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
    return f"Invalid field '{loc}': {err.get('msg', 'invalid value')}"


def normalize(raw: Mapping[str, Any], config: GenerationConfig) -> GenerationRequest:
    if not isinstance(raw, Mapping):
        raise InvalidArgument("Request body must be a JSON object")
    try:
        body = RawGenerationBody.model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidArgument(_describe(e)) from e

    count = body.number_of_questions
    if count < config.min_items or count > config.max_items:
        raise InvalidArgument(
            f"numberOfQuestions must be between {config.min_items} and {config.max_items}"
        )

    notes = (body.notes or "").strip()
    if body.content_type == "text":
        if not notes:
            raise InvalidArgument("Notes are required")
        content: TextContent | ImageContent = TextContent(text=notes)
    else:
        images = body.images or []
        if not images:
            raise InvalidArgument("At least one image is required")
        if len(images) > config.max_images:
            raise TooManyInputs(len(images), config.max_images)
        if any(not img.strip() for img in images):
            raise InvalidArgument("Images must be non-empty encoded strings")
        content = ImageContent(images=list(images), caption=notes or None)

    request = GenerationRequest(
        content=content,
        item_count=count,
        item_type=ItemType(body.question_type),
    )
    logger.debug(
        "Normalized request: mode=%s type=%s count=%d",
        request.content_mode.value,
        request.item_type.value,
        count,
    )
    return request
