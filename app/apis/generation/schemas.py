from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.modules.generation.models import FlashcardItem, MultipleChoiceItem


class GenerateQuestionsRequest(BaseModel):
    """Documented shape of the request body.

    The route accepts the raw JSON object so that entitlement checks run
    before field validation.
    """

    model_config = ConfigDict(populate_by_name=True)

    content_type: str = Field(default="text", alias="contentType")
    notes: Optional[str] = None
    images: Optional[list[str]] = Field(
        default=None, description="Base64 data URLs, one per image or rendered page"
    )
    number_of_questions: int = Field(..., alias="numberOfQuestions")
    question_type: str = Field(default="mcq", alias="questionType")


class GenerationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    number_of_questions: int = Field(..., alias="numberOfQuestions")
    model: str
    tokens_used: int = Field(..., alias="tokensUsed")


class GenerateQuestionsResponse(BaseModel):
    """Exactly one of ``questions`` or ``cards`` is present."""

    questions: Optional[list[MultipleChoiceItem]] = None
    cards: Optional[list[FlashcardItem]] = None
    metadata: GenerationMetadata


class ErrorResponse(BaseModel):
    error: str
    code: str
    requires_subscription: Optional[bool] = Field(
        default=None, alias="requiresSubscription"
    )
    received: Optional[int] = None
    requested: Optional[int] = None


class GeneratorStatusResponse(BaseModel):
    status: str
    endpoint: str
    method: str
    description: str
