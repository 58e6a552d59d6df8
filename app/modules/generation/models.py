"""Models for the question-generation pipeline.

Pydantic models cover everything that crosses a trust boundary (the
normalized request and the generated items); request-scoped intermediates
(plans, prompts, raw completions) are plain frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StringConstraints,
    field_validator,
)

from app.modules.generation.config import BatchFocus


class ContentMode(str, Enum):
    TEXT = "text"
    IMAGES = "images"


class ItemType(str, Enum):
    MULTIPLE_CHOICE = "mcq"
    FLASHCARD = "flashcard"

    @property
    def collection_key(self) -> str:
        """Top-level key the model wraps its items in, and the response key."""
        return "questions" if self is ItemType.MULTIPLE_CHOICE else "cards"


class TextContent(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    kind: Literal["images"] = "images"
    images: list[str]
    # Optional notes supplied alongside the images
    caption: Optional[str] = None


Content = Annotated[Union[TextContent, ImageContent], Field(discriminator="kind")]


class GenerationRequest(BaseModel):
    """A validated request: primary content, item count and item type."""

    content: Content
    item_count: int
    item_type: ItemType

    @property
    def content_mode(self) -> ContentMode:
        if isinstance(self.content, ImageContent):
            return ContentMode.IMAGES
        return ContentMode.TEXT


NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# Any JSON number except a boolean; replaced by the 1..N sequence on assembly
ItemId = Union[StrictInt, StrictFloat]


class MultipleChoiceItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: ItemId
    prompt: NonEmptyStr = Field(alias="question")
    options: list[NonEmptyStr] = Field(min_length=4, max_length=4)
    correct_option_label: NonEmptyStr = Field(alias="correctAnswer")
    explanation: NonEmptyStr


class FlashcardItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: ItemId
    prompt: NonEmptyStr = Field(alias="question")
    answer: NonEmptyStr
    hint: Optional[str] = None

    @field_validator("hint")
    @classmethod
    def _blank_hint_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


GeneratedItem = Union[MultipleChoiceItem, FlashcardItem]

ITEM_MODELS: dict[ItemType, type[BaseModel]] = {
    ItemType.MULTIPLE_CHOICE: MultipleChoiceItem,
    ItemType.FLASHCARD: FlashcardItem,
}


@dataclass(frozen=True)
class BatchSpec:
    index: int
    size: int
    focus: Optional[BatchFocus] = None


@dataclass(frozen=True)
class ExecutionPlan:
    """One or more batches; single-request mode is a plan with one batch."""

    item_type: ItemType
    content_mode: ContentMode
    batches: tuple[BatchSpec, ...]
    batched: bool = False

    @property
    def total(self) -> int:
        return sum(b.size for b in self.batches)

    @property
    def sizes(self) -> list[int]:
        return [b.size for b in self.batches]


@dataclass(frozen=True)
class PromptPair:
    system_prompt: str
    # A plain string for text mode, a list of content parts for image mode
    user_content: Union[str, list[dict[str, Any]]]


@dataclass(frozen=True)
class RawCompletion:
    content: Optional[str]
    finish_reason: Optional[str]
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class SubscriptionRecord:
    status: str
    period_end: Optional[datetime]


@dataclass(frozen=True)
class EntitlementState:
    is_admin: bool
    is_subscribed_and_unexpired: bool
    free_generations_used: int = 0

    @property
    def quota_limited(self) -> bool:
        return not (self.is_admin or self.is_subscribed_and_unexpired)


@dataclass
class GenerationResult:
    item_type: ItemType
    items: list[GeneratedItem] = field(default_factory=list)
    model: str = ""
    tokens_used: int = 0

    def to_response(self) -> dict[str, Any]:
        return {
            self.item_type.collection_key: [
                item.model_dump(by_alias=True, exclude_none=True)
                for item in self.items
            ],
            "metadata": {
                "numberOfQuestions": len(self.items),
                "model": self.model,
                "tokensUsed": self.tokens_used,
            },
        }
