"""Question-generation module exports."""

from .config import BatchFocus, GenerationConfig, TokenBudget
from .errors import GenerationError
from .models import (
    ContentMode,
    FlashcardItem,
    GenerationRequest,
    GenerationResult,
    ItemType,
    MultipleChoiceItem,
)
from .oracle import OpenAIOracle, Oracle, OracleRequest
from .pipeline import GenerationPipeline

__all__ = [
    "BatchFocus",
    "GenerationConfig",
    "TokenBudget",
    "GenerationError",
    "ContentMode",
    "FlashcardItem",
    "GenerationRequest",
    "GenerationResult",
    "ItemType",
    "MultipleChoiceItem",
    "OpenAIOracle",
    "Oracle",
    "OracleRequest",
    "GenerationPipeline",
]
