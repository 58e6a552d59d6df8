"""Immutable configuration for the question-generation pipeline.

Built once from environment settings (see ``app.core.config``) and injected
into every pipeline component, so tests can substitute their own values
without touching global state.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BatchFocus(BaseModel):
    """Thematic angle assigned to one batch of a multi-batch plan."""

    model_config = ConfigDict(frozen=True)

    name: str
    instruction: str


class TokenBudget(BaseModel):
    """Linear output-token budget: ``count * per_item + base``."""

    model_config = ConfigDict(frozen=True)

    per_item: int
    base: int

    def for_count(self, count: int) -> int:
        return count * self.per_item + self.base


DEFAULT_BATCH_FOCUSES: tuple[BatchFocus, ...] = (
    BatchFocus(
        name="Fundamentals",
        instruction=(
            "Focus on definitions, key terms, basic concepts, and foundational "
            "knowledge. Ask questions about 'what' things are and 'when' they apply."
        ),
    ),
    BatchFocus(
        name="Application",
        instruction=(
            "Focus on practical applications, real-world examples, use cases, and "
            "how concepts are applied. Ask questions about 'how' to use concepts "
            "and 'in what situations' they apply."
        ),
    ),
    BatchFocus(
        name="Analysis",
        instruction=(
            "Focus on comparisons, relationships between concepts, cause-and-effect, "
            "and critical analysis. Ask questions about 'why' things work, "
            "'compare and contrast', and 'what would happen if'."
        ),
    ),
)


class GenerationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Entitlements
    admin_emails: frozenset[str] = Field(default_factory=frozenset)
    free_generation_limit: int = 4

    # Input bounds
    min_items: int = 1
    max_items: int = 60
    max_images: int = 15

    # Batching
    batch_threshold: int = 10
    num_batches: int = 3
    batch_focuses: tuple[BatchFocus, ...] = DEFAULT_BATCH_FOCUSES

    # Oracle call parameters
    model: str = "gpt-4o-mini"
    max_output_tokens: int = 16000
    mcq_single_budget: TokenBudget = TokenBudget(per_item=200, base=500)
    mcq_batched_budget: TokenBudget = TokenBudget(per_item=250, base=1000)
    flashcard_single_budget: TokenBudget = TokenBudget(per_item=100, base=500)
    flashcard_batched_budget: TokenBudget = TokenBudget(per_item=120, base=600)
    single_temperature: float = 0.7
    batched_temperature: float = 0.8
    request_timeout_seconds: float = 120.0

    # Degenerate-output heuristics (completion tokens)
    degenerate_batch_min_tokens: int = 50
    degenerate_single_min_tokens: int = 100
    degenerate_single_min_items: int = 5

    @model_validator(mode="after")
    def _check_bounds(self) -> "GenerationConfig":
        if self.min_items > self.max_items:
            raise ValueError("min_items must not exceed max_items")
        if self.num_batches < 1:
            raise ValueError("num_batches must be at least 1")
        if len(self.batch_focuses) < self.num_batches:
            raise ValueError("batch_focuses must provide one focus per batch")
        return self

    def is_admin(self, email: str | None) -> bool:
        return bool(email) and email.strip().lower() in self.admin_emails
