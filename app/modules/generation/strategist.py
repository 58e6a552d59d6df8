"""Single vs. multi-batch planning.

Requests at or above ``batch_threshold`` are split into ``num_batches``
concurrent calls, each steered toward a different thematic focus.
"""

from __future__ import annotations

from app.core.logging import get_logger
from app.modules.generation.config import GenerationConfig
from app.modules.generation.models import (
    BatchSpec,
    ContentMode,
    ExecutionPlan,
    ItemType,
)


logger = get_logger(__name__)


def split_count(total: int, parts: int) -> list[int]:
    """Sizes summing to ``total``, differing by at most one, larger ones first."""
    base, remainder = divmod(total, parts)
    return [base + 1 if i < remainder else base for i in range(parts)]


def plan(
    item_count: int,
    item_type: ItemType,
    content_mode: ContentMode,
    config: GenerationConfig,
) -> ExecutionPlan:
    if item_count < config.batch_threshold:
        logger.info("Single request mode: %d items", item_count)
        return ExecutionPlan(
            item_type=item_type,
            content_mode=content_mode,
            batches=(BatchSpec(index=0, size=item_count),),
            batched=False,
        )

    # Never plan an empty batch, even with an unusually low threshold
    parts = min(config.num_batches, item_count)
    sizes = split_count(item_count, parts)
    batches = tuple(
        BatchSpec(index=i, size=size, focus=config.batch_focuses[i])
        for i, size in enumerate(sizes)
    )
    logger.info(
        "Batched mode: %d items in %d batches %s (%s)",
        item_count,
        len(batches),
        sizes,
        ", ".join(b.focus.name for b in batches if b.focus),
    )
    return ExecutionPlan(
        item_type=item_type,
        content_mode=content_mode,
        batches=batches,
        batched=True,
    )
