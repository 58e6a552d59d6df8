"""Response validation and assembly.

Model output is untrusted. Each completion is checked for truncation and
degenerate size, parsed, and the concatenated collection is validated item
by item into typed models. Any failure rejects the whole generation; nothing
is coerced or partially accepted.
"""

from __future__ import annotations

import json
import re
from typing import Any, Sequence

from pydantic import ValidationError

from app.core.logging import get_logger
from app.modules.generation.config import GenerationConfig
from app.modules.generation.errors import (
    DegenerateGeneration,
    EmptyGeneration,
    MalformedItem,
    TruncatedGeneration,
)
from app.modules.generation.models import (
    ITEM_MODELS,
    GeneratedItem,
    ItemType,
    RawCompletion,
)


logger = get_logger(__name__)

# "length" on OpenAI; some OpenAI-compatible gateways report "max_tokens"
TRUNCATED_FINISH_REASONS = frozenset({"length", "max_tokens"})

# Closing field of a complete item in each shape, with its string value terminated
_STRING_VALUE = r'\s*:\s*"(?:[^"\\]|\\.)*"'
_CLOSING_FIELD = {
    ItemType.MULTIPLE_CHOICE: re.compile(r'"explanation"' + _STRING_VALUE),
    ItemType.FLASHCARD: re.compile(r'"answer"' + _STRING_VALUE),
}

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def strip_fences(content: str) -> str:
    return _FENCE_RE.sub("", content.strip())


def count_completed_items(content: str | None, item_type: ItemType) -> int:
    """Best-effort count of whole items in a possibly cut-off payload."""
    if not content:
        return 0
    return len(_CLOSING_FIELD[item_type].findall(content))


def is_truncated(completion: RawCompletion) -> bool:
    return (completion.finish_reason or "").lower() in TRUNCATED_FINISH_REASONS


def check_truncation(
    completions: Sequence[RawCompletion], item_type: ItemType, requested: int
) -> None:
    if not any(is_truncated(c) for c in completions):
        return
    received = sum(count_completed_items(c.content, item_type) for c in completions)
    logger.warning(
        "Generation truncated by token ceiling: received ~%d of %d items",
        received,
        requested,
    )
    raise TruncatedGeneration(received=min(received, requested), requested=requested)


def check_degenerate(
    completion: RawCompletion,
    requested: int,
    config: GenerationConfig,
    *,
    batched: bool,
) -> None:
    tokens = completion.completion_tokens
    if batched:
        degenerate = tokens < config.degenerate_batch_min_tokens
    else:
        degenerate = (
            requested >= config.degenerate_single_min_items
            and tokens < config.degenerate_single_min_tokens
        )
    if degenerate:
        logger.warning(
            "Degenerate output: %d completion tokens for %d requested items (batched=%s)",
            tokens,
            requested,
            batched,
        )
        raise DegenerateGeneration()


def parse_collection(completion: RawCompletion, item_type: ItemType) -> list[Any]:
    """Parse JSON content and unwrap the named collection when present."""
    try:
        payload = json.loads(strip_fences(completion.content or ""))
    except json.JSONDecodeError as e:
        logger.error("Model returned invalid JSON: %s", e)
        raise MalformedItem(detail="Invalid response format from the model") from e

    key = item_type.collection_key
    if isinstance(payload, dict) and key in payload:
        payload = payload[key]
    if not isinstance(payload, list):
        logger.error("Model response has no '%s' list", key)
        raise MalformedItem(detail=f"Response does not contain a '{key}' list")
    return payload


def validate_item(raw: Any, item_type: ItemType, position: int) -> GeneratedItem:
    """Strictly validate one raw item; ``position`` is 1-based."""
    model = ITEM_MODELS[item_type]
    if not isinstance(raw, dict):
        logger.error("Item %d is not an object", position)
        raise MalformedItem(position=position, field="item", detail="not an object")
    try:
        return model.model_validate(raw, strict=True)  # type: ignore[return-value]
    except ValidationError as e:
        err = e.errors()[0]
        loc = err.get("loc") or ("item",)
        field = str(loc[0])
        logger.error(
            "Malformed item %d: field=%s error=%s", position, field, err.get("msg")
        )
        raise MalformedItem(position=position, field=field, detail=err.get("msg")) from e


def validate_and_assemble(
    completions: Sequence[RawCompletion],
    item_type: ItemType,
    requested_count: int,
    config: GenerationConfig,
    *,
    batched: bool = False,
) -> list[GeneratedItem]:
    """Turn one or more raw completions into a dense, typed 1..N collection.

    Completions are concatenated in batch order, trimmed to
    ``requested_count`` and renumbered; ids the model assigned per batch are
    discarded.
    """
    check_truncation(completions, item_type, requested_count)
    for completion in completions:
        check_degenerate(completion, requested_count, config, batched=batched)

    raw_items: list[Any] = []
    for completion in completions:
        raw_items.extend(parse_collection(completion, item_type))

    if len(raw_items) > requested_count:
        logger.info(
            "Trimming %d over-produced items to %d", len(raw_items), requested_count
        )
        raw_items = raw_items[:requested_count]

    if not raw_items:
        logger.error("Model returned no items")
        raise EmptyGeneration()

    items = [
        validate_item(raw, item_type, position)
        for position, raw in enumerate(raw_items, start=1)
    ]
    return [item.model_copy(update={"id": n}) for n, item in enumerate(items, start=1)]
