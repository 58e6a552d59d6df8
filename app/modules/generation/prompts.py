"""System prompts and user-content construction for the oracle.

The system prompt carries the output contract (JSON shape, quality bar);
the user content carries the task and the study material.
"""

from __future__ import annotations

from typing import Any, Optional

from app.modules.generation.config import BatchFocus
from app.modules.generation.models import (
    GenerationRequest,
    ImageContent,
    ItemType,
    PromptPair,
    TextContent,
)


MCQ_SYSTEM_PROMPT = """You are an expert educational assistant that creates high-quality multiple-choice study questions.

Your questions should:
- Test understanding, not just memorization
- Be clear and unambiguous
- Have exactly 4 options labeled A through D
- Include helpful explanations

Always respond with valid JSON in this exact structure:
{
  "questions": [
    {
      "id": 1,
      "question": "The question text here?",
      "options": ["A) First option", "B) Second option", "C) Third option", "D) Fourth option"],
      "correctAnswer": "A",
      "explanation": "Brief explanation of why this answer is correct"
    }
  ]
}"""


FLASHCARD_SYSTEM_PROMPT = """You are an expert educational assistant that creates simple, memorable flashcards for spaced repetition learning (like Anki).

Your cards should:
- Have SHORT answers (1-3 words or a brief phrase)
- Use fill-in-the-blank style when possible
- Be easy to recall
- Focus on key facts and concepts
- Avoid complex explanations in the answer

Always respond with valid JSON in this exact structure:
{
  "cards": [
    {
      "id": 1,
      "question": "The capital of France is ______",
      "answer": "Paris",
      "hint": "Optional hint if needed"
    }
  ]
}"""


SYSTEM_PROMPTS: dict[ItemType, str] = {
    ItemType.MULTIPLE_CHOICE: MCQ_SYSTEM_PROMPT,
    ItemType.FLASHCARD: FLASHCARD_SYSTEM_PROMPT,
}


def _noun(item_type: ItemType, count: int) -> str:
    if item_type is ItemType.MULTIPLE_CHOICE:
        return "multiple-choice question" if count == 1 else "multiple-choice questions"
    return "simple flashcard" if count == 1 else "simple flashcards"


def _style_reminder(item_type: ItemType) -> str:
    if item_type is ItemType.FLASHCARD:
        return (
            "Make them concise and easy to remember. "
            "Use fill-in-the-blank style when appropriate.\n"
        )
    return ""


def build_system_prompt(item_type: ItemType, focus: Optional[BatchFocus] = None) -> str:
    base = SYSTEM_PROMPTS[item_type]
    if focus is None:
        return base
    return (
        f"{base}\n\n"
        f"THEMATIC FOCUS for this set ({focus.name}): {focus.instruction}\n"
        "Other sets cover different angles of the same material, so stay within "
        "this focus and avoid generic overview items."
    )


def build_text_prompt(item_type: ItemType, notes: str, count: int) -> str:
    return (
        f"Generate {count} {_noun(item_type, count)} based on these study notes:\n\n"
        f"{notes}\n\n"
        f"{_style_reminder(item_type)}"
        "Remember to format your response as valid JSON with the structure I specified."
    )


def build_image_parts(
    item_type: ItemType, images: list[str], count: int, caption: Optional[str] = None
) -> list[dict[str, Any]]:
    page_word = "image" if len(images) == 1 else "images"
    instruction = (
        f"Analyze the attached {len(images)} {page_word} of study material "
        "(photos, slides, or PDF pages). Read all visible text, diagrams, tables, "
        "and handwriting carefully.\n\n"
        f"Generate {count} {_noun(item_type, count)} based on this material.\n"
    )
    if caption:
        instruction += f"\nAdditional notes provided with the images:\n{caption}\n"
    instruction += (
        f"\n{_style_reminder(item_type)}"
        "Remember to format your response as valid JSON with the structure I specified."
    )
    parts: list[dict[str, Any]] = [{"type": "text", "text": instruction}]
    for img in images:
        parts.append({"type": "image_url", "image_url": {"url": img, "detail": "high"}})
    return parts


def build_prompt(
    request: GenerationRequest, count: int, focus: Optional[BatchFocus] = None
) -> PromptPair:
    """Prompt pair for one batch of ``count`` items."""
    system_prompt = build_system_prompt(request.item_type, focus)
    content = request.content
    if isinstance(content, TextContent):
        user_content: str | list[dict[str, Any]] = build_text_prompt(
            request.item_type, content.text, count
        )
    elif isinstance(content, ImageContent):
        user_content = build_image_parts(
            request.item_type, content.images, count, content.caption
        )
    else:  # pragma: no cover - Content is a closed union
        raise TypeError(f"Unsupported content: {type(content).__name__}")
    return PromptPair(system_prompt=system_prompt, user_content=user_content)
