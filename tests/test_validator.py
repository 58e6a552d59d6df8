import json

import pytest

from app.modules.generation.errors import (
    DegenerateGeneration,
    EmptyGeneration,
    MalformedItem,
    TruncatedGeneration,
)
from app.modules.generation.models import (
    FlashcardItem,
    ItemType,
    MultipleChoiceItem,
    RawCompletion,
)
from app.modules.generation.validator import (
    count_completed_items,
    strip_fences,
    validate_and_assemble,
)

from fakes import completion, flashcard_items, mcq_items


MCQ = ItemType.MULTIPLE_CHOICE


def _raw(content: str, **kwargs) -> RawCompletion:
    kwargs.setdefault("finish_reason", "stop")
    kwargs.setdefault("completion_tokens", 1000)
    return RawCompletion(content=content, **kwargs)


class TestAssembly:
    def test_single_completion(self, config):
        items = validate_and_assemble([completion(MCQ, 3)], MCQ, 3, config)
        assert [i.id for i in items] == [1, 2, 3]
        assert all(isinstance(i, MultipleChoiceItem) for i in items)
        assert all(len(i.options) == 4 and i.explanation for i in items)

    def test_batches_are_concatenated_and_renumbered(self, config):
        completions = [completion(MCQ, 10) for _ in range(3)]
        items = validate_and_assemble(completions, MCQ, 30, config, batched=True)
        assert [i.id for i in items] == list(range(1, 31))

    def test_overproduction_is_trimmed(self, config):
        items = validate_and_assemble([completion(MCQ, 7)], MCQ, 5, config)
        assert len(items) == 5
        assert items[-1].prompt == "Question 5?"

    def test_underproduction_is_returned_as_is(self, config):
        items = validate_and_assemble([completion(MCQ, 2)], MCQ, 3, config)
        assert [i.id for i in items] == [1, 2]

    def test_model_ids_are_replaced(self, config):
        raw = completion(MCQ, 2, items=mcq_items(2, start=40))
        items = validate_and_assemble([raw], MCQ, 2, config)
        assert [i.id for i in items] == [1, 2]

    def test_float_ids_are_accepted_and_renumbered(self, config):
        items = mcq_items(3)
        for item in items:
            item["id"] = float(item["id"]) + 0.5
        items = validate_and_assemble([completion(MCQ, 3, items=items)], MCQ, 3, config)
        assert [i.id for i in items] == [1, 2, 3]
        assert all(isinstance(i.id, int) for i in items)

    def test_flashcards_keep_optional_hint(self, config):
        cards = flashcard_items(2)
        cards[0]["hint"] = "Think about plants"
        cards[1]["hint"] = "  "
        raw = completion(ItemType.FLASHCARD, 2, items=cards)
        items = validate_and_assemble([raw], ItemType.FLASHCARD, 2, config)
        assert all(isinstance(i, FlashcardItem) for i in items)
        assert items[0].hint == "Think about plants"
        assert items[1].hint is None

    def test_bare_list_is_accepted(self, config):
        raw = _raw(json.dumps(mcq_items(2)))
        assert len(validate_and_assemble([raw], MCQ, 2, config)) == 2

    def test_fenced_json_is_unwrapped(self, config):
        body = json.dumps({"questions": mcq_items(2)})
        raw = _raw(f"```json\n{body}\n```")
        assert len(validate_and_assemble([raw], MCQ, 2, config)) == 2


class TestRejections:
    def test_length_finish_reason_is_truncation(self, config):
        good = completion(MCQ, 10)
        partial = '{"questions": [' + json.dumps(mcq_items(1)[0]) + ', {"id": 2, "quest'
        cut = _raw(partial, finish_reason="length")
        with pytest.raises(TruncatedGeneration) as exc:
            validate_and_assemble([good, cut, good], MCQ, 30, config, batched=True)
        assert exc.value.requested == 30
        assert exc.value.received == 21
        payload = exc.value.to_payload()
        assert payload["received"] == 21 and payload["requested"] == 30
        assert exc.value.status_code == 413

    def test_degenerate_batch(self, config):
        thin = completion(MCQ, 10, completion_tokens=20)
        with pytest.raises(DegenerateGeneration):
            validate_and_assemble(
                [completion(MCQ, 10), thin, completion(MCQ, 10)],
                MCQ,
                30,
                config,
                batched=True,
            )

    def test_degenerate_single_request(self, config):
        with pytest.raises(DegenerateGeneration):
            validate_and_assemble(
                [completion(MCQ, 5, completion_tokens=60)], MCQ, 5, config
            )

    def test_small_single_request_is_not_degenerate(self, config):
        items = validate_and_assemble(
            [completion(MCQ, 2, completion_tokens=60)], MCQ, 2, config
        )
        assert len(items) == 2

    def test_invalid_json(self, config):
        with pytest.raises(MalformedItem):
            validate_and_assemble([_raw("not json at all")], MCQ, 3, config)

    def test_missing_collection(self, config):
        with pytest.raises(MalformedItem):
            validate_and_assemble([_raw('{"cards": []}')], MCQ, 3, config)

    def test_empty_collection(self, config):
        with pytest.raises(EmptyGeneration):
            validate_and_assemble([_raw('{"questions": []}')], MCQ, 3, config)

    def test_wrong_option_count_names_position_and_field(self, config):
        items = mcq_items(3)
        items[1]["options"] = ["A) only", "B) two", "C) three"]
        with pytest.raises(MalformedItem) as exc:
            validate_and_assemble([completion(MCQ, 3, items=items)], MCQ, 3, config)
        assert exc.value.position == 2
        assert exc.value.field == "options"
        assert "Item 2" in exc.value.message
        # Details stay out of the user-facing payload
        assert "options" not in exc.value.to_payload()["error"]

    def test_blank_explanation(self, config):
        items = mcq_items(2)
        items[0]["explanation"] = "   "
        with pytest.raises(MalformedItem) as exc:
            validate_and_assemble([completion(MCQ, 2, items=items)], MCQ, 2, config)
        assert exc.value.field == "explanation"

    def test_no_type_coercion(self, config):
        items = mcq_items(2)
        items[0]["id"] = "1"
        with pytest.raises(MalformedItem) as exc:
            validate_and_assemble([completion(MCQ, 2, items=items)], MCQ, 2, config)
        assert exc.value.field == "id"

    def test_boolean_id_is_rejected(self, config):
        items = mcq_items(2)
        items[1]["id"] = True
        with pytest.raises(MalformedItem) as exc:
            validate_and_assemble([completion(MCQ, 2, items=items)], MCQ, 2, config)
        assert exc.value.field == "id"

    def test_non_object_item(self, config):
        raw = _raw(json.dumps({"cards": ["just a string"]}))
        with pytest.raises(MalformedItem):
            validate_and_assemble([raw], ItemType.FLASHCARD, 1, config)


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('{"a": 1}') == '{"a": 1}'


def test_count_completed_items():
    partial = json.dumps({"cards": flashcard_items(2)})[:-2] + ', {"id": 3, "question": "Term'
    assert count_completed_items(partial, ItemType.FLASHCARD) == 2
    assert count_completed_items(None, MCQ) == 0


def test_item_cut_inside_its_closing_value_is_not_counted():
    whole = json.dumps(mcq_items(1)[0])
    partial = (
        '{"questions": [' + whole + ', {"id": 2, "question": "Q?", '
        '"options": ["A) a", "B) b", "C) c", "D) d"], "correctAnswer": "B", '
        '"explanation": "Because the \\"light\\" rea'
    )
    assert count_completed_items(partial, MCQ) == 1
    assert count_completed_items(partial + 'ction"}]}', MCQ) == 2
