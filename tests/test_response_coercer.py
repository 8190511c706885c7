import json

import pytest

from src.services.errors import MalformedResponse
from src.services.response_coercer import coerce, pick, strip_fences

CARDS = [{"question": "What is ATP?", "answer": "The cell's energy currency"},
         {"question": "Define osmosis", "answer": "Diffusion of water [through a membrane]"}]


class TestCoerceArray:
    def test_plain_json(self):
        assert coerce(json.dumps(CARDS), "array") == CARDS

    def test_language_tagged_fence(self):
        raw = f"```json\n{json.dumps(CARDS, indent=2)}\n```"
        assert coerce(raw, "array") == CARDS

    def test_bare_fence_with_prose_around(self):
        raw = f"Sure! Here are your flashcards:\n```\n{json.dumps(CARDS)}\n```\nGood luck studying."
        assert coerce(raw, "array") == CARDS

    def test_prose_with_brackets_after_array_is_malformed(self):
        # O trecho do primeiro "[" ao último "]" inclui a nota final
        raw = f"{json.dumps(CARDS)}\nNote: see [1] for details."
        with pytest.raises(MalformedResponse):
            coerce(raw, "array")

    def test_prose_with_brackets_before_array_is_malformed(self):
        raw = f"[Generated] Flashcards below:\n{json.dumps(CARDS)}"
        with pytest.raises(MalformedResponse):
            coerce(raw, "array")

    def test_object_when_array_requested_fails(self):
        with pytest.raises(MalformedResponse):
            coerce('{"cards": "none"}', "array")

    def test_no_brackets(self):
        with pytest.raises(MalformedResponse):
            coerce("I could not generate flashcards for this document.", "array")

    def test_unparseable_brackets(self):
        with pytest.raises(MalformedResponse):
            coerce("[question: answer, question2: answer2]", "array")

    def test_empty_text(self):
        with pytest.raises(MalformedResponse):
            coerce("", "array")
        with pytest.raises(MalformedResponse):
            coerce(None, "array")


class TestCoerceObject:
    def test_object_inside_prose(self):
        raw = 'Verdict: {"correct": true, "feedback": "Nice."} Hope that helps!'
        assert coerce(raw, "object") == {"correct": True, "feedback": "Nice."}

    def test_missing_closing_brace(self):
        with pytest.raises(MalformedResponse):
            coerce('{"correct": true, "feedback": "cut off', "object")

    def test_truncated_verdict_after_example_is_malformed(self):
        raw = ('Expected format {"correct": true, "feedback": "..."}\n'
               'Verdict: {"correct": false, "feedback": "Wrong year."')
        with pytest.raises(MalformedResponse):
            coerce(raw, "object")

    def test_schema_echo_with_trailing_brace_is_malformed(self):
        raw = 'Schema is {"correct": true}. My verdict: {"correct": false, "feedback": "No."} trailing }'
        with pytest.raises(MalformedResponse):
            coerce(raw, "object")

    def test_unknown_shape(self):
        with pytest.raises(ValueError):
            coerce("[]", "tuple")


def test_strip_fences_removes_all_delimiters():
    assert strip_fences("```json\n[1]\n```\n```python\nx\n```") == "[1]\n\n\nx"


def test_pick_uses_first_non_empty_alias():
    assert pick({"q": "Alias"}, ("question", "q")) == "Alias"
    assert pick({"question": "", "q": "Alias"}, ("question", "q")) == "Alias"
    assert pick({}, ("question", "q"), "default") == "default"
