"""Tests for the AI adapter (JSON extraction, payload validation, LLM call)."""
from __future__ import annotations

import asyncio
import copy
import json
from unittest.mock import patch

import httpx
import pytest

from quizsmith.ai_adapter import AIGenerationAdapter, _extract_json, validate_payload
from quizsmith.errors import AIServiceError, AITimeoutError, SchemaValidationError
from quizsmith.models import BLANK, GenerationRequest
from quizsmith.prompts import SYSTEM_PROMPT


class FakeLLM:
    """Simple fake LLM that avoids AsyncMock's `name` attribute issue."""

    def __init__(self, responses=None):
        self._responses = responses or []
        self.prompts: list[str] = []
        self.systems: list[str | None] = []

    async def generate(self, prompt: str, temperature: float = 0.4, system: str | None = None) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        response = self._responses[min(len(self.prompts), len(self._responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response

    def name(self) -> str:
        return "fake-llm"


class SlowLLM(FakeLLM):
    async def generate(self, prompt: str, temperature: float = 0.4, system: str | None = None) -> str:
        await asyncio.sleep(5)
        return "{}"


@pytest.fixture
def request_all(passage):
    """Four questions across all kinds: 2 multiple choice, 1 true/false, 1 fill-in."""
    return GenerationRequest(text=passage, difficulty="moderate", count=4)


class TestExtractJson:
    def test_bare_json(self):
        assert _extract_json('{"trueFalse": []}') == {"trueFalse": []}

    def test_code_fence_json(self):
        text = 'Here you go:\n```json\n{"trueFalse": []}\n```'
        assert _extract_json(text) == {"trueFalse": []}

    def test_think_block_stripped(self):
        text = '<think>maybe {"draft": 1}</think>\n{"trueFalse": []}'
        assert _extract_json(text) == {"trueFalse": []}

    def test_surrounding_text_prefers_last_object(self):
        text = 'Example: {"a": 1}\nAnswer: {"b": {"c": "}"}}\nDone.'
        assert _extract_json(text) == {"b": {"c": "}"}}

    def test_invalid_json(self):
        assert _extract_json("not json at all") is None
        assert _extract_json("{broken") is None

    def test_deeply_nested_json(self):
        depth = 100_000
        assert _extract_json('{"trueFalse": ' + "[" * depth + "]" * depth + "}") is None


class TestValidatePayload:
    def test_valid_payload(self, ai_payload, request_all):
        qs = validate_payload(ai_payload, request_all)
        assert qs.counts() == {"multiple-choice": 2, "true-false": 1, "fill-in-blank": 1}
        assert qs.multiple_choice[1].correct_option == "1889"
        assert qs.fill_in_blank[0].sentence == f"The tower is named after Gustave {BLANK}."

    def test_truncates_to_allocation(self, ai_payload, passage):
        request = GenerationRequest(text=passage, count=2)
        qs = validate_payload(ai_payload, request)
        assert qs.counts() == {"multiple-choice": 1, "true-false": 1, "fill-in-blank": 0}

    def test_drops_unrequested_kinds(self, ai_payload, passage):
        request = GenerationRequest(text=passage, count=3, kinds=("true-false",))
        qs = validate_payload(ai_payload, request)
        assert qs.counts() == {"multiple-choice": 0, "true-false": 1, "fill-in-blank": 0}

    def test_unrequested_kinds_still_validated(self, ai_payload, passage):
        ai_payload["multipleChoice"][0]["correctAnswer"] = 9
        request = GenerationRequest(text=passage, count=3, kinds=("true-false",))
        with pytest.raises(SchemaValidationError, match="out of range"):
            validate_payload(ai_payload, request)

    def test_identification_ignored(self, ai_payload, request_all):
        ai_payload["identification"] = [{"question": "Name it", "answer": "Tower"}]
        assert validate_payload(ai_payload, request_all).total == 4

    def test_counts_accepted(self, ai_payload, request_all):
        ai_payload["counts"] = {"multipleChoice": 2, "trueFalse": 1}
        assert validate_payload(ai_payload, request_all).total == 4

    def test_bad_counts(self, ai_payload, request_all):
        ai_payload["counts"] = {"multipleChoice": -1}
        with pytest.raises(SchemaValidationError, match="counts"):
            validate_payload(ai_payload, request_all)

    def test_unknown_key(self, ai_payload, request_all):
        ai_payload["essay"] = []
        with pytest.raises(SchemaValidationError, match="unexpected keys"):
            validate_payload(ai_payload, request_all)

    def test_not_an_object(self, request_all):
        with pytest.raises(SchemaValidationError):
            validate_payload([], request_all)

    def test_empty_payload(self, request_all):
        with pytest.raises(SchemaValidationError, match="no usable questions"):
            validate_payload({"multipleChoice": [], "trueFalse": [], "fillInTheBlank": []}, request_all)

    def test_array_expected(self, request_all):
        with pytest.raises(SchemaValidationError, match="expected array"):
            validate_payload({"trueFalse": {"statement": "x", "answer": True}}, request_all)

    def test_null_arrays_treated_as_empty(self, ai_payload, request_all):
        ai_payload["fillInTheBlank"] = None
        assert validate_payload(ai_payload, request_all).counts()["fill-in-blank"] == 0


class TestMultipleChoiceValidation:
    def _payload(self, **overrides):
        item = {"question": "Where?", "options": ["Paris", "Lyon", "Nice"], "correctAnswer": 0}
        item.update(overrides)
        return {"multipleChoice": [item]}

    def test_digit_string_index_coerced(self, request_all):
        qs = validate_payload(self._payload(correctAnswer="2"), request_all)
        assert qs.multiple_choice[0].correct_index == 2

    @pytest.mark.parametrize("index", ["²", "٣", " 1.0"])
    def test_non_ascii_or_decimal_string_index_rejected(self, index, request_all):
        with pytest.raises(SchemaValidationError, match="not an integer"):
            validate_payload(self._payload(correctAnswer=index), request_all)

    def test_bool_index_rejected(self, request_all):
        with pytest.raises(SchemaValidationError, match="not an integer"):
            validate_payload(self._payload(correctAnswer=True), request_all)

    def test_negative_index_rejected(self, request_all):
        with pytest.raises(SchemaValidationError, match="out of range"):
            validate_payload(self._payload(correctAnswer=-1), request_all)

    @pytest.mark.parametrize("options", [["Paris"], ["a", "b", "c", "d", "e", "f", "g"], "Paris, Lyon"])
    def test_option_count(self, options, request_all):
        with pytest.raises(SchemaValidationError, match="options"):
            validate_payload(self._payload(options=options), request_all)

    def test_duplicate_options(self, request_all):
        with pytest.raises(SchemaValidationError, match="duplicate"):
            validate_payload(self._payload(options=["Paris", "paris ", "Nice"]), request_all)

    def test_blank_option(self, request_all):
        with pytest.raises(SchemaValidationError, match="non-empty"):
            validate_payload(self._payload(options=["Paris", "  ", "Nice"]), request_all)

    def test_missing_question(self, request_all):
        with pytest.raises(SchemaValidationError, match="question"):
            validate_payload(self._payload(question=""), request_all)


class TestTrueFalseValidation:
    def test_string_booleans_coerced(self, request_all):
        qs = validate_payload({"trueFalse": [{"statement": "Iron rusts.", "answer": "False"}]}, request_all)
        assert qs.true_false[0].answer is False

    def test_other_answers_rejected(self, request_all):
        with pytest.raises(SchemaValidationError, match="not a boolean"):
            validate_payload({"trueFalse": [{"statement": "Iron rusts.", "answer": "yes"}]}, request_all)


class TestFillInBlankValidation:
    def test_blank_marker_normalized(self, request_all):
        qs = validate_payload(
            {"fillInTheBlank": [{"sentence": "Iron is a [blank] metal.", "answer": "grey"}]}, request_all,
        )
        assert qs.fill_in_blank[0].sentence == f"Iron is a {BLANK} metal."

    @pytest.mark.parametrize("sentence", ["Iron is a grey metal.", "___ is a ___ metal."])
    def test_exactly_one_blank(self, sentence, request_all):
        with pytest.raises(SchemaValidationError, match="exactly one blank"):
            validate_payload({"fillInTheBlank": [{"sentence": sentence, "answer": "grey"}]}, request_all)

    def test_empty_answer(self, request_all):
        with pytest.raises(SchemaValidationError, match="answer"):
            validate_payload({"fillInTheBlank": [{"sentence": "Iron is ___.", "answer": " "}]}, request_all)


class TestAdapter:
    @pytest.mark.asyncio
    async def test_success(self, ai_response, request_all, passage):
        llm = FakeLLM([ai_response])
        adapter = AIGenerationAdapter(llm, timeout=5)
        qs = await adapter.generate(request_all)
        assert qs.total == 4
        assert passage in llm.prompts[0]
        assert llm.systems[0] == SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_prompt_truncated(self, ai_response, request_all):
        llm = FakeLLM([ai_response])
        await AIGenerationAdapter(llm, prompt_char_limit=40).generate(request_all)
        assert request_all.text[:40] in llm.prompts[0]
        assert request_all.text[:41] not in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_response(self, ai_payload, request_all):
        fenced = "<think>planning</think>\n```json\n" + json.dumps(ai_payload) + "\n```"
        qs = await AIGenerationAdapter(FakeLLM([fenced])).generate(request_all)
        assert qs.total == 4

    @pytest.mark.asyncio
    async def test_no_json(self, request_all):
        with pytest.raises(SchemaValidationError):
            await AIGenerationAdapter(FakeLLM(["I cannot help with that."])).generate(request_all)

    @pytest.mark.asyncio
    async def test_invalid_payload(self, ai_payload, request_all):
        broken = copy.deepcopy(ai_payload)
        broken["trueFalse"][0]["answer"] = "maybe"
        with pytest.raises(SchemaValidationError):
            await AIGenerationAdapter(FakeLLM([json.dumps(broken)])).generate(request_all)

    @pytest.mark.asyncio
    async def test_transport_error(self, request_all):
        llm = FakeLLM([httpx.ConnectError("connection refused")])
        with pytest.raises(AIServiceError) as exc:
            await AIGenerationAdapter(llm).generate(request_all)
        assert not isinstance(exc.value, AITimeoutError)
        assert "connection refused" in str(exc.value)

    @pytest.mark.asyncio
    async def test_timeout(self, request_all):
        with pytest.raises(AITimeoutError):
            await AIGenerationAdapter(SlowLLM(), timeout=0.05).generate(request_all)

    @pytest.mark.asyncio
    async def test_unexpected_parse_error_becomes_schema_error(self, ai_response, request_all):
        with patch("quizsmith.ai_adapter.validate_payload", side_effect=KeyError("multipleChoice")):
            with pytest.raises(SchemaValidationError, match="KeyError"):
                await AIGenerationAdapter(FakeLLM([ai_response])).generate(request_all)

    @pytest.mark.asyncio
    async def test_non_text_response(self, request_all):
        with pytest.raises(SchemaValidationError):
            await AIGenerationAdapter(FakeLLM([None])).generate(request_all)

    def test_name(self):
        assert AIGenerationAdapter(FakeLLM()).name() == "fake-llm"
