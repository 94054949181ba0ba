"""Delegate question generation to an LLM and vet what comes back.

The model's reply is untrusted: it is parsed into a plain dict, checked
field by field, and only then promoted to a :class:`QuestionSet`. One bad
item fails the whole call; there is no partial acceptance.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING

from quizsmith.errors import AIServiceError, AITimeoutError, SchemaValidationError
from quizsmith.models import BLANK, PARSERS, PAYLOAD_KEYS, GenerationRequest, Question, QuestionSet
from quizsmith.prompts import SYSTEM_PROMPT, build_generation_prompt

if TYPE_CHECKING:
    from quizsmith.providers.base import LLMProvider

_log = logging.getLogger("quizsmith.ai")

# Top-level keys we tolerate but discard
IGNORED_KEYS = {"identification"}


def _extract_json(text: str) -> dict | None:
    """Extract a JSON object from an LLM response, handling markdown code fences.

    Strips ``<think>`` blocks, tries fenced JSON first, then the balanced
    ``{…}`` blocks in the text, preferring the *last* one.
    """
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()

    m = re.search(r"```(?:json)?\s*\n?({.*?})\s*\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except (ValueError, RecursionError):
            pass

    for candidate in reversed(_find_json_objects(text)):
        try:
            parsed = json.loads(candidate)
        except (ValueError, RecursionError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _find_json_objects(text: str) -> list[str]:
    """Find balanced top-level ``{…}`` substrings in *text*."""
    results: list[str] = []
    i = 0
    while i < len(text):
        if text[i] != "{":
            i += 1
            continue
        depth = 0
        in_str = False
        escape = False
        for j in range(i, len(text)):
            ch = text[j]
            if escape:
                escape = False
                continue
            if ch == "\\":
                escape = True
                continue
            if ch == '"':
                in_str = not in_str
                continue
            if in_str:
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    results.append(text[i : j + 1])
                    i = j + 1
                    break
        else:
            # Unbalanced, skip this opening brace
            i += 1
    return results


def _coerce(kind: str, item):
    """Repair the common LLM slips: ``"2"`` for an index, ``"true"`` for a boolean."""
    if not isinstance(item, dict):
        return item
    if kind == "multiple-choice":
        ci = item.get("correctAnswer")
        # isdigit() alone accepts "²" and other digits int() rejects
        if isinstance(ci, str) and ci.strip().isascii() and ci.strip().isdigit():
            return {**item, "correctAnswer": int(ci.strip())}
    elif kind == "true-false":
        answer = item.get("answer")
        if isinstance(answer, str) and answer.strip().lower() in ("true", "false"):
            return {**item, "answer": answer.strip().lower() == "true"}
    return item


def _validate_item(kind: str, item, where: str) -> Question:
    try:
        return PARSERS[kind](_coerce(kind, item), where)
    except ValueError as e:
        raise SchemaValidationError(str(e)) from e


def validate_payload(payload, request: GenerationRequest) -> QuestionSet:
    """Promote an untyped payload to a :class:`QuestionSet` or raise.

    Every item of every kind is validated, requested or not. Kinds that were
    not requested are then dropped and each kind is trimmed to its share of
    the target count.
    """
    if not isinstance(payload, dict):
        raise SchemaValidationError(f"payload: expected object, got {type(payload).__name__}")
    unknown = set(payload) - set(PAYLOAD_KEYS.values()) - IGNORED_KEYS - {"counts"}
    if unknown:
        raise SchemaValidationError(f"payload: unexpected keys {sorted(unknown)}")

    counts = payload.get("counts")
    if counts is not None:
        if not isinstance(counts, dict):
            raise SchemaValidationError(f"counts: expected object, got {type(counts).__name__}")
        for key, value in counts.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise SchemaValidationError(f"counts.{key}: expected non-negative integer, got {value!r}")

    allocation = request.allocation()
    questions = QuestionSet()
    for kind, key in PAYLOAD_KEYS.items():
        items = payload.get(key, [])
        if items is None:
            items = []
        if not isinstance(items, list):
            raise SchemaValidationError(f"{key}: expected array, got {type(items).__name__}")
        validated = [_validate_item(kind, item, f"{key}[{i}]") for i, item in enumerate(items)]
        for q in validated[: allocation.get(kind, 0)]:
            questions.add(q)

    if questions.total == 0:
        raise SchemaValidationError("payload contains no usable questions")
    return questions


class AIGenerationAdapter:
    """One bounded call to an LLM, with the reply validated against the schema."""

    def __init__(
        self,
        llm: LLMProvider,
        timeout: float = 45.0,
        temperature: float = 0.4,
        prompt_char_limit: int = 3000,
    ):
        self.llm = llm
        self.timeout = timeout
        self.temperature = temperature
        self.prompt_char_limit = prompt_char_limit

    def name(self) -> str:
        return self.llm.name()

    async def generate(self, request: GenerationRequest) -> QuestionSet:
        """Return a validated set or raise :class:`AIServiceError`."""
        prompt = build_generation_prompt(request, self.prompt_char_limit, BLANK)
        _log.info("Requesting %d question(s) from %s", request.count, self.llm.name())
        try:
            response = await asyncio.wait_for(
                self.llm.generate(prompt, temperature=self.temperature, system=SYSTEM_PROMPT),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise AITimeoutError(f"{self.llm.name()} did not answer within {self.timeout:.0f}s") from None
        except Exception as e:
            raise AIServiceError(f"{self.llm.name()} request failed: {e}") from e

        if not isinstance(response, str):
            raise SchemaValidationError(f"expected text response, got {type(response).__name__}")
        try:
            payload = _extract_json(response)
            if payload is None:
                _log.debug("Raw response: %.300s", response)
                raise SchemaValidationError("response did not contain a JSON object")
            questions = validate_payload(payload, request)
        except AIServiceError:
            raise
        except Exception as e:
            # Anything else the reply trips counts as a bad payload
            raise SchemaValidationError(f"unusable response: {type(e).__name__}: {e}") from e
        _log.info("AI produced %d question(s) %s", questions.total, questions.counts())
        return questions
