"""AI-first question generation with a deterministic rule-based fallback."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

from quizsmith.ai_adapter import AIGenerationAdapter
from quizsmith.difficulty import calibrate
from quizsmith.distractors import DistractorGenerator
from quizsmith.errors import AIServiceError, GenerationImpossible
from quizsmith.models import CandidateTerm, GenerationRequest, GenerationResult, QuestionSet, Sentence
from quizsmith.preprocess import SentenceStream
from quizsmith.synthesizers import BUILDERS
from quizsmith.terms import KeyTermExtractor, rank

if TYPE_CHECKING:
    from quizsmith.config import Settings
    from quizsmith.providers.base import LLMProvider

_log = logging.getLogger("quizsmith.coord")
_rules_log = logging.getLogger("quizsmith.rules")


def make_rng(seed: random.Random | int | None = None) -> random.Random:
    if isinstance(seed, random.Random):
        return seed
    return random.Random(seed)


def _candidate_order(candidates: list[CandidateTerm]) -> list[CandidateTerm]:
    """Spread anchors across sentences: each sentence's best term first, then seconds, ..."""
    per_sentence: dict[int, list[CandidateTerm]] = {}
    for c in candidates:
        per_sentence.setdefault(c.sentence_index, []).append(c)
    rounds: list[list[CandidateTerm]] = []
    for terms in per_sentence.values():
        for depth, term in enumerate(terms):
            if depth == len(rounds):
                rounds.append([])
            rounds[depth].append(term)
    # per_sentence preserves the ranked order of each sentence's first term
    return [term for r in rounds for term in r]


def generate_rule_based(request: GenerationRequest, rng: random.Random | int | None = None) -> QuestionSet:
    """Synthesize questions straight from the text.

    Raises :class:`GenerationImpossible` when the text has no usable
    candidate terms. May return fewer questions than requested.
    """
    rng = make_rng(rng)
    profile = calibrate(request.difficulty)

    stream = SentenceStream(request.text, profile.min_sentence_tokens, profile.max_sentence_tokens)
    extractor = KeyTermExtractor(request.text)
    sentences, pool = extractor.extract(stream, min_salience=profile.min_salience)
    if not pool:
        raise GenerationImpossible(
            "The text has no usable key terms to build questions from; "
            "provide longer or more detailed text.",
        )

    by_index: dict[int, Sentence] = {s.index: s for s in sentences}
    ordered = _candidate_order(rank(pool, profile.band_order))
    distractors = DistractorGenerator(pool, rng, similarity=profile.distractor_similarity)
    _rules_log.info(
        "%d sentence(s), %d candidate term(s) at %s difficulty",
        sum(1 for s in sentences if s.has_candidate), len(pool), profile.level,
    )

    questions = QuestionSet()
    used_sentences: set[int] = set()
    used_pairs: set[tuple[int, str]] = set()
    for kind, target in request.allocation().items():
        builder = BUILDERS[kind]
        made = 0
        # First pass avoids sentences already used by any kind; second allows reuse
        for fresh_only in (True, False):
            for term in ordered:
                if made >= target:
                    break
                pair = (term.sentence_index, term.key)
                if pair in used_pairs:
                    continue
                if fresh_only and term.sentence_index in used_sentences:
                    continue
                question = builder(by_index[term.sentence_index], term, distractors, profile, rng)
                if question is None:
                    continue
                questions.add(question)
                used_pairs.add(pair)
                used_sentences.add(term.sentence_index)
                made += 1
        if made < target:
            _rules_log.info("%s: produced %d of %d", kind, made, target)
    if questions.total == 0:
        raise GenerationImpossible("No question could be built from the key terms in this text.")
    return questions


class GenerationCoordinator:
    """Try the AI adapter once; on any failure fall back to rule-based generation."""

    def __init__(self, adapter: AIGenerationAdapter | None = None):
        self.adapter = adapter

    @classmethod
    def from_settings(cls, settings: Settings) -> GenerationCoordinator:
        llm = make_llm(settings)
        if llm is None:
            return cls()
        return cls(AIGenerationAdapter(
            llm,
            timeout=settings.ai_timeout,
            temperature=settings.ai_temperature,
            prompt_char_limit=settings.prompt_char_limit,
        ))

    async def generate(
        self, request: GenerationRequest, rng: random.Random | int | None = None,
    ) -> GenerationResult:
        if self.adapter is not None:
            try:
                questions = await self.adapter.generate(request)
                _log.info("Generated %d question(s) with %s", questions.total, self.adapter.name())
                return GenerationResult(questions, "ai", request.count)
            except AIServiceError as e:
                _log.warning("AI generation failed, switching to rule-based fallback: %s", e)

        # Pure CPU work; keep it off the event loop
        questions = await asyncio.to_thread(generate_rule_based, request, rng)
        result = GenerationResult(questions, "rule-based", request.count)
        if not result.fulfilled:
            _log.info("Partial fulfilment: %d of %d question(s)", result.generated, result.requested)
        else:
            _log.info("Generated %d question(s) with rules", result.generated)
        return result


def make_llm(settings: Settings) -> LLMProvider | None:
    """Build the configured provider, or ``None`` when AI is disabled."""
    s = settings
    if not s.ai_enabled:
        return None
    if s.llm_provider == "ollama":
        from quizsmith.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=s.ollama_url, model=s.llm_model, timeout=s.ai_timeout)
    elif s.llm_provider == "anthropic":
        from quizsmith.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model, timeout=s.ai_timeout)
    elif s.llm_provider == "openai":
        from quizsmith.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model, base_url=s.openai_base_url, timeout=s.ai_timeout)
    raise ValueError(f"Unknown LLM provider: {s.llm_provider}")
