"""Map a difficulty level to the knobs the rule-based synthesizers read."""
from __future__ import annotations

from dataclasses import dataclass

from quizsmith.errors import InputValidationError


@dataclass(frozen=True)
class DifficultyProfile:
    level: str
    min_sentence_tokens: int
    max_sentence_tokens: int
    min_salience: float
    mutation_probability: float  # chance a true/false item is made false
    distractor_similarity: float  # 0..1, how close distractors should look to the answer
    option_count: int  # multiple-choice options including the correct one
    band_order: tuple[str, ...]  # term bands, most preferred first


PROFILES = {
    "easy": DifficultyProfile(
        level="easy",
        min_sentence_tokens=4,
        max_sentence_tokens=25,
        min_salience=0.0,
        mutation_probability=0.3,
        distractor_similarity=0.9,
        option_count=3,
        band_order=("easy", "moderate", "challenging"),
    ),
    "moderate": DifficultyProfile(
        level="moderate",
        min_sentence_tokens=5,
        max_sentence_tokens=35,
        min_salience=0.5,
        mutation_probability=0.5,
        distractor_similarity=0.7,
        option_count=4,
        band_order=("moderate", "challenging", "easy"),
    ),
    "challenging": DifficultyProfile(
        level="challenging",
        min_sentence_tokens=6,
        max_sentence_tokens=50,
        min_salience=1.0,
        mutation_probability=0.65,
        distractor_similarity=0.5,
        option_count=5,
        band_order=("challenging", "moderate", "easy"),
    ),
}


def calibrate(difficulty: str) -> DifficultyProfile:
    try:
        return PROFILES[difficulty]
    except KeyError:
        raise InputValidationError("difficulty", f"unknown level {difficulty!r}") from None
