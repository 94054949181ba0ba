"""Shared test fixtures."""
from __future__ import annotations

import json

import pytest

from quizsmith.models import Sentence


@pytest.fixture
def passage():
    """A short factual passage with four sentences."""
    return (
        "The Eiffel Tower is a wrought iron lattice tower located in Paris. "
        "It was completed in 1889 as the entrance arch for the World Fair. "
        "The tower is named after the engineer Gustave Eiffel, whose company designed it. "
        "Today the structure is one of the most visited monuments in Europe."
    )


@pytest.fixture
def long_passage(passage):
    return passage + (
        " Photosynthesis is the process plants use to convert sunlight into chemical energy. "
        "Chlorophyll is the green pigment that absorbs light inside the chloroplasts. "
        "The oxygen released during photosynthesis is a byproduct of splitting water molecules. "
        "Most photosynthesis takes place in the leaves, where the chloroplasts are concentrated. "
        "The Amazon rainforest produces a large share of the oxygen on Earth."
    )


@pytest.fixture
def make_sentence():
    def _make(text: str, index: int = 0) -> Sentence:
        return Sentence(index=index, text=text, normalized=text, token_count=len(text.split()))
    return _make


@pytest.fixture
def ai_payload():
    """A valid AI payload covering all three kinds."""
    return {
        "multipleChoice": [
            {
                "question": "Where is the Eiffel Tower located?",
                "options": ["Paris", "Lyon", "Marseille", "Nice"],
                "correctAnswer": 0,
            },
            {
                "question": "When was the tower completed?",
                "options": ["1789", "1889", "1989", "1869"],
                "correctAnswer": 1,
            },
        ],
        "trueFalse": [
            {"statement": "The tower is made of wrought iron.", "answer": True},
        ],
        "fillInTheBlank": [
            {"sentence": "The tower is named after Gustave ______.", "answer": "Eiffel"},
        ],
    }


@pytest.fixture
def ai_response(ai_payload):
    return json.dumps(ai_payload)
