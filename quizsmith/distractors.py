"""Build plausible wrong options for a correct term."""
from __future__ import annotations

import random
import re
from collections.abc import Sequence

from quizsmith.models import MAX_OPTIONS, MIN_OPTIONS, CandidateTerm

# Last-resort options once the document and mutations run dry
FILLER_OPTIONS = (
    "None of the above",
    "Not mentioned in the passage",
    "Cannot be determined from the passage",
    "Something else entirely",
    "No answer is given",
)

_NUMBER = re.compile(r"\d+(?:,\d{3})*(?:\.\d+)?")


def pluralize(word: str) -> str:
    lower = word.lower()
    if lower.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if lower.endswith(("ss", "us", "is")):
        return word + "es"
    if lower.endswith("s"):
        return word[:-1]
    if lower.endswith(("x", "z", "ch", "sh")):
        return word + "es"
    if lower.endswith("y") and len(word) > 2 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


def negate(term: str) -> str:
    if term[:1].isupper():
        return f"Non-{term}"
    return f"non-{term}"


def perturb_numbers(term: str) -> list[str]:
    """Variants of *term* with its first number nudged.

    Thousands separators are kept: ``1,000`` becomes ``1,001``, not ``0,000``.
    """
    m = _NUMBER.search(term)
    if m is None:
        return []
    raw = m.group(0)
    grouped = "," in raw
    digits = raw.replace(",", "")
    variants = []
    if "." in digits:
        value = float(digits)
        decimals = len(digits.split(".")[1])
        candidates = [value + 1, value - 1, value * 2, value / 2]
        sep = "," if grouped else ""
        rendered = [f"{v:{sep}.{decimals}f}" for v in candidates if v >= 0]
    else:
        value = int(digits)
        # Years get decade/century nudges; grouped numbers are never years
        year_like = not grouped and 1000 <= value <= 2100
        deltas = (10, -10, 100, -100) if year_like else (1, -1, 10, -10)
        values = [value + d for d in deltas if value + d >= 0]
        values.append(value * 2)
        rendered = [f"{v:,}" if grouped else str(v) for v in values]
    for r in rendered:
        if r != raw:
            variants.append(term[:m.start()] + r + term[m.end():])
    return variants


def mutations(term: str) -> list[str]:
    out = perturb_numbers(term)
    words = term.split(" ")
    if words[-1].isalpha():
        out.append(" ".join(words[:-1] + [pluralize(words[-1])]))
    out.append(negate(term))
    return out


def shape_similarity(a: CandidateTerm, b: CandidateTerm) -> float:
    """Lexical/categorical closeness in [0, 1]."""
    score = 0.4 * (a.word_count == b.word_count)
    score += 0.3 * (a.capitalized == b.capitalized)
    longest = max(len(a.surface), len(b.surface))
    score += 0.3 * (1 - abs(len(a.surface) - len(b.surface)) / longest)
    if a.surface[:1].isdigit() != b.surface[:1].isdigit():
        score *= 0.5
    return score


def _overlaps(a: str, b: str) -> bool:
    """True if one term contains the other as whole words."""
    a, b = a.lower(), b.lower()
    return a == b or re.search(rf"\b{re.escape(a)}\b", b) is not None \
        or re.search(rf"\b{re.escape(b)}\b", a) is not None


class DistractorGenerator:
    """Draw distractors from a document's term pool, falling back to mutations.

    *rng* is the only source of randomness; pass a seeded
    ``random.Random`` for reproducible output.
    """

    def __init__(self, pool: Sequence[CandidateTerm], rng: random.Random, similarity: float = 0.7):
        self.pool = list(pool)
        self.rng = rng
        self.similarity = similarity

    def _ordered(self, term: CandidateTerm, candidates: list[CandidateTerm]) -> list[CandidateTerm]:
        candidates = sorted(
            candidates,
            key=lambda c: (
                abs(shape_similarity(term, c) - self.similarity),
                -c.salience,
                c.sentence_index,
                c.offset,
            ),
        )
        unique: list[CandidateTerm] = []
        seen: set[str] = set()
        for c in candidates:
            if c.key not in seen:
                seen.add(c.key)
                unique.append(c)
        return unique

    def from_document(self, term: CandidateTerm, count: int, same_band_only: bool = False) -> list[str]:
        """Up to *count* in-document distractors taken from other sentences."""
        others = [
            c for c in self.pool
            if c.sentence_index != term.sentence_index and not _overlaps(c.surface, term.surface)
        ]
        tiers = [[c for c in others if c.band == term.band]]
        if not same_band_only:
            tiers.append([c for c in others if c.band != term.band])

        chosen: list[str] = []
        for tier in tiers:
            ranked = self._ordered(term, tier)
            # Shuffle only the closest handful so picks vary with the seed
            window = max(count * 2, count + 2)
            head, tail = ranked[:window], ranked[window:]
            self.rng.shuffle(head)
            for c in head + tail:
                if len(chosen) >= count:
                    return chosen
                if any(_overlaps(c.surface, prev) for prev in chosen):
                    continue
                chosen.append(c.surface)
        return chosen

    def distractors_for(self, term: CandidateTerm, count: int) -> list[str]:
        """Exactly *count* distinct distractors, never equal to *term* (case-insensitive)."""
        chosen = self.from_document(term, count)
        taken = {term.key} | {c.lower() for c in chosen}
        for extra in mutations(term.surface) + list(FILLER_OPTIONS):
            if len(chosen) >= count:
                break
            if extra.lower() not in taken:
                taken.add(extra.lower())
                chosen.append(extra)
        return chosen

    def substitute(self, term: CandidateTerm) -> str | None:
        """A single same-band, in-document replacement for *term*, if any."""
        picks = self.from_document(term, 1, same_band_only=True)
        return picks[0] if picks else None

    def build_options(self, term: CandidateTerm, option_count: int) -> tuple[list[str], int]:
        """Shuffle the correct term in among distractors; return options and its index."""
        option_count = min(max(option_count, MIN_OPTIONS), MAX_OPTIONS)
        options = [term.surface] + self.distractors_for(term, option_count - 1)
        order = list(range(len(options)))
        self.rng.shuffle(order)
        return [options[i] for i in order], order.index(0)
