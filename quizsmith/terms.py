"""Pick quiz-worthy anchor terms out of sentences and rank them."""
from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from quizsmith.models import DIFFICULTIES, CandidateTerm, Sentence
from quizsmith.preprocess import TOKEN, normalize_whitespace

STOPWORDS = frozenset("""
a about above after again against all also am an and any are as at be because been
before being below between both but by can could did do does doing down during each
either few for from further had has have having he her here hers herself him himself
his how however i if in into is it its itself just may me might more most must my
myself neither no nor not now of off on once one only or other our ours ourselves out
over own same shall she should so some such than that the their theirs them themselves
then there these they this those through thus to too under until up upon us very was
we were what when where whether which while who whom whose why will with within without
would yet you your yours yourself yourselves among many much often since still well
""".split())

# Lower-case words allowed inside a capitalized span ("Bank of England")
SPAN_CONNECTORS = frozenset({"of", "de", "von", "van", "for"})

MAX_SPAN_WORDS = 4
MIN_WORD_LENGTH = 4
MAX_TERMS_PER_SENTENCE = 3

CAPITALIZATION_BONUS = 1.5
PHRASE_BONUS = 0.3  # per extra word
LONG_WORD_BONUS = 0.2
LONG_WORD_LENGTH = 8


def _is_number(token: str) -> bool:
    return token[0].isdigit()


class KeyTermExtractor:
    """Document-level term statistics plus per-sentence candidate extraction.

    Frequencies are computed over the whole text once, so a term's
    salience does not depend on which sentences survive filtering.
    """

    def __init__(self, text: str, max_terms_per_sentence: int = MAX_TERMS_PER_SENTENCE):
        raw_tokens = TOKEN.findall(normalize_whitespace(text))
        lowered = [t.lower() for t in raw_tokens]
        self.frequencies = Counter(lowered)
        self.total_tokens = max(1, len(lowered))
        self.max_terms_per_sentence = max_terms_per_sentence
        # Words that appear in lower case somewhere are not proper nouns
        self._seen_lowercase = {t for t in raw_tokens if t[0].islower()}
        self._joined = " " + " ".join(lowered) + " "

    # ── statistics ────────────────────────────────────────────────────

    def frequency(self, surface: str) -> int:
        words = [w.lower() for w in TOKEN.findall(surface)]
        if not words:
            return 1
        if len(words) == 1:
            return max(1, self.frequencies[words[0]])
        return max(1, self._joined.count(" " + " ".join(words) + " "))

    def salience(self, surface: str, frequency: int, word_count: int, capitalized: bool) -> float:
        rarity = math.log(1 + self.total_tokens / frequency)
        cap = CAPITALIZATION_BONUS if capitalized else 1.0
        length = 1.0 + PHRASE_BONUS * (word_count - 1)
        if len(surface) >= LONG_WORD_LENGTH:
            length += LONG_WORD_BONUS
        return round(rarity * cap * length, 6)

    @staticmethod
    def band_for(surface: str, frequency: int, word_count: int, capitalized: bool) -> str:
        if word_count >= 2:
            return "challenging"
        if _is_number(surface):
            return "moderate"
        if capitalized:
            if surface.isupper() and len(surface) > 1:
                return "challenging"  # acronym
            return "challenging" if frequency == 1 and len(surface) >= LONG_WORD_LENGTH else "moderate"
        if frequency == 1 and len(surface) >= 9:
            return "challenging"
        if len(surface) <= 6 or frequency >= 3:
            return "easy"
        return "moderate"

    # ── extraction ────────────────────────────────────────────────────

    def _is_proper(self, token: str, position: int) -> bool:
        if not token[0].isupper() or token.lower() in STOPWORDS:
            return False
        if position > 0:
            return True
        # Sentence-initial capitals only count when the word never occurs lower-case
        return token.lower() not in self._seen_lowercase

    def _capitalized_spans(self, text: str, matches: list[re.Match]) -> list[tuple[int, int, int]]:
        """Return ``(start, end, word_count)`` for runs of proper-noun tokens."""
        spans: list[tuple[int, int, int]] = []
        run: list[re.Match] = []

        def flush():
            while run and run[-1].group(0) in SPAN_CONNECTORS:
                run.pop()
            if run:
                spans.append((run[0].start(), run[-1].end(), len(run)))
            run.clear()

        for pos, m in enumerate(matches):
            tok = m.group(0)
            adjacent = bool(run) and text[run[-1].end():m.start()] == " "
            if self._is_proper(tok, pos):
                if run and not adjacent:
                    flush()
                run.append(m)
                if len(run) >= MAX_SPAN_WORDS:
                    flush()
            elif tok in SPAN_CONNECTORS and run and adjacent:
                run.append(m)
            else:
                flush()
        flush()
        return spans

    def terms_in(self, sentence: Sentence) -> list[CandidateTerm]:
        text = sentence.normalized
        matches = list(TOKEN.finditer(text))
        terms: list[CandidateTerm] = []
        seen: set[str] = set()
        covered: set[int] = set()

        def add(surface: str, offset: int, word_count: int, capitalized: bool):
            key = surface.lower()
            if key in seen:
                return
            seen.add(key)
            freq = self.frequency(surface)
            terms.append(CandidateTerm(
                surface=surface,
                sentence_index=sentence.index,
                offset=offset,
                salience=self.salience(surface, freq, word_count, capitalized),
                band=self.band_for(surface, freq, word_count, capitalized),
                frequency=freq,
                word_count=word_count,
                capitalized=capitalized,
            ))

        for start, end, wc in self._capitalized_spans(text, matches):
            if len(terms) >= self.max_terms_per_sentence:
                break
            add(text[start:end], start, wc, True)
            covered.update(range(start, end))

        words = [
            m for m in matches
            if m.start() not in covered
            and m.group(0).lower() not in STOPWORDS
            and (_is_number(m.group(0)) or len(m.group(0)) >= MIN_WORD_LENGTH)
        ]
        # Least frequent first; first occurrence breaks ties
        words.sort(key=lambda m: (self.frequencies[m.group(0).lower()], m.start()))
        for m in words:
            if len(terms) >= self.max_terms_per_sentence:
                break
            add(m.group(0), m.start(), 1, False)

        terms.sort(key=lambda t: t.offset)
        return terms

    def extract(
        self, sentences: Iterable[Sentence], min_salience: float = 0.0,
    ) -> tuple[list[Sentence], list[CandidateTerm]]:
        """Extract terms from every sentence.

        Returns the sentences (with ``has_candidate`` set) and the flat term
        pool in document order. Terms below *min_salience* are dropped.
        """
        out_sentences: list[Sentence] = []
        pool: list[CandidateTerm] = []
        for s in sentences:
            terms = [t for t in self.terms_in(s) if t.salience >= min_salience]
            out_sentences.append(replace(s, has_candidate=bool(terms)))
            pool.extend(terms)
        return out_sentences, pool


def rank(terms: Iterable[CandidateTerm], band_order: tuple[str, ...] = DIFFICULTIES) -> list[CandidateTerm]:
    """Order terms by preferred band, then salience, then first occurrence."""
    order = {band: i for i, band in enumerate(band_order)}
    return sorted(
        terms,
        key=lambda t: (order.get(t.band, len(order)), -t.salience, t.sentence_index, t.offset),
    )


