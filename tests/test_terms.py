"""Tests for key term extraction, salience and banding."""
from __future__ import annotations

from quizsmith.models import CandidateTerm
from quizsmith.preprocess import SentenceStream
from quizsmith.terms import KeyTermExtractor, rank


def _term(surface, band="moderate", salience=1.0, sentence_index=0, offset=0):
    return CandidateTerm(surface=surface, sentence_index=sentence_index, offset=offset,
                         salience=salience, band=band)


class TestBandFor:
    def test_multi_word_is_challenging(self):
        assert KeyTermExtractor.band_for("Gustave Eiffel", 1, 2, True) == "challenging"

    def test_number_is_moderate(self):
        assert KeyTermExtractor.band_for("1889", 1, 1, False) == "moderate"

    def test_acronym_is_challenging(self):
        assert KeyTermExtractor.band_for("NASA", 1, 1, True) == "challenging"

    def test_short_proper_noun_is_moderate(self):
        assert KeyTermExtractor.band_for("Paris", 1, 1, True) == "moderate"

    def test_rare_long_word_is_challenging(self):
        assert KeyTermExtractor.band_for("photosynthesis", 1, 1, False) == "challenging"

    def test_frequent_word_is_easy(self):
        assert KeyTermExtractor.band_for("tower", 3, 1, False) == "easy"

    def test_medium_word_is_moderate(self):
        assert KeyTermExtractor.band_for("located", 1, 1, False) == "moderate"


class TestSalience:
    def test_rarer_terms_score_higher(self, passage):
        ex = KeyTermExtractor(passage)
        assert ex.salience("lattice", 1, 1, False) > ex.salience("tower", 3, 1, False)

    def test_capitalization_bonus(self, passage):
        ex = KeyTermExtractor(passage)
        assert ex.salience("Paris", 1, 1, True) > ex.salience("paris", 1, 1, False)

    def test_frequency_counts_case_insensitively(self, passage):
        ex = KeyTermExtractor(passage)
        assert ex.frequency("tower") == 3
        assert ex.frequency("Tower") == 3

    def test_phrase_frequency(self, passage):
        ex = KeyTermExtractor(passage)
        assert ex.frequency("Eiffel Tower") == 1


class TestTermsIn:
    def test_spans_and_rare_words(self, passage):
        ex = KeyTermExtractor(passage)
        first = next(iter(SentenceStream(passage)))
        terms = ex.terms_in(first)
        assert [t.surface for t in terms] == ["Eiffel Tower", "wrought", "Paris"]
        assert terms[0].word_count == 2
        assert terms[0].capitalized
        assert terms[0].band == "challenging"

    def test_numbers_are_candidates(self, passage):
        ex = KeyTermExtractor(passage)
        second = list(SentenceStream(passage))[1]
        by_surface = {t.surface: t for t in ex.terms_in(second)}
        assert "1889" in by_surface
        assert by_surface["1889"].band == "moderate"

    def test_sentence_initial_common_word_not_proper(self):
        text = "Mercury is a planet. The element mercury is liquid at room temperature."
        ex = KeyTermExtractor(text)
        first = next(iter(SentenceStream(text, min_tokens=1)))
        terms = ex.terms_in(first)
        assert {t.surface for t in terms} == {"Mercury", "planet"}
        mercury = next(t for t in terms if t.surface == "Mercury")
        assert not mercury.capitalized

    def test_offsets_point_at_surface(self, passage):
        ex = KeyTermExtractor(passage)
        for sentence in SentenceStream(passage):
            for t in ex.terms_in(sentence):
                assert sentence.normalized[t.offset:t.offset + len(t.surface)] == t.surface
                assert t.sentence_index == sentence.index

    def test_caps_terms_per_sentence(self, long_passage):
        ex = KeyTermExtractor(long_passage, max_terms_per_sentence=2)
        for sentence in SentenceStream(long_passage):
            assert len(ex.terms_in(sentence)) <= 2


class TestExtract:
    def test_marks_sentences_with_candidates(self, passage):
        sentences, pool = KeyTermExtractor(passage).extract(SentenceStream(passage))
        assert pool
        assert all(s.has_candidate for s in sentences)

    def test_min_salience_filters_pool(self, passage):
        sentences, pool = KeyTermExtractor(passage).extract(SentenceStream(passage), min_salience=1000)
        assert pool == []
        assert not any(s.has_candidate for s in sentences)

    def test_stopword_only_text_has_no_terms(self):
        text = "It is what it is, and it was what it was, and so it is now."
        _, pool = KeyTermExtractor(text).extract(SentenceStream(text))
        assert pool == []


class TestRank:
    def test_band_order_then_salience(self):
        a = _term("alpha", band="easy", salience=9.0)
        b = _term("beta", band="challenging", salience=5.0)
        c = _term("gamma", band="moderate", salience=2.0)
        d = _term("delta", band="moderate", salience=3.0)
        ranked = rank([a, b, c, d], ("moderate", "challenging", "easy"))
        assert [t.surface for t in ranked] == ["delta", "gamma", "beta", "alpha"]

    def test_ties_broken_by_position(self):
        a = _term("alpha", sentence_index=2)
        b = _term("beta", sentence_index=0, offset=5)
        c = _term("gamma", sentence_index=0, offset=1)
        assert [t.surface for t in rank([a, b, c])] == ["gamma", "beta", "alpha"]
