"""Turn a (sentence, anchor term) pair into a typed question.

Every builder returns ``None`` instead of raising when it cannot produce a
structurally valid item; the coordinator then moves on to the next
candidate.
"""
from __future__ import annotations

import random
import re

from quizsmith.difficulty import DifficultyProfile
from quizsmith.distractors import DistractorGenerator
from quizsmith.models import (
    BLANK,
    MAX_OPTIONS,
    MIN_OPTIONS,
    CandidateTerm,
    FillInBlankQuestion,
    MultipleChoiceQuestion,
    Sentence,
    TrueFalseQuestion,
)
from quizsmith.preprocess import tokenize

# Minimum words left around a blank for the item to be answerable
MIN_CONTEXT_TOKENS = 3

MC_STEMS = {
    "easy": (
        'Which term best completes this sentence from the passage? "{blanked}"',
        'Fill in the missing term: "{blanked}"',
    ),
    "moderate": (
        'Based on the passage, which term belongs in the blank? "{blanked}"',
        'According to the text, which term correctly completes this statement? "{blanked}"',
    ),
    "challenging": (
        'What is described in the passage as follows: "{blanked}"?',
        'Which term does the passage characterize in this statement: "{blanked}"?',
    ),
}

# (pattern, replacement) polarity flips for false statements
POLARITY_FLIPS = (
    (r"\bis\b(?! not)", "is not"),
    (r"\bare\b(?! not)", "are not"),
    (r"\bwas\b(?! not)", "was not"),
    (r"\bwere\b(?! not)", "were not"),
    (r"\bcan\b", "cannot"),
    (r"\bwill\b(?! not)", "will not"),
    (r"\balways\b", "never"),
    (r"\bnever\b", "always"),
    (r"\bincreases\b", "decreases"),
    (r"\bdecreases\b", "increases"),
    (r"\bincrease\b", "decrease"),
    (r"\bdecrease\b", "increase"),
    (r"\bimproves?\b", "worsens"),
    (r"\benhances?\b", "reduces"),
    (r"\bpositive\b", "negative"),
    (r"\bnegative\b", "positive"),
    (r"\bhigh\b", "low"),
    (r"\blow\b", "high"),
    (r"\bmore\b", "less"),
    (r"\bless\b", "more"),
    (r"\bbefore\b", "after"),
    (r"\bafter\b", "before"),
)


def find_occurrences(text: str, surface: str) -> list[tuple[int, int]]:
    """Case-insensitive whole-word spans of *surface* in *text*."""
    pattern = re.compile(rf"(?<!\w){re.escape(surface)}(?!\w)", re.IGNORECASE)
    return [m.span() for m in pattern.finditer(text)]


def _replace_spans(text: str, spans: list[tuple[int, int]], replacement: str) -> str:
    out = ""
    last = 0
    for start, end in spans:
        out += text[last:start]
        piece = replacement
        if start == 0 and piece[:1].islower():
            piece = piece[0].upper() + piece[1:]
        if piece != BLANK:
            out = _agree_article(out, piece)
        out += piece
        last = end
    return out + text[last:]


def _agree_article(before: str, word: str) -> str:
    """Make a trailing "a "/"an " in *before* agree with *word*."""
    m = re.search(r"\b([Aa]n?) $", before)
    if m is None or not word[:1].isalpha():
        return before
    want = "an" if word[0].lower() in "aeiou" else "a"
    if m.group(1)[0].isupper():
        want = want.capitalize()
    return before[:m.start(1)] + want + " "


def _fix_article_before_blank(stem: str, choices: list[str]) -> str:
    """Replace 'a ___' or 'an ___' with 'a(n) ___' when choices have mixed initial letters."""
    has_vowel = any(c[0].lower() in "aeiou" for c in choices if c)
    has_consonant = any(c[0].lower() not in "aeiou" for c in choices if c)
    if has_vowel and has_consonant:
        stem = re.sub(rf"\b[Aa]n {BLANK}", lambda m: m.group(0)[0] + f"(n) {BLANK}", stem)
        stem = re.sub(rf"\b([Aa]) {BLANK}", lambda m: m.group(1) + f"(n) {BLANK}", stem)
    return stem


def _count_context(text: str) -> int:
    return len(tokenize(text.replace(BLANK, " ")))


def build_multiple_choice(
    sentence: Sentence,
    term: CandidateTerm,
    distractors: DistractorGenerator,
    profile: DifficultyProfile,
    rng: random.Random,
) -> MultipleChoiceQuestion | None:
    spans = find_occurrences(sentence.normalized, term.surface)
    if not spans:
        return None
    blanked = _replace_spans(sentence.normalized, spans, BLANK)
    if _count_context(blanked) < MIN_CONTEXT_TOKENS:
        return None

    options, index = distractors.build_options(term, profile.option_count)
    lowered = {o.strip().lower() for o in options}
    if not MIN_OPTIONS <= len(options) <= MAX_OPTIONS or len(lowered) != len(options):
        return None
    blanked = _fix_article_before_blank(blanked, options)

    template = rng.choice(MC_STEMS[profile.level])
    return MultipleChoiceQuestion(
        prompt=template.format(blanked=blanked),
        options=options,
        correct_index=index,
    )


def flip_polarity(statement: str, rng: random.Random) -> str | None:
    flips = list(POLARITY_FLIPS)
    rng.shuffle(flips)
    for pattern, replacement in flips:
        m = re.search(pattern, statement, flags=re.IGNORECASE)
        if m is None:
            continue
        piece = replacement
        if m.group(0)[0].isupper():
            piece = piece[0].upper() + piece[1:]
        return statement[:m.start()] + piece + statement[m.end():]
    return None


def build_true_false(
    sentence: Sentence,
    term: CandidateTerm,
    distractors: DistractorGenerator,
    profile: DifficultyProfile,
    rng: random.Random,
) -> TrueFalseQuestion | None:
    statement = sentence.normalized
    if rng.random() >= profile.mutation_probability:
        return TrueFalseQuestion(statement=statement, answer=True)

    mutated = None
    spans = find_occurrences(statement, term.surface)
    if spans:
        substitute = distractors.substitute(term)
        if substitute is not None:
            mutated = _replace_spans(statement, spans, substitute)
    if mutated is None:
        mutated = flip_polarity(statement, rng)
    if mutated is None or mutated.lower() == statement.lower():
        return None
    return TrueFalseQuestion(statement=mutated, answer=False)


def build_fill_in_blank(
    sentence: Sentence,
    term: CandidateTerm,
    distractors: DistractorGenerator | None = None,
    profile: DifficultyProfile | None = None,
    rng: random.Random | None = None,
) -> FillInBlankQuestion | None:
    text = sentence.normalized
    spans = find_occurrences(text, term.surface)
    # A second occurrence would give the answer away
    if len(spans) != 1:
        return None
    start, end = spans[0]
    answer = text[start:end]
    blanked = text[:start] + BLANK + text[end:]
    if not answer.strip() or _count_context(blanked) < MIN_CONTEXT_TOKENS:
        return None
    return FillInBlankQuestion(sentence=blanked, answer=answer)


BUILDERS = {
    "multiple-choice": build_multiple_choice,
    "true-false": build_true_false,
    "fill-in-blank": build_fill_in_blank,
}
