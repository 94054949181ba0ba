"""Normalize raw text and split it into candidate sentences."""
from __future__ import annotations

import re
from collections.abc import Iterator

from quizsmith.models import Sentence

# Lower-cased, without the trailing period
ABBREVIATIONS = frozenset({
    "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "mt", "ft", "vs", "etc",
    "e.g", "i.e", "cf", "al", "inc", "ltd", "co", "corp", "dept", "univ",
    "no", "nos", "vol", "fig", "figs", "eq", "approx", "est", "ca", "gen", "gov",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
    "u.s", "u.k", "a.m", "p.m", "ph.d", "b.c", "a.d",
})

LEADING_CONNECTIVES = re.compile(
    r"^(?:However|Moreover|Furthermore|Additionally|Therefore|Thus|Hence),?\s+",
    re.IGNORECASE,
)

# Terminal punctuation, optional closing quotes/brackets, whitespace, then
# something that can open a sentence. Decimals ("3.14") never match since
# the period is not followed by whitespace.
_BOUNDARY = re.compile(r"([.!?]+)([\"')\]”’]*)\s+(?=[A-Z0-9\"'(\[“‘])")
_LAST_WORD = re.compile(r"([A-Za-z][A-Za-z.]*)$")
TOKEN = re.compile(r"[A-Za-z][A-Za-z'\-]*|\d+(?:[.,]\d+)*")


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def tokenize(text: str) -> list[str]:
    return TOKEN.findall(text)


def _is_protected(segment: str) -> bool:
    """True if the period ending *segment* belongs to an abbreviation or initial."""
    m = _LAST_WORD.search(segment)
    if m is None:
        return False
    word = m.group(1).rstrip(".")
    if word.lower() in ABBREVIATIONS:
        return True
    # Single-letter initials: "J. R. R. Tolkien"
    return len(word) == 1 and word.isupper()


def split_segments(text: str) -> list[str]:
    """Split whitespace-normalized *text* on sentence-ending punctuation."""
    text = normalize_whitespace(text)
    segments: list[str] = []
    start = 0
    for m in _BOUNDARY.finditer(text):
        end = m.end(2)
        if m.group(1) == "." and _is_protected(text[start:m.start(1)]):
            continue
        segment = text[start:end].strip()
        if segment:
            segments.append(segment)
        start = m.end()
    tail = text[start:].strip()
    if tail:
        segments.append(tail)
    return segments


def simplify(sentence: str) -> str:
    return LEADING_CONNECTIVES.sub("", sentence).strip()


class SentenceStream:
    """Restartable, lazy sequence of usable sentences in document order.

    Each iteration re-scans the source; sentences outside the
    ``[min_tokens, max_tokens]`` window are skipped but still consume an
    index, so indexes are stable across difficulty levels.
    """

    def __init__(self, text: str, min_tokens: int = 4, max_tokens: int = 40):
        self.text = text
        self.min_tokens = min_tokens
        self.max_tokens = max_tokens

    def __iter__(self) -> Iterator[Sentence]:
        for index, raw in enumerate(split_segments(self.text)):
            normalized = simplify(raw)
            n = len(tokenize(normalized))
            if n < self.min_tokens or n > self.max_tokens:
                continue
            # Re-capitalize after stripping a connective ("However, the ..." -> "The ...")
            if normalized and normalized[0].islower():
                normalized = normalized[0].upper() + normalized[1:]
            yield Sentence(index=index, text=raw, normalized=normalized, token_count=n)
