from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Union

from quizsmith.errors import InputValidationError

DIFFICULTIES: tuple[str, ...] = ("easy", "moderate", "challenging")
QUESTION_KINDS: tuple[str, ...] = ("multiple-choice", "true-false", "fill-in-blank")

MIN_TEXT_LENGTH = 50
MAX_TEXT_LENGTH = 15_000
MIN_COUNT = 1
MAX_COUNT = 100
MIN_OPTIONS = 2
MAX_OPTIONS = 6

BLANK = "______"
TRUE_FALSE_CHOICES = ["True", "False"]

# Keys of the nested JSON shape, shared with the AI payload
PAYLOAD_KEYS = {
    "multiple-choice": "multipleChoice",
    "true-false": "trueFalse",
    "fill-in-blank": "fillInTheBlank",
}
ID_PREFIXES = {
    "multiple-choice": "mc",
    "true-false": "tf",
    "fill-in-blank": "fib",
}


@dataclass(frozen=True)
class Sentence:
    index: int  # position among all segments of the document
    text: str
    normalized: str
    token_count: int
    has_candidate: bool = False


@dataclass(frozen=True)
class CandidateTerm:
    surface: str
    sentence_index: int
    offset: int  # character offset of the surface form in the sentence's normalized text
    salience: float
    band: str  # easy | moderate | challenging
    frequency: int = 1
    word_count: int = 1
    capitalized: bool = False

    @property
    def key(self) -> str:
        return self.surface.lower()


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    kind: ClassVar[str] = "multiple-choice"
    prompt: str
    options: list[str]
    correct_index: int

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


@dataclass(frozen=True)
class TrueFalseQuestion:
    kind: ClassVar[str] = "true-false"
    statement: str
    answer: bool


@dataclass(frozen=True)
class FillInBlankQuestion:
    kind: ClassVar[str] = "fill-in-blank"
    sentence: str
    answer: str


Question = Union[MultipleChoiceQuestion, TrueFalseQuestion, FillInBlankQuestion]

# Blank spellings accepted on input; normalized to BLANK
BLANK_MARKERS = re.compile(r"_{3,}|\[blank\]|\(blank\)", re.IGNORECASE)


def _nonempty_str(value, where: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where}: expected non-empty string, got {value!r}")
    return value.strip()


def _require_object(item, where: str) -> dict:
    if not isinstance(item, dict):
        raise ValueError(f"{where}: expected object, got {type(item).__name__}")
    return item


def parse_multiple_choice(item, where: str = "multipleChoice") -> MultipleChoiceQuestion:
    """Build a :class:`MultipleChoiceQuestion` from its JSON form or raise ``ValueError``."""
    item = _require_object(item, where)
    prompt = _nonempty_str(item.get("question"), f"{where}.question")

    options = item.get("options")
    if not isinstance(options, list) or not MIN_OPTIONS <= len(options) <= MAX_OPTIONS:
        n = len(options) if isinstance(options, list) else type(options).__name__
        raise ValueError(f"{where}.options: need {MIN_OPTIONS}-{MAX_OPTIONS} options (got {n})")
    options = [_nonempty_str(o, f"{where}.options[{i}]") for i, o in enumerate(options)]
    lowered = [o.lower() for o in options]
    if len(set(lowered)) != len(lowered):
        dupes = sorted({o for o in lowered if lowered.count(o) > 1})
        raise ValueError(f"{where}.options: duplicate options {dupes}")

    # bools are ints in Python
    ci = item.get("correctAnswer")
    if isinstance(ci, bool) or not isinstance(ci, int):
        raise ValueError(f"{where}.correctAnswer: not an integer ({ci!r})")
    if not 0 <= ci < len(options):
        raise ValueError(f"{where}.correctAnswer: {ci} out of range for {len(options)} options")
    return MultipleChoiceQuestion(prompt=prompt, options=options, correct_index=ci)


def parse_true_false(item, where: str = "trueFalse") -> TrueFalseQuestion:
    item = _require_object(item, where)
    statement = _nonempty_str(item.get("statement"), f"{where}.statement")
    answer = item.get("answer")
    if not isinstance(answer, bool):
        raise ValueError(f"{where}.answer: not a boolean ({answer!r})")
    return TrueFalseQuestion(statement=statement, answer=answer)


def parse_fill_in_blank(item, where: str = "fillInTheBlank") -> FillInBlankQuestion:
    item = _require_object(item, where)
    sentence = _nonempty_str(item.get("sentence"), f"{where}.sentence")
    answer = _nonempty_str(item.get("answer"), f"{where}.answer")
    blanks = len(BLANK_MARKERS.findall(sentence))
    if blanks != 1:
        raise ValueError(f"{where}.sentence: expected exactly one blank, found {blanks}")
    return FillInBlankQuestion(sentence=BLANK_MARKERS.sub(BLANK, sentence), answer=answer)


PARSERS = {
    "multiple-choice": parse_multiple_choice,
    "true-false": parse_true_false,
    "fill-in-blank": parse_fill_in_blank,
}


@dataclass
class QuestionSet:
    multiple_choice: list[MultipleChoiceQuestion] = field(default_factory=list)
    true_false: list[TrueFalseQuestion] = field(default_factory=list)
    fill_in_blank: list[FillInBlankQuestion] = field(default_factory=list)

    def for_kind(self, kind: str) -> list:
        if kind == "multiple-choice":
            return self.multiple_choice
        if kind == "true-false":
            return self.true_false
        if kind == "fill-in-blank":
            return self.fill_in_blank
        raise ValueError(f"Unknown question kind: {kind}")

    def add(self, question: Question) -> str:
        """Append *question* to its kind's sequence and return its identifier."""
        items = self.for_kind(question.kind)
        items.append(question)
        return f"{ID_PREFIXES[question.kind]}-{len(items)}"

    def entries(self) -> list[tuple[str, Question]]:
        """All questions as ``(id, question)`` pairs, kind by kind, in generation order."""
        out: list[tuple[str, Question]] = []
        for kind in QUESTION_KINDS:
            prefix = ID_PREFIXES[kind]
            for i, q in enumerate(self.for_kind(kind), 1):
                out.append((f"{prefix}-{i}", q))
        return out

    def counts(self) -> dict[str, int]:
        return {kind: len(self.for_kind(kind)) for kind in QUESTION_KINDS}

    @property
    def total(self) -> int:
        return len(self.multiple_choice) + len(self.true_false) + len(self.fill_in_blank)

    def __len__(self) -> int:
        return self.total

    def to_dict(self) -> dict:
        return {
            "multipleChoice": [
                {"id": f"mc-{i}", "question": q.prompt, "options": list(q.options), "correctAnswer": q.correct_index}
                for i, q in enumerate(self.multiple_choice, 1)
            ],
            "trueFalse": [
                {"id": f"tf-{i}", "statement": q.statement, "answer": q.answer}
                for i, q in enumerate(self.true_false, 1)
            ],
            "fillInTheBlank": [
                {"id": f"fib-{i}", "sentence": q.sentence, "answer": q.answer}
                for i, q in enumerate(self.fill_in_blank, 1)
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> QuestionSet:
        """Rebuild a set from :meth:`to_dict` output.

        Identifiers are positional, so any ``id`` keys in *data* are ignored.
        Every item is held to the same rules as freshly generated ones.
        Raises ``TypeError`` if *data* is not an object and ``ValueError``
        on any malformed item.
        """
        if not isinstance(data, dict):
            raise TypeError(f"question set must be an object, got {type(data).__name__}")
        qs = cls()
        for kind, key in PAYLOAD_KEYS.items():
            items = data.get(key, [])
            if not isinstance(items, list):
                raise ValueError(f"{key}: expected array, got {type(items).__name__}")
            for i, item in enumerate(items):
                qs.add(PARSERS[kind](item, f"{key}[{i}]"))
        return qs

    def to_records(self) -> list[dict]:
        """Flatten to the per-question records a persistence layer stores."""
        records = []
        for qid, q in self.entries():
            if isinstance(q, MultipleChoiceQuestion):
                text, choices, correct = q.prompt, list(q.options), q.correct_index
            elif isinstance(q, TrueFalseQuestion):
                text, choices, correct = q.statement, list(TRUE_FALSE_CHOICES), 0 if q.answer else 1
            else:
                text, choices, correct = q.sentence, [], q.answer
            records.append({
                "id": qid,
                "questionText": text,
                "questionType": q.kind,
                "answerChoices": choices,
                "correctAnswer": correct,
            })
        return records


@dataclass(frozen=True)
class GenerationRequest:
    text: str
    difficulty: str = "moderate"
    count: int = 10
    kinds: tuple[str, ...] = QUESTION_KINDS

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise InputValidationError("text", "must be a string")
        n = len(self.text.strip())
        if n < MIN_TEXT_LENGTH:
            raise InputValidationError("text", f"must be at least {MIN_TEXT_LENGTH} characters (got {n})")
        if len(self.text) > MAX_TEXT_LENGTH:
            raise InputValidationError("text", f"must be at most {MAX_TEXT_LENGTH} characters (got {len(self.text)})")
        if self.difficulty not in DIFFICULTIES:
            raise InputValidationError(
                "difficulty", f"must be one of {', '.join(DIFFICULTIES)} (got {self.difficulty!r})",
            )
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise InputValidationError("count", f"must be an integer (got {self.count!r})")
        if not MIN_COUNT <= self.count <= MAX_COUNT:
            raise InputValidationError("count", f"must be between {MIN_COUNT} and {MAX_COUNT} (got {self.count})")
        if self.kinds is None or isinstance(self.kinds, str):
            raise InputValidationError("kinds", "must be a collection of question kinds")
        kinds = tuple(dict.fromkeys(self.kinds))
        if not kinds:
            raise InputValidationError("kinds", "at least one question kind is required")
        unknown = [k for k in kinds if k not in QUESTION_KINDS]
        if unknown:
            raise InputValidationError("kinds", f"unknown question kind(s): {', '.join(map(str, unknown))}")
        object.__setattr__(self, "kinds", kinds)

    def allocation(self) -> dict[str, int]:
        """Split ``count`` across the requested kinds, in request order.

        Each kind gets ``count // len(kinds)``; the remainder goes one apiece
        to the leading kinds.
        """
        per_kind, remainder = divmod(self.count, len(self.kinds))
        return {kind: per_kind + (1 if i < remainder else 0) for i, kind in enumerate(self.kinds)}


@dataclass
class GenerationResult:
    questions: QuestionSet
    method: str  # ai | rule-based
    requested: int = 0

    @property
    def generated(self) -> int:
        return self.questions.total

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.generated)

    @property
    def fulfilled(self) -> bool:
        return self.shortfall == 0

    def to_dict(self) -> dict:
        return {
            "questions": self.questions.to_dict(),
            "method": self.method,
            "requested": self.requested,
            "generated": self.generated,
            "fulfilled": self.fulfilled,
        }


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    kind: str
    submitted: object
    expected: object
    correct: bool


@dataclass
class GradeReport:
    results: list[QuestionResult]
    correct_count: int
    total: int
    score: int  # percentage, rounded half up

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "correctCount": self.correct_count,
            "total": self.total,
            "results": [
                {
                    "questionId": r.question_id,
                    "kind": r.kind,
                    "userAnswer": r.submitted,
                    "correctAnswer": r.expected,
                    "isCorrect": r.correct,
                }
                for r in self.results
            ],
        }
