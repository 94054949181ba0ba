"""Score a learner's answers against a generated question set."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from quizsmith.errors import GradingInputError
from quizsmith.models import (
    FillInBlankQuestion,
    GradeReport,
    MultipleChoiceQuestion,
    Question,
    QuestionResult,
    QuestionSet,
    TrueFalseQuestion,
)

_log = logging.getLogger("quizsmith.grade")

_MISSING = object()


def _is_index(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def normalize_text_answer(value) -> str:
    return str(value).strip().lower()


def is_correct(question: Question, submitted) -> bool:
    """Compare one submitted value with the stored answer.

    Multiple choice: exact equality with the stored index. True/false: the
    stored boolean, or its choice index (0 = True, 1 = False). Fill in the
    blank: trimmed, case-insensitive string equality.
    """
    if submitted is _MISSING or submitted is None:
        return False
    if isinstance(question, MultipleChoiceQuestion):
        return _is_index(submitted) and submitted == question.correct_index
    if isinstance(question, TrueFalseQuestion):
        if isinstance(submitted, bool):
            return submitted == question.answer
        if _is_index(submitted):
            return submitted == (0 if question.answer else 1)
        return False
    if isinstance(question, FillInBlankQuestion):
        if not isinstance(submitted, str):
            return False
        return normalize_text_answer(submitted) == normalize_text_answer(question.answer)
    raise TypeError(f"Unknown question type: {type(question).__name__}")


def _expected(question: Question):
    if isinstance(question, MultipleChoiceQuestion):
        return question.correct_index
    return question.answer


def percentage(correct: int, total: int) -> int:
    """``round(100 * correct / total)`` with halves rounded up, in integer arithmetic."""
    return (200 * correct + total) // (2 * total)


def grade(questions: QuestionSet, answers: Mapping[str, object]) -> GradeReport:
    """Grade *answers* (keyed by question id) against *questions*.

    Unanswered questions count as incorrect. Raises
    :class:`GradingInputError` if *questions* is empty.
    """
    entries = questions.entries()
    if not entries:
        raise GradingInputError("This quiz has no questions")
    if not isinstance(answers, Mapping):
        raise GradingInputError(f"answers must be a mapping, got {type(answers).__name__}")

    known = {qid for qid, _ in entries}
    stray = [k for k in answers if k not in known]
    if stray:
        _log.info("Ignoring answers for unknown question ids: %s", ", ".join(map(str, stray)))

    results = []
    for qid, q in entries:
        submitted = answers.get(qid, _MISSING)
        results.append(QuestionResult(
            question_id=qid,
            kind=q.kind,
            submitted=None if submitted is _MISSING else submitted,
            expected=_expected(q),
            correct=is_correct(q, submitted),
        ))

    correct_count = sum(r.correct for r in results)
    total = len(results)
    report = GradeReport(results, correct_count, total, percentage(correct_count, total))
    _log.info("Graded %d/%d (%d%%)", correct_count, total, report.score)
    return report
