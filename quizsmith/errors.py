"""Exception taxonomy for quiz generation and grading."""
from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for every error raised by the engine."""


class InputValidationError(QuizEngineError, ValueError):
    """A generation request was rejected before any work began."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class AIServiceError(QuizEngineError):
    """The external generator failed. Always recovered by the coordinator."""


class AITimeoutError(AIServiceError):
    pass


class SchemaValidationError(AIServiceError):
    """The generator answered, but its payload does not fit the question schema."""


class GenerationImpossible(QuizEngineError):
    """The source text yields no usable candidate terms."""


class GradingInputError(QuizEngineError, ValueError):
    pass
