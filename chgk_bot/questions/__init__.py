"""Question sources and text normalization for the quiz bot."""

from .base import FormattedQuestion, Question, QuestionLoader
from .errors import (
    EmptyResultError,
    FetchError,
    ParseError,
    QuestionLoaderError,
    UnknownSourceError,
)
from .factory import DIFFICULTIES, QuestionSource, create_question_loader

__all__ = [
    "DIFFICULTIES",
    "EmptyResultError",
    "FetchError",
    "FormattedQuestion",
    "ParseError",
    "Question",
    "QuestionLoader",
    "QuestionLoaderError",
    "QuestionSource",
    "UnknownSourceError",
    "create_question_loader",
]
