"""Selects the question loader for a configured source."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

import httpx

from chgk_bot.questions.base import DEFAULT_TIMEOUT_SECONDS, QuestionLoader
from chgk_bot.questions.chgk_info import ChgkInfoQuestionLoader
from chgk_bot.questions.errors import UnknownSourceError
from chgk_bot.questions.gotquestions import GotQuestionsQuestionLoader


class QuestionSource(str, Enum):
    """Supported question sources, identified by their host names."""

    CHGK_INFO = "questions.chgk.info"
    GOT_QUESTIONS = "gotquestions.online"


DEFAULT_SOURCE = QuestionSource.GOT_QUESTIONS
DIFFICULTIES = ("random", "easy", "medium", "hard")


def parse_source(source: Union[str, QuestionSource]) -> QuestionSource:
    try:
        return QuestionSource(source)
    except ValueError as exc:
        available = ", ".join(item.value for item in QuestionSource)
        raise UnknownSourceError(f"Unknown target: {source}. Available targets: {available}") from exc


def create_question_loader(
    source: Union[str, QuestionSource] = DEFAULT_SOURCE,
    difficulty: str = "random",
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> QuestionLoader:
    """Return a loader for ``source``; ``difficulty`` only affects gotquestions.online."""
    resolved = parse_source(source)
    if resolved is QuestionSource.CHGK_INFO:
        return ChgkInfoQuestionLoader(difficulty, client=client, timeout=timeout)
    return GotQuestionsQuestionLoader(difficulty, client=client, timeout=timeout)
