"""Common question record and loader interface shared by every source."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

from chgk_bot.questions.errors import FetchError
from chgk_bot.questions.normalizer import escape_markdown_v2


DEFAULT_TIMEOUT_SECONDS = 15.0

QUESTION_HEADER = "❓ *Вопрос:*"
ANSWER_HEADER = "✅ *Ответ:*"
DESCRIPTION_HEADER = "💬 *Комментарий:*"


@dataclass(slots=True)
class Question:
    """Normalized question produced by a loader.

    Optional fields are ``None`` when absent; preview lists are never empty.
    """

    question: Optional[str] = None
    answer: Optional[str] = None
    description: Optional[str] = None
    question_preview: Optional[List[str]] = None
    answer_preview: Optional[List[str]] = None
    question_id: Optional[int] = None
    source_url: Optional[str] = None

    @property
    def is_displayable(self) -> bool:
        return self.question is not None

    def to_dict(self) -> Dict[str, Any]:
        """Return the record with absent fields omitted entirely."""
        record: Dict[str, Any] = {}
        for name in (
            "question",
            "answer",
            "description",
            "question_preview",
            "answer_preview",
            "question_id",
            "source_url",
        ):
            value = getattr(self, name)
            if value is None or value == "" or value == []:
                continue
            record[name] = list(value) if isinstance(value, list) else value
        return record


@dataclass(slots=True)
class FormattedQuestion:
    """MarkdownV2 text ready to be sent to Telegram."""

    question: str
    answer: str


class QuestionLoader(ABC):
    """Loads one question from an external source."""

    source: str = ""

    def __init__(
        self,
        difficulty: str = "random",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.difficulty = difficulty
        self._client = client
        self._timeout = timeout

    @abstractmethod
    async def load_question(self) -> Question:
        """Fetch and normalize a single question."""

    async def _fetch(self, url: str, params: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        """Issue a GET request and fail with ``FetchError`` on non-2xx or transport errors."""
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(f"Request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise FetchError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def format_for_telegram(
        self,
        question: Question,
        *,
        split: bool = False,
        spoiler: bool = True,
    ) -> FormattedQuestion:
        """Render a question as MarkdownV2.

        With ``split`` the answer and commentary are returned separately so the
        caller can reveal them later; otherwise they are appended to the question.
        """
        return format_question(question, split=split, spoiler=spoiler)


def format_question(question: Question, *, split: bool = False, spoiler: bool = True) -> FormattedQuestion:
    question_text = ""
    if question.question:
        question_text = f"{QUESTION_HEADER}\n{escape_markdown_v2(question.question)}"

    marker = "||" if spoiler else ""
    answer_parts: List[str] = []
    if question.answer:
        answer_parts.append(f"{ANSWER_HEADER}\n{marker}{escape_markdown_v2(question.answer)}{marker}")
    if question.description:
        answer_parts.append(
            f"{DESCRIPTION_HEADER}\n{marker}{escape_markdown_v2(question.description)}{marker}"
        )
    answer_text = "\n\n".join(answer_parts)

    if split:
        return FormattedQuestion(question=question_text.strip(), answer=answer_text.strip())

    if question_text and answer_text:
        question_text = f"{question_text}\n\n{answer_text}"
    elif answer_text:
        question_text = answer_text
    return FormattedQuestion(question=question_text.strip(), answer="")
