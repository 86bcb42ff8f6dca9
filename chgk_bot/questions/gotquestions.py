"""Loader for the gotquestions.online search API."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from chgk_bot.questions.base import DEFAULT_TIMEOUT_SECONDS, Question, QuestionLoader
from chgk_bot.questions.errors import EmptyResultError, ParseError
from chgk_bot.questions.normalizer import resolve_url


LOGGER = logging.getLogger(__name__)

GOT_QUESTIONS_ORIGIN = "https://gotquestions.online"
GOT_QUESTIONS_SEARCH_URL = f"{GOT_QUESTIONS_ORIGIN}/api/search/"

# Share of teams that took the question, in percent.
TAKEN_PERCENT_RANGE = (50, 100)


@dataclass(frozen=True, slots=True)
class DifficultyRange:
    """TrueDL band and number of result pages available for a tier."""

    min: float
    max: float
    pages: int


# TrueDL bands, see https://pecheny.me/blog/truedl/
DIFFICULTY_RANGES: Dict[str, DifficultyRange] = {
    "random": DifficultyRange(min=0.1, max=4.5, pages=500),
    "easy": DifficultyRange(min=0.1, max=3.5, pages=500),
    "medium": DifficultyRange(min=3.5, max=6.5, pages=500),
    "hard": DifficultyRange(min=6.5, max=10, pages=200),
}
FALLBACK_DIFFICULTY = "medium"


def resolve_difficulty_range(difficulty: str) -> DifficultyRange:
    """Return the band for a tier; unknown tiers use the medium band."""
    return DIFFICULTY_RANGES.get(difficulty, DIFFICULTY_RANGES[FALLBACK_DIFFICULTY])


def question_page_url(question_id: Any) -> str:
    return f"{GOT_QUESTIONS_ORIGIN}/question/{question_id}"


def _format_number(value: float) -> str:
    return f"{value:g}"


def _clean_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def _coerce_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _mean_percent(values: Sequence[Any]) -> Optional[float]:
    numbers = [float(value) for value in values if isinstance(value, (int, float))]
    if not numbers:
        return None
    return sum(numbers) / len(numbers)


class GotQuestionsQuestionLoader(QuestionLoader):
    """Picks a random question of the requested difficulty from gotquestions.online."""

    source = "gotquestions.online"

    def __init__(
        self,
        difficulty: str = "random",
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(difficulty, client=client, timeout=timeout)
        self.range = resolve_difficulty_range(difficulty)
        self._rng = rng or random.Random()

    @property
    def pages(self) -> int:
        return self.range.pages

    def build_search_params(self, page: int) -> Dict[str, str]:
        """Query parameters for one page of the search endpoint."""
        return {
            "type": "questions",
            "limit": "1",
            "fromD": str(TAKEN_PERCENT_RANGE[0]),
            "toD": str(TAKEN_PERCENT_RANGE[1]),
            "fromTrueDL": _format_number(self.range.min),
            "toTrueDL": _format_number(self.range.max),
            "page": str(page),
        }

    async def load_question(self) -> Question:
        page = self._rng.randint(1, self.pages)
        response = await self._fetch(GOT_QUESTIONS_SEARCH_URL, params=self.build_search_params(page))

        try:
            data = response.json()
        except ValueError as exc:
            raise ParseError(f"Failed to load question: malformed JSON ({exc})") from exc

        items = data.get("questions") if isinstance(data, Mapping) else None
        if not items:
            raise EmptyResultError(f"No questions found on page {page} for difficulty {self.difficulty}.")

        item = self._rng.choice(items)
        if not isinstance(item, Mapping):
            raise ParseError("Failed to load question: unexpected item shape.")

        LOGGER.info("[%s] %s: %s", self.difficulty, item.get("id"), question_page_url(item.get("id")))
        return self.parse_question_data(item)

    def parse_question_data(self, item: Mapping[str, Any]) -> Question:
        """Map a search result item onto the common question record."""
        question_text = _clean_text(item.get("text"))
        handout_text = _clean_text(item.get("razdatkaText"))
        if handout_text:
            question_text = f"{question_text}\n\n📎 {handout_text}" if question_text else handout_text

        question_preview = self._images(item.get("razdatkaPic"))
        answer_preview = self._images(item.get("answerPic"), item.get("commentPic"))

        description_parts: List[str] = []
        accepted = _clean_text(item.get("zachet"))
        if accepted:
            description_parts.append(f"Зачёт: {accepted}")
        comment = _clean_text(item.get("comment"))
        if comment:
            description_parts.append(comment)

        question_id = _coerce_id(item.get("id"))
        complexity = item.get("complexity")
        if isinstance(complexity, list) and complexity:
            mean = _mean_percent(complexity)
            if mean is not None:
                link = f"[↗️]({question_page_url(question_id)}) " if question_id is not None else ""
                description_parts.append(
                    f"{link}*{mean:.1f}%* верных ответов, сложность: *{self.difficulty}*"
                )

        return Question(
            question=question_text or None,
            answer=_clean_text(item.get("answer")) or None,
            description="\n\n".join(description_parts) or None,
            question_preview=question_preview or None,
            answer_preview=answer_preview or None,
            question_id=question_id,
            source_url=question_page_url(question_id) if question_id is not None else None,
        )

    @staticmethod
    def _images(*sources: Any) -> List[str]:
        images: List[str] = []
        for src in sources:
            if isinstance(src, str) and src.strip():
                images.append(resolve_url(src, GOT_QUESTIONS_ORIGIN))
        return images
