"""Loader for the legacy questions.chgk.info random question page."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from chgk_bot.questions.base import Question, QuestionLoader
from chgk_bot.questions.errors import ParseError
from chgk_bot.questions.normalizer import (
    clean_content,
    extract_images,
    strip_angle_brackets,
)


LOGGER = logging.getLogger(__name__)

CHGK_INFO_ORIGIN = "http://questions.chgk.info"
CHGK_INFO_RANDOM_URL = (
    f"{CHGK_INFO_ORIGIN}/cgi-bin/db.cgi?qnum=1&text=0&type=chgk&type=brain&type=igp"
    "&type=game&type=ehruditka&type=beskrylka&Get=Get+random+questions&rand=yes"
)
CHGK_INFO_ENCODING = "koi8_r"

_LABEL_RE = re.compile(r"<strong>(.*?)</strong>", re.IGNORECASE | re.DOTALL)
_QUESTION_LABEL_RE = re.compile(r"Вопрос\s*\d*\s*:")
_ANSWER_LABEL = "Ответ:"
_DESCRIPTION_LABEL = "Комментари"


def decode_payload(payload: bytes) -> str:
    """Decode the KOI8-R page body."""
    return payload.decode(CHGK_INFO_ENCODING)


def split_sections(html: str) -> List[tuple[str, str]]:
    """Split the page into ``(label, content)`` pairs.

    Each ``<strong>`` label owns the markup up to the next label.
    """
    matches = list(_LABEL_RE.finditer(html))
    sections: List[tuple[str, str]] = []
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(html)
        sections.append((match.group(1), html[match.end() : end]))
    return sections


def parse_question_page(html: str) -> Question:
    """Extract question, answer, commentary and images from a decoded page."""
    fields: Dict[str, Optional[str]] = {"question": None, "answer": None, "description": None}
    preview: List[str] = []

    for label, content in split_sections(html):
        if _QUESTION_LABEL_RE.search(label):
            preview.extend(extract_images(content, CHGK_INFO_ORIGIN))
            fields["question"] = clean_content(content, remove_images=True)
        elif _ANSWER_LABEL in label:
            fields["answer"] = strip_angle_brackets(clean_content(content, stop_at_label=True))
        elif _DESCRIPTION_LABEL in label:
            fields["description"] = strip_angle_brackets(clean_content(content, stop_at_label=True))

    if not fields["question"]:
        raise ParseError("Question section was not found on the page.")

    return Question(
        question=fields["question"],
        answer=fields["answer"] or None,
        description=fields["description"] or None,
        question_preview=preview or None,
    )


class ChgkInfoQuestionLoader(QuestionLoader):
    """Scrapes a random question from questions.chgk.info.

    The endpoint picks the question server-side, so difficulty is ignored.
    """

    source = "questions.chgk.info"

    async def load_question(self) -> Question:
        response = await self._fetch(CHGK_INFO_RANDOM_URL)

        try:
            html = decode_payload(response.content)
        except UnicodeDecodeError as exc:
            raise ParseError(f"Failed to decode question page: {exc}") from exc

        question = parse_question_page(html)

        LOGGER.info(
            "Loaded question from %s (images=%d, has_comment=%s).",
            self.source,
            len(question.question_preview or []),
            question.description is not None,
        )
        return question
