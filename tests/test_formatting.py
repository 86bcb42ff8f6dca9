"""Tests for rendering questions as Telegram MarkdownV2."""

from chgk_bot.questions import Question
from chgk_bot.questions.base import format_question
from chgk_bot.questions.factory import create_question_loader


QUESTION = Question(
    question="Сколько будет 2+2?",
    answer="Четыре (4).",
    description="[↗️](https://gotquestions.online/question/7) *50.0%* верных ответов, сложность: *easy*",
)


def test_split_format_separates_answer_and_escapes_text() -> None:
    formatted = format_question(QUESTION, split=True, spoiler=False)

    assert formatted.question == "❓ *Вопрос:*\nСколько будет 2\\+2?"
    assert formatted.answer == (
        "✅ *Ответ:*\nЧетыре \\(4\\)\\.\n\n"
        "💬 *Комментарий:*\n"
        "[↗️](https://gotquestions.online/question/7) *50\\.0%* верных ответов, сложность: *easy*"
    )


def test_combined_format_wraps_answer_in_spoilers() -> None:
    formatted = format_question(QUESTION)

    assert formatted.answer == ""
    assert formatted.question.startswith("❓ *Вопрос:*\nСколько будет 2\\+2?\n\n✅ *Ответ:*\n||")
    assert "||Четыре \\(4\\)\\.||" in formatted.question
    assert formatted.question.endswith("*easy*||")


def test_answer_only_question_uses_answer_block() -> None:
    formatted = format_question(Question(answer="Да"), spoiler=False)

    assert formatted.question == "✅ *Ответ:*\nДа"


def test_loader_format_for_telegram_delegates_to_shared_formatter() -> None:
    loader = create_question_loader("questions.chgk.info")

    assert loader.format_for_telegram(QUESTION, split=True) == format_question(QUESTION, split=True)


def test_to_dict_omits_absent_fields() -> None:
    assert Question(question="Вопрос", question_preview=[]).to_dict() == {"question": "Вопрос"}
    assert Question(question="Вопрос").is_displayable
    assert not Question(answer="Ответ").is_displayable
