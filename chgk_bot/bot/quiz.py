"""Telegram handlers that deliver questions and reveal their answers."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, List, Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, InputMediaPhoto, Message, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest, TelegramError
from telegram.ext import ContextTypes

from chgk_bot.db.answers import (
    DEFAULT_ANSWER_TTL_SECONDS,
    AnswerCache,
    PendingAnswer,
    build_answer_key,
    build_answer_token,
    question_id_from_token,
)
from chgk_bot.questions import (
    DIFFICULTIES,
    QuestionLoader,
    QuestionLoaderError,
    QuestionSource,
    create_question_loader,
)
from chgk_bot.questions.base import DEFAULT_TIMEOUT_SECONDS
from chgk_bot.questions.gotquestions import question_page_url
from chgk_bot.questions.normalizer import escape_markdown_v2


LOGGER = logging.getLogger(__name__)

LoaderFactory = Callable[[QuestionSource, str], QuestionLoader]

REVEAL_CALLBACK_PREFIX = "reveal:"
REVEAL_BUTTON_TEXT = "Показать ответ"
LOAD_FAILED_MESSAGE = "Не удалось загрузить вопрос, попробуйте ещё раз."
EXPIRED_ALERT = "Ответ устарел."
EXPIRED_MESSAGE = "Этот ответ больше недоступен: время ожидания истекло."
UNKNOWN_DIFFICULTY_MESSAGE = "Неизвестная сложность «{value}». Доступно: {choices}."
GREETING = (
    "Привет! Я присылаю вопросы «Что? Где? Когда?».\n\n"
    "/question — случайный вопрос с gotquestions.online\n"
    "/question easy | medium | hard — вопрос нужной сложности\n"
    "/chgk — случайный вопрос из базы questions.chgk.info\n\n"
    "Ответ спрятан под кнопкой «Показать ответ»."
)

# Telegram limits.
CAPTION_LIMIT = 1024
MEDIA_GROUP_LIMIT = 10


class QuizAgent:
    """Loads questions on command and keeps their answers until the reveal button is pressed."""

    def __init__(
        self,
        answer_cache: AnswerCache,
        *,
        source: QuestionSource = QuestionSource.GOT_QUESTIONS,
        difficulty: str = "random",
        answer_ttl_seconds: int = DEFAULT_ANSWER_TTL_SECONDS,
        key_scheme: str = "question_id",
        loader_factory: Optional[LoaderFactory] = None,
        http_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._answer_cache = answer_cache
        self._source = source
        self._difficulty = difficulty
        self._answer_ttl_seconds = answer_ttl_seconds
        self._key_scheme = key_scheme
        self._loader_factory: LoaderFactory = loader_factory or partial(
            create_question_loader, timeout=http_timeout
        )

    async def handle_start(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        message = update.effective_message
        if message is None:
            return
        await message.reply_text(
            f"*ЧГК\\-бот*\n\n{escape_markdown_v2(GREETING)}",
            parse_mode=ParseMode.MARKDOWN_V2,
        )

    async def handle_question(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        message = update.effective_message
        if message is None or message.chat is None:
            return

        args = list(getattr(context, "args", None) or [])
        difficulty = args[0].strip().lower() if args else self._difficulty
        if difficulty not in DIFFICULTIES:
            await message.reply_text(
                UNKNOWN_DIFFICULTY_MESSAGE.format(value=difficulty, choices=", ".join(DIFFICULTIES))
            )
            return

        await self._send_question(message, self._source, difficulty)

    async def handle_chgk(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        message = update.effective_message
        if message is None or message.chat is None:
            return
        await self._send_question(message, QuestionSource.CHGK_INFO, self._difficulty)

    async def handle_reveal(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        query = update.callback_query
        if query is None or query.data is None:
            return

        if not query.data.startswith(REVEAL_CALLBACK_PREFIX):
            await query.answer()
            return

        message = query.message
        if message is None or message.chat is None:
            await query.answer()
            return

        token = query.data[len(REVEAL_CALLBACK_PREFIX) :]
        chat_id = message.chat.id
        key = build_answer_key(chat_id, token)
        pending = await self._answer_cache.pop(key)

        try:
            await query.edit_message_reply_markup(reply_markup=None)
        except TelegramError:
            LOGGER.debug("Could not remove reveal button for %s.", key, exc_info=True)

        if pending is None:
            LOGGER.info("Pending answer %s not found or expired.", key)
            await query.answer(EXPIRED_ALERT)
            await message.reply_text(self._format_expired_message(token))
            return

        await query.answer()
        LOGGER.info(
            "Revealing answer %s for message %s (%s).",
            key,
            pending.message_id,
            pending.question_url or "no link",
        )
        await self._send_answer(message, pending)

    async def _send_question(self, message: Message, source: QuestionSource, difficulty: str) -> None:
        chat_id = message.chat.id
        loader = self._loader_factory(source, difficulty)

        try:
            question = await loader.load_question()
        except QuestionLoaderError as exc:
            LOGGER.warning(
                "Failed to load question from %s for chat %s: %s: %s",
                source.value,
                chat_id,
                type(exc).__name__,
                exc,
            )
            await message.reply_text(LOAD_FAILED_MESSAGE)
            return
        except Exception:
            LOGGER.exception("Unexpected error while loading question from %s for chat %s.", source.value, chat_id)
            await message.reply_text(LOAD_FAILED_MESSAGE)
            return

        if not question.is_displayable:
            LOGGER.warning("Source %s returned a question without text for chat %s.", source.value, chat_id)
            await message.reply_text(LOAD_FAILED_MESSAGE)
            return

        formatted = loader.format_for_telegram(question, split=True, spoiler=False)

        if question.question_preview:
            await self._send_images(message, question.question_preview)

        has_answer = bool(formatted.answer or question.answer_preview)
        question_id = question.question_id if self._key_scheme == "question_id" else None
        token = build_answer_token(question_id)
        markup = self._build_reveal_markup(token) if has_answer else None

        sent = await self._reply_markdown(message, formatted.question, reply_markup=markup)

        if not has_answer:
            return

        key = build_answer_key(chat_id, token)
        await self._answer_cache.set(
            key,
            PendingAnswer(
                answer=formatted.answer,
                answer_preview=list(question.answer_preview or []),
                message_id=getattr(sent, "message_id", None),
                question_url=question.source_url,
            ),
            self._answer_ttl_seconds,
        )
        LOGGER.info("Stored pending answer %s for %s seconds.", key, self._answer_ttl_seconds)

    async def _send_answer(self, message: Message, pending: PendingAnswer) -> None:
        images = pending.answer_preview
        if images and len(pending.answer) <= CAPTION_LIMIT:
            if await self._send_images(message, images, caption=pending.answer or None):
                return

        if pending.answer:
            await self._reply_markdown(message, pending.answer)
        if images:
            await self._send_images(message, images)

    async def _reply_markdown(
        self,
        message: Message,
        text: str,
        *,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> Message:
        try:
            return await message.reply_text(
                text,
                parse_mode=ParseMode.MARKDOWN_V2,
                reply_markup=reply_markup,
            )
        except BadRequest:
            LOGGER.warning("Telegram rejected MarkdownV2 text, resending as plain text.", exc_info=True)
            return await message.reply_text(text, reply_markup=reply_markup)

    async def _send_images(
        self,
        message: Message,
        urls: Sequence[str],
        *,
        caption: Optional[str] = None,
    ) -> bool:
        """Send images in groups of up to ten; the caption goes on the first image."""
        try:
            for start in range(0, len(urls), MEDIA_GROUP_LIMIT):
                chunk = list(urls[start : start + MEDIA_GROUP_LIMIT])
                chunk_caption = caption if start == 0 else None
                parse_mode = ParseMode.MARKDOWN_V2 if chunk_caption else None
                if len(chunk) == 1:
                    await message.reply_photo(chunk[0], caption=chunk_caption, parse_mode=parse_mode)
                    continue
                media: List[InputMediaPhoto] = [
                    InputMediaPhoto(
                        media=url,
                        caption=chunk_caption if index == 0 else None,
                        parse_mode=parse_mode if index == 0 else None,
                    )
                    for index, url in enumerate(chunk)
                ]
                await message.reply_media_group(media)
        except TelegramError:
            LOGGER.warning("Could not send %d image(s): %s", len(urls), ", ".join(urls), exc_info=True)
            return False
        return True

    @staticmethod
    def _build_reveal_markup(token: str) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton(REVEAL_BUTTON_TEXT, callback_data=f"{REVEAL_CALLBACK_PREFIX}{token}")]]
        )

    @staticmethod
    def _format_expired_message(token: str) -> str:
        question_id = question_id_from_token(token)
        if question_id is None:
            return EXPIRED_MESSAGE
        return f"{EXPIRED_MESSAGE}\nВопрос можно открыть на сайте: {question_page_url(question_id)}"
