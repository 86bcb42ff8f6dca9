"""Bootstrap logic for running the Telegram bot."""

from __future__ import annotations

import asyncio
import logging

import uvicorn
from fastapi import FastAPI

from chgk_bot.app.settings import AppSettings
from chgk_bot.app.webhook import create_webhook_app
from chgk_bot.bot import QuizAgent, build_application
from chgk_bot.db import get_session_factory, run_migrations_if_needed
from chgk_bot.db.answers import AnswerCache, InMemoryAnswerCache, SqlAnswerCache


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )
    # httpx logs every request URL at INFO, which includes the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _ensure_event_loop() -> None:
    """Guarantee that an asyncio event loop exists for the current thread."""
    try:
        asyncio.get_event_loop()
    except RuntimeError:
        asyncio.set_event_loop(asyncio.new_event_loop())


def build_answer_cache(settings: AppSettings) -> AnswerCache:
    """Use the shared database when configured, otherwise keep answers in memory."""
    if not settings.use_database:
        if settings.webhook_enabled:
            LOGGER.warning(
                "DATABASE_URL is not set; pending answers are kept in memory and will not be shared "
                "between webhook instances."
            )
        return InMemoryAnswerCache()

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise
    return SqlAnswerCache(get_session_factory())


def build_agent(settings: AppSettings, answer_cache: AnswerCache) -> QuizAgent:
    return QuizAgent(
        answer_cache,
        source=settings.question_source,
        difficulty=settings.question_difficulty,
        answer_ttl_seconds=settings.answer_ttl_seconds,
        key_scheme=settings.answer_key_scheme,
        http_timeout=settings.http_timeout_seconds,
    )


def build_webhook_app(settings: AppSettings) -> FastAPI:
    """Assemble the webhook ASGI app from settings."""
    agent = build_agent(settings, build_answer_cache(settings))
    application = build_application(settings.telegram_bot_token, agent, with_updater=False)
    return create_webhook_app(application, settings)


def create_app() -> FastAPI:
    """ASGI factory for ``uvicorn --factory chgk_bot.app:create_app``."""
    settings = AppSettings.from_env()
    _configure_logging(settings.log_level)
    return build_webhook_app(settings)


def run_bot(settings: AppSettings) -> None:
    """Start the Telegram bot using the provided settings."""
    _configure_logging(settings.log_level)
    print(f"{settings.app_name} is running in {settings.app_env} mode.")

    if settings.webhook_enabled:
        app = build_webhook_app(settings)
        LOGGER.info(
            "Starting webhook server for %s on %s:%s%s.",
            settings.app_name,
            settings.host,
            settings.port,
            settings.webhook_path,
        )
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
        return

    agent = build_agent(settings, build_answer_cache(settings))
    application = build_application(settings.telegram_bot_token, agent)

    _ensure_event_loop()

    LOGGER.info("Starting Telegram bot for %s in %s mode.", settings.app_name, settings.app_env)
    application.run_polling()
