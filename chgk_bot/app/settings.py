"""Configuration helpers for the CHGK Quiz Bot runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from chgk_bot.db import is_database_configured
from chgk_bot.db.answers import DEFAULT_ANSWER_TTL_SECONDS
from chgk_bot.questions import DIFFICULTIES, QuestionSource, UnknownSourceError
from chgk_bot.questions.base import DEFAULT_TIMEOUT_SECONDS
from chgk_bot.questions.factory import parse_source


DEFAULT_WEBHOOK_PATH = "/api/webhook"
ANSWER_KEY_SCHEMES = ("question_id", "timestamp")


def _read_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    telegram_bot_token: str
    question_source: QuestionSource
    question_difficulty: str
    answer_ttl_seconds: int
    answer_key_scheme: str
    http_timeout_seconds: float
    webhook_url: Optional[str]
    webhook_path: str
    host: str
    port: int
    use_database: bool

    @property
    def webhook_enabled(self) -> bool:
        return bool(self.webhook_url)

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "CHGK Quiz Bot")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN")

        if not telegram_bot_token:
            raise RuntimeError(
                "TELEGRAM_BOT_TOKEN environment variable is required to start the Telegram bot."
            )

        try:
            question_source = parse_source(os.getenv("QUESTION_SOURCE", QuestionSource.GOT_QUESTIONS.value))
        except UnknownSourceError as exc:
            raise RuntimeError(f"QUESTION_SOURCE is invalid: {exc}") from exc

        question_difficulty = os.getenv("QUESTION_DIFFICULTY", "random").strip().lower()
        if question_difficulty not in DIFFICULTIES:
            raise RuntimeError(f"QUESTION_DIFFICULTY must be one of: {', '.join(DIFFICULTIES)}.")

        answer_ttl_seconds = _read_int("ANSWER_TTL_SECONDS", DEFAULT_ANSWER_TTL_SECONDS)
        if answer_ttl_seconds < 1:
            raise RuntimeError("ANSWER_TTL_SECONDS must be a positive integer.")

        answer_key_scheme = os.getenv("ANSWER_KEY_SCHEME", "question_id").strip().lower()
        if answer_key_scheme not in ANSWER_KEY_SCHEMES:
            raise RuntimeError(f"ANSWER_KEY_SCHEME must be one of: {', '.join(ANSWER_KEY_SCHEMES)}.")

        try:
            http_timeout_seconds = float(os.getenv("HTTP_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
        except ValueError as exc:
            raise RuntimeError("HTTP_TIMEOUT_SECONDS must be a number.") from exc

        webhook_url = os.getenv("WEBHOOK_URL") or None
        webhook_path = os.getenv("WEBHOOK_PATH", DEFAULT_WEBHOOK_PATH)
        if not webhook_path.startswith("/"):
            webhook_path = f"/{webhook_path}"

        port = _read_int("PORT", 8000)

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            telegram_bot_token=telegram_bot_token,
            question_source=question_source,
            question_difficulty=question_difficulty,
            answer_ttl_seconds=answer_ttl_seconds,
            answer_key_scheme=answer_key_scheme,
            http_timeout_seconds=http_timeout_seconds,
            webhook_url=webhook_url.rstrip("/") if webhook_url else None,
            webhook_path=webhook_path,
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            use_database=is_database_configured(),
        )
