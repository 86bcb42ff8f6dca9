"""Telegram bot components for the CHGK Quiz Bot."""

from .quiz import QuizAgent
from .telegram import build_application

__all__ = ["QuizAgent", "build_application"]
