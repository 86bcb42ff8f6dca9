"""Telegram application wiring for the CHGK Quiz Bot."""

from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
)

from .quiz import REVEAL_CALLBACK_PREFIX, QuizAgent


def build_application(bot_token: str, agent: QuizAgent, *, with_updater: bool = True) -> Application:
    """Configure the Telegram application instance.

    Webhook deployments feed updates themselves and pass ``with_updater=False``.
    """
    builder = ApplicationBuilder().token(bot_token)
    if not with_updater:
        builder = builder.updater(None)
    application = builder.build()
    application.add_handler(CommandHandler(["start", "help"], agent.handle_start))
    application.add_handler(CommandHandler(["question", "q"], agent.handle_question))
    application.add_handler(CommandHandler("chgk", agent.handle_chgk))
    application.add_handler(
        CallbackQueryHandler(agent.handle_reveal, pattern=f"^{REVEAL_CALLBACK_PREFIX}")
    )
    return application
