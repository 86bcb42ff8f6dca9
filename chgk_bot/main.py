from chgk_bot.app import AppSettings, run_bot
from chgk_bot.bot.quiz import QuizAgent

__all__ = ["main", "QuizAgent"]


def main() -> None:
    """Entry point for the application."""
    settings = AppSettings.from_env()
    run_bot(settings)


if __name__ == "__main__":
    main()
