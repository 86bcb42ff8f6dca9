"""CHGK Quiz Bot: trivia questions for Telegram."""
