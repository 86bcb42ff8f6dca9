"""Application bootstrap helpers for the CHGK Quiz Bot project."""

from .runtime import create_app, run_bot
from .settings import AppSettings

__all__ = ["create_app", "run_bot", "AppSettings"]
