import logging
import os
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import DateTime, Index, String, Text, func
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


LOGGER = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


class PendingAnswerRecord(Base):
    """Answer waiting behind a "show answer" button until it is revealed or expires."""

    __tablename__ = "pending_answers"
    __table_args__ = (Index("ix_pending_answers_expires_at", "expires_at"),)

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


def _expand_database_url(raw_url: str) -> str:
    """Expand environment variables inside the configured database URL."""
    return os.path.expandvars(raw_url)


def is_database_configured() -> bool:
    return bool(os.getenv("DATABASE_URL"))


def get_database_url() -> str:
    """Return the configured database URL or raise if missing."""
    raw_url = os.getenv("DATABASE_URL")
    if not raw_url:
        raise RuntimeError("DATABASE_URL environment variable is required to connect to the database.")
    return _expand_database_url(raw_url)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create (and cache) the async engine for the application's database."""
    echo = os.getenv("SQLALCHEMY_ECHO", "false").lower() in {"1", "true", "yes"}
    return create_async_engine(get_database_url(), echo=echo)


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return a cached async session factory bound to the engine."""
    return async_sessionmaker(get_engine(), expire_on_commit=False)


def should_run_migrations() -> bool:
    """Determine whether migrations should be executed during startup."""
    flag = os.getenv("RUN_MIGRATIONS_ON_STARTUP", "true").lower()
    return flag in {"1", "true", "yes", "on"}


def _build_alembic_config() -> Config:
    project_root = Path(__file__).resolve().parents[2]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", get_database_url())
    return alembic_cfg


def run_migrations(target: str = "head") -> None:
    """Run Alembic migrations up to the specified target revision."""
    command.upgrade(_build_alembic_config(), target)


def run_migrations_if_needed(target: str = "head") -> None:
    """Run migrations when the startup flag is enabled."""
    if not should_run_migrations():
        LOGGER.info("Skipping migrations because RUN_MIGRATIONS_ON_STARTUP is disabled.")
        return

    LOGGER.info("Applying database migrations up to %s.", target)
    run_migrations(target)
    LOGGER.info("Database schema is up to date.")
