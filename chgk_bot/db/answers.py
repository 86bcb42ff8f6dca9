"""Short-lived storage for answers hidden behind the "show answer" button."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import PendingAnswerRecord


LOGGER = logging.getLogger(__name__)

ANSWER_KEY_PREFIX = "chgk:answer"
DEFAULT_ANSWER_TTL_SECONDS = 3600
_QUESTION_TOKEN_PREFIX = "q"
_TIMESTAMP_TOKEN_PREFIX = "t"


@dataclass(slots=True)
class PendingAnswer:
    """Formatted answer waiting for its reveal button to be pressed."""

    answer: str
    answer_preview: List[str] = field(default_factory=list)
    message_id: Optional[int] = None
    question_url: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> PendingAnswer:
        data = json.loads(raw)
        return cls(
            answer=str(data.get("answer") or ""),
            answer_preview=[str(url) for url in data.get("answer_preview") or []],
            message_id=data.get("message_id"),
            question_url=data.get("question_url"),
        )


def build_answer_token(question_id: Optional[int] = None, *, now: Optional[float] = None) -> str:
    """Return the reveal token: the question id when known, else a millisecond timestamp."""
    if question_id is not None:
        return f"{_QUESTION_TOKEN_PREFIX}{question_id}"
    timestamp = time.time() if now is None else now
    return f"{_TIMESTAMP_TOKEN_PREFIX}{int(timestamp * 1000)}"


def build_answer_key(chat_id: int, token: str) -> str:
    return f"{ANSWER_KEY_PREFIX}:{chat_id}:{token}"


def question_id_from_token(token: str) -> Optional[int]:
    """Extract the question id from a token built with ``build_answer_token``."""
    if not token.startswith(_QUESTION_TOKEN_PREFIX):
        return None
    raw = token[len(_QUESTION_TOKEN_PREFIX) :]
    return int(raw) if raw.isdigit() else None


class AnswerCache(Protocol):
    """Key-value store with per-entry lifetime."""

    async def set(self, key: str, value: PendingAnswer, ttl_seconds: int) -> None:
        ...

    async def get(self, key: str) -> Optional[PendingAnswer]:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def pop(self, key: str) -> Optional[PendingAnswer]:
        """Return the entry and remove it; a second call returns ``None``."""
        ...

    async def purge_expired(self) -> int:
        ...


class InMemoryAnswerCache:
    """Process-local cache for polling mode and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, Tuple[float, PendingAnswer]] = {}

    async def set(self, key: str, value: PendingAnswer, ttl_seconds: int) -> None:
        now = self._clock()
        self._evict_expired(now)
        self._entries[key] = (now + ttl_seconds, value)

    async def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        return self._evict_expired(self._clock())

    def _evict_expired(self, now: float) -> int:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def get(self, key: str) -> Optional[PendingAnswer]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def pop(self, key: str) -> Optional[PendingAnswer]:
        value = await self.get(key)
        self._entries.pop(key, None)
        return value

    def __len__(self) -> int:
        return len(self._entries)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlAnswerCache:
    """Answer cache stored in the ``pending_answers`` table, shared between instances."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def set(self, key: str, value: PendingAnswer, ttl_seconds: int) -> None:
        now = self._clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        async with self._session_factory() as session:
            async with session.begin():
                # Unrevealed answers are never read again; clear expired rows on every write.
                await session.execute(
                    delete(PendingAnswerRecord).where(PendingAnswerRecord.expires_at <= now)
                )
                await session.merge(
                    PendingAnswerRecord(key=key, payload=value.to_json(), expires_at=expires_at)
                )

    async def get(self, key: str) -> Optional[PendingAnswer]:
        async with self._session_factory() as session:
            record = await session.get(PendingAnswerRecord, key)
            if record is None:
                return None
            if _as_utc(record.expires_at) <= self._clock():
                await session.delete(record)
                await session.commit()
                return None
            return PendingAnswer.from_json(record.payload)

    async def delete(self, key: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(PendingAnswerRecord).where(PendingAnswerRecord.key == key))

    async def pop(self, key: str) -> Optional[PendingAnswer]:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(PendingAnswerRecord)
                    .where(PendingAnswerRecord.key == key)
                    .returning(PendingAnswerRecord.payload, PendingAnswerRecord.expires_at)
                )
                row = result.first()

        if row is None:
            return None
        payload, expires_at = row
        if _as_utc(expires_at) <= self._clock():
            LOGGER.debug("Pending answer %s expired before it was revealed.", key)
            return None
        return PendingAnswer.from_json(payload)

    async def purge_expired(self) -> int:
        """Delete every expired entry and return how many were removed."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    delete(PendingAnswerRecord).where(PendingAnswerRecord.expires_at <= self._clock())
                )
        removed = result.rowcount or 0
        if removed:
            LOGGER.info("Purged %d expired pending answers.", removed)
        return removed
