from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from chgk_bot.db import PendingAnswerRecord
from chgk_bot.db.answers import (
    InMemoryAnswerCache,
    PendingAnswer,
    SqlAnswerCache,
    build_answer_key,
    build_answer_token,
    question_id_from_token,
)


class _Clock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class _UtcClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def _pending(answer: str = "✅ *Ответ:*\nМалевич") -> PendingAnswer:
    return PendingAnswer(
        answer=answer,
        answer_preview=["https://gotquestions.online/pics/a.jpg"],
        message_id=77,
        question_url="https://gotquestions.online/question/5",
    )


def test_token_prefers_question_id() -> None:
    assert build_answer_token(321654) == "q321654"
    assert build_answer_token(None, now=1_700_000_000.5) == "t1700000000500"


def test_key_embeds_chat_and_token() -> None:
    assert build_answer_key(-100123, "q5") == "chgk:answer:-100123:q5"


def test_question_id_is_recovered_only_from_question_tokens() -> None:
    assert question_id_from_token("q321654") == 321654
    assert question_id_from_token("t1700000000500") is None
    assert question_id_from_token("qabc") is None


@pytest.mark.asyncio
async def test_in_memory_pop_consumes_entry_once() -> None:
    cache = InMemoryAnswerCache()
    await cache.set("k", _pending(), ttl_seconds=3600)

    assert await cache.get("k") == _pending()
    assert await cache.pop("k") == _pending()
    assert await cache.pop("k") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_in_memory_get_after_delete_returns_none() -> None:
    cache = InMemoryAnswerCache()
    await cache.set("k", _pending(), ttl_seconds=3600)

    assert await cache.get("k") is not None
    await cache.delete("k")
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_in_memory_entries_expire() -> None:
    clock = _Clock()
    cache = InMemoryAnswerCache(clock=clock)
    await cache.set("k", _pending(), ttl_seconds=60)

    clock.now += 59
    assert await cache.get("k") is not None
    clock.now += 1
    assert await cache.pop("k") is None


@pytest.mark.asyncio
async def test_in_memory_second_write_wins() -> None:
    cache = InMemoryAnswerCache()
    await cache.set("k", _pending("first"), ttl_seconds=60)
    await cache.set("k", _pending("second"), ttl_seconds=60)

    assert (await cache.pop("k")).answer == "second"


@pytest.mark.asyncio
async def test_sql_cache_stores_and_consumes_entry_once(session_factory) -> None:
    cache = SqlAnswerCache(session_factory)
    await cache.set("chgk:answer:1:q5", _pending(), ttl_seconds=3600)

    stored = await cache.get("chgk:answer:1:q5")
    assert stored == _pending()

    assert await cache.pop("chgk:answer:1:q5") == _pending()
    assert await cache.pop("chgk:answer:1:q5") is None
    assert await cache.get("chgk:answer:1:q5") is None


@pytest.mark.asyncio
async def test_sql_cache_overwrites_existing_key(session_factory) -> None:
    cache = SqlAnswerCache(session_factory)
    await cache.set("k", _pending("first"), ttl_seconds=3600)
    await cache.set("k", _pending("second"), ttl_seconds=3600)

    assert (await cache.get("k")).answer == "second"


@pytest.mark.asyncio
async def test_sql_cache_treats_expired_entries_as_missing(session_factory) -> None:
    clock = _UtcClock()
    cache = SqlAnswerCache(session_factory, clock=clock)
    await cache.set("soon", _pending(), ttl_seconds=60)
    await cache.set("later", _pending(), ttl_seconds=86400)

    clock.now += timedelta(minutes=5)

    assert await cache.get("soon") is None
    assert await cache.pop("later") == _pending()


@pytest.mark.asyncio
async def test_sql_cache_delete_and_purge(session_factory) -> None:
    clock = _UtcClock()
    cache = SqlAnswerCache(session_factory, clock=clock)
    await cache.set("a", _pending(), ttl_seconds=60)
    await cache.set("b", _pending(), ttl_seconds=60)
    await cache.set("c", _pending(), ttl_seconds=3600)

    await cache.delete("a")
    assert await cache.get("a") is None

    clock.now += timedelta(minutes=2)
    assert await cache.purge_expired() == 1
    assert await cache.get("c") is not None


@pytest.mark.asyncio
async def test_in_memory_unrevealed_entries_do_not_accumulate() -> None:
    clock = _Clock()
    cache = InMemoryAnswerCache(clock=clock)

    for index in range(1000):
        await cache.set(f"chgk:answer:1:t{index}", _pending(), ttl_seconds=60)
        clock.now += 3600

    assert len(cache) == 1


@pytest.mark.asyncio
async def test_in_memory_purge_keeps_live_entries() -> None:
    clock = _Clock()
    cache = InMemoryAnswerCache(clock=clock)
    await cache.set("short", _pending(), ttl_seconds=60)
    await cache.set("long", _pending(), ttl_seconds=3600)

    clock.now += 120

    assert await cache.purge_expired() == 1
    assert len(cache) == 1
    assert await cache.get("long") is not None


@pytest.mark.asyncio
async def test_sql_cache_unrevealed_entries_do_not_accumulate(session_factory) -> None:
    clock = _UtcClock()
    cache = SqlAnswerCache(session_factory, clock=clock)

    for index in range(50):
        await cache.set(f"chgk:answer:1:t{index}", _pending(), ttl_seconds=60)
        clock.now += timedelta(hours=1)

    async with session_factory() as session:
        remaining = await session.scalar(select(func.count()).select_from(PendingAnswerRecord))
    assert remaining == 1
