"""Global pytest configuration and fixtures.

Provides an in-memory stand-in for the Redis client, an observer that
records cache outcomes, and an in-memory SQLite database for repository
tests, so neither Redis nor PostgreSQL is needed.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chop.cache.backend import get_backend, set_backend


class FakeRedis:
    """In-memory async client covering the commands the cache layer uses.

    Values are stored as ``str``, matching a client created with
    ``decode_responses=True``. Setting ``fail`` makes every command raise.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = False
        self.closed = False
        self.commands: list[str] = []

    def _run(self, command: str) -> None:
        self.commands.append(command)
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def ping(self) -> bool:
        self._run("PING")
        return True

    async def get(self, key: str) -> str | None:
        self._run("GET")
        return self.store.get(key)

    async def setex(self, key: str, ttl: int, value: Any) -> bool:
        self._run("SETEX")
        self.store[key] = value.decode() if isinstance(value, bytes) else str(value)
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._run("DEL")
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def flushdb(self) -> bool:
        self._run("FLUSHDB")
        self.store.clear()
        self.ttls.clear()
        return True

    async def aclose(self) -> None:
        self.closed = True


class RecordingObserver:
    """Cache observer that keeps every event as a tuple."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def hit(self, kind: str, entity_id: int) -> None:
        self.events.append(("hit", kind, entity_id))

    def miss(self, kind: str, entity_id: int) -> None:
        self.events.append(("miss", kind, entity_id))

    def stored(self, kind: str, entity_id: int) -> None:
        self.events.append(("stored", kind, entity_id))

    def invalidated(self, kind: str, entity_id: int) -> None:
        self.events.append(("invalidated", kind, entity_id))

    def disabled(self, kind: str, operation: str, entity_id: int | None) -> None:
        self.events.append(("disabled", kind, operation, entity_id))

    def failed(
        self, kind: str, operation: str, entity_id: int | None, error: BaseException
    ) -> None:
        self.events.append(("failed", kind, operation, entity_id, error))

    def names(self) -> list[str]:
        return [event[0] for event in self.events]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def shared_backend(fake_redis: FakeRedis) -> Iterator[FakeRedis]:
    """Install the fake client as the process-wide backend for one test."""
    previous = get_backend()
    set_backend(fake_redis)  # type: ignore[arg-type]
    yield fake_redis
    set_backend(previous)


@pytest.fixture
def no_backend() -> Iterator[None]:
    """Run one test with caching disabled."""
    previous = get_backend()
    set_backend(None)
    yield
    set_backend(previous)


@pytest_asyncio.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with the schema created and foreign keys on."""
    from chop.persistence.tables import Base

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Session configured like the application's session factory."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session
        await session.rollback()
