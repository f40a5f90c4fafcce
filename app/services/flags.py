"""Per-visitor key/value flags (the browser "local storage" of the site)."""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import VisitorFlag

HAS_VISITED_KEY = "hasVisited"


class FlagStore(Protocol):
    async def get(self, visitor_id: str, key: str) -> str | None: ...

    async def set(self, visitor_id: str, key: str, value: str) -> None: ...


class MemoryFlagStore:
    """In-process flag store; contents vanish with the process."""

    def __init__(self) -> None:
        self._values: dict[tuple[str, str], str] = {}

    async def get(self, visitor_id: str, key: str) -> str | None:
        return self._values.get((visitor_id, key))

    async def set(self, visitor_id: str, key: str, value: str) -> None:
        self._values[(visitor_id, key)] = value


class DatabaseFlagStore:
    """Flag store persisted in the ``visitor_flags`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, visitor_id: str, key: str) -> str | None:
        async with self._session_factory() as session:
            stmt = select(VisitorFlag.value).where(
                VisitorFlag.visitor_id == visitor_id,
                VisitorFlag.key == key,
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def set(self, visitor_id: str, key: str, value: str) -> None:
        async with self._session_factory() as session:
            stmt = select(VisitorFlag).where(
                VisitorFlag.visitor_id == visitor_id,
                VisitorFlag.key == key,
            )
            result = await session.execute(stmt)
            record = result.scalar_one_or_none()
            if record is None:
                session.add(VisitorFlag(visitor_id=visitor_id, key=key, value=value))
            else:
                record.value = value
            await session.commit()


class VisitorStorage:
    """A :class:`FlagStore` bound to one visitor: plain ``get``/``set``."""

    def __init__(self, store: FlagStore, visitor_id: str):
        self._store = store
        self.visitor_id = visitor_id

    async def get(self, key: str) -> str | None:
        return await self._store.get(self.visitor_id, key)

    async def set(self, key: str, value: str) -> None:
        await self._store.set(self.visitor_id, key, value)
