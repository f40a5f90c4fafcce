from __future__ import annotations

import asyncio

from sqlalchemy import create_engine, inspect

from app.database import Database
from app.services.flags import HAS_VISITED_KEY, DatabaseFlagStore, VisitorStorage


def test_create_all_adds_visitor_flags_table(tmp_path) -> None:
    """Startup should create the flag table with its unique constraint."""

    database_path = tmp_path / "flags.db"
    database = Database(f"sqlite+aiosqlite:///{database_path}")
    asyncio.run(database.create_all())
    asyncio.run(database.dispose())

    inspector_engine = create_engine(f"sqlite:///{database_path}")
    try:
        inspector = inspect(inspector_engine)
        columns = {column["name"] for column in inspector.get_columns("visitor_flags")}
        constraints = {
            constraint["name"]
            for constraint in inspector.get_unique_constraints("visitor_flags")
        }
    finally:
        inspector_engine.dispose()

    assert {"visitor_id", "key", "value"} <= columns
    assert "uq_visitor_flag" in constraints


def test_database_flag_store_round_trip(tmp_path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'flags.db'}")

    async def _scenario() -> tuple[str | None, str | None, str | None]:
        await database.create_all()
        store = DatabaseFlagStore(database.session_factory)
        storage = VisitorStorage(store, "visitor-a")
        try:
            before = await storage.get(HAS_VISITED_KEY)
            await storage.set(HAS_VISITED_KEY, "true")
            await storage.set(HAS_VISITED_KEY, "again")
            after = await storage.get(HAS_VISITED_KEY)
            other = await store.get("visitor-b", HAS_VISITED_KEY)
        finally:
            await database.dispose()
        return before, after, other

    before, after, other = asyncio.run(_scenario())

    assert before is None
    assert after == "again"
    assert other is None


def test_flags_survive_a_restart(tmp_path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'flags.db'}"

    async def _write() -> None:
        database = Database(url)
        await database.create_all()
        try:
            await DatabaseFlagStore(database.session_factory).set("visitor", "hasVisited", "true")
        finally:
            await database.dispose()

    async def _read() -> str | None:
        database = Database(url)
        try:
            return await DatabaseFlagStore(database.session_factory).get("visitor", "hasVisited")
        finally:
            await database.dispose()

    asyncio.run(_write())

    assert asyncio.run(_read()) == "true"
