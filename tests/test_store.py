"""Tests for the key-value store and the legacy source reader."""

import asyncio
from pathlib import Path

import pytest
import pytest_asyncio

from conftest import create_legacy_db
from launcher_bootstrap.core.exceptions import StoreError, TableNotFoundError
from launcher_bootstrap.database.source import SqliteSource
from launcher_bootstrap.database.store import BatchOperation, KeyValueStore


@pytest_asyncio.fixture
async def store(tmp_path: Path):
    async with KeyValueStore(tmp_path / "state.sqlite") as kv:
        yield kv


class TestKeyValueStore:
    """Test KeyValueStore and Sublevel."""

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, store: KeyValueStore):
        assert await store.get("nope") is None

    @pytest.mark.asyncio
    async def test_json_round_trip(self, store: KeyValueStore):
        await store.put("doc", {"a": [1, 2], "b": None}, value_encoding="json")
        assert await store.get("doc", value_encoding="json") == {"a": [1, 2], "b": None}

    @pytest.mark.asyncio
    async def test_utf8_requires_string(self, store: KeyValueStore):
        await store.put("language", "en")
        assert await store.get("language") == "en"

        with pytest.raises(StoreError):
            await store.put("language", True)

    @pytest.mark.asyncio
    async def test_reading_non_json_as_json_fails(self, store: KeyValueStore):
        await store.put("raw", "{broken")
        with pytest.raises(StoreError):
            await store.get("raw", value_encoding="json")

    @pytest.mark.asyncio
    async def test_sublevels_are_disjoint(self, store: KeyValueStore):
        games = store.sublevel("games")
        achievements = store.sublevel("gameAchievements")

        await games.batch([
            BatchOperation(key="steam:1", value={"title": "A"}),
            BatchOperation(key="steam:2", value={"title": "B"}),
        ])
        await achievements.put("steam:1", {"achievements": []})

        assert await games.values_all() == [{"title": "A"}, {"title": "B"}]
        assert await achievements.values_all() == [{"achievements": []}]
        assert await games.get("steam:1") == {"title": "A"}

    @pytest.mark.asyncio
    async def test_batch_delete(self, store: KeyValueStore):
        games = store.sublevel("games")
        await games.put("steam:1", {"title": "A"})

        await games.batch([BatchOperation(key="steam:1", type="del")])

        assert await games.get("steam:1") is None

    @pytest.mark.asyncio
    async def test_unknown_batch_operation_writes_nothing(self, store: KeyValueStore):
        games = store.sublevel("games")
        with pytest.raises(StoreError):
            await games.batch([
                BatchOperation(key="steam:1", value={}),
                BatchOperation(key="steam:2", type="merge"),
            ])
        assert await games.values_all() == []

    @pytest.mark.asyncio
    async def test_concurrent_batches(self, store: KeyValueStore):
        async def write(name: str):
            await store.sublevel(name).batch(
                [BatchOperation(key=str(i), value=i) for i in range(50)]
            )

        await asyncio.gather(write("a"), write("b"), write("c"))

        for name in ("a", "b", "c"):
            assert len(await store.sublevel(name).values_all()) == 50


class TestSqliteSource:
    """Test the read-only legacy database reader."""

    @pytest.mark.asyncio
    async def test_select_returns_dicts(self, legacy_db: Path):
        async with SqliteSource(legacy_db) as source:
            rows = await source.select("game")

        assert [r["objectID"] for r in rows] == ["1091500", "292030"]
        assert rows[0]["shop"] == "steam"

    @pytest.mark.asyncio
    async def test_missing_table(self, tmp_path: Path):
        db = create_legacy_db(tmp_path / "partial.db", tables=["game"])

        async with SqliteSource(db) as source:
            with pytest.raises(TableNotFoundError):
                await source.select("user_auth")
