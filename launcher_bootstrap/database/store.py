"""Key-value store backing the launcher state.

Values live in a single SQLite table. Sublevels partition the key space
by prefix ("!games!steam:123"), so each data domain owns a disjoint range.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Optional

import aiosqlite

from launcher_bootstrap.core.exceptions import StoreError
from launcher_bootstrap.database.keys import sublevel_key, sublevel_prefix
from launcher_bootstrap.utils.logging import get_logger


VALUE_ENCODINGS = ("utf8", "json")


@dataclass
class BatchOperation:
    """A single write inside a batch."""
    key: str
    value: Any = None
    type: str = "put"  # "put" or "del"


def _encode(key: str, value: Any, value_encoding: str) -> str:
    if value_encoding == "json":
        return json.dumps(value)
    if value_encoding == "utf8":
        if not isinstance(value, str):
            raise StoreError(key, f"utf8 encoding needs a str, got {type(value).__name__}")
        return value
    raise StoreError(key, f"Unknown value encoding: {value_encoding}")


def _decode(key: str, raw: str, value_encoding: str) -> Any:
    if value_encoding == "json":
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(key, f"Stored value is not JSON: {e}") from e
    if value_encoding == "utf8":
        return raw
    raise StoreError(key, f"Unknown value encoding: {value_encoding}")


class KeyValueStore:
    """Async key-value store on top of a SQLite file.

    Writes are serialized with an internal lock, so several coroutines may
    write to the store at the same time.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()

    async def open(self) -> None:
        logger = get_logger(__name__)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(str(self.db_path))
        await self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        await self._conn.commit()
        logger.debug(f"Opened key-value store at {self.db_path}")

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "KeyValueStore":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("*", "Store is not open")
        return self._conn

    async def get(self, key: str, value_encoding: str = "utf8") -> Any:
        """Read a value.

        Args:
            key: Key to read
            value_encoding: "utf8" for raw strings, "json" for documents

        Returns:
            The decoded value, or None if the key is absent
        """
        try:
            async with self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cur:
                row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(key, str(e)) from e

        if row is None:
            return None
        return _decode(key, row[0], value_encoding)

    async def put(self, key: str, value: Any, value_encoding: str = "utf8") -> None:
        """Write a value, replacing any previous one."""
        encoded = _encode(key, value, value_encoding)
        async with self._write_lock:
            try:
                await self.conn.execute(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    (key, encoded),
                )
                await self.conn.commit()
            except aiosqlite.Error as e:
                raise StoreError(key, str(e)) from e

    async def delete(self, key: str) -> None:
        async with self._write_lock:
            try:
                await self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                await self.conn.commit()
            except aiosqlite.Error as e:
                raise StoreError(key, str(e)) from e

    async def batch(self, operations: Iterable[BatchOperation], value_encoding: str = "json") -> None:
        """Apply several writes in one transaction.

        Either every operation is applied or, if one fails, none is.
        """
        rows_put = []
        keys_deleted = []
        for op in operations:
            if op.type == "put":
                rows_put.append((op.key, _encode(op.key, op.value, value_encoding)))
            elif op.type == "del":
                keys_deleted.append((op.key,))
            else:
                raise StoreError(op.key, f"Unknown batch operation: {op.type}")

        async with self._write_lock:
            try:
                await self.conn.executemany(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", rows_put
                )
                await self.conn.executemany("DELETE FROM kv WHERE key = ?", keys_deleted)
                await self.conn.commit()
            except aiosqlite.Error as e:
                await self.conn.rollback()
                raise StoreError("batch", str(e)) from e

    async def values_with_prefix(self, prefix: str, value_encoding: str = "json") -> List[Any]:
        """Return all values whose key starts with prefix, in key order."""
        try:
            async with self.conn.execute(
                "SELECT key, value FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ) as cur:
                rows = await cur.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(prefix, str(e)) from e

        return [_decode(key, raw, value_encoding) for key, raw in rows]

    def sublevel(self, name: str) -> "Sublevel":
        """Get a JSON-encoded view over one partition of the key space."""
        return Sublevel(self, name)


class Sublevel:
    """A partition of the store with its own key range."""

    def __init__(self, store: KeyValueStore, name: str):
        self.store = store
        self.name = name

    async def get(self, key: str) -> Any:
        return await self.store.get(sublevel_key(self.name, key), value_encoding="json")

    async def put(self, key: str, value: Any) -> None:
        await self.store.put(sublevel_key(self.name, key), value, value_encoding="json")

    async def delete(self, key: str) -> None:
        await self.store.delete(sublevel_key(self.name, key))

    async def batch(self, operations: Iterable[BatchOperation]) -> None:
        """Apply writes whose keys are relative to this sublevel."""
        await self.store.batch(
            [
                BatchOperation(key=sublevel_key(self.name, op.key), value=op.value, type=op.type)
                for op in operations
            ],
            value_encoding="json",
        )

    async def values_all(self) -> List[Any]:
        """Return every document in the sublevel."""
        return await self.store.values_with_prefix(sublevel_prefix(self.name))
