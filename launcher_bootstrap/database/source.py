"""Read-only access to the legacy SQLite database."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite

from launcher_bootstrap.core.exceptions import DatabaseError, TableNotFoundError
from launcher_bootstrap.utils.logging import get_logger


class SqliteSource:
    """Legacy relational store, queried one table at a time."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        """Open a read-only connection.

        Raises:
            DatabaseError: If the database file can't be opened
        """
        try:
            # mode=ro guarantees the migration never mutates the source
            self._conn = await aiosqlite.connect(
                f"file:{self.db_path}?mode=ro", uri=True
            )
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to open database {self.db_path}: {e}") from e
        self._conn.row_factory = aiosqlite.Row

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def select(self, table: str) -> List[Dict[str, Any]]:
        """Return every row of a table.

        Args:
            table: Table name

        Returns:
            Rows as dicts keyed by column name, in rowid order

        Raises:
            TableNotFoundError: If the table doesn't exist
            DatabaseError: On other database errors
        """
        logger = get_logger(__name__)

        if self._conn is None:
            await self.open()

        try:
            async with self._conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
                (table,),
            ) as cur:
                if await cur.fetchone() is None:
                    raise TableNotFoundError(table, self.db_path)

            async with self._conn.execute(f"SELECT * FROM `{table}`") as cur:
                rows = [dict(row) for row in await cur.fetchall()]
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to read table '{table}': {e}") from e

        logger.debug(f"Read {len(rows)} rows from {table}")
        return rows

    async def __aenter__(self) -> "SqliteSource":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
