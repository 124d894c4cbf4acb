import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from burrow.logging import get_logger

_logger = get_logger(__name__)


class Database:
    """One aiosqlite connection shared by the stores of a runtime.

    Writes go through ``transaction()``, which serializes them and commits or
    rolls back as a unit. Reads use ``conn`` directly.
    """

    def __init__(self, db_path: Path, busy_timeout_ms: int = 30_000):
        self.db_path = db_path
        self.busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def connect(self) -> None:
        if self._conn is not None:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms};")
        _logger.debug("Database connected", path=str(self.db_path))

    async def apply_schema(self, script: str) -> None:
        async with self.transaction() as conn:
            await conn.executescript(script)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._write_lock:
            conn = self.conn
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected")
        return self._conn
