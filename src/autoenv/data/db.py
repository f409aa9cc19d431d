"""Async SQLite connection manager using aiosqlite."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)


class StoreUnavailableError(RuntimeError):
    """The local store could not be opened or migrated."""


@dataclass(frozen=True)
class Schema:
    """A versioned set of DDL statements for one store.

    ``drop_statements`` is only set for stores whose contents are disposable;
    those are rebuilt from scratch when the stored version differs. Stores
    without it keep their data and only gain missing objects.
    """

    name: str
    version: int
    statements: tuple[str, ...]
    drop_statements: tuple[str, ...] = ()


REGISTRY_SCHEMA = Schema(
    name="registry",
    version=1,
    statements=(
        """
        CREATE TABLE IF NOT EXISTS projects (
            id         INTEGER PRIMARY KEY AUTOINCREMENT,
            path       TEXT NOT NULL UNIQUE,
            name       TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS defaults (
            key        TEXT PRIMARY KEY,
            value      TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
        """,
    ),
)

SESSIONS_SCHEMA = Schema(
    name="sessions",
    version=1,
    statements=(
        """
        CREATE TABLE IF NOT EXISTS sessions (
            shell_pid      INTEGER PRIMARY KEY,
            project_path   TEXT NOT NULL,
            env_file_mtime INTEGER NOT NULL,
            loaded_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS session_keys (
            shell_pid INTEGER NOT NULL REFERENCES sessions(shell_pid) ON DELETE CASCADE,
            key_name  TEXT NOT NULL,
            key_hash  TEXT NOT NULL,
            PRIMARY KEY (shell_pid, key_name)
        )
        """,
    ),
    drop_statements=(
        "DROP TABLE IF EXISTS session_keys",
        "DROP TABLE IF EXISTS sessions",
    ),
)


class Database:
    """Async SQLite connection manager using aiosqlite.

    The connection runs in autocommit mode; multi-statement writes go through
    :meth:`transaction`.
    """

    def __init__(self, db_path: Path, schema: Schema, *, busy_timeout_ms: int = 5000) -> None:
        self._db_path = db_path
        self._schema = schema
        self._busy_timeout_ms = busy_timeout_ms
        self._conn: aiosqlite.Connection | None = None
        self.rebuilt = False

    @property
    def path(self) -> Path:
        return self._db_path

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def connect(self) -> Database:
        """Connect to SQLite and ensure schema."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(str(self._db_path), isolation_level=None)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout_ms)}")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._ensure_schema()
        except StoreUnavailableError:
            await self.close()
            raise
        except (aiosqlite.Error, OSError) as exc:
            await self.close()
            msg = f"open {self._schema.name} store {self._db_path}: {exc}"
            raise StoreUnavailableError(msg) from exc
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the SQLite connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            msg = "Database not connected. Use 'async with Database(path, schema) as db:'"
            raise RuntimeError(msg)
        return self._conn

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Execute a SQL statement."""
        return await self.conn.execute(sql, params)

    async def execute_many(self, sql: str, params_seq: list[tuple[Any, ...]]) -> None:
        """Execute a SQL statement with many parameter sets."""
        await self.conn.executemany(sql, params_seq)

    async def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[aiosqlite.Row]:
        """Fetch all rows from a query."""
        cursor = await self.conn.execute(sql, params)
        return await cursor.fetchall()  # type: ignore[return-value]

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Row | None:
        """Fetch a single row from a query."""
        cursor = await self.conn.execute(sql, params)
        return await cursor.fetchone()  # type: ignore[return-value]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Database]:
        """Run the enclosed statements as one all-or-nothing unit."""
        await self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield self
        except BaseException:
            await self.conn.execute("ROLLBACK")
            raise
        await self.conn.execute("COMMIT")

    async def _ensure_schema(self) -> None:
        """Create missing objects, rebuilding disposable stores on version change."""
        self.rebuilt = False
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS app_meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        row = await self.fetch_one("SELECT value FROM app_meta WHERE key = 'schema_version'")
        current_version = int(row["value"]) if row and str(row["value"]).isdigit() else 0
        if current_version > self._schema.version and not self._schema.drop_statements:
            msg = (
                f"{self._schema.name} schema version {current_version} is newer than "
                f"supported version {self._schema.version}"
            )
            raise StoreUnavailableError(msg)

        async with self.transaction():
            if current_version not in (0, self._schema.version) and self._schema.drop_statements:
                self.rebuilt = True
                logger.info(
                    "Rebuilding %s schema from version %s to %s",
                    self._schema.name,
                    current_version,
                    self._schema.version,
                )
                for statement in self._schema.drop_statements:
                    await self.conn.execute(statement)
            for statement in self._schema.statements:
                await self.conn.execute(statement)
            await self.conn.execute(
                "INSERT OR REPLACE INTO app_meta (key, value) VALUES ('schema_version', ?)",
                (str(self._schema.version),),
            )
