import asyncio

import aiosqlite
import structlog

from bandsheets.config import settings

logger = structlog.get_logger()

_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None

DDL_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS events (
        event_id TEXT PRIMARY KEY,
        aggregate_type TEXT NOT NULL,
        aggregate_id TEXT NOT NULL,
        event_type TEXT NOT NULL,
        event_data TEXT NOT NULL,
        metadata TEXT,
        version INTEGER NOT NULL,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        UNIQUE(aggregate_type, aggregate_id, version)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sheets_projection (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        artist TEXT,
        bpm REAL,
        document TEXT NOT NULL,
        owner_id TEXT NOT NULL,
        shared_with TEXT NOT NULL DEFAULT '[]',
        is_public INTEGER NOT NULL DEFAULT 0,
        date_imported TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS setlists_projection (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        sheets TEXT NOT NULL DEFAULT '[]',
        owner_id TEXT NOT NULL,
        shared_with TEXT NOT NULL DEFAULT '[]',
        is_public INTEGER NOT NULL DEFAULT 1,
        original_setlist_id TEXT,
        original_creator TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'user',
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_sheets_owner ON sheets_projection(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_setlists_owner ON setlists_projection(owner_id)",
]


async def init_database(path: str | None = None) -> None:
    global _db, _write_lock
    path = path or settings.db_path
    _db = await aiosqlite.connect(path)
    _db.row_factory = aiosqlite.Row
    _write_lock = asyncio.Lock()
    await _db.execute("PRAGMA journal_mode=WAL")

    for ddl in DDL_STATEMENTS:
        await _db.execute(ddl)
    await _db.commit()

    logger.info("database_initialized", path=path)


async def close_database() -> None:
    global _db, _write_lock
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
        logger.info("database_closed")


def get_db() -> aiosqlite.Connection:
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _db


def get_write_lock() -> asyncio.Lock:
    """Lock held for each write transaction on the shared connection.

    A commit or rollback covers everything pending on the connection, so two
    interleaved writers would commit or discard each other's rows.
    """
    if _write_lock is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _write_lock


async def check_health() -> None:
    db = get_db()
    cursor = await db.execute("SELECT 1")
    await cursor.close()
