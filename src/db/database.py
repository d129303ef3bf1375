# manages connection to db, provides helper methods internal to db package
import asyncio
import os.path
import sqlite3
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from db.errors import ConflictError, StoreError
from utils.config import load_settings
from utils.logger import get_logger

_logger = get_logger(__name__)

_settings = load_settings()
_SQL_DIR = os.path.dirname(os.path.abspath(__file__))

DB_PATH = _settings.db_path
SEED = _settings.seed
DB_SCHEMA_SCRIPTS = [os.path.join(_SQL_DIR, "pizza-tables.sql")]
DB_SEED_SCRIPTS = [os.path.join(_SQL_DIR, "dummy-data.sql")]

_initialized = False
_init_lock = asyncio.Lock()


async def _run_scripts(conn: aiosqlite.Connection, scripts) -> None:
    for script in scripts:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Running database script {os.path.basename(script)}...")
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Creates the schema (and seed data, unless disabled) the first time a fresh
    database file is opened.
    """
    global _initialized
    folder = os.path.dirname(DB_PATH)
    if folder:
        os.makedirs(folder, exist_ok=True)
    try:
        conn = await aiosqlite.connect(DB_PATH)
    except sqlite3.Error as e:
        raise StoreError(f"Cannot open database {DB_PATH}: {e}") from e
    conn.row_factory = Row
    try:
        await conn.execute("PRAGMA foreign_keys = ON;")
        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    if not await _table_exists(conn, "Users"):
                        _logger.info(f"Initializing database at {DB_PATH}...")
                        await _run_scripts(conn, DB_SCHEMA_SCRIPTS)
                        if SEED:
                            await _run_scripts(conn, DB_SEED_SCRIPTS)
                    _initialized = True
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def transaction(conn: aiosqlite.Connection):
    """Commit everything executed in the block, or roll all of it back.

    sqlite errors leave as StoreError; a violated unique key as ConflictError.
    """
    try:
        yield conn
        await conn.commit()
    except sqlite3.IntegrityError as e:
        await conn.rollback()
        _logger.error(f"Transaction rolled back: {e}")
        if "UNIQUE" in str(e):
            raise ConflictError(str(e)) from e
        raise StoreError(f"Integrity error: {e}") from e
    except sqlite3.Error as e:
        await conn.rollback()
        _logger.error(f"Transaction rolled back: {e}")
        raise StoreError(f"Database error: {e}") from e
    except BaseException:
        await conn.rollback()
        raise
