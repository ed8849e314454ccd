"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`). Every helper checks a connection
out of the pool for the duration of one statement, so concurrent requests
never share a connection.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import asyncpg

from .config import Settings

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

_pool: asyncpg.Pool | None = None
_acquire_timeout: float | None = None


async def init_pool(settings: Settings) -> None:
    global _pool, _acquire_timeout
    if _pool is not None:
        return None
    _pool = await asyncpg.create_pool(
        dsn=settings.dsn(),
        min_size=settings.db_pool_min,
        max_size=settings.db_pool_max,
        command_timeout=settings.db_command_timeout,
    )
    _acquire_timeout = settings.db_acquire_timeout
    logger.info(
        "db_pool_ready min_size=%s max_size=%s",
        settings.db_pool_min,
        settings.db_pool_max,
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    async with pool().acquire(timeout=_acquire_timeout) as conn:
        row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    async with pool().acquire(timeout=_acquire_timeout) as conn:
        rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    async with pool().acquire(timeout=_acquire_timeout) as conn:
        await conn.execute(sql, *args)


async def apply_schema(path: Path = SCHEMA_PATH) -> None:
    # Multi-statement scripts are only accepted without arguments.
    await execute(path.read_text(encoding="utf-8"))
    logger.info("db_schema_applied path=%s", path)
