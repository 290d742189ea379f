"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`); the CLI tools open and close it
around their own work.

Every failure to reach or query Postgres is re-raised as `StorageUnavailable`
so route handlers only have one storage error to care about.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


class StorageUnavailable(RuntimeError):
    pass


# Errors that mean "the database could not serve this request".
_STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


async def init_pool(
    dsn: str,
    *,
    min_size: int = 0,
    max_size: int = 5,
    command_timeout: float = 30.0,
) -> None:
    """
    Create the process-wide pool.

    With `min_size=0` no connection is opened here, so the server can start
    (and answer `/health`) while Postgres is still down.
    """
    global _pool
    if _pool is not None:
        return None
    try:
        _pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )
    except _STORAGE_ERRORS as exc:
        raise StorageUnavailable(f"Could not create database pool: {exc}") from exc
    logger.info("db_pool_ready min_size=%s max_size=%s", min_size, max_size)


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None
    logger.info("db_pool_closed")


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise StorageUnavailable("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        rows = await pool().fetch(sql, *args)
    except _STORAGE_ERRORS as exc:
        raise StorageUnavailable(f"Query failed: {exc}") from exc
    return [_record_to_dict(r) for r in rows]


async def execute_many(sql: str, args: Sequence[Sequence[Any]]) -> None:
    """
    Run one statement for each argument tuple inside a single transaction.
    """
    try:
        async with pool().acquire() as conn:
            async with conn.transaction():
                await conn.executemany(sql, args)
    except _STORAGE_ERRORS as exc:
        raise StorageUnavailable(f"Batch statement failed: {exc}") from exc
