"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Every helper raises `StorageError` when the backend is unreachable, the pool
is exhausted, or a query fails. Callers never retry.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Awaitable, Callable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import settings

_pool: asyncpg.Pool | None = None


class StorageError(RuntimeError):
    pass


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise StorageError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    try:
        _pool = await asyncpg.create_pool(
            dsn=database_url(),
            min_size=settings.db_pool_min_size(),
            max_size=settings.db_pool_max_size(),
            command_timeout=settings.db_command_timeout_s(),
        )
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as exc:
        raise StorageError(f"Failed to create database pool: {exc}") from exc


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise StorageError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def _run(query: Callable[[asyncpg.Connection], Awaitable[Any]]) -> Any:
    # Acquire explicitly so pool exhaustion surfaces as a timeout, not a hang.
    try:
        async with pool().acquire(timeout=settings.db_acquire_timeout_s()) as conn:
            return await query(conn)
    except StorageError:
        raise
    except asyncio.TimeoutError as exc:
        raise StorageError("Timed out waiting for a database connection.") from exc
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        raise StorageError(f"Database query failed: {exc}") from exc


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await _run(lambda conn: conn.fetchrow(sql, *args))
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await _run(lambda conn: conn.fetch(sql, *args))
    return [_record_to_dict(r) for r in rows]


async def execute(sql: str, *args: Any) -> None:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
    """
    await _run(lambda conn: conn.execute(sql, *args))


async def ping() -> bool:
    try:
        row = await fetch_one("SELECT 1 AS ok")
    except StorageError:
        return False
    return row is not None
