from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool

from archive.config.settings import Settings

_pool: AsyncConnectionPool | None = None


def conninfo_from(settings: Settings) -> str:
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
    )


async def init_pool(settings: Settings) -> None:
    """Open the shared async pool and wait until its minimum connections are up."""
    global _pool  # noqa: PLW0603
    pool = AsyncConnectionPool(
        conninfo_from(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        open=False,
    )
    await pool.open(wait=True)
    _pool = pool


async def close_pool() -> None:
    """Close the shared pool; a no-op when it was never opened."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncGenerator[psycopg.AsyncConnection[Any], None]:
    """Borrow a pooled connection; the caller commits or rolls back."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    async with _pool.connection() as conn:
        yield conn


@asynccontextmanager
async def transaction() -> AsyncGenerator[psycopg.AsyncConnection[Any], None]:
    """Yield a pooled connection inside a transaction block.

    Commits when the block exits normally, rolls back on any exception.
    """
    async with get_connection() as conn:
        async with conn.transaction():
            yield conn
