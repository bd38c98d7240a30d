"""
Async PostgreSQL connection pool for opportunity persistence.

The deal engines never touch the database. This module backs the persistence
collaborator used by the HTTP layer: it loads opportunity records for analysis
and stores stage changes that a caller decides to apply.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the pool at application startup
- get_db_pool(): Get the pool instance (initializes lazily if needed)
- close_db(): Close the pool at application shutdown
- DatabaseNotConfiguredError: init_db() without DATABASE_URL

Connection Pool Configuration (from Settings):
- db_pool_min_size: minimum idle connections (default 2)
- db_pool_max_size: maximum connections (default 10)
- db_command_timeout: query timeout in seconds (default 60)

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # In repositories, via the get_db_session dependency
    async with pool.acquire() as conn:
        row = await conn.fetchrow(get_opportunity_query(), "opp-001")

    # At application shutdown
    await close_db()
"""

import logging
from typing import Optional

import asyncpg
from asyncpg import Pool

from fulqrun.core.config import get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Global Pool Singleton
# =============================================================================

# None until init_db() is called; shared across all async tasks
_pool: Optional[Pool] = None


class DatabaseNotConfiguredError(RuntimeError):
    """Raised when a pool is requested but DATABASE_URL is not set."""


# =============================================================================
# Pool Lifecycle Functions
# =============================================================================

async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: returns the existing pool if one has already been created.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        DatabaseNotConfiguredError: If DATABASE_URL is not set.
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise DatabaseNotConfiguredError("DATABASE_URL is not set")
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
        logger.info(
            "Created database pool (min=%d, max=%d)",
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails during lazy init.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Resets the singleton so a later get_db_pool() creates a fresh pool.
    Calling this when no pool exists has no effect.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Closed database pool")

