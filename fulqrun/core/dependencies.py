"""
FastAPI dependency injection for the FulQrun backend.

Key Dependencies Provided:
- get_db_session: Async generator yielding a pooled asyncpg connection
- get_settings_dependency: Returns the cached Settings singleton
- get_clock: Returns the wall clock used by the engines
- get_health_rules / get_gate_catalog: Engine configuration from settings
- SettingsDep, DBSessionDep, ClockDep, HealthRulesDep, GateCatalogDep:
  Annotated aliases for endpoints

Tests override these through app.dependency_overrides, e.g.

    app.dependency_overrides[get_clock] = lambda: fixed_clock(moment)
"""

import logging
from typing import Annotated, AsyncGenerator

import asyncpg
from asyncpg import Connection
from fastapi import Depends, HTTPException

from fulqrun.core.clock import Clock, utc_now
from fulqrun.core.config import Settings, get_settings
from fulqrun.core.database import DatabaseNotConfiguredError, get_db_pool
from fulqrun.services.deal_health import HealthRules
from fulqrun.services.progression import DEFAULT_GATE_CATALOG, GateCatalog


logger = logging.getLogger(__name__)


# =============================================================================
# Database Session Dependency
# =============================================================================

async def get_db_session() -> AsyncGenerator[Connection, None]:
    """
    Yield an async database connection from the pool.

    The connection is released back to the pool when the endpoint completes,
    whether or not it raised.

    Yields:
        asyncpg.Connection: An active database connection from the pool.

    Raises:
        HTTPException 503: If the pool cannot be created.
    """
    try:
        pool = await get_db_pool()
    except (
        DatabaseNotConfiguredError,
        OSError,
        asyncpg.PostgresError,
        asyncpg.InterfaceError,
    ) as e:
        logger.error("Database unavailable: %s", e)
        raise HTTPException(status_code=503, detail="Database unavailable")

    async with pool.acquire() as connection:
        yield connection


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


# =============================================================================
# Clock Dependency
# =============================================================================

def get_clock() -> Clock:
    """Return the clock used to compute days-in-stage and activity recency."""
    return utc_now


# =============================================================================
# Engine Configuration Dependencies
# =============================================================================

def get_health_rules(settings: Annotated[Settings, Depends(get_settings_dependency)]) -> HealthRules:
    """Deal health thresholds built from settings."""
    return HealthRules.from_settings(settings)


def get_gate_catalog(settings: Annotated[Settings, Depends(get_settings_dependency)]) -> GateCatalog:
    """Default gate catalog with the configured auto-advance threshold."""
    return DEFAULT_GATE_CATALOG.with_auto_advance_threshold(settings.auto_advance_min_confidence)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

DBSessionDep = Annotated[Connection, Depends(get_db_session)]

ClockDep = Annotated[Clock, Depends(get_clock)]

HealthRulesDep = Annotated[HealthRules, Depends(get_health_rules)]

GateCatalogDep = Annotated[GateCatalog, Depends(get_gate_catalog)]
