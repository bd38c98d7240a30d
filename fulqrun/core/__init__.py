"""
Core infrastructure package for the FulQrun backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- An injectable clock for time-dependent engine calculations
- FastAPI dependency injection utilities

Simplified imports:

    from fulqrun.core import get_settings, get_db_pool, DBSessionDep, ClockDep
"""

from fulqrun.core.config import Settings, get_settings

from fulqrun.core.clock import Clock, utc_now, fixed_clock, days_between

from fulqrun.core.database import DatabaseNotConfiguredError, init_db, close_db, get_db_pool

from fulqrun.core.dependencies import (
    get_db_session,
    get_settings_dependency,
    get_clock,
    get_health_rules,
    get_gate_catalog,
    SettingsDep,
    DBSessionDep,
    ClockDep,
    HealthRulesDep,
    GateCatalogDep,
)


__all__ = [
    # Configuration management
    'Settings',
    'get_settings',
    # Clock
    'Clock',
    'utc_now',
    'fixed_clock',
    'days_between',
    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',
    'DatabaseNotConfiguredError',
    # FastAPI dependency injection
    'get_db_session',
    'get_settings_dependency',
    'get_clock',
    'get_health_rules',
    'get_gate_catalog',
    'SettingsDep',
    'DBSessionDep',
    'ClockDep',
    'HealthRulesDep',
    'GateCatalogDep',
]
