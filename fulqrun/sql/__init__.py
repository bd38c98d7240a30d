"""
SQL Query Module for the FulQrun backend.

Provides parameterized SQL queries for opportunity persistence
(opportunity_queries). Queries are plain strings with $n placeholders for
asyncpg; the repository in fulqrun.services.opportunity_store executes them.

Example usage:
    from fulqrun.sql import get_opportunity_query

    row = await conn.fetchrow(get_opportunity_query(), "opp-001")
"""

# =============================================================================
# OPPORTUNITY QUERIES
# =============================================================================

from fulqrun.sql.opportunity_queries import (
    get_opportunity_query,
    get_opportunities_query,
    get_update_stage_query,
    get_progression_query,
    get_progression_upsert_query,
    DEFAULT_PORTFOLIO_LIMIT,
)

# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    'get_opportunity_query',
    'get_opportunities_query',
    'get_update_stage_query',
    'get_progression_query',
    'get_progression_upsert_query',
    'DEFAULT_PORTFOLIO_LIMIT',
]
