"""
Opportunity Queries Module for the FulQrun backend.

Provides parameterized PostgreSQL queries for the persistence collaborator:
loading opportunities for analysis, applying stage changes, and reading and
writing the deal_progression stage history.

Tables:
    opportunity:
        id, company_id, contact_id, title, description, value, stage,
        probability, expected_close_date, owner_id, priority,
        meddpicc (jsonb), contacts (jsonb), activities (jsonb), competitor,
        last_activity_at, ai_insights (jsonb), created_at, updated_at
    deal_progression:
        deal_id (pk, references opportunity.id), current_stage,
        stage_history (jsonb), gate_results (jsonb), last_evaluation,
        next_evaluation_due

All values are passed as $n parameters; nothing is interpolated into SQL text.
"""

from typing import Optional


# =============================================================================
# CONSTANTS
# =============================================================================

OPPORTUNITY_COLUMNS: str = """
        id,
        company_id,
        contact_id,
        title,
        description,
        value,
        stage,
        probability,
        expected_close_date,
        owner_id,
        priority,
        meddpicc,
        contacts,
        activities,
        competitor,
        last_activity_at,
        ai_insights,
        created_at,
        updated_at
"""

# Upper bound on opportunities loaded for a portfolio request
DEFAULT_PORTFOLIO_LIMIT: int = 1000


# =============================================================================
# OPPORTUNITY QUERIES
# =============================================================================

def get_opportunity_query() -> str:
    """
    SQL to fetch one opportunity by id.

    Parameters:
        $1: opportunity id
    """
    return f"""
    SELECT {OPPORTUNITY_COLUMNS}
    FROM opportunity
    WHERE id = $1
    """


def get_opportunities_query(stage: Optional[str] = None) -> str:
    """
    SQL to list opportunities, newest first.

    Parameters:
        $1: row limit
        $2: stage filter (only when `stage` is given)

    Example:
        >>> sql = get_opportunities_query(stage="engage")
        >>> rows = await conn.fetch(sql, 100, "engage")
    """
    stage_filter = "WHERE stage = $2" if stage is not None else ""
    return f"""
    SELECT {OPPORTUNITY_COLUMNS}
    FROM opportunity
    {stage_filter}
    ORDER BY created_at DESC
    LIMIT $1
    """


def get_update_stage_query() -> str:
    """
    SQL to move an opportunity to a new stage.

    updated_at doubles as the stage entry time, so it is set to the change
    time.

    Parameters:
        $1: opportunity id
        $2: new stage
        $3: change timestamp
    """
    return """
    UPDATE opportunity
    SET stage = $2,
        updated_at = $3
    WHERE id = $1
    """


# =============================================================================
# STAGE HISTORY QUERIES
# =============================================================================

def get_progression_query() -> str:
    """
    SQL to fetch the progression record of a deal.

    Parameters:
        $1: deal id
    """
    return """
    SELECT
        deal_id,
        current_stage,
        stage_history,
        gate_results,
        last_evaluation,
        next_evaluation_due
    FROM deal_progression
    WHERE deal_id = $1
    """


def get_progression_upsert_query() -> str:
    """
    SQL to insert or replace a deal's progression record.

    Parameters:
        $1: deal id
        $2: current stage
        $3: stage history (json text)
        $4: gate results (json text)
        $5: last evaluation
        $6: next evaluation due
    """
    return """
    INSERT INTO deal_progression (
        deal_id,
        current_stage,
        stage_history,
        gate_results,
        last_evaluation,
        next_evaluation_due
    ) VALUES ($1, $2, $3::jsonb, $4::jsonb, $5, $6)
    ON CONFLICT (deal_id) DO UPDATE SET
        current_stage = EXCLUDED.current_stage,
        stage_history = EXCLUDED.stage_history,
        gate_results = EXCLUDED.gate_results,
        last_evaluation = EXCLUDED.last_evaluation,
        next_evaluation_due = EXCLUDED.next_evaluation_due
    """


__all__ = [
    "get_opportunity_query",
    "get_opportunities_query",
    "get_update_stage_query",
    "get_progression_query",
    "get_progression_upsert_query",
    "DEFAULT_PORTFOLIO_LIMIT",
]
