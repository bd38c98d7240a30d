"""
FastAPI router for persisted opportunities.

Loads opportunities through the asyncpg repository and runs the engines on
them. The only write is the stage advance endpoint, which applies a stage
change a user has explicitly requested.

Key Endpoints:
- GET /opportunities/portfolio - Portfolio summary over stored opportunities
- GET /opportunities/pipeline-metrics - Headline pipeline metrics
- GET /opportunities/upcoming-closes - Open deals closing within N days
- GET /opportunities/{opportunity_id}/analytics - Full analytics for one deal
- POST /opportunities/{opportunity_id}/advance - Move a deal to a new stage

Stage changes:
    Any stage change is allowed. The response flags `manualOverride` when the
    deal did not qualify for auto-advancement into the requested stage, and
    the stage history records the supplied reason either way.

Errors:
- 404 when the opportunity does not exist
- 400 when advancing a deal into the stage it is already in
- 503 when the database is unavailable (raised by get_db_session)
- 500 for unexpected failures, logged with traceback
"""

import logging
from typing import List, Optional

from asyncpg import Connection
from fastapi import APIRouter, HTTPException, Query

from fulqrun.core.dependencies import (
    ClockDep,
    DBSessionDep,
    GateCatalogDep,
    HealthRulesDep,
    SettingsDep,
)
from fulqrun.models.schemas import (
    Opportunity,
    OpportunityAnalytics,
    PipelineMetrics,
    PortfolioSummary,
    StageChangeRequest,
    StageChangeResult,
)
from fulqrun.services.opportunity_analytics import (
    analyze_opportunity,
    plan_stage_change,
    summarize_opportunities,
)
from fulqrun.services.opportunity_store import (
    apply_stage_change,
    fetch_opportunities,
    fetch_opportunity,
    fetch_progression,
)
from fulqrun.services.portfolio import calculate_pipeline_metrics, get_upcoming_closes
from fulqrun.services.progression import normalize_stage


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

# Default look-ahead window for upcoming closes
DEFAULT_UPCOMING_DAYS: int = 30

# Maximum look-ahead window for upcoming closes
MAX_UPCOMING_DAYS: int = 365


router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================


async def _require_opportunity(db: Connection, opportunity_id: str) -> Opportunity:
    opportunity = await fetch_opportunity(db, opportunity_id)
    if opportunity is None:
        raise HTTPException(
            status_code=404,
            detail=f"Opportunity {opportunity_id} not found",
        )
    return opportunity


# =============================================================================
# Portfolio Endpoints
# =============================================================================


@router.get("/portfolio", response_model=PortfolioSummary)
async def portfolio(
    db: DBSessionDep,
    clock: ClockDep,
    rules: HealthRulesDep,
    stage: Optional[str] = Query(None, description="Only include deals in this stage"),
) -> PortfolioSummary:
    """
    Summarize the stored pipeline.

    Returns:
        PortfolioSummary with counts by stage and health bucket.
    """
    try:
        opportunities = await fetch_opportunities(db, stage=stage)
        return summarize_opportunities(opportunities, clock, rules)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building portfolio summary: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build portfolio summary")


@router.get("/pipeline-metrics", response_model=PipelineMetrics)
async def pipeline_metrics(db: DBSessionDep, clock: ClockDep) -> PipelineMetrics:
    """Total value, average deal size and cycle, conversion rate and stage distribution."""
    try:
        opportunities = await fetch_opportunities(db)
        return calculate_pipeline_metrics(opportunities, clock)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing pipeline metrics: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute pipeline metrics")


@router.get("/upcoming-closes", response_model=List[Opportunity])
async def upcoming_closes(
    db: DBSessionDep,
    clock: ClockDep,
    days: int = Query(DEFAULT_UPCOMING_DAYS, ge=0, le=MAX_UPCOMING_DAYS),
) -> List[Opportunity]:
    """Open opportunities expected to close within `days`, soonest first."""
    try:
        opportunities = await fetch_opportunities(db)
        return get_upcoming_closes(opportunities, days, clock)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing upcoming closes: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list upcoming closes")


# =============================================================================
# Single Opportunity Endpoints
# =============================================================================


@router.get("/{opportunity_id}/analytics", response_model=OpportunityAnalytics)
async def opportunity_analytics(
    opportunity_id: str,
    db: DBSessionDep,
    clock: ClockDep,
    rules: HealthRulesDep,
    catalog: GateCatalogDep,
) -> OpportunityAnalytics:
    """
    Health, gate evaluation and auto-advance eligibility for a stored deal.

    Raises:
        HTTPException 404: If the opportunity does not exist.
        HTTPException 500: If loading or analysis fails.
    """
    try:
        opportunity = await _require_opportunity(db, opportunity_id)
        return analyze_opportunity(opportunity, clock, rules, catalog)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error analyzing opportunity {opportunity_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to analyze opportunity")


@router.post("/{opportunity_id}/advance", response_model=StageChangeResult)
async def advance_opportunity(
    opportunity_id: str,
    request: StageChangeRequest,
    db: DBSessionDep,
    clock: ClockDep,
    catalog: GateCatalogDep,
    settings: SettingsDep,
) -> StageChangeResult:
    """
    Move an opportunity to a new stage and append to its stage history.

    Args:
        opportunity_id: Opportunity to move.
        request: Target stage and the reason recorded in the history.

    Returns:
        StageChangeResult with the previous and new stage, the auto-advance
        evaluation and the updated stage history.

    Raises:
        HTTPException 400: If the opportunity is already in the target stage.
        HTTPException 404: If the opportunity does not exist.
        HTTPException 500: If the change cannot be applied.

    Example Request:
        POST /opportunities/opp-001/advance
        {"newStage": "acquire", "reason": "Champion confirmed budget"}
    """
    try:
        opportunity = await _require_opportunity(db, opportunity_id)

        if normalize_stage(request.newStage) == normalize_stage(opportunity.stage):
            raise HTTPException(
                status_code=400,
                detail=f"Opportunity is already in stage {opportunity.stage}",
            )

        progression = await fetch_progression(db, opportunity_id)
        change = plan_stage_change(
            opportunity,
            request.newStage,
            progression=progression,
            reason=request.reason,
            clock=clock,
            catalog=catalog,
            review_interval_days=settings.progression_review_interval_days,
        )
        await apply_stage_change(db, change)
        return change
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error advancing opportunity {opportunity_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to apply stage change")
