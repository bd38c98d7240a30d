"""
FastAPI router for stateless deal analytics.

The caller supplies the data in the request body; no database access.

Key Endpoints:
- POST /analytics/deal - Health analysis of one snapshot
- POST /analytics/portfolio - Portfolio summary over a list of snapshots
- POST /analytics/opportunity - Combined health and progression analysis of
  an opportunity record

Time-dependent fields (activity recency) are measured with the injected
clock, so tests can pin "now" through dependency overrides.
"""

import logging
from typing import List

from fastapi import APIRouter

from fulqrun.core.dependencies import ClockDep, GateCatalogDep, HealthRulesDep
from fulqrun.models.schemas import (
    AnalyticsResult,
    DealSnapshot,
    Opportunity,
    OpportunityAnalytics,
    PortfolioSummary,
)
from fulqrun.services.deal_health import analyze_deal
from fulqrun.services.opportunity_analytics import analyze_opportunity
from fulqrun.services.portfolio import analyze_portfolio


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/deal", response_model=AnalyticsResult)
async def deal_analytics(
    snapshot: DealSnapshot,
    clock: ClockDep,
    rules: HealthRulesDep,
) -> AnalyticsResult:
    """
    Score a deal's health and list its risk factors and recommendations.

    Returns:
        AnalyticsResult with score, bucket, risk factors, recommendations and
        trends.
    """
    result = analyze_deal(snapshot, clock, rules)
    logger.info("Analyzed deal %s: %s (%d)", snapshot.id, result.dealHealth.value, result.score)
    return result


@router.post("/portfolio", response_model=PortfolioSummary)
async def portfolio_analytics(
    snapshots: List[DealSnapshot],
    clock: ClockDep,
    rules: HealthRulesDep,
) -> PortfolioSummary:
    """Aggregate health analyses over a list of deals. An empty list is valid."""
    return analyze_portfolio(snapshots, clock, rules)


@router.post("/opportunity", response_model=OpportunityAnalytics)
async def opportunity_analytics(
    opportunity: Opportunity,
    clock: ClockDep,
    rules: HealthRulesDep,
    catalog: GateCatalogDep,
) -> OpportunityAnalytics:
    """
    Analyze a full opportunity record.

    The snapshot is derived server-side, so daysInStage and
    totalDaysInPipeline are computed from the record's timestamps.
    """
    return analyze_opportunity(opportunity, clock, rules, catalog)
