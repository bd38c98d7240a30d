"""
Opportunity-level analytics.

Glue between persisted opportunities and the pure engines:

    Opportunity --to_snapshot--> DealSnapshot --+--> analyze_deal
                                                +--> evaluate_deal_progression
                                                +--> can_auto_advance

plus the mapped external AI insight shown alongside the deterministic output.
Also plans stage changes: evaluates auto-advance eligibility, flags manual
overrides and produces the updated stage history without persisting it.
"""

import logging
from typing import Optional, Sequence

from fulqrun.core.clock import Clock, utc_now
from fulqrun.models.schemas import (
    DealProgression,
    Opportunity,
    OpportunityAnalytics,
    PortfolioSummary,
    StageChangeResult,
)
from fulqrun.services.deal_health import DEFAULT_HEALTH_RULES, HealthRules, analyze_deal
from fulqrun.services.external_insights import map_external_insight
from fulqrun.services.portfolio import analyze_portfolio
from fulqrun.services.progression import (
    DEFAULT_GATE_CATALOG,
    GateCatalog,
    can_auto_advance,
    evaluate_deal_progression,
    normalize_stage,
)
from fulqrun.services.snapshot import to_snapshot
from fulqrun.services.stage_history import DEFAULT_REVIEW_INTERVAL_DAYS, record_stage_change


logger = logging.getLogger(__name__)


def analyze_opportunity(
    opportunity: Opportunity,
    clock: Clock = utc_now,
    rules: HealthRules = DEFAULT_HEALTH_RULES,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> OpportunityAnalytics:
    """
    Full analytics for one opportunity.

    Args:
        opportunity: Persisted opportunity.
        clock: Source of "now"; one reading is shared by snapshot and analyzer.
        rules: Health analyzer thresholds.
        catalog: Stage gate configuration.

    Returns:
        OpportunityAnalytics combining the health analysis, the current
        stage's gate results and auto-advance eligibility.
    """
    now = clock()
    frozen_clock = lambda: now  # noqa: E731

    snapshot = to_snapshot(opportunity, frozen_clock)
    health = analyze_deal(snapshot, frozen_clock, rules)
    progression = evaluate_deal_progression(snapshot, catalog)
    auto = can_auto_advance(snapshot, catalog)

    return OpportunityAnalytics(
        **health.model_dump(),
        opportunityId=opportunity.id,
        currentStage=opportunity.stage,
        progressionResults=progression,
        canAutoAdvance=auto.canAdvance,
        nextStage=auto.nextStage,
        aiInsights=map_external_insight(opportunity.aiInsights),
    )


def summarize_opportunities(
    opportunities: Sequence[Opportunity],
    clock: Clock = utc_now,
    rules: HealthRules = DEFAULT_HEALTH_RULES,
) -> PortfolioSummary:
    """Portfolio summary over persisted opportunities."""
    now = clock()
    frozen_clock = lambda: now  # noqa: E731
    snapshots = [to_snapshot(opp, frozen_clock) for opp in opportunities]
    return analyze_portfolio(snapshots, frozen_clock, rules)


def plan_stage_change(
    opportunity: Opportunity,
    new_stage: str,
    progression: Optional[DealProgression] = None,
    reason: str = "Stage advancement",
    clock: Clock = utc_now,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
    review_interval_days: int = DEFAULT_REVIEW_INTERVAL_DAYS,
) -> StageChangeResult:
    """
    Work out the effect of moving an opportunity to `new_stage`.

    The move is always permitted. It is flagged as a manual override unless
    the deal qualifies for auto-advancement and `new_stage` is the designated
    successor of its current stage.

    Returns:
        StageChangeResult carrying the updated DealProgression; nothing is
        persisted here.
    """
    now = clock()
    frozen_clock = lambda: now  # noqa: E731

    snapshot = to_snapshot(opportunity, frozen_clock)
    auto = can_auto_advance(snapshot, catalog)
    gate_results = evaluate_deal_progression(snapshot, catalog).get(snapshot.stage)

    target = normalize_stage(new_stage)
    qualified = auto.canAdvance and auto.nextStage is not None and auto.nextStage == target
    manual_override = not qualified

    if manual_override:
        logger.info(
            "Manual stage override for opportunity %s: %s -> %s",
            opportunity.id,
            opportunity.stage,
            target,
        )

    updated = record_stage_change(
        progression,
        deal_id=opportunity.id,
        new_stage=target,
        reason=reason,
        gate_results=gate_results.gatesPassed if gate_results is not None else None,
        clock=frozen_clock,
        review_interval_days=review_interval_days,
    )

    return StageChangeResult(
        opportunityId=opportunity.id,
        previousStage=opportunity.stage,
        newStage=target,
        manualOverride=manual_override,
        autoAdvance=auto,
        progression=updated,
    )


__all__ = [
    "analyze_opportunity",
    "summarize_opportunities",
    "plan_stage_change",
]
