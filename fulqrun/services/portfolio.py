"""
Portfolio Aggregator and Pipeline Metrics

Rolls per-deal analyses up into pipeline-wide statistics.

analyze_portfolio:
    Runs the deal health analyzer once per snapshot and folds the results into
    total count, total and mean value, counts by stage, counts by health bucket
    and the number of deals that are not healthy. No memoization: inputs are
    UI-scale (a few hundred deals at most).

calculate_pipeline_metrics:
    Headline metrics over opportunities: total value, average deal size,
    average sales cycle (mean days since creation), conversion rate (share of
    deals in keep or closed-won) and the PEAK stage distribution.

Empty inputs yield zeroed aggregates; no mean is ever taken over nothing.
"""

import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd

from fulqrun.core.clock import Clock, days_between, ensure_aware, utc_now
from fulqrun.models.enums import DealHealth, PEAK_STAGES, Stage, TERMINAL_STAGES
from fulqrun.models.schemas import (
    DealSnapshot,
    Opportunity,
    PipelineMetrics,
    PortfolioSummary,
)
from fulqrun.services.deal_health import DEFAULT_HEALTH_RULES, HealthRules, analyze_deal


logger = logging.getLogger(__name__)


# Progress bar percentage per PEAK stage
STAGE_PROGRESS: Dict[str, int] = {
    Stage.PROSPECT.value: 25,
    Stage.ENGAGE.value: 50,
    Stage.ACQUIRE.value: 75,
    Stage.KEEP.value: 100,
}

# Stages counted as converted in the pipeline conversion rate
CONVERTED_STAGES = (Stage.KEEP.value, Stage.CLOSED_WON.value)


def _counts(series: pd.Series) -> Dict[str, int]:
    return {str(key): int(count) for key, count in series.value_counts(sort=False).items()}


# =============================================================================
# Portfolio Summary
# =============================================================================


def analyze_portfolio(
    snapshots: Sequence[DealSnapshot],
    clock: Clock = utc_now,
    rules: HealthRules = DEFAULT_HEALTH_RULES,
) -> PortfolioSummary:
    """
    Fold deal analyses into a portfolio summary.

    Args:
        snapshots: Deal snapshots to aggregate.
        clock: Source of "now" passed to the health analyzer.
        rules: Health analyzer thresholds.

    Returns:
        PortfolioSummary; an empty input gives all-zero totals and empty
        distributions.

    Example:
        >>> summary = analyze_portfolio([])
        >>> (summary.totalOpportunities, summary.averageValue)
        (0, 0.0)
    """
    if not snapshots:
        return PortfolioSummary()

    analyses = [analyze_deal(snapshot, clock, rules) for snapshot in snapshots]

    frame = pd.DataFrame({
        "stage": [snapshot.stage for snapshot in snapshots],
        "value": [float(snapshot.value) for snapshot in snapshots],
        "health": [analysis.dealHealth.value for analysis in analyses],
    })

    total_value = float(frame["value"].sum())
    count = len(frame)
    risk_deals = int((frame["health"] != DealHealth.HEALTHY.value).sum())

    logger.info(
        "Portfolio analyzed: %d deals, %d at risk, total value %.2f",
        count,
        risk_deals,
        total_value,
    )

    return PortfolioSummary(
        totalOpportunities=count,
        totalValue=total_value,
        averageValue=total_value / count,
        stageDistribution=_counts(frame["stage"]),
        healthDistribution=_counts(frame["health"]),
        riskDeals=risk_deals,
    )


# =============================================================================
# Pipeline Metrics
# =============================================================================


def calculate_pipeline_metrics(
    opportunities: Sequence[Opportunity],
    clock: Clock = utc_now,
) -> PipelineMetrics:
    """
    Compute headline pipeline metrics.

    stageDistribution always lists the four PEAK stages, zero-filled; deals in
    other stages count toward totals but not the distribution.
    """
    distribution = {stage.value: 0 for stage in PEAK_STAGES}

    if not opportunities:
        return PipelineMetrics(stageDistribution=distribution)

    now = clock()
    values = np.array([opp.value for opp in opportunities], dtype=np.float64)
    cycle_days = np.array(
        [days_between(opp.createdAt, now) for opp in opportunities],
        dtype=np.float64,
    )
    stages = [opp.stage for opp in opportunities]

    for stage in stages:
        if stage in distribution:
            distribution[stage] += 1

    total = len(opportunities)
    converted = sum(1 for stage in stages if stage in CONVERTED_STAGES)
    total_value = float(values.sum())

    return PipelineMetrics(
        totalValue=total_value,
        totalOpportunities=total,
        averageDealSize=total_value / total,
        averageSalesCycle=float(np.mean(cycle_days)),
        conversionRate=converted / total * 100,
        stageDistribution=distribution,
    )


def get_stage_progress(stage: str) -> int:
    """Pipeline progress percentage for a PEAK stage; 0 for anything else."""
    return STAGE_PROGRESS.get(stage, 0)


def get_upcoming_closes(
    opportunities: Iterable[Opportunity],
    days: int = 30,
    clock: Clock = utc_now,
) -> List[Opportunity]:
    """
    Open opportunities expected to close within `days`, soonest first.

    Opportunities without an expected close date and those in a terminal
    stage are excluded. Overdue open deals are included.
    """
    cutoff = ensure_aware(clock()) + timedelta(days=days)
    terminal = {stage.value for stage in TERMINAL_STAGES}

    upcoming = [
        opp
        for opp in opportunities
        if opp.expectedCloseDate is not None
        and ensure_aware(opp.expectedCloseDate) <= cutoff
        and opp.stage not in terminal
    ]
    return sorted(upcoming, key=lambda opp: ensure_aware(opp.expectedCloseDate))


__all__ = [
    "analyze_portfolio",
    "calculate_pipeline_metrics",
    "get_stage_progress",
    "get_upcoming_closes",
    "STAGE_PROGRESS",
]
