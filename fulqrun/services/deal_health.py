"""
Deal Health / Risk Analyzer

Scores a single deal from 0 to 100 and classifies it as healthy, at-risk or
critical. Independent of the stage gates; both consume the same snapshot.

Scoring starts at 100 and subtracts fixed penalties. Rules are cumulative and
evaluated in this order without short-circuiting:

    Rule                     Trigger                                   Penalty
    ------------------------ ----------------------------------------- -------
    Stage stagnation         daysInStage > 30                          -15
    Activity staleness       lastActivity present, > 14 days ago       -20
    Value advisory           value < 10,000 or value > 500,000         none
    Qualification weakness   mean MEDDPICC sub-score < 60              -10

Final score = max(0, 100 - penalties).
Buckets: >= 80 healthy, 60-79 at-risk, < 60 critical.
confidenceLevel mirrors the score.

Trends reuse the same two time signals instead of a historical series:
- velocity: slowing when stagnant, otherwise stable
- engagement: increasing when the last activity is under 7 days old,
  otherwise decreasing
- competitive: moderate when a competitor is named, otherwise strong

An empty MEDDPICC map means "no qualification data": the weakness rule is
skipped instead of averaging over nothing.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Mapping, Optional

from fulqrun.core.clock import Clock, days_between, ensure_aware, utc_now
from fulqrun.core.config import Settings
from fulqrun.models.enums import (
    CompetitivePosition,
    DealHealth,
    EngagementTrend,
    VelocityTrend,
)
from fulqrun.models.schemas import AnalyticsResult, DealSnapshot, DealTrends
from fulqrun.services.meddpicc import clean_sub_scores


logger = logging.getLogger(__name__)


# =============================================================================
# Rule Configuration
# =============================================================================


@dataclass(frozen=True)
class HealthRules:
    """
    Thresholds and penalties for the deal health analyzer.

    Defaults match the production rule set; `from_settings` lets a deployment
    override them through environment variables.
    """
    stagnation_days: int = 30
    stagnation_penalty: int = 15
    inactivity_days: int = 14
    inactivity_penalty: int = 20
    qualification_min_score: float = 60
    qualification_penalty: int = 10
    small_deal_value: float = 10_000
    large_deal_value: float = 500_000
    healthy_min_score: int = 80
    at_risk_min_score: int = 60
    recent_engagement_days: int = 7

    @classmethod
    def from_settings(cls, settings: Settings) -> "HealthRules":
        return cls(
            stagnation_days=settings.stagnation_days,
            stagnation_penalty=settings.stagnation_penalty,
            inactivity_days=settings.inactivity_days,
            inactivity_penalty=settings.inactivity_penalty,
            qualification_min_score=settings.qualification_min_score,
            qualification_penalty=settings.qualification_penalty,
            small_deal_value=settings.small_deal_value,
            large_deal_value=settings.large_deal_value,
            healthy_min_score=settings.healthy_min_score,
            at_risk_min_score=settings.at_risk_min_score,
            recent_engagement_days=settings.recent_engagement_days,
        )


DEFAULT_HEALTH_RULES = HealthRules()


# Risk factor and recommendation text shown in the UI
RISK_STAGNANT = "Deal has been in current stage for over {days} days"
RISK_INACTIVE = "No recent activity ({days}+ days)"
RISK_WEAK_QUALIFICATION = "Low MEDDPICC qualification score"

REC_STAGNANT = "Review stage advancement criteria and take action to move forward"
REC_INACTIVE = "Schedule follow-up meeting or call immediately"
REC_SMALL_DEAL = "Consider qualifying deal size and expansion opportunities"
REC_LARGE_DEAL = "Ensure senior stakeholder engagement for high-value deal"
REC_WEAK_QUALIFICATION = "Focus on strengthening MEDDPICC qualification"


# =============================================================================
# Helpers
# =============================================================================


def mean_qualification_score(scores: Mapping[str, float]) -> Optional[float]:
    """
    Mean of the available MEDDPICC sub-scores, or None for an empty map.

    Sub-scores are clamped to [0, 100]; entries without a number (None, NaN)
    do not count.
    """
    values = list(clean_sub_scores(scores).values())
    if not values:
        return None
    return sum(values) / len(values)


def classify_health(score: int, rules: HealthRules = DEFAULT_HEALTH_RULES) -> DealHealth:
    """
    Map a 0-100 health score to a bucket.

    Example:
        >>> classify_health(80)
        <DealHealth.HEALTHY: 'healthy'>
        >>> classify_health(79)
        <DealHealth.AT_RISK: 'at-risk'>
        >>> classify_health(59)
        <DealHealth.CRITICAL: 'critical'>
    """
    if score >= rules.healthy_min_score:
        return DealHealth.HEALTHY
    if score >= rules.at_risk_min_score:
        return DealHealth.AT_RISK
    return DealHealth.CRITICAL


# =============================================================================
# Analyzer
# =============================================================================


def analyze_deal(
    snapshot: DealSnapshot,
    clock: Clock = utc_now,
    rules: HealthRules = DEFAULT_HEALTH_RULES,
) -> AnalyticsResult:
    """
    Compute the health score, bucket, risk factors and trends for a deal.

    Args:
        snapshot: Deal snapshot to analyze.
        clock: Source of "now" for activity recency.
        rules: Thresholds and penalties.

    Returns:
        AnalyticsResult. Deterministic for a given snapshot and clock.

    Example:
        daysInStage=45, lastActivity 20 days ago, MEDDPICC mean 40:
        100 - 15 - 20 - 10 = 55 -> critical
    """
    now = ensure_aware(clock())
    risk_factors: List[str] = []
    recommendations: List[str] = []
    penalty = 0

    # Stage stagnation
    stagnant = snapshot.daysInStage > rules.stagnation_days
    if stagnant:
        risk_factors.append(RISK_STAGNANT.format(days=rules.stagnation_days))
        recommendations.append(REC_STAGNANT)
        penalty += rules.stagnation_penalty

    # Activity staleness
    if snapshot.lastActivity is not None:
        if days_between(snapshot.lastActivity, now) > rules.inactivity_days:
            risk_factors.append(RISK_INACTIVE.format(days=rules.inactivity_days))
            recommendations.append(REC_INACTIVE)
            penalty += rules.inactivity_penalty

    # Value advisory, no penalty
    if snapshot.value < rules.small_deal_value:
        recommendations.append(REC_SMALL_DEAL)
    elif snapshot.value > rules.large_deal_value:
        recommendations.append(REC_LARGE_DEAL)

    # Qualification weakness
    qualification = mean_qualification_score(snapshot.meddpiccScores)
    if qualification is not None and qualification < rules.qualification_min_score:
        risk_factors.append(RISK_WEAK_QUALIFICATION)
        recommendations.append(REC_WEAK_QUALIFICATION)
        penalty += rules.qualification_penalty

    score = max(0, 100 - penalty)
    health = classify_health(score, rules)

    recently_engaged = (
        snapshot.lastActivity is not None
        and now - ensure_aware(snapshot.lastActivity) < timedelta(days=rules.recent_engagement_days)
    )

    trends = DealTrends(
        velocity=VelocityTrend.SLOWING if stagnant else VelocityTrend.STABLE,
        engagement=EngagementTrend.INCREASING if recently_engaged else EngagementTrend.DECREASING,
        competitive=CompetitivePosition.MODERATE if snapshot.competitor else CompetitivePosition.STRONG,
    )

    logger.debug(
        "Deal %s health: score=%d bucket=%s risks=%d",
        snapshot.id,
        score,
        health.value,
        len(risk_factors),
    )

    return AnalyticsResult(
        dealHealth=health,
        riskFactors=risk_factors,
        recommendations=recommendations,
        score=score,
        trends=trends,
        confidenceLevel=score,
    )


__all__ = [
    "HealthRules",
    "DEFAULT_HEALTH_RULES",
    "analyze_deal",
    "classify_health",
    "mean_qualification_score",
]
