"""
Deal Snapshot Adapter

Converts a persisted Opportunity into the DealSnapshot consumed by the
stage-gate engine and the deal health analyzer.

The conversion is a pure transformation except that elapsed-day fields are
measured against the injected clock:
- daysInStage = floor(now - updatedAt) in days
- totalDaysInPipeline = floor(now - createdAt) in days
Both are clamped at 0 for timestamps in the future.

The adapter never fails on a validated Opportunity: missing contacts,
activities and competitor default to empty / None, negative values clamp to 0
and probability clamps to [0, 100].
"""

import logging
from datetime import datetime
from typing import List, Optional

from fulqrun.core.clock import Clock, days_between, ensure_aware, utc_now
from fulqrun.models.schemas import Activity, DealSnapshot, Opportunity
from fulqrun.services.meddpicc import rescale_criteria


logger = logging.getLogger(__name__)


def latest_activity_date(
    activities: List[Activity],
    fallback: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Return the most recent dated activity, or `fallback` if none is dated.
    """
    dated = [ensure_aware(a.date) for a in activities if a.date is not None]
    if dated:
        return max(dated)
    return ensure_aware(fallback) if fallback is not None else None


def to_snapshot(opportunity: Opportunity, clock: Clock = utc_now) -> DealSnapshot:
    """
    Derive a DealSnapshot from an Opportunity.

    Args:
        opportunity: The persisted opportunity record.
        clock: Source of "now" for elapsed-day fields.

    Returns:
        DealSnapshot with MEDDPICC criteria rescaled to [0, 100].

    Example:
        >>> snapshot = to_snapshot(opportunity, clock=fixed_clock(as_of))
        >>> snapshot.meddpiccScores["champion"]
        70.0
    """
    now = clock()

    snapshot = DealSnapshot(
        id=opportunity.id,
        name=opportunity.title,
        value=max(0.0, opportunity.value),
        stage=opportunity.stage,
        probability=max(0.0, min(100.0, opportunity.probability)),
        daysInStage=days_between(opportunity.updatedAt, now),
        totalDaysInPipeline=days_between(opportunity.createdAt, now),
        lastActivity=latest_activity_date(opportunity.activities, opportunity.lastActivityAt),
        meddpiccScores=rescale_criteria(opportunity.meddpicc),
        closeDate=opportunity.expectedCloseDate,
        createdDate=opportunity.createdAt,
        competitor=opportunity.competitor or None,
        contacts=list(opportunity.contacts),
        activities=list(opportunity.activities),
    )

    logger.debug(
        "Snapshot %s: stage=%s daysInStage=%d totalDays=%d",
        snapshot.id,
        snapshot.stage,
        snapshot.daysInStage,
        snapshot.totalDaysInPipeline,
    )
    return snapshot


__all__ = [
    "to_snapshot",
    "latest_activity_date",
]
