"""
Deal stage history tracking.

Maintains the DealProgression record of a deal: the list of stages it has
visited with entry/exit dates, the most recent gate results, and when the
next progression review is due.

Both operations are pure: they return a new DealProgression and leave the
input untouched. Persisting the result is up to the caller.
"""

from datetime import timedelta
from typing import Dict, Optional

from fulqrun.core.clock import Clock, days_between, ensure_aware, utc_now
from fulqrun.models.schemas import DealProgression, StageHistoryEntry


DEFAULT_REVIEW_INTERVAL_DAYS: int = 7


def initialize_progression(
    deal_id: str,
    stage: str,
    clock: Clock = utc_now,
    reason: str = "Initial stage",
    review_interval_days: int = DEFAULT_REVIEW_INTERVAL_DAYS,
) -> DealProgression:
    """Start a progression record with a single open history entry."""
    now = ensure_aware(clock())
    return DealProgression(
        dealId=deal_id,
        currentStage=stage,
        stageHistory=[
            StageHistoryEntry(
                stage=stage,
                enteredDate=now,
                daysInStage=0,
                advancementReason=reason,
            )
        ],
        gateResults={},
        lastEvaluation=now,
        nextEvaluationDue=now + timedelta(days=review_interval_days),
    )


def record_stage_change(
    progression: Optional[DealProgression],
    deal_id: str,
    new_stage: str,
    reason: str = "Stage advancement",
    gate_results: Optional[Dict[str, bool]] = None,
    clock: Clock = utc_now,
    review_interval_days: int = DEFAULT_REVIEW_INTERVAL_DAYS,
) -> DealProgression:
    """
    Close the open history entry and open one for `new_stage`.

    With no existing progression a fresh one is started at `new_stage`.

    Args:
        progression: Current progression record, or None.
        deal_id: Deal the record belongs to.
        new_stage: Stage being entered.
        reason: Why the deal moved (shown in the history).
        gate_results: Gate outcomes that justified the move, if evaluated.
        clock: Source of "now".
        review_interval_days: Days until the next review is due.

    Returns:
        A new DealProgression.
    """
    if progression is None:
        fresh = initialize_progression(
            deal_id, new_stage, clock, reason=reason, review_interval_days=review_interval_days
        )
        if gate_results:
            fresh = fresh.model_copy(update={"gateResults": dict(gate_results)})
        return fresh

    now = ensure_aware(clock())
    history = [entry.model_copy() for entry in progression.stageHistory]

    if history and history[-1].exitedDate is None:
        last = history[-1]
        history[-1] = last.model_copy(update={
            "exitedDate": now,
            "daysInStage": days_between(last.enteredDate, now),
        })

    history.append(
        StageHistoryEntry(
            stage=new_stage,
            enteredDate=now,
            daysInStage=0,
            advancementReason=reason,
        )
    )

    return progression.model_copy(update={
        "currentStage": new_stage,
        "stageHistory": history,
        "gateResults": dict(gate_results) if gate_results is not None else dict(progression.gateResults),
        "lastEvaluation": now,
        "nextEvaluationDue": now + timedelta(days=review_interval_days),
    })


__all__ = [
    "initialize_progression",
    "record_stage_change",
    "DEFAULT_REVIEW_INTERVAL_DAYS",
]
