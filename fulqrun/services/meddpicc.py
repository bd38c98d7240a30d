"""
MEDDPICC Qualification Scoring

Scores the eight MEDDPICC criteria (Metrics, Economic Buyer, Decision Criteria,
Decision Process, Paper Process, Identify Pain, Champion, Competition).

Scoring rules:
- Each criterion is a confidence score in [0, 10]; out-of-range values are
  clamped and non-numeric values coerce to 0. Inputs are never rejected.
- A criterion scored exactly 0 counts as "not yet assessed" and is left out
  of the average, so a freshly created deal is not penalized for blanks.
- The aggregate score is (mean of non-zero criteria) x 10, in [0, 100].
  With nothing assessed the score is 0.

The zero-as-unassessed policy is a product decision: 0 is also a legitimate
"assessed as failing" value on the 0-10 slider.
"""

import math
from typing import Any, Dict, Mapping, Optional

from fulqrun.models.enums import MeddpiccCriterion
from fulqrun.models.schemas import MeddpiccRecord


CRITERION_MIN: float = 0.0
CRITERION_MAX: float = 10.0

# Multiplier from the 0-10 criterion scale to the 0-100 engine scale
RESCALE_FACTOR: float = 10.0

SUB_SCORE_MAX: float = 100.0


def to_criterion_score(value: Any) -> float:
    """
    Coerce any value to a valid criterion score in [0, 10].

    Numeric strings are parsed; None, NaN, booleans and anything unparseable
    become 0.

    Args:
        value: Raw criterion value from a form, the store or an AI hint.

    Returns:
        Clamped criterion score.
    """
    if value is None or isinstance(value, bool):
        return CRITERION_MIN
    try:
        number = float(value)
    except (TypeError, ValueError):
        return CRITERION_MIN
    if math.isnan(number):
        return CRITERION_MIN
    return max(CRITERION_MIN, min(CRITERION_MAX, number))


def calculate_meddpicc_score(criteria: Mapping[str, Any]) -> float:
    """
    Calculate the 0-100 aggregate MEDDPICC score.

    Only the eight named criteria are read; other keys are ignored and absent
    criteria count as unassessed.

    Args:
        criteria: Mapping of criterion name (camelCase) to raw score.

    Returns:
        (mean of non-zero criterion scores) x 10, or 0 if none are non-zero.

    Example:
        >>> calculate_meddpicc_score({"metrics": 8, "champion": 6})
        70.0
        >>> calculate_meddpicc_score({})
        0.0
    """
    assessed = [
        score
        for score in (to_criterion_score(criteria.get(c.value)) for c in MeddpiccCriterion)
        if score > 0
    ]
    if not assessed:
        return 0.0
    return sum(assessed) / len(assessed) * RESCALE_FACTOR


def to_sub_score(value: Any) -> Optional[float]:
    """
    Coerce a rescaled sub-score to [0, 100].

    Unlike to_criterion_score, a value that carries no number (None, NaN,
    booleans, unparseable strings) gives None so the caller can leave it out
    instead of counting it as a failing 0.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return max(CRITERION_MIN, min(SUB_SCORE_MAX, number))


def clean_sub_scores(scores: Mapping[str, Any]) -> Dict[str, float]:
    """Clamp every sub-score to [0, 100] and drop entries with no usable number."""
    cleaned: Dict[str, float] = {}
    for name, raw in scores.items():
        score = to_sub_score(raw)
        if score is not None:
            cleaned[name] = score
    return cleaned


def rescale_criteria(record: MeddpiccRecord) -> Dict[str, float]:
    """
    Rescale each criterion from [0, 10] to [0, 100].

    This is a straight x10 per criterion and is independent of the aggregate
    score; unassessed criteria are carried through as 0.
    """
    return {
        name: score * RESCALE_FACTOR
        for name, score in record.criteria_scores().items()
    }


def ensure_meddpicc_complete(partial: Optional[Mapping[str, Any]]) -> MeddpiccRecord:
    """
    Build a complete MEDDPICC record from a partial mapping.

    Missing criteria default to 0, missing notes to "", and the score is
    recomputed. Used when stored records or AI hints only carry some fields.
    """
    return MeddpiccRecord.model_validate(dict(partial or {}))


def apply_criterion_updates(
    record: MeddpiccRecord,
    updates: Mapping[str, Any],
) -> MeddpiccRecord:
    """
    Return a copy of `record` with `updates` applied and the score recomputed.

    The original record is not modified. Unknown keys are ignored.
    """
    merged = record.model_dump()
    merged.update(updates)
    merged.pop("score", None)
    return MeddpiccRecord.model_validate(merged)


__all__ = [
    "to_criterion_score",
    "to_sub_score",
    "clean_sub_scores",
    "calculate_meddpicc_score",
    "rescale_criteria",
    "ensure_meddpicc_complete",
    "apply_criterion_updates",
    "RESCALE_FACTOR",
]
