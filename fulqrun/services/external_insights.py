"""
External AI insight mapping.

The AI insight service returns loosely structured JSON. This module maps that
payload field by field into an ExternalInsight, filling defaults for anything
missing or malformed. The result is marked unvalidated and is only ever shown
next to the deterministic engine output; it is never converted into engine
input.
"""

import logging
import math
from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from fulqrun.models.enums import InsightConfidence
from fulqrun.models.schemas import ExternalInsight


logger = logging.getLogger(__name__)

_datetime_adapter = TypeAdapter(datetime)


def _risk_score(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return max(0.0, min(100.0, number))


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return []


def _confidence(value: Any) -> Optional[InsightConfidence]:
    if not isinstance(value, str):
        return None
    try:
        return InsightConfidence(value.strip().lower())
    except ValueError:
        return None


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return _datetime_adapter.validate_python(value)
    except ValidationError:
        return None


def map_external_insight(raw: Optional[Mapping[str, Any]]) -> Optional[ExternalInsight]:
    """
    Map a raw AI payload to an ExternalInsight.

    Args:
        raw: Decoded JSON object from the AI service, or None.

    Returns:
        ExternalInsight with unparseable fields defaulted, or None when the
        payload is absent or not a JSON object.
    """
    if not isinstance(raw, Mapping) or not raw:
        return None

    insight = ExternalInsight(
        riskScore=_risk_score(raw.get("riskScore")),
        nextBestActions=_string_list(raw.get("nextBestActions")),
        predictedCloseDate=_timestamp(raw.get("predictedCloseDate")),
        confidenceLevel=_confidence(raw.get("confidenceLevel")),
        competitorAnalysis=raw.get("competitorAnalysis") if isinstance(raw.get("competitorAnalysis"), str) else None,
        lastAiUpdate=_timestamp(raw.get("lastAiUpdate")),
    )

    if raw.get("riskScore") is not None and insight.riskScore is None:
        logger.warning("Dropped unparseable riskScore from AI insight: %r", raw.get("riskScore"))

    return insight


__all__ = ["map_external_insight"]
