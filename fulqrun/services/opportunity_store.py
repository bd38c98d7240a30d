"""
Opportunity persistence (asyncpg).

Loads opportunities and stage history from PostgreSQL and writes stage changes
that a caller has decided to apply. The engines never call this module; the
HTTP layer does, passing in a pooled connection from get_db_session.

JSONB columns (meddpicc, contacts, activities, ai_insights, stage_history,
gate_results) come back from asyncpg as text unless a codec is registered,
so they are decoded here before validation.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from asyncpg import Connection
from pydantic import ValidationError

from fulqrun.models.schemas import DealProgression, Opportunity, StageChangeResult
from fulqrun.sql.opportunity_queries import (
    DEFAULT_PORTFOLIO_LIMIT,
    get_opportunities_query,
    get_opportunity_query,
    get_progression_query,
    get_progression_upsert_query,
    get_update_stage_query,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Row Mapping
# =============================================================================


def _decode_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, (bytes, str)):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("Discarding malformed JSON column value")
            return default
    return value


def row_to_opportunity(row: Mapping[str, Any]) -> Opportunity:
    """
    Map an opportunity row to an Opportunity model.

    Raises:
        pydantic.ValidationError: If required columns are missing or invalid.
    """
    ai_insights = _decode_json(row.get("ai_insights"), None)
    return Opportunity(
        id=str(row["id"]),
        companyId=row.get("company_id"),
        contactId=row.get("contact_id"),
        title=row.get("title") or "",
        description=row.get("description") or "",
        value=float(row.get("value") or 0),
        stage=row["stage"],
        probability=float(row.get("probability") or 0),
        expectedCloseDate=row.get("expected_close_date"),
        ownerId=row.get("owner_id"),
        priority=row.get("priority"),
        meddpicc=_decode_json(row.get("meddpicc"), {}) or {},
        contacts=_decode_json(row.get("contacts"), []) or [],
        activities=_decode_json(row.get("activities"), []) or [],
        competitor=row.get("competitor"),
        lastActivityAt=row.get("last_activity_at"),
        aiInsights=ai_insights if isinstance(ai_insights, dict) else None,
        createdAt=row["created_at"],
        updatedAt=row["updated_at"],
    )


def row_to_progression(row: Mapping[str, Any]) -> DealProgression:
    """Map a deal_progression row to a DealProgression model."""
    return DealProgression(
        dealId=str(row["deal_id"]),
        currentStage=row["current_stage"],
        stageHistory=_decode_json(row.get("stage_history"), []) or [],
        gateResults=_decode_json(row.get("gate_results"), {}) or {},
        lastEvaluation=row["last_evaluation"],
        nextEvaluationDue=row["next_evaluation_due"],
    )


# =============================================================================
# Reads
# =============================================================================


async def fetch_opportunity(conn: Connection, opportunity_id: str) -> Optional[Opportunity]:
    """Load one opportunity, or None if it does not exist."""
    row = await conn.fetchrow(get_opportunity_query(), opportunity_id)
    if row is None:
        return None
    return row_to_opportunity(dict(row))


async def fetch_opportunities(
    conn: Connection,
    stage: Optional[str] = None,
    limit: int = DEFAULT_PORTFOLIO_LIMIT,
) -> List[Opportunity]:
    """
    Load opportunities, newest first, optionally filtered by stage.

    Rows that fail validation are logged and skipped so one bad record does
    not take down a portfolio view.
    """
    query = get_opportunities_query(stage)
    args: List[Any] = [limit]
    if stage is not None:
        args.append(stage)

    rows = await conn.fetch(query, *args)

    opportunities: List[Opportunity] = []
    for row in rows:
        try:
            opportunities.append(row_to_opportunity(dict(row)))
        except ValidationError as e:
            logger.warning("Skipping invalid opportunity row %s: %s", row.get("id"), e)

    logger.info("Loaded %d opportunities (stage=%s)", len(opportunities), stage or "all")
    return opportunities


async def fetch_progression(conn: Connection, deal_id: str) -> Optional[DealProgression]:
    """Load a deal's stage history, or None if none has been recorded."""
    row = await conn.fetchrow(get_progression_query(), deal_id)
    if row is None:
        return None
    return row_to_progression(dict(row))


# =============================================================================
# Writes
# =============================================================================


def _history_json(progression: DealProgression) -> str:
    return json.dumps([entry.model_dump(mode="json") for entry in progression.stageHistory])


def _gates_json(gates: Dict[str, bool]) -> str:
    return json.dumps(gates)


async def apply_stage_change(conn: Connection, change: StageChangeResult) -> None:
    """
    Persist a planned stage change.

    Updates the opportunity stage and upserts its progression record in a
    single transaction.
    """
    progression = change.progression
    changed_at = progression.lastEvaluation

    async with conn.transaction():
        await conn.execute(
            get_update_stage_query(),
            change.opportunityId,
            change.newStage,
            changed_at,
        )
        await conn.execute(
            get_progression_upsert_query(),
            progression.dealId,
            progression.currentStage,
            _history_json(progression),
            _gates_json(progression.gateResults),
            progression.lastEvaluation,
            progression.nextEvaluationDue,
        )

    logger.info(
        "Applied stage change for %s: %s -> %s (manual override: %s)",
        change.opportunityId,
        change.previousStage,
        change.newStage,
        change.manualOverride,
    )


__all__ = [
    "row_to_opportunity",
    "row_to_progression",
    "fetch_opportunity",
    "fetch_opportunities",
    "fetch_progression",
    "apply_stage_change",
]
