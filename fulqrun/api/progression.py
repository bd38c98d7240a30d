"""
FastAPI router for the stage-gate progression engine.

Stateless endpoints: the caller posts a DealSnapshot and gets the gate
evaluation back. Nothing is read from or written to the database.

Key Endpoints:
- POST /progression/evaluate - Evaluate a stage's gates for a snapshot
- POST /progression/auto-advance - Auto-advancement eligibility
- GET /progression/stages/{stage}/requirements - Remediation checklist for a stage

Unknown stages are not an HTTP error: the engine returns its degraded
"Stage configuration not found" result with status 200.
"""

import logging

from fastapi import APIRouter

from fulqrun.core.dependencies import GateCatalogDep
from fulqrun.models.schemas import (
    AutoAdvanceResult,
    DealSnapshot,
    ProgressionResult,
    StageEvaluationRequest,
    StageRequirements,
)
from fulqrun.services.progression import (
    can_auto_advance,
    evaluate_stage,
    get_next_stage,
    get_stage_requirements,
    normalize_stage,
)


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# POST /progression/evaluate
# =============================================================================


@router.post("/evaluate", response_model=ProgressionResult)
async def evaluate(request: StageEvaluationRequest, catalog: GateCatalogDep) -> ProgressionResult:
    """
    Evaluate the gate checklist of a stage against a deal snapshot.

    Args:
        request: Snapshot plus an optional stage; the snapshot's own stage is
            used when `stage` is omitted.
        catalog: Gate configuration from dependency injection.

    Returns:
        ProgressionResult with per-gate outcomes, required actions and
        confidence.

    Example Request:
        POST /progression/evaluate
        {"snapshot": {"id": "opp-001", "stage": "engage", ...}, "stage": "engage"}
    """
    result = evaluate_stage(request.snapshot, request.stage, catalog)
    logger.info(
        "Evaluated stage %s for deal %s: canAdvance=%s confidence=%d",
        request.stage or request.snapshot.stage,
        request.snapshot.id,
        result.canAdvance,
        result.confidence,
    )
    return result


# =============================================================================
# POST /progression/auto-advance
# =============================================================================


@router.post("/auto-advance", response_model=AutoAdvanceResult)
async def auto_advance(snapshot: DealSnapshot, catalog: GateCatalogDep) -> AutoAdvanceResult:
    """Decide whether the deal qualifies to leave its current stage automatically."""
    return can_auto_advance(snapshot, catalog)


# =============================================================================
# GET /progression/stages/{stage}/requirements
# =============================================================================


@router.get("/stages/{stage}/requirements", response_model=StageRequirements)
async def stage_requirements(stage: str, catalog: GateCatalogDep) -> StageRequirements:
    """
    List the remediation actions for every gate of a stage.

    Terminal and unknown stages return an empty checklist and no next stage.
    """
    return StageRequirements(
        stage=normalize_stage(stage),
        nextStage=get_next_stage(stage, catalog),
        requirements=get_stage_requirements(stage, catalog),
    )
