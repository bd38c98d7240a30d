"""
Backend Services Module

Business logic for FulQrun deal progression and analytics. The engine
services are pure and stateless: they take a DealSnapshot (or Opportunity)
plus an injectable clock and return new result objects. Only
opportunity_store talks to the database.

Services:
- meddpicc: MEDDPICC criterion clamping and aggregate scoring
- snapshot: Opportunity -> DealSnapshot adapter
- progression: Stage-gate engine (gate evaluation, auto-advance)
- deal_health: Deal health / risk analyzer
- portfolio: Portfolio summary and pipeline metrics
- stage_history: DealProgression stage history
- external_insights: Mapping of unvalidated AI insight payloads
- opportunity_analytics: Per-opportunity analytics and stage change planning
- opportunity_store: asyncpg persistence for opportunities and stage history

All services are designed to be consumed by the API layer (fulqrun/api/).
"""

# =============================================================================
# MEDDPICC Scoring Exports
# =============================================================================

from fulqrun.services.meddpicc import (
    to_criterion_score,
    to_sub_score,
    clean_sub_scores,
    calculate_meddpicc_score,
    rescale_criteria,
    ensure_meddpicc_complete,
    apply_criterion_updates,
)

# =============================================================================
# Snapshot Adapter Exports
# =============================================================================

from fulqrun.services.snapshot import (
    to_snapshot,
    latest_activity_date,
)

# =============================================================================
# Stage-Gate Engine Exports
# Gate catalog, per-stage gate evaluation and auto-advance eligibility
# =============================================================================

from fulqrun.services.progression import (
    GateCatalog,
    StageGates,
    DEFAULT_GATE_CATALOG,
    STAGE_NOT_FOUND_ACTION,
    normalize_stage,
    evaluate_stage,
    can_auto_advance,
    evaluate_deal_progression,
    get_stage_requirements,
    get_next_stage,
)

# =============================================================================
# Deal Health Exports
# Rule-based 0-100 health score, bucket, risk factors and trends
# =============================================================================

from fulqrun.services.deal_health import (
    HealthRules,
    DEFAULT_HEALTH_RULES,
    analyze_deal,
    classify_health,
    mean_qualification_score,
)

# =============================================================================
# Portfolio Exports
# =============================================================================

from fulqrun.services.portfolio import (
    analyze_portfolio,
    calculate_pipeline_metrics,
    get_stage_progress,
    get_upcoming_closes,
)

# =============================================================================
# Stage History Exports
# =============================================================================

from fulqrun.services.stage_history import (
    initialize_progression,
    record_stage_change,
)

# =============================================================================
# External Insight Exports
# =============================================================================

from fulqrun.services.external_insights import map_external_insight

# =============================================================================
# Opportunity Analytics Exports
# =============================================================================

from fulqrun.services.opportunity_analytics import (
    analyze_opportunity,
    summarize_opportunities,
    plan_stage_change,
)

# =============================================================================
# Persistence Exports
# =============================================================================

from fulqrun.services.opportunity_store import (
    fetch_opportunity,
    fetch_opportunities,
    fetch_progression,
    apply_stage_change,
)

# =============================================================================
# __all__ - Public API Definition
# =============================================================================

__all__ = [
    # ----- MEDDPICC -----
    'to_criterion_score',
    'to_sub_score',
    'clean_sub_scores',
    'calculate_meddpicc_score',
    'rescale_criteria',
    'ensure_meddpicc_complete',
    'apply_criterion_updates',
    # ----- Snapshot -----
    'to_snapshot',
    'latest_activity_date',
    # ----- Stage-Gate Engine -----
    'GateCatalog',
    'StageGates',
    'DEFAULT_GATE_CATALOG',
    'STAGE_NOT_FOUND_ACTION',
    'normalize_stage',
    'evaluate_stage',
    'can_auto_advance',
    'evaluate_deal_progression',
    'get_stage_requirements',
    'get_next_stage',
    # ----- Deal Health -----
    'HealthRules',
    'DEFAULT_HEALTH_RULES',
    'analyze_deal',
    'classify_health',
    'mean_qualification_score',
    # ----- Portfolio -----
    'analyze_portfolio',
    'calculate_pipeline_metrics',
    'get_stage_progress',
    'get_upcoming_closes',
    # ----- Stage History -----
    'initialize_progression',
    'record_stage_change',
    # ----- External Insights -----
    'map_external_insight',
    # ----- Opportunity Analytics -----
    'analyze_opportunity',
    'summarize_opportunities',
    'plan_stage_change',
    # ----- Persistence -----
    'fetch_opportunity',
    'fetch_opportunities',
    'fetch_progression',
    'apply_stage_change',
]
