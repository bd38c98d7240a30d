"""
Package initialization file for FulQrun models.

Re-exports all Pydantic schemas and enumerations from schemas.py and enums.py
so other modules can import data models from fulqrun.models directly.

Usage:
    from fulqrun.models import (
        DealSnapshot,
        ProgressionResult,
        AnalyticsResult,
        DealHealth,
        Stage,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from fulqrun.models.enums import (
    Stage,
    PEAK_STAGES,
    TERMINAL_STAGES,
    MeddpiccCriterion,
    DealHealth,
    VelocityTrend,
    EngagementTrend,
    CompetitivePosition,
    ContactRole,
    ActivityType,
    InsightConfidence,
)


# =============================================================================
# Schemas
# =============================================================================

from fulqrun.models.schemas import (
    # Opportunity records
    MeddpiccRecord,
    Contact,
    Activity,
    ExternalInsight,
    Opportunity,
    # Engine input
    DealSnapshot,
    # Stage-gate results
    ProgressionResult,
    AutoAdvanceResult,
    StageRequirements,
    # Deal health results
    DealTrends,
    AnalyticsResult,
    OpportunityAnalytics,
    # Rollups
    PortfolioSummary,
    PipelineMetrics,
    # Stage history
    StageHistoryEntry,
    DealProgression,
    # API request/response
    StageEvaluationRequest,
    StageChangeRequest,
    StageChangeResult,
)


__all__ = [
    # Enums
    "Stage",
    "PEAK_STAGES",
    "TERMINAL_STAGES",
    "MeddpiccCriterion",
    "DealHealth",
    "VelocityTrend",
    "EngagementTrend",
    "CompetitivePosition",
    "ContactRole",
    "ActivityType",
    "InsightConfidence",
    # Opportunity records
    "MeddpiccRecord",
    "Contact",
    "Activity",
    "ExternalInsight",
    "Opportunity",
    # Engine input
    "DealSnapshot",
    # Stage-gate results
    "ProgressionResult",
    "AutoAdvanceResult",
    "StageRequirements",
    # Deal health results
    "DealTrends",
    "AnalyticsResult",
    "OpportunityAnalytics",
    # Rollups
    "PortfolioSummary",
    "PipelineMetrics",
    # Stage history
    "StageHistoryEntry",
    "DealProgression",
    # API request/response
    "StageEvaluationRequest",
    "StageChangeRequest",
    "StageChangeResult",
]
