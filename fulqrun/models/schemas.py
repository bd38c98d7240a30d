"""
Pydantic models for the FulQrun deal progression and analytics backend.

This module provides type-safe validation and serialization for every record
that flows through the engines and the HTTP API:

- Opportunity records as stored by the persistence collaborator
  (MEDDPICC qualification, contacts, activities, timestamps)
- DealSnapshot, the normalized read-only input consumed by the engines
- ProgressionResult / AutoAdvanceResult from the stage-gate engine
- AnalyticsResult from the deal health analyzer
- PortfolioSummary and PipelineMetrics rollups
- DealProgression stage history
- ExternalInsight, the unvalidated payload returned by the AI service

Field names are camelCase to match the JSON contract of the FulQrun frontend.
All models use Pydantic v2 syntax.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from fulqrun.models.enums import (
    CompetitivePosition,
    DealHealth,
    EngagementTrend,
    InsightConfidence,
    MeddpiccCriterion,
    VelocityTrend,
)


def _normalized_stage(value: Any) -> Any:
    """Stage names are stored lower-case and trimmed; non-strings are left to type validation."""
    if isinstance(value, str):
        return value.strip().lower()
    return value


# =============================================================================
# Opportunity Records (persistence collaborator)
# =============================================================================


class MeddpiccRecord(BaseModel):
    """
    MEDDPICC qualification record attached to an opportunity.

    Each of the eight criteria carries a confidence score in [0, 10]. Values
    outside the range are clamped and non-numeric values coerce to 0, so a
    record is never rejected. `score` is derived from the criteria on every
    validation and any incoming value is discarded.
    """
    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "metrics": 7,
                "economicBuyer": 6,
                "decisionCriteria": 5,
                "decisionProcess": 0,
                "paperProcess": 4,
                "identifyPain": 8,
                "champion": 7,
                "competition": 3,
                "notes": "CFO engaged after second workshop",
            }
        },
    )

    metrics: float = 0
    economicBuyer: float = 0
    decisionCriteria: float = 0
    decisionProcess: float = 0
    paperProcess: float = 0
    identifyPain: float = 0
    champion: float = 0
    competition: float = 0

    metricsNotes: str = ""
    economicBuyerNotes: str = ""
    decisionCriteriaNotes: str = ""
    decisionProcessNotes: str = ""
    paperProcessNotes: str = ""
    identifyPainNotes: str = ""
    championNotes: str = ""
    competitionNotes: str = ""
    notes: str = ""

    score: float = Field(
        default=0,
        description="Derived 0-100 qualification score; recomputed from criteria",
    )
    lastUpdated: Optional[datetime] = None

    @field_validator(*[c.value for c in MeddpiccCriterion], mode="before")
    @classmethod
    def _clamp_criterion(cls, value: Any) -> float:
        # Imported lazily: fulqrun.services imports this module
        from fulqrun.services.meddpicc import to_criterion_score
        return to_criterion_score(value)

    @model_validator(mode="after")
    def _derive_score(self) -> "MeddpiccRecord":
        from fulqrun.services.meddpicc import calculate_meddpicc_score
        # object.__setattr__ avoids re-entering validate_assignment
        object.__setattr__(self, "score", calculate_meddpicc_score(self.criteria_scores()))
        return self

    def criteria_scores(self) -> Dict[str, float]:
        """Return criterion name -> raw 0-10 score, in MEDDPICC order."""
        return {c.value: getattr(self, c.value) for c in MeddpiccCriterion}


class Contact(BaseModel):
    """
    A buying-group contact associated with an opportunity.

    `role` is kept as a free string so unexpected roles from stored data do not
    fail validation; the gate engine only checks for "decision-maker".
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    role: str = ""
    influence: Optional[str] = None
    sentiment: Optional[str] = None


class Activity(BaseModel):
    """A logged sales activity (call, demo, proposal, ...)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    outcome: str = ""
    notes: str = ""
    date: Optional[datetime] = None


class ExternalInsight(BaseModel):
    """
    Insight payload returned by the external AI service.

    This is unvalidated external data. It is mapped with defaults by
    fulqrun.services.external_insights and may be shown next to the
    deterministic results, but it never feeds the gate or health engines.
    """
    model_config = ConfigDict(extra="ignore")

    source: Literal["external"] = "external"
    validated: bool = False
    riskScore: Optional[float] = Field(default=None, ge=0, le=100)
    nextBestActions: List[str] = Field(default_factory=list)
    predictedCloseDate: Optional[datetime] = None
    confidenceLevel: Optional[InsightConfidence] = None
    competitorAnalysis: Optional[str] = None
    lastAiUpdate: Optional[datetime] = None


class Opportunity(BaseModel):
    """
    A persisted opportunity (sales deal).

    Only `id`, `title`, `value`, `stage`, `createdAt` and `updatedAt` are
    required. Contacts, activities and competitor default to empty so that
    partially populated records can always be analyzed.
    """
    model_config = ConfigDict(
        extra="ignore",
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "id": "opp-001",
                "companyId": "company-123",
                "title": "Enterprise Software Deal",
                "value": 250000,
                "stage": "engage",
                "probability": 45,
                "expectedCloseDate": "2026-12-15T00:00:00Z",
                "meddpicc": {"identifyPain": 8, "champion": 6},
                "createdAt": "2026-08-01T00:00:00Z",
                "updatedAt": "2026-10-01T00:00:00Z",
            }
        },
    )

    id: str = Field(..., min_length=1)
    companyId: Optional[str] = None
    contactId: Optional[str] = None
    title: str
    description: str = ""
    value: float = 0
    stage: str
    probability: float = 0
    expectedCloseDate: Optional[datetime] = None
    ownerId: Optional[str] = None
    priority: Optional[str] = None
    meddpicc: MeddpiccRecord = Field(default_factory=MeddpiccRecord)
    contacts: List[Contact] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)
    competitor: Optional[str] = None
    lastActivityAt: Optional[datetime] = None
    aiInsights: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw, unvalidated payload from the AI insight service",
    )
    createdAt: datetime
    updatedAt: datetime

    @field_validator("stage", mode="before")
    @classmethod
    def _normalize_stage(cls, value: Any) -> Any:
        return _normalized_stage(value)


# =============================================================================
# Engine Input
# =============================================================================


class DealSnapshot(BaseModel):
    """
    Normalized, read-only view of an opportunity used as engine input.

    Built by fulqrun.services.snapshot.to_snapshot; never persisted.
    `meddpiccScores` holds each criterion rescaled to [0, 100].
    """
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "opp-001",
                "name": "Enterprise Software Deal",
                "value": 250000,
                "stage": "engage",
                "probability": 45,
                "daysInStage": 18,
                "totalDaysInPipeline": 79,
                "meddpiccScores": {"identifyPain": 80, "champion": 60},
                "contacts": [{"id": "c1", "name": "Dana", "role": "decision-maker"}],
            }
        },
    )

    id: str
    name: Optional[str] = None
    value: float = Field(default=0, ge=0)
    stage: str
    probability: float = Field(default=0, ge=0, le=100)
    daysInStage: int = Field(default=0, ge=0)
    totalDaysInPipeline: int = Field(default=0, ge=0)
    lastActivity: Optional[datetime] = None
    meddpiccScores: Dict[str, float] = Field(default_factory=dict)
    closeDate: Optional[datetime] = None
    createdDate: Optional[datetime] = None
    competitor: Optional[str] = None
    contacts: List[Contact] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)

    @field_validator("stage", mode="before")
    @classmethod
    def _normalize_stage(cls, value: Any) -> Any:
        return _normalized_stage(value)

    @field_validator("meddpiccScores", mode="before")
    @classmethod
    def _clean_scores(cls, value: Any) -> Any:
        # Non-mappings fall through to the Dict type error
        if not isinstance(value, Mapping):
            return value
        from fulqrun.services.meddpicc import clean_sub_scores
        return clean_sub_scores(value)


# =============================================================================
# Stage-Gate Results
# =============================================================================


class ProgressionResult(BaseModel):
    """
    Result of evaluating one stage's gate checklist.

    `gatesPassed` preserves the stage's declared gate order and
    `requiredActions` holds one remediation string per failed gate.
    """
    canAdvance: bool
    requiredActions: List[str] = Field(default_factory=list)
    gatesPassed: Dict[str, bool] = Field(default_factory=dict)
    nextStage: Optional[str] = None
    confidence: int = Field(default=0, ge=0, le=100)


class AutoAdvanceResult(BaseModel):
    """Auto-advancement eligibility for a deal's current stage."""
    canAdvance: bool
    nextStage: Optional[str] = None
    confidence: int = Field(default=0, ge=0, le=100)


class StageRequirements(BaseModel):
    """Remediation checklist for a stage, in gate order."""
    stage: str
    nextStage: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)


# =============================================================================
# Deal Health Results
# =============================================================================


class DealTrends(BaseModel):
    """Heuristic trend indicators derived from stagnation and activity recency."""
    velocity: VelocityTrend
    engagement: EngagementTrend
    competitive: CompetitivePosition


class AnalyticsResult(BaseModel):
    """
    Deal health analysis for a single snapshot.

    `score` is 100 minus cumulative penalties, floored at 0.
    `confidenceLevel` mirrors `score`.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "dealHealth": "critical",
                "riskFactors": [
                    "Deal has been in current stage for over 30 days",
                    "No recent activity (14+ days)",
                    "Low MEDDPICC qualification score",
                ],
                "recommendations": [
                    "Review stage advancement criteria and take action to move forward",
                    "Schedule follow-up meeting or call immediately",
                    "Focus on strengthening MEDDPICC qualification",
                ],
                "score": 55,
                "trends": {"velocity": "slowing", "engagement": "decreasing", "competitive": "strong"},
                "confidenceLevel": 55,
            }
        }
    )

    dealHealth: DealHealth
    riskFactors: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    score: int = Field(..., ge=0, le=100)
    trends: DealTrends
    predictedCloseDate: Optional[datetime] = None
    confidenceLevel: int = Field(..., ge=0, le=100)


class OpportunityAnalytics(AnalyticsResult):
    """
    Combined health and progression analysis for one opportunity.

    `aiInsights` carries the mapped external insight, if the opportunity has
    one, alongside (never instead of) the deterministic results.
    """
    opportunityId: str
    currentStage: str
    progressionResults: Dict[str, ProgressionResult] = Field(default_factory=dict)
    canAutoAdvance: bool = False
    nextStage: Optional[str] = None
    aiInsights: Optional[ExternalInsight] = None


# =============================================================================
# Portfolio Rollups
# =============================================================================


class PortfolioSummary(BaseModel):
    """Pipeline-wide fold over per-deal analyses."""
    totalOpportunities: int = Field(default=0, ge=0)
    totalValue: float = Field(default=0, ge=0)
    averageValue: float = Field(default=0, ge=0)
    stageDistribution: Dict[str, int] = Field(default_factory=dict)
    healthDistribution: Dict[str, int] = Field(default_factory=dict)
    riskDeals: int = Field(default=0, ge=0)


class PipelineMetrics(BaseModel):
    """Headline pipeline metrics over the four PEAK stages."""
    totalValue: float = 0
    totalOpportunities: int = 0
    averageDealSize: float = 0
    averageSalesCycle: float = Field(default=0, description="Mean days since creation")
    conversionRate: float = Field(default=0, description="Percent of deals in keep or closed-won")
    stageDistribution: Dict[str, int] = Field(default_factory=dict)


# =============================================================================
# Stage History
# =============================================================================


class StageHistoryEntry(BaseModel):
    """One visit of a deal to a stage."""
    stage: str
    enteredDate: datetime
    exitedDate: Optional[datetime] = None
    daysInStage: int = Field(default=0, ge=0)
    advancementReason: Optional[str] = None


class DealProgression(BaseModel):
    """Stage history and last gate evaluation for a deal."""
    dealId: str
    currentStage: str
    stageHistory: List[StageHistoryEntry] = Field(default_factory=list)
    gateResults: Dict[str, bool] = Field(default_factory=dict)
    lastEvaluation: datetime
    nextEvaluationDue: datetime


# =============================================================================
# API Request / Response Models
# =============================================================================


class StageEvaluationRequest(BaseModel):
    """Body of POST /progression/evaluate; `stage` defaults to the snapshot's stage."""
    snapshot: DealSnapshot
    stage: Optional[str] = None


class StageChangeRequest(BaseModel):
    """Body of POST /opportunities/{id}/advance."""
    newStage: str = Field(..., min_length=1)
    reason: str = "Stage advancement"


class StageChangeResult(BaseModel):
    """
    Outcome of applying a stage change.

    `manualOverride` is True when the deal did not qualify for
    auto-advancement into the requested stage.
    """
    opportunityId: str
    previousStage: str
    newStage: str
    manualOverride: bool
    autoAdvance: AutoAdvanceResult
    progression: DealProgression
