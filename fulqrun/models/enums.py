"""
Enumeration definitions for the FulQrun deal progression backend.

All enums inherit from both `str` and `Enum` so that they serialize as plain
strings inside Pydantic models and FastAPI responses.

Stage vocabulary:
    The canonical pipeline is the PEAK chain (prospect -> engage -> acquire ->
    keep) followed by the terminal closed-won stage. closed-lost is terminal
    and carries no gates. Any other stage name is treated as unknown by the
    progression engine rather than being mapped onto a PEAK stage.
"""

from enum import Enum


class Stage(str, Enum):
    """
    Pipeline stages known to the progression engine.

    - prospect: Initial discovery and qualification
    - engage: Stakeholder mapping and solution presentation
    - acquire: Proposal, negotiation and legal review
    - keep: Contract execution and implementation planning
    - closed-won: Terminal, deal signed
    - closed-lost: Terminal, deal lost
    """
    PROSPECT = "prospect"
    ENGAGE = "engage"
    ACQUIRE = "acquire"
    KEEP = "keep"
    CLOSED_WON = "closed-won"
    CLOSED_LOST = "closed-lost"


# The four PEAK stages, in pipeline order
PEAK_STAGES = (Stage.PROSPECT, Stage.ENGAGE, Stage.ACQUIRE, Stage.KEEP)

# Stages with no successor
TERMINAL_STAGES = (Stage.CLOSED_WON, Stage.CLOSED_LOST)


class MeddpiccCriterion(str, Enum):
    """
    The eight MEDDPICC qualification criteria.

    Each criterion is scored 0-10 on the opportunity record. Values use the
    camelCase keys of the stored MEDDPICC JSON.
    """
    METRICS = "metrics"
    ECONOMIC_BUYER = "economicBuyer"
    DECISION_CRITERIA = "decisionCriteria"
    DECISION_PROCESS = "decisionProcess"
    PAPER_PROCESS = "paperProcess"
    IDENTIFY_PAIN = "identifyPain"
    CHAMPION = "champion"
    COMPETITION = "competition"


class DealHealth(str, Enum):
    """
    Health bucket derived from the deal health score.

    - healthy: score >= 80
    - at-risk: 60 <= score < 80
    - critical: score < 60
    """
    HEALTHY = "healthy"
    AT_RISK = "at-risk"
    CRITICAL = "critical"


class VelocityTrend(str, Enum):
    """Stage velocity trend."""
    ACCELERATING = "accelerating"
    STABLE = "stable"
    SLOWING = "slowing"


class EngagementTrend(str, Enum):
    """Buyer engagement trend based on activity recency."""
    INCREASING = "increasing"
    STABLE = "stable"
    DECREASING = "decreasing"


class CompetitivePosition(str, Enum):
    """Competitive position of the deal."""
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class ContactRole(str, Enum):
    """
    Buying-group role of a contact on an opportunity.

    Only DECISION_MAKER is consulted by the gate engine.
    """
    CHAMPION = "champion"
    DECISION_MAKER = "decision-maker"
    INFLUENCER = "influencer"
    USER = "user"
    BLOCKER = "blocker"


class ActivityType(str, Enum):
    """Logged sales activity types."""
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    DEMO = "demo"
    PROPOSAL = "proposal"
    NOTE = "note"


class InsightConfidence(str, Enum):
    """Confidence label reported by the external AI insight service."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
