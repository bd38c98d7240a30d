"""
Stage-Gate Progression Engine

Decides whether a deal may leave its current pipeline stage. Each non-terminal
stage declares one successor and an ordered checklist of named gates; a gate
is a boolean predicate over a DealSnapshot.

Evaluation rules:
- Gates are evaluated independently; none depends on another's outcome.
- canAdvance is the logical AND of the stage's gates.
- confidence = round(100 x passed / total), half rounded up; 0 when a stage
  has no gates.
- Each failed gate contributes its remediation string to requiredActions, in
  the stage's declared gate order. Gates missing from the remediation table
  fall back to "Complete {gate} requirements".
- An unknown stage yields a zero-confidence result whose only required
  action is "Stage configuration not found". Nothing here raises.

Auto-advancement additionally requires confidence strictly above a fixed
threshold (80). With all-or-nothing gates a fully passed stage always scores
100, so the threshold only matters once partial-credit gates exist.

Stage vocabulary:
    prospect -> engage -> acquire -> keep -> closed-won
    closed-won and closed-lost are terminal and carry no gates.

No function in this module mutates its inputs; applying a stage change is the
caller's responsibility.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from fulqrun.models.enums import ActivityType, ContactRole, MeddpiccCriterion, Stage
from fulqrun.models.schemas import AutoAdvanceResult, DealSnapshot, ProgressionResult


logger = logging.getLogger(__name__)


GatePredicate = Callable[[DealSnapshot], bool]

STAGE_NOT_FOUND_ACTION: str = "Stage configuration not found"

DEFAULT_AUTO_ADVANCE_MIN_CONFIDENCE: int = 80


# =============================================================================
# Gate Predicates
# =============================================================================


def _criterion_above(criterion: MeddpiccCriterion, threshold: float) -> GatePredicate:
    """Gate passes when the rescaled criterion score is strictly above threshold."""
    def predicate(snapshot: DealSnapshot) -> bool:
        score = snapshot.meddpiccScores.get(criterion.value)
        return score is not None and score > threshold
    return predicate


def _has_contact_role(role: ContactRole) -> GatePredicate:
    def predicate(snapshot: DealSnapshot) -> bool:
        return any(contact.role == role.value for contact in snapshot.contacts)
    return predicate


def _has_activity_type(*types: ActivityType) -> GatePredicate:
    wanted = {t.value for t in types}

    def predicate(snapshot: DealSnapshot) -> bool:
        return any(activity.type in wanted for activity in snapshot.activities)
    return predicate


def _activity_mentions(keyword: str) -> GatePredicate:
    keyword = keyword.lower()

    def predicate(snapshot: DealSnapshot) -> bool:
        return any(keyword in (activity.notes or "").lower() for activity in snapshot.activities)
    return predicate


def _close_date_defined(snapshot: DealSnapshot) -> bool:
    return snapshot.closeDate is not None


def _probability_above(threshold: float) -> GatePredicate:
    return lambda snapshot: snapshot.probability > threshold


def _probability_at_least(threshold: float) -> GatePredicate:
    return lambda snapshot: snapshot.probability >= threshold


# =============================================================================
# Gate Catalog
# =============================================================================


@dataclass(frozen=True)
class StageGates:
    """Gate checklist for one stage."""
    next_stage: Optional[str]
    gates: Tuple[str, ...]


@dataclass(frozen=True)
class GateCatalog:
    """
    Immutable gate configuration shared by every evaluation.

    Attributes:
        stages: Stage name -> StageGates, for non-terminal stages only.
        predicates: Gate name -> predicate. Gates without a predicate fail.
        actions: Gate name -> human-readable remediation string.
        auto_advance_min_confidence: Confidence must exceed this to auto-advance.
    """
    stages: Mapping[str, StageGates]
    predicates: Mapping[str, GatePredicate]
    actions: Mapping[str, str]
    auto_advance_min_confidence: int = DEFAULT_AUTO_ADVANCE_MIN_CONFIDENCE

    def __post_init__(self) -> None:
        # Freeze the mappings so a shared catalog cannot drift at runtime
        object.__setattr__(self, "stages", MappingProxyType(dict(self.stages)))
        object.__setattr__(self, "predicates", MappingProxyType(dict(self.predicates)))
        object.__setattr__(self, "actions", MappingProxyType(dict(self.actions)))

    def stage(self, name: Optional[str]) -> Optional[StageGates]:
        """Look up a stage by name, ignoring case and surrounding whitespace."""
        return self.stages.get(normalize_stage(name))

    def action_for(self, gate: str) -> str:
        return self.actions.get(gate, f"Complete {gate} requirements")

    def evaluate_gate(self, gate: str, snapshot: DealSnapshot) -> bool:
        predicate = self.predicates.get(gate)
        if predicate is None:
            logger.warning("No predicate configured for gate %r; treating as failed", gate)
            return False
        return bool(predicate(snapshot))

    def with_auto_advance_threshold(self, min_confidence: int) -> "GateCatalog":
        """Return a copy of this catalog with a different auto-advance threshold."""
        return GateCatalog(
            stages=self.stages,
            predicates=self.predicates,
            actions=self.actions,
            auto_advance_min_confidence=min_confidence,
        )


DEFAULT_STAGE_GATES: Dict[str, StageGates] = {
    Stage.PROSPECT.value: StageGates(
        next_stage=Stage.ENGAGE.value,
        gates=("qualified_need", "budget_confirmed", "timeline_defined"),
    ),
    Stage.ENGAGE.value: StageGates(
        next_stage=Stage.ACQUIRE.value,
        gates=("decision_maker_identified", "champion_established", "solution_presented"),
    ),
    Stage.ACQUIRE.value: StageGates(
        next_stage=Stage.KEEP.value,
        gates=("proposal_submitted", "terms_negotiated", "legal_approved"),
    ),
    Stage.KEEP.value: StageGates(
        next_stage=Stage.CLOSED_WON.value,
        gates=("contract_signed", "payment_terms_agreed", "implementation_planned"),
    ),
}

# Thresholds apply to MEDDPICC sub-scores on the 0-100 scale
DEFAULT_GATE_PREDICATES: Dict[str, GatePredicate] = {
    "qualified_need": _criterion_above(MeddpiccCriterion.IDENTIFY_PAIN, 60),
    "budget_confirmed": _criterion_above(MeddpiccCriterion.ECONOMIC_BUYER, 60),
    "timeline_defined": _close_date_defined,
    "decision_maker_identified": _has_contact_role(ContactRole.DECISION_MAKER),
    "champion_established": _criterion_above(MeddpiccCriterion.CHAMPION, 70),
    "solution_presented": _has_activity_type(ActivityType.DEMO, ActivityType.PROPOSAL),
    "proposal_submitted": _has_activity_type(ActivityType.PROPOSAL),
    "terms_negotiated": _probability_above(80),
    "legal_approved": _criterion_above(MeddpiccCriterion.PAPER_PROCESS, 70),
    "contract_signed": _probability_at_least(95),
    "payment_terms_agreed": _criterion_above(MeddpiccCriterion.METRICS, 80),
    "implementation_planned": _activity_mentions("implementation"),
}

DEFAULT_GATE_ACTIONS: Dict[str, str] = {
    "qualified_need": "Conduct discovery to identify and qualify customer pain points",
    "budget_confirmed": "Identify economic buyer and confirm budget availability",
    "timeline_defined": "Establish clear timeline and close date expectations",
    "decision_maker_identified": "Map decision-making unit and identify key stakeholders",
    "champion_established": "Develop internal champion who will advocate for your solution",
    "solution_presented": "Present solution through demo or detailed proposal",
    "proposal_submitted": "Submit formal proposal with pricing and terms",
    "terms_negotiated": "Negotiate terms and address any objections",
    "legal_approved": "Complete legal review and procurement processes",
    "contract_signed": "Finalize and execute contract",
    "payment_terms_agreed": "Agree on payment terms and schedule",
    "implementation_planned": "Plan implementation and onboarding process",
}

DEFAULT_GATE_CATALOG = GateCatalog(
    stages=DEFAULT_STAGE_GATES,
    predicates=DEFAULT_GATE_PREDICATES,
    actions=DEFAULT_GATE_ACTIONS,
)


# =============================================================================
# Helpers
# =============================================================================


def normalize_stage(stage: Optional[str]) -> str:
    """
    Normalize a stage name for lookup.

    Only case and surrounding whitespace are normalized. Names from other
    stage vocabularies (e.g. "qualify", "negotiate") are not mapped onto PEAK
    stages and stay unknown.
    """
    return (stage or "").strip().lower()


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounded up."""
    return int(math.floor(value + 0.5))


def gate_confidence(passed: int, total: int) -> int:
    """Percentage of gates passed, rounded; 0 for a stage with no gates."""
    if total <= 0:
        return 0
    return round_half_up(100 * passed / total)


# =============================================================================
# Engine Operations
# =============================================================================


def evaluate_stage(
    snapshot: DealSnapshot,
    stage: Optional[str] = None,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> ProgressionResult:
    """
    Evaluate a stage's gate checklist against a snapshot.

    Args:
        snapshot: Deal snapshot to evaluate.
        stage: Stage whose gates to evaluate; defaults to snapshot.stage.
        catalog: Gate configuration.

    Returns:
        ProgressionResult. Unknown stages produce canAdvance=False,
        confidence=0, gatesPassed={} and the single required action
        "Stage configuration not found".

    Example:
        >>> result = evaluate_stage(snapshot, "engage")
        >>> result.gatesPassed
        {'decision_maker_identified': True, 'champion_established': False, 'solution_presented': True}
        >>> result.confidence
        67
    """
    stage_name = snapshot.stage if stage is None else stage
    config = catalog.stage(stage_name)

    if config is None:
        logger.warning("No gate configuration for stage %r (deal %s)", stage_name, snapshot.id)
        return ProgressionResult(
            canAdvance=False,
            requiredActions=[STAGE_NOT_FOUND_ACTION],
            gatesPassed={},
            nextStage=None,
            confidence=0,
        )

    gates_passed: Dict[str, bool] = {}
    required_actions: List[str] = []

    for gate in config.gates:
        passed = catalog.evaluate_gate(gate, snapshot)
        gates_passed[gate] = passed
        if not passed:
            required_actions.append(catalog.action_for(gate))

    passed_count = sum(1 for passed in gates_passed.values() if passed)
    confidence = gate_confidence(passed_count, len(config.gates))

    logger.debug(
        "Deal %s stage %s: %d/%d gates passed",
        snapshot.id,
        normalize_stage(stage_name),
        passed_count,
        len(config.gates),
    )

    return ProgressionResult(
        canAdvance=all(gates_passed.values()),
        requiredActions=required_actions,
        gatesPassed=gates_passed,
        nextStage=config.next_stage,
        confidence=confidence,
    )


def can_auto_advance(
    snapshot: DealSnapshot,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> AutoAdvanceResult:
    """
    Decide whether the deal may advance out of its current stage automatically.

    Requires every gate of the current stage to pass and the gate confidence to
    exceed catalog.auto_advance_min_confidence.

    Returns:
        AutoAdvanceResult; for an unknown stage, canAdvance=False,
        nextStage=None and confidence=0.
    """
    config = catalog.stage(snapshot.stage)
    if config is None:
        return AutoAdvanceResult(canAdvance=False, nextStage=None, confidence=0)

    result = evaluate_stage(snapshot, snapshot.stage, catalog)
    all_gates_passed = all(result.gatesPassed.values())

    return AutoAdvanceResult(
        canAdvance=all_gates_passed and result.confidence > catalog.auto_advance_min_confidence,
        nextStage=config.next_stage,
        confidence=result.confidence,
    )


def evaluate_deal_progression(
    snapshot: DealSnapshot,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> Dict[str, ProgressionResult]:
    """
    Evaluate the deal's current stage, keyed by stage name.

    Returns an empty mapping when the current stage has no gate configuration.
    """
    if catalog.stage(snapshot.stage) is None:
        return {}
    return {snapshot.stage: evaluate_stage(snapshot, snapshot.stage, catalog)}


def get_stage_requirements(
    stage: str,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> List[str]:
    """Remediation strings for every gate of a stage, in gate order."""
    config = catalog.stage(stage)
    if config is None:
        return []
    return [catalog.action_for(gate) for gate in config.gates]


def get_next_stage(
    stage: str,
    catalog: GateCatalog = DEFAULT_GATE_CATALOG,
) -> Optional[str]:
    """The designated successor of a stage, or None for terminal/unknown stages."""
    config = catalog.stage(stage)
    return config.next_stage if config is not None else None


__all__ = [
    "GateCatalog",
    "StageGates",
    "GatePredicate",
    "DEFAULT_GATE_CATALOG",
    "DEFAULT_STAGE_GATES",
    "DEFAULT_GATE_PREDICATES",
    "DEFAULT_GATE_ACTIONS",
    "STAGE_NOT_FOUND_ACTION",
    "normalize_stage",
    "round_half_up",
    "gate_confidence",
    "evaluate_stage",
    "can_auto_advance",
    "evaluate_deal_progression",
    "get_stage_requirements",
    "get_next_stage",
]
