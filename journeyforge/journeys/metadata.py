"""Journey view objects and the analytics attached to each journey and step."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..capture.models import InteractionEvent, SessionInfo
from .bundles import BundleKind
from .classifier import classify
from .rules import DECISION_KEYWORDS, DECISION_STAGES, FUNNEL_ORDER, contains_any, stage_index
from .segmentation import task_context

RICHNESS_FEATURES = 15
DECISION_PHRASES = ("add to cart", "checkout", "sign up")
DECISION_FACTOR_CUES: Tuple[Tuple[str, str], ...] = (
    ("price", "price comparison"),
    ("review", "user reviews"),
    ("spec", "specifications"),
    ("rating", "ratings"),
    ("feature", "features"),
)
FLOW_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("search → category → product", "browse-to-product"),
    ("product → cart → checkout", "purchase-flow"),
    ("home → pricing → signup", "conversion-flow"),
    ("category → product → product", "comparison-shopping"),
)


@dataclass(frozen=True, slots=True)
class StageTransition:
    from_stage: str
    to_stage: str
    direction: str
    stages_skipped: int
    is_progression: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_stage,
            "to": self.to_stage,
            "direction": self.direction,
            "stagesSkipped": self.stages_skipped,
            "isProgression": self.is_progression,
        }


@dataclass(frozen=True, slots=True)
class ConversionSignal:
    step_index: int
    signal: str
    strength: str

    def to_dict(self) -> Dict[str, Any]:
        return {"stepIndex": self.step_index, "type": self.signal, "strength": self.strength}


@dataclass(frozen=True, slots=True)
class FunnelProgression:
    stages: Tuple[str, ...] = ()
    progressions: int = 0
    regressions: int = 0
    max_stage_reached: int = -1
    efficiency: float = 0.0

    @property
    def total_stages(self) -> int:
        return len(set(self.stages))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stages": list(self.stages),
            "totalStages": self.total_stages,
            "progressions": self.progressions,
            "regressions": self.regressions,
            "maxStageReached": self.max_stage_reached,
            "funnelEfficiency": round(self.efficiency, 4),
        }


@dataclass(frozen=True, slots=True)
class StepMetadata:
    """Where one interaction sits within its journey."""

    step_number: int
    total_steps: int
    funnel_stage: str
    transition: Optional[StageTransition]
    is_decision_point: bool
    decision_type: Optional[str]
    decision_factors: Tuple[str, ...]
    strong_conversion_intent: bool
    task_context: str
    flow: str
    flow_pattern: str
    training_value: float
    context_richness: float
    bundle_role: str

    @property
    def is_start(self) -> bool:
        return self.step_number == 1

    @property
    def is_end(self) -> bool:
        return self.step_number == self.total_steps

    @property
    def progress_percent(self) -> int:
        return round(self.step_number / self.total_steps * 100) if self.total_steps else 0

    @property
    def progress(self) -> str:
        return f"{self.progress_percent}%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stepNumber": self.step_number,
            "totalSteps": self.total_steps,
            "isJourneyStart": self.is_start,
            "isJourneyEnd": self.is_end,
            "journeyProgress": self.progress,
            "currentFunnelStage": self.funnel_stage,
            "stageTransition": self.transition.to_dict() if self.transition else None,
            "isDecisionPoint": self.is_decision_point,
            "decisionType": self.decision_type,
            "decisionFactors": list(self.decision_factors),
            "hasStrongConversionIntent": self.strong_conversion_intent,
            "taskContext": self.task_context,
            "pageFlow": self.flow,
            "flowPattern": self.flow_pattern,
            "trainingValue": round(self.training_value, 4),
            "contextRichness": round(self.context_richness, 4),
            "bundleRole": self.bundle_role,
        }


@dataclass(frozen=True, slots=True)
class Journey:
    """Read-only view over an ordered run of a session's events."""

    events: Tuple[InteractionEvent, ...]
    indices: Tuple[int, ...]
    origin: BundleKind
    vertical: str
    journey_type: str
    goal: str
    intent: str
    steps: Tuple[StepMetadata, ...]
    decision_points: Tuple[int, ...] = ()
    funnel: FunnelProgression = field(default_factory=FunnelProgression)
    conversion_signals: Tuple[ConversionSignal, ...] = ()
    conversion_probability: float = 0.0
    completeness: float = 0.0
    complexity: float = 0.0

    def __len__(self) -> int:
        return len(self.events)

    @property
    def stages(self) -> List[str]:
        """Distinct funnel stages in order of first appearance."""

        seen: List[str] = []
        for event in self.events:
            if event.funnel_stage and event.funnel_stage not in seen:
                seen.append(event.funnel_stage)
        return seen

    def step_for(self, event_index: int) -> Optional[StepMetadata]:
        """Step metadata for the session event at ``event_index``."""

        for position, index in enumerate(self.indices):
            if index == event_index:
                return self.steps[position]
        return None

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "journeyType": self.journey_type,
            "journeyGoal": self.goal,
            "userIntent": self.intent,
            "vertical": self.vertical,
            "origin": self.origin.value,
            "totalSteps": len(self.events),
            "decisionPoints": list(self.decision_points),
            "funnelProgression": self.funnel.to_dict(),
            "conversionSignals": [signal.to_dict() for signal in self.conversion_signals],
            "estimatedConversionProbability": round(self.conversion_probability, 4),
            "journeyCompleteness": round(self.completeness, 4),
            "journeyComplexity": round(self.complexity, 4),
        }


def is_decision_point(event: InteractionEvent) -> bool:
    return (
        event.funnel_stage in DECISION_STAGES
        or contains_any(event.text_lower, DECISION_KEYWORDS)
        or event.page_type == "comparison"
        or contains_any(event.text_lower, DECISION_PHRASES)
    )


def decision_points(events: Sequence[InteractionEvent]) -> List[int]:
    return [index for index, event in enumerate(events) if is_decision_point(event)]


def decision_type(event: InteractionEvent) -> str:
    text = event.text_lower
    if "compare" in text:
        return "comparison"
    if "review" in text:
        return "validation"
    if "add to cart" in text:
        return "purchase-decision"
    if "sign up" in text:
        return "commitment"
    if event.funnel_stage == "evaluation":
        return "evaluation"
    return "general-decision"


def decision_factors(events: Sequence[InteractionEvent]) -> List[str]:
    """Distinct decision factors mentioned across ``events``, in first-seen order."""

    factors: List[str] = []
    for event in events:
        for cue, factor in DECISION_FACTOR_CUES:
            if cue in event.text_lower and factor not in factors:
                factors.append(factor)
    return factors


def analyze_funnel(events: Sequence[InteractionEvent]) -> FunnelProgression:
    stages = tuple(event.funnel_stage for event in events if event.funnel_stage)
    progressions = regressions = 0
    last = -1
    reached: List[int] = []
    for stage in stages:
        position = stage_index(stage, FUNNEL_ORDER)
        if position == -1:
            continue
        reached.append(position)
        if position > last:
            progressions += 1
        elif position < last:
            regressions += 1
        last = position
    return FunnelProgression(
        stages=stages,
        progressions=progressions,
        regressions=regressions,
        max_stage_reached=max(reached) if reached else -1,
        efficiency=progressions / (progressions + regressions + 1),
    )


def conversion_signals(events: Sequence[InteractionEvent]) -> List[ConversionSignal]:
    signals: List[ConversionSignal] = []
    for index, event in enumerate(events):
        text = event.text_lower
        goal = event.conversion_goal
        if "add to cart" in text or goal == "add-to-cart":
            signals.append(ConversionSignal(index, "add-to-cart", "high"))
        if "checkout" in text or goal == "reach-checkout":
            signals.append(ConversionSignal(index, "checkout", "high"))
        if "buy now" in text or "purchase" in text:
            signals.append(ConversionSignal(index, "immediate-purchase", "high"))
        if event.page_type == "product" and event.type == "CLICK":
            signals.append(ConversionSignal(index, "product-engagement", "medium"))
        if "sign up" in text or goal == "signup":
            signals.append(ConversionSignal(index, "signup", "medium"))
        if "learn more" in text or "details" in text:
            signals.append(ConversionSignal(index, "information-seeking", "low"))
    return signals


def conversion_probability(signals: Sequence[ConversionSignal], funnel: FunnelProgression) -> float:
    high = sum(1 for signal in signals if signal.strength == "high")
    medium = sum(1 for signal in signals if signal.strength == "medium")
    probability = 0.1 + high * 0.3 + medium * 0.15
    probability += funnel.efficiency * 0.3
    probability += max(0, funnel.max_stage_reached) / 5 * 0.2
    return min(probability, 0.95)


def stage_transition(previous: InteractionEvent, current: InteractionEvent) -> Optional[StageTransition]:
    previous_stage = previous.funnel_stage or "unknown"
    current_stage = current.funnel_stage or "unknown"
    if previous_stage == current_stage:
        return None
    previous_index = stage_index(previous_stage, FUNNEL_ORDER)
    current_index = stage_index(current_stage, FUNNEL_ORDER)
    if current_index > previous_index:
        direction = "forward"
    elif current_index < previous_index:
        direction = "backward"
    else:
        direction = "lateral"
    return StageTransition(
        from_stage=previous_stage,
        to_stage=current_stage,
        direction=direction,
        stages_skipped=abs(current_index - previous_index) - 1,
        is_progression=current_index > previous_index,
    )


def context_richness(event: InteractionEvent) -> float:
    """Fraction of the optional capture sections present on ``event``."""

    business = event.business
    present = (
        bool(event.selectors.reliability),
        event.bounding_box is not None,
        bool(event.element.nearby),
        bool(event.page_type),
        bool(event.funnel_stage),
        bool(business and business.ecommerce is not None),
        event.state.before is not None,
        event.state.after is not None,
        event.element.form_context is not None,
        event.page.accessibility is not None,
        event.page.performance is not None,
        isinstance(event.visual.get("designSystem"), Mapping),
        bool(event.user.get("behaviorPatterns")),
        event.timing is not None,
        bool(event.element.aria_attributes),
    )
    return sum(present) / RICHNESS_FEATURES


def flow_pattern(page_flow: Sequence[str], position: int) -> Tuple[str, str]:
    flow = " → ".join(page_flow[: position + 1])
    for fragment, label in FLOW_PATTERNS:
        if fragment in flow:
            return flow, label
    return flow, "custom-flow"


def training_value(
    event: InteractionEvent,
    *,
    is_decision: bool,
    strong_intent: bool,
    transition: Optional[StageTransition],
) -> float:
    value = 0.5
    if is_decision:
        value += 0.2
    if strong_intent:
        value += 0.2
    if transition is not None and transition.is_progression:
        value += 0.1
    value += (context_richness(event) - 0.5) * 0.2
    return min(value, 1.0)


def bundle_role(
    position: int,
    total: int,
    *,
    is_decision: bool,
    has_signal: bool,
    transition: Optional[StageTransition],
) -> str:
    if position == 0:
        return "journey-initiator"
    if position == total - 1:
        return "journey-completer"
    if is_decision:
        return "decision-maker"
    if has_signal:
        return "conversion-indicator"
    if transition is not None and transition.is_progression:
        return "funnel-advancer"
    return "journey-progressor"


def build_steps(
    events: Sequence[InteractionEvent],
    decisions: Sequence[int],
    signals: Sequence[ConversionSignal],
) -> List[StepMetadata]:
    total = len(events)
    page_flow = [event.page_type for event in events if event.page_type]
    steps: List[StepMetadata] = []
    for position, event in enumerate(events):
        is_decision = position in decisions
        step_signals = [signal for signal in signals if signal.step_index == position]
        strong_intent = any(signal.strength == "high" for signal in step_signals)
        transition = stage_transition(events[position - 1], event) if position > 0 else None
        flow, pattern = flow_pattern(page_flow, position)
        steps.append(
            StepMetadata(
                step_number=position + 1,
                total_steps=total,
                funnel_stage=event.funnel_stage or "unknown",
                transition=transition,
                is_decision_point=is_decision,
                decision_type=decision_type(event) if is_decision else None,
                decision_factors=tuple(decision_factors(events[: position + 1])) if is_decision else (),
                strong_conversion_intent=strong_intent,
                task_context=task_context(event),
                flow=flow,
                flow_pattern=pattern,
                training_value=training_value(
                    event, is_decision=is_decision, strong_intent=strong_intent, transition=transition
                ),
                context_richness=context_richness(event),
                bundle_role=bundle_role(
                    position,
                    total,
                    is_decision=is_decision,
                    has_signal=bool(step_signals),
                    transition=transition,
                ),
            )
        )
    return steps


def build_journey(
    events: Sequence[InteractionEvent],
    indices: Sequence[int],
    origin: BundleKind = BundleKind.PRIMARY,
    session: Optional[SessionInfo] = None,
) -> Journey:
    """Classify ``events`` and attach step and journey analytics."""

    classification = classify(events, session)
    decisions = decision_points(events)
    signals = conversion_signals(events)
    funnel = analyze_funnel(events)
    unique_stages = {event.funnel_stage for event in events if event.funnel_stage}
    unique_pages = {event.page_type for event in events if event.page_type}
    return Journey(
        events=tuple(events),
        indices=tuple(indices),
        origin=origin,
        vertical=classification.vertical,
        journey_type=classification.journey_type,
        goal=classification.goal,
        intent=classification.intent,
        steps=tuple(build_steps(events, decisions, signals)),
        decision_points=tuple(decisions),
        funnel=funnel,
        conversion_signals=tuple(signals),
        conversion_probability=conversion_probability(signals, funnel),
        completeness=len(unique_stages) / len(FUNNEL_ORDER),
        complexity=min(len(unique_pages) / 5, 1.0),
    )


__all__ = [
    "ConversionSignal",
    "FunnelProgression",
    "Journey",
    "StageTransition",
    "StepMetadata",
    "analyze_funnel",
    "build_journey",
    "context_richness",
    "conversion_probability",
    "conversion_signals",
    "decision_factors",
    "decision_points",
    "decision_type",
    "flow_pattern",
    "is_decision_point",
    "stage_transition",
]
