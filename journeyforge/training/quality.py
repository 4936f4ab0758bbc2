"""Quality scoring, journey-first filtering and dataset metadata."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..capture.models import InteractionEvent
from ..capture.selectors import SelectorResolution
from ..journeys.metadata import Journey
from ..journeys.segmentation import is_event_complete
from ..workflow.config import Settings, get_settings
from .models import QualityAssessment, TrainingExample

logger = logging.getLogger(__name__)

INTERACTION_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("hasReliableSelector", 0.15),
    ("hasSpatialContext", 0.08),
    ("hasBusinessContext", 0.08),
    ("hasVisualContext", 0.08),
    ("hasAccessibilityContext", 0.08),
    ("hasPerformanceContext", 0.08),
    ("hasStateContext", 0.05),
    ("hasFormContext", 0.05),
    ("hasSEOContext", 0.05),
    ("hasAnalyticsContext", 0.05),
    ("hasTimingContext", 0.025),
    ("hasNetworkContext", 0.025),
    ("hasErrorContext", 0.025),
    ("hasUserContext", 0.025),
    ("hasCompleteNearbyElements", 0.15),
    ("hasDesignSystemContext", 0.12),
    ("hasBehaviorPatternsContext", 0.08),
)
COMPLETE_NEARBY_MINIMUM = 3

JOURNEY_BASE_SCORE = 0.6
JOURNEY_BONUSES: Tuple[Tuple[str, float], ...] = (
    ("multiStepJourney", 0.1),
    ("funnelProgression", 0.15),
    ("conversionComplete", 0.2),
    ("clearUserIntent", 0.1),
)

HIGH_QUALITY = 0.8
MEDIUM_QUALITY = 0.5


def interaction_factors(event: InteractionEvent, resolution: SelectorResolution, min_reliability: float = 0.3) -> Dict[str, bool]:
    """Boolean context flags for one interaction."""

    state = event.state
    requests = (state.changes or {}).get("networkRequests")
    return {
        "hasReliableSelector": resolution.is_anchorable(min_reliability),
        "hasSpatialContext": bool(event.element.nearby),
        "hasBusinessContext": event.business is not None,
        "hasVisualContext": event.bounding_box is not None,
        "hasAccessibilityContext": event.page.accessibility is not None,
        "hasPerformanceContext": event.page.performance is not None,
        "hasStateContext": state.before is not None or state.after is not None,
        "hasFormContext": event.element.form_context is not None,
        "hasSEOContext": event.page.seo is not None,
        "hasAnalyticsContext": event.page.analytics is not None,
        "hasTimingContext": event.timing is not None,
        "hasNetworkContext": isinstance(requests, (list, tuple)) and len(requests) > 0,
        "hasErrorContext": bool((state.before or {}).get("errorStates") or (state.after or {}).get("errorStates")),
        "hasUserContext": bool(event.business and event.business.user is not None),
        "hasCompleteNearbyElements": len(event.element.nearby) > COMPLETE_NEARBY_MINIMUM,
        "hasDesignSystemContext": isinstance(event.visual.get("designSystem"), Mapping),
        "hasBehaviorPatternsContext": bool(event.user.get("behaviorPatterns")),
    }


def weighted_score(factors: Mapping[str, Any]) -> float:
    score = sum(weight for name, weight in INTERACTION_WEIGHTS if factors.get(name))
    return min(1.0, max(0.0, score))


def score_interaction(
    event: InteractionEvent,
    resolution: SelectorResolution,
    min_reliability: float = 0.3,
) -> QualityAssessment:
    factors = interaction_factors(event, resolution, min_reliability)
    return QualityAssessment(score=weighted_score(factors), factors=factors)


def score_journey(
    journey: Journey,
    step_factors: Optional[Sequence[Mapping[str, Any]]] = None,
) -> QualityAssessment:
    """Score a journey on length, funnel progression, completion and intent.

    Parameters
    ----------
    journey:
        The journey being scored.
    step_factors:
        Interaction-level factor maps for the journey's events; each flag is
        aggregated with ``any`` into the journey's factor map.
    """

    factors: Dict[str, Any] = {name: False for name, _ in INTERACTION_WEIGHTS}
    for flags in step_factors or ():
        for name in factors:
            factors[name] = factors[name] or bool(flags.get(name))
    events = journey.events
    factors.update(
        {
            "multiStepJourney": len(events) >= 3,
            "funnelProgression": len(journey.stages) >= 2,
            "conversionComplete": any(is_event_complete(event) for event in events),
            "clearUserIntent": any(
                event.form_data or (event.business and event.business.product_name) for event in events
            ),
        }
    )
    score = JOURNEY_BASE_SCORE + sum(bonus for name, bonus in JOURNEY_BONUSES if factors[name])
    return QualityAssessment(score=min(score, 1.0), factors=factors)


class QualityFilter:
    """Keep journey examples first and cap isolated single-action examples.

    Journey-class examples pass at the journey threshold and all of them are
    kept. Individual examples pass at the individual threshold, are sorted by
    score and capped at ``max(journey count, cap floor)``. Kept journey
    examples then get a score boost before a final sort. Sorting is stable, so
    ties keep insertion order.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def apply(self, examples: Sequence[TrainingExample]) -> List[TrainingExample]:
        settings = self.settings
        journey_examples = [example for example in examples if example.is_journey_example]
        individual_examples = [example for example in examples if not example.is_journey_example]

        kept_journeys = [example for example in journey_examples if example.score >= settings.journey_quality_threshold]
        passing_individuals = [
            example for example in individual_examples if example.score >= settings.individual_quality_threshold
        ]
        cap = max(len(kept_journeys), settings.individual_cap_floor)
        kept_individuals = sorted(passing_individuals, key=lambda example: -example.score)[:cap]

        boosted = [
            example.with_quality(example.quality.boosted(settings.journey_boost, journeyPrioritized=True))
            for example in kept_journeys
        ]
        result = sorted(boosted + kept_individuals, key=lambda example: -example.score)
        logger.info(
            f"Quality filter kept {len(result)} of {len(examples)} examples",
            extra={
                "journey_examples": len(journey_examples),
                "journey_kept": len(kept_journeys),
                "individual_examples": len(individual_examples),
                "individual_kept": len(kept_individuals),
                "individual_cap": cap,
                "profile": settings.quality_profile,
            },
        )
        return result


def quality_tier(score: float) -> str:
    if score >= HIGH_QUALITY:
        return "high"
    if score >= MEDIUM_QUALITY:
        return "medium"
    return "low"


def compute_dataset_metadata(examples: Sequence[TrainingExample]) -> Dict[str, Any]:
    """Aggregate counts used for dataset-health reporting."""

    distribution = {"high": 0, "medium": 0, "low": 0}
    context_types = {"spatial": 0, "visual": 0, "business": 0, "dom": 0}
    for example in examples:
        distribution[quality_tier(example.score)] += 1
        factors = example.quality.factors
        if factors.get("hasSpatialContext"):
            context_types["spatial"] += 1
        if factors.get("hasVisualContext"):
            context_types["visual"] += 1
        if factors.get("hasBusinessContext"):
            context_types["business"] += 1
        if example.context.get("pageType"):
            context_types["dom"] += 1
    return {
        "totalExamples": len(examples),
        "qualityDistribution": distribution,
        "contextTypes": context_types,
    }


__all__ = [
    "INTERACTION_WEIGHTS",
    "QualityFilter",
    "compute_dataset_metadata",
    "interaction_factors",
    "quality_tier",
    "score_interaction",
    "score_journey",
    "weighted_score",
]
