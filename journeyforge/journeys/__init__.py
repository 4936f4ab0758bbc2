"""Journey segmentation, bundling, classification and metadata."""

from .bundles import BundleKind, EventBundle, derive_bundles
from .classifier import Classification, classify, classify_type, extract_goal, extract_intent
from .detector import JourneyDetector, detect_journeys
from .metadata import (
    ConversionSignal,
    FunnelProgression,
    Journey,
    StageTransition,
    StepMetadata,
    build_journey,
)
from .rules import FUNNEL_ORDER, STAGE_ORDER, JourneyFeatures, Rule, first_match
from .segmentation import (
    BreakReason,
    JourneySegmenter,
    Segment,
    is_event_complete,
    is_journey_complete,
    is_valid_journey,
    task_context,
)

__all__ = [
    "BreakReason",
    "BundleKind",
    "Classification",
    "ConversionSignal",
    "EventBundle",
    "FUNNEL_ORDER",
    "FunnelProgression",
    "Journey",
    "JourneyDetector",
    "JourneyFeatures",
    "JourneySegmenter",
    "Rule",
    "STAGE_ORDER",
    "Segment",
    "StageTransition",
    "StepMetadata",
    "build_journey",
    "classify",
    "classify_type",
    "derive_bundles",
    "detect_journeys",
    "extract_goal",
    "extract_intent",
    "first_match",
    "is_event_complete",
    "is_journey_complete",
    "is_valid_journey",
    "task_context",
]
