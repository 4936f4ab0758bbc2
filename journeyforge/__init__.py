"""Journeyforge: turn recorded browsing sessions into fine-tuning examples."""

from .capture import (
    InteractionEvent,
    MatchProbe,
    PlaywrightProbe,
    RecordedProbe,
    SelectorResolution,
    SessionInfo,
    SessionPayloadError,
    parse_session_payload,
    resolve_event_selectors,
)
from .context import InteractionContext, extract_all
from .journeys import (
    BreakReason,
    BundleKind,
    Journey,
    JourneyDetector,
    JourneySegmenter,
    classify,
    detect_journeys,
)
from .state import PatternMatcher, ProductConfigurationState, ProductStateStore
from .training import ExampleSynthesizer, QualityAssessment, QualityFilter, TrainingExample
from .workflow.config import Settings, get_settings
from .workflow.pipeline import PipelineResult, SessionPipeline, process_session
from .workflow.report import render_dataset_report, render_journey_table

__all__ = [
    "BreakReason",
    "BundleKind",
    "ExampleSynthesizer",
    "InteractionContext",
    "InteractionEvent",
    "Journey",
    "JourneyDetector",
    "JourneySegmenter",
    "MatchProbe",
    "PatternMatcher",
    "PipelineResult",
    "PlaywrightProbe",
    "ProductConfigurationState",
    "ProductStateStore",
    "QualityAssessment",
    "QualityFilter",
    "RecordedProbe",
    "SelectorResolution",
    "SessionInfo",
    "SessionPayloadError",
    "SessionPipeline",
    "Settings",
    "TrainingExample",
    "classify",
    "detect_journeys",
    "extract_all",
    "get_settings",
    "parse_session_payload",
    "process_session",
    "render_dataset_report",
    "render_journey_table",
    "resolve_event_selectors",
]
