"""Interaction records, selector resolution and live-page probes."""

from .models import (
    BoundingBox,
    BusinessAnnotations,
    ElementDescriptor,
    InteractionEvent,
    NearbyElement,
    PageContext,
    SelectorSet,
    SessionInfo,
    SessionPayloadError,
    StateSnapshot,
    parse_session_payload,
    sort_events,
)
from .probe import MatchProbe, PlaywrightProbe, RecordedProbe
from .selectors import (
    PLACEHOLDER_SELECTOR,
    SelectorCandidate,
    SelectorResolution,
    action_verb,
    classify_selector,
    generate_candidates,
    is_unstable_class,
    playwright_action,
    reliability_from_count,
    resolve_event_selectors,
    resolve_selectors,
    selector_reasoning,
)

__all__ = [
    "BoundingBox",
    "BusinessAnnotations",
    "ElementDescriptor",
    "InteractionEvent",
    "MatchProbe",
    "NearbyElement",
    "PLACEHOLDER_SELECTOR",
    "PageContext",
    "PlaywrightProbe",
    "RecordedProbe",
    "SelectorCandidate",
    "SelectorResolution",
    "SelectorSet",
    "SessionInfo",
    "SessionPayloadError",
    "StateSnapshot",
    "action_verb",
    "classify_selector",
    "generate_candidates",
    "is_unstable_class",
    "parse_session_payload",
    "playwright_action",
    "reliability_from_count",
    "resolve_event_selectors",
    "resolve_selectors",
    "selector_reasoning",
    "sort_events",
]
