"""Journey segmentation: split a timestamp-ordered session into candidate journeys."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..capture.models import InteractionEvent
from ..workflow.config import Settings, get_settings
from .rules import (
    BACKTRACK_URL_CUES,
    COMPLETION_GOALS,
    COMPLETION_PAGE_TYPES,
    COMPLETION_STAGES,
    COMPLETION_URL_FRAGMENTS,
    CONVERSION_PHRASES,
    LENGTH_CAP_GOALS,
    LENGTH_CAP_PHRASES,
    MAJOR_TASK_CONTEXTS,
    PAGE_FLOW,
    PAGE_FLOW_FREE_TARGETS,
    STAGE_ORDER,
    TASK_URL_CUES,
    contains_any,
    stage_index,
)

logger = logging.getLogger(__name__)


class BreakReason(Enum):
    """Why a new candidate journey was started."""

    FIRST_EVENT = "first-event"
    IDLE_GAP = "idle-gap"
    FUNNEL_REGRESSION = "funnel-regression"
    JOURNEY_COMPLETE = "journey-complete"
    TASK_CONTEXT_CHANGE = "task-context-change"
    LENGTH_CAP = "length-cap"
    PAGE_FLOW = "page-flow"


def task_context(event: InteractionEvent) -> str:
    """Composite task identifier such as ``add-to-cart|product-consideration|product``."""

    parts: List[str] = []
    if event.conversion_goal:
        parts.append(event.conversion_goal)
    if event.page_type and event.funnel_stage:
        parts.append(f"{event.page_type}-{event.funnel_stage}")
    url = event.url_lower
    parts.extend(cue for cue in TASK_URL_CUES if cue in url)
    text = event.text_lower
    if "add to cart" in text:
        parts.append("add-to-cart")
    if "buy" in text or "purchase" in text:
        parts.append("purchase")
    if "sign up" in text or "register" in text:
        parts.append("signup")
    return "|".join(parts) if parts else "general"


def task_context_changed(previous: str, current: str) -> bool:
    if not previous or not current:
        return False
    previous_parts = previous.split("|")
    current_parts = current.split("|")
    previous_primary, current_primary = previous_parts[0], current_parts[0]
    if (
        previous_primary in MAJOR_TASK_CONTEXTS
        and current_primary in MAJOR_TASK_CONTEXTS
        and previous_primary != current_primary
    ):
        return True
    shared = [part for part in previous_parts if part in current_parts]
    return not shared and len(previous_parts) > 1 and len(current_parts) > 1


def is_event_complete(event: InteractionEvent) -> bool:
    """True when ``event`` reaches a realistic, pre-payment conversion endpoint."""

    if event.conversion_goal in COMPLETION_GOALS:
        return True
    if event.page_type in COMPLETION_PAGE_TYPES:
        return True
    if contains_any(event.url_lower, COMPLETION_URL_FRAGMENTS):
        return True
    if contains_any(event.text_lower, CONVERSION_PHRASES):
        return True
    return event.funnel_stage in COMPLETION_STAGES


def is_journey_complete(events: Sequence[InteractionEvent]) -> bool:
    return bool(events) and is_event_complete(events[-1])


def is_valid_journey(events: Sequence[InteractionEvent]) -> bool:
    """A journey needs two events and either two funnel stages or a third event."""

    if len(events) < 2:
        return False
    stages = {event.funnel_stage for event in events if event.funnel_stage}
    return len(stages) >= 2 or len(events) >= 3


def is_funnel_regression(previous_stage: str, current_stage: str, threshold: int = 2) -> bool:
    previous_index = stage_index(previous_stage, STAGE_ORDER)
    current_index = stage_index(current_stage, STAGE_ORDER)
    if previous_index == -1 or current_index == -1:
        return False
    return previous_index - current_index >= threshold


def has_conversion_action(events: Sequence[InteractionEvent]) -> bool:
    return any(
        event.conversion_goal in LENGTH_CAP_GOALS or contains_any(event.text_lower, LENGTH_CAP_PHRASES)
        for event in events
    )


def reached_optimal_length(events: Sequence[InteractionEvent], *, soft_cap: int = 5, hard_cap: int = 8) -> bool:
    length = len(events)
    if length >= hard_cap:
        return True
    if length >= soft_cap:
        return has_conversion_action(events)
    return False


def is_page_flow_break(previous_page_type: str, current_page_type: str, current_url: str = "") -> bool:
    """True when ``current_page_type`` is not a plausible next page after ``previous_page_type``."""

    if not previous_page_type or not current_page_type:
        return False
    expected = PAGE_FLOW.get(previous_page_type)
    if not expected or current_page_type in expected:
        return False
    if previous_page_type == current_page_type:
        return False
    if current_page_type in PAGE_FLOW_FREE_TARGETS:
        return False
    if contains_any(current_url.lower(), BACKTRACK_URL_CUES):
        return False
    return True


@dataclass(frozen=True, slots=True)
class Segment:
    """Raw candidate journey: positions into the sorted event list."""

    indices: Tuple[int, ...]
    reason: BreakReason

    def __len__(self) -> int:
        return len(self.indices)

    def events(self, events: Sequence[InteractionEvent]) -> List[InteractionEvent]:
        return [events[index] for index in self.indices]


class JourneySegmenter:
    """Scan a sorted session and cut it wherever a break rule fires.

    Parameters
    ----------
    settings:
        Supplies the idle gap, regression threshold, length caps and the
        optional page-flow rule. Defaults to :func:`get_settings`.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()

    def break_reason(
        self,
        current: Sequence[InteractionEvent],
        previous_context: str,
        event: InteractionEvent,
    ) -> Optional[BreakReason]:
        """Return the first rule that starts a new journey at ``event``, if any."""

        if not current:
            return BreakReason.FIRST_EVENT
        previous = current[-1]
        settings = self.settings
        if event.timestamp - previous.timestamp > settings.idle_gap_ms:
            return BreakReason.IDLE_GAP
        if is_funnel_regression(previous.funnel_stage, event.funnel_stage, settings.regression_threshold):
            return BreakReason.FUNNEL_REGRESSION
        if is_journey_complete(current):
            return BreakReason.JOURNEY_COMPLETE
        if task_context_changed(previous_context, task_context(event)):
            return BreakReason.TASK_CONTEXT_CHANGE
        if reached_optimal_length(current, soft_cap=settings.soft_length_cap, hard_cap=settings.hard_length_cap):
            return BreakReason.LENGTH_CAP
        if settings.page_flow_breaks and is_page_flow_break(previous.page_type, event.page_type, event.url):
            return BreakReason.PAGE_FLOW
        return None

    def split(self, events: Sequence[InteractionEvent]) -> List[Segment]:
        """Cut ``events`` (already sorted) into raw segments without validity filtering."""

        segments: List[Segment] = []
        current: List[InteractionEvent] = []
        indices: List[int] = []
        reason = BreakReason.FIRST_EVENT
        previous_context = ""
        for index, event in enumerate(events):
            new_reason = self.break_reason(current, previous_context, event)
            if new_reason is not None:
                if indices:
                    logger.debug(
                        f"Journey break before event {index}: {new_reason.value}",
                        extra={"position": index, "reason": new_reason.value},
                    )
                    segments.append(Segment(tuple(indices), reason))
                current, indices, reason = [], [], new_reason
            current.append(event)
            indices.append(index)
            previous_context = task_context(event)
        if indices:
            segments.append(Segment(tuple(indices), reason))
        return segments

    def segment(self, events: Sequence[InteractionEvent]) -> List[Segment]:
        """Return only the segments that qualify as journeys."""

        valid: List[Segment] = []
        for segment in self.split(events):
            if is_valid_journey(segment.events(events)):
                valid.append(segment)
            else:
                logger.debug(
                    f"Skipped candidate journey with {len(segment)} interactions",
                    extra={"length": len(segment), "start": segment.indices[0]},
                )
        return valid


__all__ = [
    "BreakReason",
    "JourneySegmenter",
    "Segment",
    "has_conversion_action",
    "is_event_complete",
    "is_funnel_regression",
    "is_journey_complete",
    "is_page_flow_break",
    "is_valid_journey",
    "reached_optimal_length",
    "task_context",
    "task_context_changed",
]
