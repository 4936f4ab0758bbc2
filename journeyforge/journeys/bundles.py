"""Training-oriented bundles derived from the full event list.

Besides the primary journeys found by segmentation, three extra windows are
cut from the session: around decision points, along forward funnel runs, and
leading up to goal events. Everything is then deduplicated by an
event signature and over-long bundles are split.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Set, Tuple

from ..capture.models import InteractionEvent
from .rules import DECISION_KEYWORDS, FUNNEL_ORDER, TASK_BUNDLE_GOALS, contains_any, stage_index

logger = logging.getLogger(__name__)

DECISION_WINDOW_BEFORE = 2
DECISION_WINDOW_AFTER = 2
DECISION_MIN_LENGTH = 3
FUNNEL_BUNDLE_LENGTH = 4
TASK_LOOKBACK = 4
MIN_BUNDLE_LENGTH = 2


class BundleKind(Enum):
    """Origin of a journey."""

    PRIMARY = "primary"
    DECISION = "decision"
    FUNNEL = "funnel"
    TASK = "task"


@dataclass(frozen=True, slots=True)
class EventBundle:
    """Positions of a journey's events in the sorted session."""

    kind: BundleKind
    indices: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.indices)

    def events(self, events: Sequence[InteractionEvent]) -> List[InteractionEvent]:
        return [events[index] for index in self.indices]


def is_decision_event(event: InteractionEvent) -> bool:
    return (
        event.funnel_stage == "validation"
        or contains_any(event.text_lower, DECISION_KEYWORDS)
        or event.page_type == "comparison"
    )


def decision_bundles(events: Sequence[InteractionEvent]) -> List[EventBundle]:
    bundles: List[EventBundle] = []
    for index, event in enumerate(events):
        if not is_decision_event(event):
            continue
        start = max(0, index - DECISION_WINDOW_BEFORE)
        end = min(len(events), index + DECISION_WINDOW_AFTER + 1)
        if end - start >= DECISION_MIN_LENGTH:
            bundles.append(EventBundle(BundleKind.DECISION, tuple(range(start, end))))
    return bundles


def funnel_bundles(events: Sequence[InteractionEvent]) -> List[EventBundle]:
    """Runs of events whose funnel stage never moves backwards."""

    bundles: List[EventBundle] = []
    current: List[int] = []
    last_stage = -1
    for index, event in enumerate(events):
        position = stage_index(event.funnel_stage, FUNNEL_ORDER)
        if position == -1:
            continue
        if position >= last_stage:
            current.append(index)
            last_stage = position
            if len(current) >= FUNNEL_BUNDLE_LENGTH:
                bundles.append(EventBundle(BundleKind.FUNNEL, tuple(current)))
                current = [index]
        else:
            if len(current) >= MIN_BUNDLE_LENGTH:
                bundles.append(EventBundle(BundleKind.FUNNEL, tuple(current)))
            current = [index]
            last_stage = position
    if len(current) >= MIN_BUNDLE_LENGTH:
        bundles.append(EventBundle(BundleKind.FUNNEL, tuple(current)))
    return bundles


def task_bundles(events: Sequence[InteractionEvent]) -> List[EventBundle]:
    bundles: List[EventBundle] = []
    for index, event in enumerate(events):
        if event.conversion_goal not in TASK_BUNDLE_GOALS:
            continue
        start = max(0, index - TASK_LOOKBACK)
        if index + 1 - start >= MIN_BUNDLE_LENGTH:
            bundles.append(EventBundle(BundleKind.TASK, tuple(range(start, index + 1))))
    return bundles


def _timestamp_key(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(value)


def bundle_signature(events: Iterable[InteractionEvent]) -> str:
    return "|".join(f"{_timestamp_key(event.timestamp)}-{event.text[:10] or 'x'}" for event in events)


def dedupe_and_split(
    bundles: Sequence[EventBundle],
    events: Sequence[InteractionEvent],
    *,
    max_length: int = 8,
    split_size: int = 6,
) -> List[EventBundle]:
    """Drop repeated bundles (first occurrence wins) and split those longer than ``max_length``."""

    seen: Set[str] = set()
    unique: List[EventBundle] = []
    for bundle in bundles:
        signature = bundle_signature(bundle.events(events))
        if signature in seen:
            continue
        seen.add(signature)
        if MIN_BUNDLE_LENGTH <= len(bundle) <= max_length:
            unique.append(bundle)
        elif len(bundle) > max_length:
            for start in range(0, len(bundle), split_size):
                chunk = bundle.indices[start : start + split_size]
                if len(chunk) >= MIN_BUNDLE_LENGTH:
                    unique.append(EventBundle(bundle.kind, chunk))
    return unique


def derive_bundles(
    primary: Sequence[EventBundle],
    events: Sequence[InteractionEvent],
    *,
    max_length: int = 8,
    split_size: int = 6,
) -> List[EventBundle]:
    """Combine primary journeys with decision, funnel and task bundles."""

    candidates: List[EventBundle] = list(primary)
    extra = {
        BundleKind.DECISION: decision_bundles(events),
        BundleKind.FUNNEL: funnel_bundles(events),
        BundleKind.TASK: task_bundles(events),
    }
    for kind, bundles in extra.items():
        logger.debug(f"Derived {len(bundles)} {kind.value} bundles", extra={"kind": kind.value, "count": len(bundles)})
        candidates.extend(bundles)
    result = dedupe_and_split(candidates, events, max_length=max_length, split_size=split_size)
    logger.debug(
        f"Bundle deduplication kept {len(result)} of {len(candidates)}",
        extra={"candidates": len(candidates), "kept": len(result)},
    )
    return result


__all__ = [
    "BundleKind",
    "EventBundle",
    "bundle_signature",
    "decision_bundles",
    "dedupe_and_split",
    "derive_bundles",
    "funnel_bundles",
    "is_decision_event",
    "task_bundles",
]
