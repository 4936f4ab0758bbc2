"""Turn a sorted session into classified journeys."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..capture.models import InteractionEvent, SessionInfo
from ..workflow.config import Settings, get_settings
from .bundles import BundleKind, EventBundle, derive_bundles
from .metadata import Journey, build_journey
from .segmentation import JourneySegmenter

logger = logging.getLogger(__name__)


class JourneyDetector:
    """Segment a session, derive training bundles and classify each journey.

    ``events`` must already be sorted by timestamp; the detector never
    re-sorts because step numbers are positional.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.segmenter = JourneySegmenter(self.settings)

    def bundles(self, events: Sequence[InteractionEvent]) -> List[EventBundle]:
        primary = [EventBundle(BundleKind.PRIMARY, segment.indices) for segment in self.segmenter.segment(events)]
        if not self.settings.derive_bundles:
            return primary
        return derive_bundles(
            primary,
            events,
            max_length=self.settings.bundle_max_length,
            split_size=self.settings.bundle_split_size,
        )

    def detect(self, events: Sequence[InteractionEvent], session: Optional[SessionInfo] = None) -> List[Journey]:
        journeys = [
            build_journey(bundle.events(events), bundle.indices, bundle.kind, session)
            for bundle in self.bundles(events)
        ]
        logger.info(
            f"Detected {len(journeys)} journeys from {len(events)} interactions",
            extra={
                "session_id": session.session_id if session else "",
                "journeys": len(journeys),
                "primary": sum(1 for journey in journeys if journey.origin is BundleKind.PRIMARY),
            },
        )
        return journeys


def detect_journeys(
    events: Sequence[InteractionEvent],
    settings: Optional[Settings] = None,
    session: Optional[SessionInfo] = None,
) -> List[Journey]:
    return JourneyDetector(settings).detect(events, session)


__all__ = ["JourneyDetector", "detect_journeys"]
