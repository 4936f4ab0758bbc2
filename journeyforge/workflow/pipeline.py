"""Session pipeline orchestration: raw interaction records in, training examples out."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..capture.models import InteractionEvent, SessionInfo, parse_session_payload, sort_events
from ..capture.probe import MatchProbe
from ..capture.selectors import resolve_event_selectors
from ..context.extractors import extract_all
from ..journeys.detector import JourneyDetector
from ..journeys.metadata import Journey
from ..state.accumulator import ProductStateStore, extract_product_id
from ..training.models import TrainingExample
from ..training.quality import QualityFilter, compute_dataset_metadata
from ..training.synthesizer import ExampleSynthesizer, PreparedInteraction
from .config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PipelineResult:
    """Structured result of processing one session."""

    examples: List[TrainingExample]
    journeys: List[Journey]
    metadata: Dict[str, Any]
    product_states: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    business_contexts: List[str] = field(default_factory=list)
    events: int = 0
    selector_anchored: int = 0
    context_rich: int = 0
    duration_ms: float = 0.0

    def finetune_records(self) -> List[Dict[str, str]]:
        return [example.to_finetune_record() for example in self.examples]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "examples": [example.to_dict() for example in self.examples],
            "journeys": [journey.to_metadata() for journey in self.journeys],
            "metadata": self.metadata,
            "productStates": self.product_states,
            "stats": {
                "events": self.events,
                "selectorAnchored": self.selector_anchored,
                "contextRich": self.context_rich,
                "durationMs": self.duration_ms,
            },
        }


class SessionPipeline:
    """Run one session end to end as a single synchronous batch pass.

    Parameters
    ----------
    settings:
        Tuned heuristics; defaults to :func:`get_settings`.
    probe:
        Optional live-page match probe used when resolving selectors.
    """

    def __init__(self, settings: Optional[Settings] = None, probe: Optional[MatchProbe] = None) -> None:
        self.settings = settings or get_settings()
        self.probe = probe
        self.detector = JourneyDetector(self.settings)
        self.quality_filter = QualityFilter(self.settings)

    def prepare(
        self,
        events: Sequence[InteractionEvent],
        store: ProductStateStore,
    ) -> List[PreparedInteraction]:
        """Feed ``store`` in order and resolve each event's selectors and contexts."""

        prepared: List[PreparedInteraction] = []
        for index, event in enumerate(events):
            store.process_interaction(event, events, index)
            product_id = extract_product_id(event)
            product_state = store.generate_state_context(product_id) if product_id else ""
            business_context = store.business_context_for(event)
            resolution = resolve_event_selectors(
                event,
                probe=self.probe,
                max_backups=self.settings.max_backup_selectors,
            )
            context = extract_all(event, nearby_limit=self.settings.nearby_limit)
            prepared.append(
                PreparedInteraction(
                    index=index,
                    event=event,
                    resolution=resolution,
                    context=context,
                    product_state=product_state,
                    business_context=business_context,
                )
            )
        return prepared

    def process_session(self, events: Any, session: Optional[Any] = None) -> PipelineResult:
        """Turn a session's raw interaction records into prioritized training examples.

        Raises
        ------
        SessionPayloadError
            If ``events`` is not a list of records.
        """

        started = time.perf_counter()
        if session is not None and not isinstance(session, SessionInfo):
            session = SessionInfo.from_dict(session)
        ordered = sort_events(parse_session_payload(events))
        session_id = session.session_id if session else ""
        logger.info(
            f"Processing session with {len(ordered)} interactions",
            extra={"session_id": session_id, "events": len(ordered)},
        )

        store = ProductStateStore(self.settings)
        try:
            prepared = self.prepare(ordered, store)
            journeys = self.detector.detect(ordered, session)
            synthesizer = ExampleSynthesizer(self.settings, session)
            candidates = synthesizer.synthesize(prepared, journeys)
            examples = self.quality_filter.apply(candidates)
            metadata = compute_dataset_metadata(examples)
            product_states = {product_id: state.to_dict() for product_id, state in store.all_states().items()}
        finally:
            store.clear()

        minimum = self.settings.min_action_reliability
        result = PipelineResult(
            examples=examples,
            journeys=journeys,
            metadata=metadata,
            product_states=product_states,
            business_contexts=[item.business_context for item in prepared],
            events=len(ordered),
            selector_anchored=sum(1 for item in prepared if item.resolution.is_anchorable(minimum)),
            context_rich=sum(1 for item in prepared if item.context.is_enhanced),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        logger.info(
            f"Session produced {len(examples)} training examples from {len(journeys)} journeys",
            extra={
                "session_id": session_id,
                "examples": len(examples),
                "candidates": len(candidates),
                "journeys": len(journeys),
                "selector_anchored": result.selector_anchored,
                "duration_ms": result.duration_ms,
            },
        )
        return result


def process_session(
    events: Any,
    session: Optional[Any] = None,
    *,
    settings: Optional[Settings] = None,
    probe: Optional[MatchProbe] = None,
) -> PipelineResult:
    """Convenience wrapper around :class:`SessionPipeline`."""

    return SessionPipeline(settings, probe).process_session(events, session)


__all__ = ["PipelineResult", "SessionPipeline", "process_session"]
