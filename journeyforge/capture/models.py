"""Dataclass-based model of captured interaction records."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

EventType = Literal["CLICK", "INPUT", "FORM_SUBMIT", "FOCUS", "KEY_PRESS", "NAVIGATION"]
KNOWN_EVENT_TYPES: Tuple[str, ...] = ("CLICK", "INPUT", "FORM_SUBMIT", "FOCUS", "KEY_PRESS", "NAVIGATION")


class SessionPayloadError(ValueError):
    """Raised when a session payload cannot be interpreted as a list of records."""

    def __init__(self, message: str, *, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.data = data or {}


def _mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _mapping_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        return []
    return [dict(item) for item in value if isinstance(item, Mapping)]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _parse_timestamp(value: Any) -> float:
    """Return a millisecond timestamp from a number or ISO-8601 string."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0.0
        try:
            return float(stripped)
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(stripped.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable timestamp {stripped!r}; defaulting to 0")
            return 0.0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp() * 1000.0
    logger.warning(f"Unsupported timestamp type {type(value).__name__}; defaulting to 0")
    return 0.0


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Element rectangle in page coordinates."""

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["BoundingBox"]:
        if not isinstance(payload, Mapping):
            return None
        return cls(
            x=_float(payload.get("x")),
            y=_float(payload.get("y")),
            width=_float(payload.get("width")),
            height=_float(payload.get("height")),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class NearbyElement:
    """An element found close to the interaction target."""

    text: str = ""
    tag: str = ""
    selector: str = ""
    distance: float = 0.0
    direction: str = "unknown"
    element_type: str = "element"
    interactive: bool = True
    visible: bool = True
    aria_role: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NearbyElement":
        tag = _text(payload.get("tagName") or payload.get("tag")).lower()
        return cls(
            text=_text(payload.get("text")).strip(),
            tag=tag,
            selector=_text(payload.get("selector")) or (tag or "element"),
            distance=_float(payload.get("distance")),
            direction=_text(payload.get("direction") or payload.get("relationship")) or "unknown",
            element_type=_text(payload.get("elementType")) or tag or "element",
            interactive=payload.get("isInteractive") is not False,
            visible=payload.get("isVisible") is not False,
            aria_role=_text(payload.get("ariaRole")),
            attributes={str(k): _text(v) for k, v in _mapping(payload.get("attributes")).items()},
        )


@dataclass(frozen=True, slots=True)
class ElementDescriptor:
    """Target element of an interaction."""

    tag: str = ""
    text: str = ""
    value: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    nearby: Tuple[NearbyElement, ...] = ()
    siblings: Tuple[Dict[str, Any], ...] = ()
    ancestors: Tuple[Dict[str, Any], ...] = ()
    form_context: Optional[Dict[str, Any]] = None
    computed_styles: Dict[str, Any] = field(default_factory=dict)
    aria_attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> "ElementDescriptor":
        data = _mapping(payload)
        attributes = {str(k): _text(v) for k, v in _mapping(data.get("attributes")).items()}
        form_context = data.get("formContext")
        return cls(
            tag=_text(data.get("tag") or data.get("tagName")).lower(),
            text=_text(data.get("text")).strip(),
            value=_text(data.get("value") or attributes.get("value")),
            attributes=attributes,
            nearby=tuple(NearbyElement.from_dict(item) for item in _mapping_list(data.get("nearbyElements"))),
            siblings=tuple(_mapping_list(data.get("siblingElements"))),
            ancestors=tuple(_mapping_list(data.get("ancestors"))),
            form_context=dict(form_context) if isinstance(form_context, Mapping) else None,
            computed_styles=_mapping(data.get("computedStyles")),
            aria_attributes=_mapping(data.get("ariaAttributes")),
        )

    @property
    def classes(self) -> List[str]:
        return [token for token in self.attributes.get("class", "").split() if token]


@dataclass(frozen=True, slots=True)
class PageContext:
    """Where the interaction happened."""

    url: str = ""
    page_type: str = ""
    title: str = ""
    user_journey: str = ""
    performance: Optional[Dict[str, Any]] = None
    seo: Optional[Dict[str, Any]] = None
    accessibility: Optional[Dict[str, Any]] = None
    analytics: Optional[Dict[str, Any]] = None
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "PageContext":
        data = _mapping(payload)

        def _optional(key: str) -> Optional[Dict[str, Any]]:
            value = data.get(key)
            return dict(value) if isinstance(value, Mapping) else None

        return cls(
            url=_text(data.get("pageUrl") or data.get("url")),
            page_type=_text(data.get("pageType")),
            title=_text(data.get("pageTitle") or data.get("title")),
            user_journey=_text(data.get("userJourney")),
            performance=_optional("performance"),
            seo=_optional("seo"),
            accessibility=_optional("accessibility"),
            analytics=_optional("analytics"),
            meta=_optional("meta"),
        )


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """Before/after page state plus the computed deltas."""

    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    changes: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "StateSnapshot":
        data = _mapping(payload)

        def _optional(key: str) -> Optional[Dict[str, Any]]:
            value = data.get(key)
            return dict(value) if isinstance(value, Mapping) else None

        return cls(before=_optional("before"), after=_optional("after"), changes=_optional("changes"))

    @property
    def form_data(self) -> Dict[str, Any]:
        if not self.before:
            return {}
        return _mapping(self.before.get("formData"))


@dataclass(frozen=True, slots=True)
class BusinessAnnotations:
    """Optional e-commerce, funnel and user annotations."""

    ecommerce: Optional[Dict[str, Any]] = None
    conversion: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Any) -> Optional["BusinessAnnotations"]:
        if not isinstance(payload, Mapping):
            return None

        def _optional(key: str) -> Optional[Dict[str, Any]]:
            value = payload.get(key)
            return dict(value) if isinstance(value, Mapping) else None

        return cls(ecommerce=_optional("ecommerce"), conversion=_optional("conversion"), user=_optional("user"))

    @property
    def funnel_stage(self) -> str:
        return _text((self.conversion or {}).get("funnelStage"))

    @property
    def conversion_goal(self) -> str:
        return _text((self.conversion or {}).get("conversionGoal"))

    @property
    def product_id(self) -> str:
        return _text((self.ecommerce or {}).get("productId"))

    @property
    def product_name(self) -> str:
        return _text((self.ecommerce or {}).get("productName"))

    @property
    def product_category(self) -> str:
        return _text((self.ecommerce or {}).get("productCategory"))

    @property
    def product_price(self) -> str:
        return _text((self.ecommerce or {}).get("productPrice"))


@dataclass(frozen=True, slots=True)
class SelectorSet:
    """Candidate selectors recorded for an element.

    ``reliability`` maps selector strings to scores in ``[0, 1]`` and
    ``match_counts`` holds live-page match counts captured alongside them.
    """

    primary: str = ""
    alternatives: Tuple[str, ...] = ()
    xpath: str = ""
    css_path: str = ""
    reliability: Dict[str, float] = field(default_factory=dict)
    match_counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any) -> "SelectorSet":
        data = _mapping(payload)
        alternatives = data.get("alternatives")
        if isinstance(alternatives, Sequence) and not isinstance(alternatives, str):
            alternatives = tuple(_text(item) for item in alternatives if item)
        else:
            alternatives = ()
        reliability: Dict[str, float] = {}
        for key, value in _mapping(data.get("reliability") or data.get("selectorReliability")).items():
            reliability[str(key)] = min(1.0, max(0.0, _float(value)))
        counts: Dict[str, int] = {}
        for key, value in _mapping(data.get("matchCounts")).items():
            try:
                counts[str(key)] = max(0, int(value))
            except (TypeError, ValueError):
                continue
        return cls(
            primary=_text(data.get("primary")),
            alternatives=alternatives,
            xpath=_text(data.get("xpath")),
            css_path=_text(data.get("cssPath")),
            reliability=reliability,
            match_counts=counts,
        )

    def recorded(self) -> List[str]:
        """Return recorded selectors in capture order without duplicates."""

        ordered: List[str] = []
        for selector in (self.primary, *self.alternatives, self.xpath, self.css_path):
            if selector and selector not in ordered:
                ordered.append(selector)
        return ordered

    @property
    def is_empty(self) -> bool:
        return not self.recorded()


@dataclass(frozen=True, slots=True)
class InteractionEvent:
    """One captured user action. Instances are never mutated after parsing."""

    timestamp: float
    type: str
    element: ElementDescriptor = field(default_factory=ElementDescriptor)
    page: PageContext = field(default_factory=PageContext)
    visual: Dict[str, Any] = field(default_factory=dict)
    state: StateSnapshot = field(default_factory=StateSnapshot)
    business: Optional[BusinessAnnotations] = None
    selectors: SelectorSet = field(default_factory=SelectorSet)
    timing: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "InteractionEvent":
        """Create an :class:`InteractionEvent` from a loosely typed capture record."""

        if not isinstance(payload, Mapping):
            raise ValueError("Interaction record must be a mapping")
        interaction = _mapping(payload.get("interaction"))
        timestamp = payload.get("timestamp", interaction.get("timestamp"))
        event_type = _text(payload.get("type") or interaction.get("type") or "CLICK").strip().upper()
        timing = interaction.get("timing") or payload.get("timing")
        return cls(
            timestamp=_parse_timestamp(timestamp),
            type=event_type or "CLICK",
            element=ElementDescriptor.from_dict(payload.get("element")),
            page=PageContext.from_dict(payload.get("context")),
            visual=_mapping(payload.get("visual")),
            state=StateSnapshot.from_dict(payload.get("state")),
            business=BusinessAnnotations.from_dict(payload.get("business")),
            selectors=SelectorSet.from_dict(payload.get("selectors")),
            timing=dict(timing) if isinstance(timing, Mapping) else None,
            raw=dict(payload),
        )

    @property
    def url(self) -> str:
        return self.page.url

    @property
    def page_type(self) -> str:
        return self.page.page_type

    @property
    def text(self) -> str:
        return self.element.text

    @property
    def text_lower(self) -> str:
        return self.element.text.lower()

    @property
    def url_lower(self) -> str:
        return self.page.url.lower()

    @property
    def funnel_stage(self) -> str:
        return self.business.funnel_stage if self.business else ""

    @property
    def conversion_goal(self) -> str:
        return self.business.conversion_goal if self.business else ""

    @property
    def bounding_box(self) -> Optional[BoundingBox]:
        return BoundingBox.from_dict(self.visual.get("boundingBox"))

    @property
    def form_data(self) -> Dict[str, Any]:
        return self.state.form_data

    @property
    def user(self) -> Dict[str, Any]:
        if self.business and self.business.user:
            return self.business.user
        return {}


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """Session-level data supplied alongside the interaction list."""

    session_id: str = ""
    task_title: str = ""
    task_description: str = ""

    @classmethod
    def from_dict(cls, payload: Any) -> "SessionInfo":
        data = _mapping(payload)
        config = _mapping(data.get("config"))
        task = _mapping(config.get("generatedTask") or data.get("generatedTask") or data.get("task"))
        return cls(
            session_id=_text(data.get("sessionId") or data.get("id")),
            task_title=_text(task.get("title")).strip(),
            task_description=_text(task.get("description")).strip(),
        )


def parse_session_payload(payload: Any) -> List[InteractionEvent]:
    """Parse a session's raw records, failing fast when the payload is not a list.

    Records that are not mappings are skipped with a warning so that one bad
    record never aborts the rest of the session.
    """

    if isinstance(payload, (str, bytes)) or not isinstance(payload, (list, tuple)):
        raise SessionPayloadError(
            f"Session payload must be a list of interaction records, got {type(payload).__name__}",
            data={"payload_type": type(payload).__name__},
        )
    events: List[InteractionEvent] = []
    for position, record in enumerate(payload):
        if isinstance(record, InteractionEvent):
            events.append(record)
            continue
        if not isinstance(record, Mapping):
            logger.warning(
                f"Skipping interaction record {position}: expected a mapping",
                extra={"record_type": type(record).__name__, "position": position},
            )
            continue
        events.append(InteractionEvent.from_dict(record))
    return events


def sort_events(events: Sequence[InteractionEvent]) -> List[InteractionEvent]:
    """Stable sort by timestamp; equal timestamps keep their capture order."""

    return sorted(events, key=lambda event: event.timestamp)


__all__ = [
    "BoundingBox",
    "BusinessAnnotations",
    "ElementDescriptor",
    "EventType",
    "InteractionEvent",
    "KNOWN_EVENT_TYPES",
    "NearbyElement",
    "PageContext",
    "SelectorSet",
    "SessionInfo",
    "SessionPayloadError",
    "StateSnapshot",
    "parse_session_payload",
    "sort_events",
]
