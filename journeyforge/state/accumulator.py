"""Session-scoped product configuration state."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence

from ..capture.models import InteractionEvent
from ..workflow.config import Settings, get_settings
from .pattern_matcher import PatternMatch, PatternMatcher
from .site_patterns import (
    PRODUCT_ID_ATTRIBUTES,
    PRODUCT_ID_URL_PATTERNS,
    category_from_url,
    domain_for_url,
    is_apparel,
    is_cart_text,
)

logger = logging.getLogger(__name__)

SelectionType = Literal["size", "color", "style", "quantity"]
SELECTION_TYPES: tuple[str, ...] = ("size", "color", "style", "quantity")

_TITLE_SUFFIX = re.compile(r"\s*\|\s*[^|]+$")
_STYLE_CUES = ("style", "variant", "finish")
_QUANTITY_CUES = ("quantity", "qty")


@dataclass(frozen=True, slots=True)
class SelectionStep:
    step_number: int
    interaction_index: int
    timestamp: float
    selection_type: str
    selected_value: str
    action_description: str
    element_selector: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stepNumber": self.step_number,
            "interactionIndex": self.interaction_index,
            "timestamp": self.timestamp,
            "selectionType": self.selection_type,
            "selectedValue": self.selected_value,
            "actionDescription": self.action_description,
            "elementSelector": self.element_selector,
        }


@dataclass(frozen=True, slots=True)
class StateValidation:
    is_complete: bool
    missing_selections: List[str]
    readiness_score: float
    validation_message: str
    next_required_action: Optional[str] = None


@dataclass(slots=True)
class ProductConfigurationState:
    """Accumulated variant selections for one product within a session."""

    product_id: str
    product_name: str
    category: str
    url: str
    first_interaction: float
    last_update: float
    base_price: str = ""
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None
    selected_style: Optional[str] = None
    selected_quantity: Optional[int] = None
    selection_history: List[SelectionStep] = field(default_factory=list)
    required_selections: List[str] = field(default_factory=lambda: ["size"])
    completed_selections: List[str] = field(default_factory=list)
    ready_for_cart: bool = False
    confidence: float = 0.5

    def current(self, selection_type: str) -> Optional[str]:
        value = getattr(self, f"selected_{selection_type}")
        return None if value is None else str(value)

    def record(self, step: SelectionStep) -> None:
        """Apply a selection and append it to the history."""

        if step.selection_type == "quantity":
            self.selected_quantity = int(step.selected_value)
        else:
            setattr(self, f"selected_{step.selection_type}", step.selected_value)
        self.selection_history.append(step)
        if step.selection_type not in self.completed_selections:
            self.completed_selections.append(step.selection_type)
        self.last_update = step.timestamp
        self.confidence = self._compute_confidence()
        self.validate()

    def _completed_ratio(self) -> float:
        if not self.required_selections:
            return 1.0
        done = sum(1 for required in self.required_selections if required in self.completed_selections)
        return done / len(self.required_selections)

    def _compute_confidence(self) -> float:
        confidence = 0.3 + self._completed_ratio() * 0.5
        if self.selection_history:
            confidence += 0.2
        return min(confidence, 1.0)

    def validate(self) -> StateValidation:
        missing = [required for required in self.required_selections if required not in self.completed_selections]
        is_complete = not missing
        done = len(self.required_selections) - len(missing)
        total = len(self.required_selections)
        self.ready_for_cart = is_complete
        if is_complete:
            return StateValidation(
                is_complete=True,
                missing_selections=[],
                readiness_score=self._completed_ratio(),
                validation_message=f"Ready for cart ({done}/{total} selections complete)",
            )
        return StateValidation(
            is_complete=False,
            missing_selections=missing,
            readiness_score=self._completed_ratio(),
            validation_message=f"Incomplete ({done}/{total} selections)",
            next_required_action=f"Select {missing[0]}",
        )

    def selections_summary(self) -> List[str]:
        parts: List[str] = []
        if self.selected_size:
            parts.append(f"Size: {self.selected_size}")
        if self.selected_color:
            parts.append(f"Color: {self.selected_color}")
        if self.selected_style:
            parts.append(f"Style: {self.selected_style}")
        return parts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "category": self.category,
            "url": self.url,
            "basePrice": self.base_price or None,
            "selectedSize": self.selected_size,
            "selectedColor": self.selected_color,
            "selectedStyle": self.selected_style,
            "selectedQuantity": self.selected_quantity,
            "selectionHistory": [step.to_dict() for step in self.selection_history],
            "requiredSelections": list(self.required_selections),
            "completedSelections": list(self.completed_selections),
            "readyForCart": self.ready_for_cart,
            "confidence": self.confidence,
            "firstInteraction": self.first_interaction,
            "lastUpdate": self.last_update,
        }


def extract_product_id(event: InteractionEvent) -> Optional[str]:
    """Resolve a product identifier from annotations, the URL, or element data attributes."""

    if event.business and event.business.product_id:
        return event.business.product_id
    for pattern in PRODUCT_ID_URL_PATTERNS:
        match = pattern.search(event.url)
        if match:
            return match.group(1)
    for attribute in PRODUCT_ID_ATTRIBUTES:
        value = event.element.attributes.get(attribute)
        if value:
            return value
    return None


def product_name_from_title(title: str) -> str:
    return _TITLE_SUFFIX.sub("", title).strip()


def _element_selector(event: InteractionEvent) -> str:
    if event.selectors.primary:
        return event.selectors.primary
    element_id = event.element.attributes.get("id")
    if element_id:
        return f"#{element_id}"
    return event.element.tag or "unknown"


def _has_cue(attributes: Dict[str, str], cues: Sequence[str]) -> bool:
    for key in ("name", "aria-label"):
        value = (attributes.get(key) or "").lower()
        if value and any(cue in value for cue in cues):
            return True
    return False


class ProductStateStore:
    """Per-product configuration states for a single session.

    A store must not be shared between sessions; call :meth:`clear` at the
    session boundary or create a new store.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        matcher: Optional[PatternMatcher] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.matcher = matcher or PatternMatcher(fuzzy_cutoff=self.settings.fuzzy_cutoff)
        self._states: Dict[str, ProductConfigurationState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._states

    def get(self, product_id: str) -> Optional[ProductConfigurationState]:
        return self._states.get(product_id)

    def all_states(self) -> Dict[str, ProductConfigurationState]:
        return dict(self._states)

    def clear(self) -> None:
        self._states.clear()

    def process_interaction(
        self,
        event: InteractionEvent,
        events: Sequence[InteractionEvent],
        index: int,
    ) -> Optional[ProductConfigurationState]:
        """Fold one interaction into the state of the product it refers to.

        Returns ``None`` when the interaction does not resolve to a product.
        """

        product_id = extract_product_id(event)
        if not product_id:
            logger.debug(f"No product identifier for interaction {index}")
            return None

        state = self._states.get(product_id)
        if state is None:
            state = self._initialize(event, product_id)
            self._states[product_id] = state
            logger.debug(f"Tracking product {product_id}", extra={"product_id": product_id})

        surrounding = self._surrounding_text(events, index)
        for step in self._detect_selections(state, event, index, surrounding):
            state.record(step)
        return state

    def _initialize(self, event: InteractionEvent, product_id: str) -> ProductConfigurationState:
        business = event.business
        name = (business.product_name if business else "") or product_name_from_title(event.page.title)
        category = (business.product_category if business else "") or category_from_url(event.url)
        required = ["size"]
        if is_apparel(event.url, business.product_category if business else ""):
            required.append("color")
        state = ProductConfigurationState(
            product_id=product_id,
            product_name=name or "Unknown Product",
            category=category,
            url=event.url,
            first_interaction=event.timestamp,
            last_update=event.timestamp,
            base_price=business.product_price if business else "",
            required_selections=required,
        )
        state.validate()
        return state

    @staticmethod
    def _surrounding_text(events: Sequence[InteractionEvent], index: int) -> str:
        texts = [events[position].text for position in (index - 1, index + 1) if 0 <= position < len(events)]
        return " ".join(text for text in texts if text)

    def _detect_selections(
        self,
        state: ProductConfigurationState,
        event: InteractionEvent,
        index: int,
        surrounding: str,
    ) -> List[SelectionStep]:
        steps: List[SelectionStep] = []
        attributes = event.element.attributes

        def _step(selection_type: str, value: str) -> SelectionStep:
            return SelectionStep(
                step_number=len(state.selection_history) + len(steps) + 1,
                interaction_index=index,
                timestamp=event.timestamp,
                selection_type=selection_type,
                selected_value=value,
                action_description=f'Selected {selection_type.capitalize()} "{value}"',
                element_selector=_element_selector(event),
            )

        if self.is_size_selection(event, surrounding):
            size = self.extract_size(event, surrounding)
            if size and size != state.selected_size:
                steps.append(_step("size", size))

        if self.is_color_selection(event):
            color = self.extract_color(event)
            if color and color != state.selected_color:
                steps.append(_step("color", color))

        if _has_cue(attributes, _STYLE_CUES):
            style = event.element.text or event.element.value
            if style and style != state.selected_style:
                steps.append(_step("style", style))

        if _has_cue(attributes, _QUANTITY_CUES):
            raw_quantity = (event.element.value or event.element.text).strip()
            if raw_quantity.isdigit() and int(raw_quantity) != state.selected_quantity:
                steps.append(_step("quantity", str(int(raw_quantity))))
        return steps

    def is_size_selection(self, event: InteractionEvent, surrounding: str = "") -> bool:
        if _has_cue(event.element.attributes, ("size",)):
            return True
        match = self.matcher.detect_size(event.element.text, event.element.attributes, surrounding)
        return match is not None and match.confidence >= self.settings.size_threshold

    def is_color_selection(self, event: InteractionEvent) -> bool:
        if _has_cue(event.element.attributes, ("color", "colour")):
            return True
        match = self.matcher.detect_color(event.element.text, event.element.attributes, domain_for_url(event.url))
        return match is not None and match.confidence >= self.settings.color_threshold

    def extract_size(self, event: InteractionEvent, surrounding: str = "") -> Optional[str]:
        attributes = event.element.attributes
        for candidate in (event.element.text, attributes.get("value", "")):
            if not candidate:
                continue
            match = self.matcher.detect_size(candidate, attributes, surrounding)
            if match is not None and match.confidence >= self.settings.size_threshold:
                return match.value
        return None

    def extract_color(self, event: InteractionEvent) -> Optional[str]:
        attributes = event.element.attributes
        domain = domain_for_url(event.url)
        best: Optional[PatternMatch] = None
        for candidate, bonus in ((attributes.get("aria-label", ""), 0.10), (event.element.text, 0.05)):
            if not candidate:
                continue
            match = self.matcher.detect_color(candidate, attributes, domain)
            if match is None:
                continue
            adjusted = match.with_bonus(bonus)
            if best is None or adjusted.confidence > best.confidence:
                best = adjusted
        if best is not None and best.confidence >= self.settings.color_threshold:
            return best.value
        return None

    def generate_state_context(self, product_id: str) -> str:
        """Render the accumulated state as a human-readable text block."""

        state = self._states.get(product_id)
        if state is None:
            return ""
        lines: List[str] = []
        if state.selection_history:
            lines.append("Previous Actions:")
            lines.extend(f"- Step {step.step_number}: {step.action_description}" for step in state.selection_history)
            lines.append("")
        lines.append("Current Configuration:")
        lines.append(f"- Product: {state.product_name} (ID: {state.product_id})")
        if state.selected_size:
            lines.append(f"- Size: {state.selected_size} (selected)")
        if state.selected_color:
            lines.append(f"- Color: {state.selected_color} (selected)")
        if state.selected_style:
            lines.append(f"- Style: {state.selected_style} (selected)")
        if state.selected_quantity is not None:
            lines.append(f"- Quantity: {state.selected_quantity}")
        if state.base_price:
            lines.append(f"- Price: {state.base_price}")
        validation = state.validate()
        lines.append("")
        lines.append(f"Readiness Status: {validation.validation_message}")
        if not validation.is_complete and validation.next_required_action:
            lines.append(f"Next Required: {validation.next_required_action}")
        return "\n".join(lines)

    def generate_enhanced_business_context(self, product_id: str, is_cart_interaction: bool = False) -> str:
        state = self._states.get(product_id)
        if state is None:
            return ""
        lines = [
            f"Product: {state.product_name} (ID: {state.product_id})",
            f"Category: {state.category}",
        ]
        if state.base_price:
            lines.append(f"Price: {state.base_price}")
        selections = state.selections_summary()
        if selections:
            lines.append(f"Selected: {', '.join(selections)}")
        lines.append(f"Confidence: {state.confidence * 100:.1f}%")
        if is_cart_interaction:
            validation = state.validate()
            lines.append(f"Cart Ready: {'Yes' if validation.is_complete else 'No'}")
            if not validation.is_complete:
                lines.append(f"Missing: {', '.join(validation.missing_selections)}")
        return "\n".join(lines)

    def business_context_for(self, event: InteractionEvent) -> str:
        """Business context for ``event`` with cart readiness on cart interactions."""

        product_id = extract_product_id(event)
        if not product_id:
            return ""
        return self.generate_enhanced_business_context(product_id, is_cart_text(event.text))

    def learn_site_patterns(self, domain: str, events: Sequence[Any]) -> Dict[str, List[str]]:
        return self.matcher.learn_site_patterns(domain, events)

    def pattern_stats(self) -> Dict[str, Dict[str, Any]]:
        return self.matcher.pattern_stats()


__all__ = [
    "ProductConfigurationState",
    "ProductStateStore",
    "SELECTION_TYPES",
    "SelectionStep",
    "StateValidation",
    "extract_product_id",
    "product_name_from_title",
]
