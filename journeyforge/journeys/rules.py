"""Declarative rule tables shared by segmentation, bundling and classification.

Heuristics are written as ordered ``(label, predicate)`` pairs evaluated by
:func:`first_match`, so a new vertical or sub-pattern is a new table row.
Predicates operate on :class:`JourneyFeatures`, the feature sets computed once
per candidate journey.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, Optional, Sequence, Tuple

from ..capture.models import InteractionEvent

STAGE_ORDER: Tuple[str, ...] = (
    "discovery",
    "awareness",
    "consideration",
    "evaluation",
    "validation",
    "conversion",
    "retention",
)
# Funnel bundles and journey metadata stop at conversion.
FUNNEL_ORDER: Tuple[str, ...] = STAGE_ORDER[:6]

COMPLETION_GOALS = (
    "add-to-cart",
    "reach-checkout",
    "view-payment-form",
    "booking-form-complete",
    "signup-form-complete",
    "subscription-selected",
    "checkout-reached",
)
COMPLETION_PAGE_TYPES = ("checkout", "payment", "billing")
COMPLETION_URL_FRAGMENTS = ("checkout", "/cart", "/payment", "/billing", "/book", "/signup", "/register")
CONVERSION_PHRASES = (
    "add to cart",
    "checkout",
    "proceed to payment",
    "book now",
    "reserve",
    "sign up",
    "get started",
    "subscribe",
    "buy now",
)
COMPLETION_STAGES = ("conversion", "retention")

MAJOR_TASK_CONTEXTS = ("add-to-cart", "purchase", "signup", "checkout", "search")
TASK_URL_CUES = ("search", "product", "cart", "checkout")
LENGTH_CAP_GOALS = ("add-to-cart", "reach-checkout")
LENGTH_CAP_PHRASES = ("add to cart", "checkout")

DECISION_KEYWORDS = ("compare", "review", "spec")
DECISION_STAGES = ("validation", "evaluation")
TASK_BUNDLE_GOALS = ("add-to-cart", "reach-checkout", "signup-form-complete", "booking-form-complete")

# Expected next page types for the optional page-flow break rule.
PAGE_FLOW: Dict[str, Tuple[str, ...]] = {
    "home": ("search", "category", "product"),
    "search": ("search-results", "product", "category"),
    "search-results": ("product", "search", "category"),
    "category": ("product", "search", "subcategory"),
    "product": ("cart", "checkout", "product", "category"),
    "cart": ("checkout", "product", "payment"),
    "checkout": ("payment", "confirmation"),
    "signup": ("confirmation", "home", "dashboard"),
    "pricing": ("signup", "checkout", "trial"),
}
PAGE_FLOW_FREE_TARGETS = ("home", "search")
BACKTRACK_URL_CUES = ("back", "return")


def stage_index(stage: str, order: Sequence[str] = STAGE_ORDER) -> int:
    """Position of ``stage`` in ``order`` or ``-1`` when it is not a known stage."""

    try:
        return order.index(stage)
    except ValueError:
        return -1


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


@dataclass(frozen=True, slots=True)
class JourneyFeatures:
    """Feature sets a classifier rule can inspect."""

    pages: FrozenSet[str] = frozenset()
    goals: FrozenSet[str] = frozenset()
    products: FrozenSet[str] = frozenset()
    elements: Tuple[str, ...] = ()
    urls: Tuple[str, ...] = ()
    stages: FrozenSet[str] = frozenset()
    length: int = 0

    @classmethod
    def from_events(cls, events: Sequence[InteractionEvent]) -> "JourneyFeatures":
        categories = set()
        for event in events:
            if event.business and event.business.product_category:
                categories.add(event.business.product_category)
        return cls(
            pages=frozenset(event.page_type for event in events if event.page_type),
            goals=frozenset(event.conversion_goal for event in events if event.conversion_goal),
            products=frozenset(categories),
            elements=tuple(event.text_lower for event in events if event.text_lower),
            urls=tuple(event.url_lower for event in events if event.url_lower),
            stages=frozenset(event.funnel_stage for event in events if event.funnel_stage),
            length=len(events),
        )

    def element_has(self, *keywords: str) -> bool:
        return any(contains_any(text, keywords) for text in self.elements)

    def element_has_all(self, *keywords: str) -> bool:
        return any(all(keyword in text for keyword in keywords) for text in self.elements)

    def url_has(self, *keywords: str) -> bool:
        return any(contains_any(url, keywords) for url in self.urls)

    def has_page(self, *pages: str) -> bool:
        return any(page in self.pages for page in pages)

    def has_goal(self, *goals: str) -> bool:
        return any(goal in self.goals for goal in goals)

    def has_stage(self, *stages: str) -> bool:
        return any(stage in self.stages for stage in stages)


Predicate = Callable[[JourneyFeatures], bool]


@dataclass(frozen=True, slots=True)
class Rule:
    """A labelled predicate; the first matching rule in a table wins."""

    label: str
    predicate: Predicate

    def matches(self, features: JourneyFeatures) -> bool:
        return bool(self.predicate(features))


def first_match(rules: Sequence[Rule], features: JourneyFeatures) -> Optional[str]:
    for rule in rules:
        if rule.matches(features):
            return rule.label
    return None


# Predicate builders used to write rule tables as data.


def element_has(*keywords: str) -> Predicate:
    return lambda features: features.element_has(*keywords)


def element_has_all(*keywords: str) -> Predicate:
    return lambda features: features.element_has_all(*keywords)


def url_has(*keywords: str) -> Predicate:
    return lambda features: features.url_has(*keywords)


def page_is(*pages: str) -> Predicate:
    return lambda features: features.has_page(*pages)


def goal_is(*goals: str) -> Predicate:
    return lambda features: features.has_goal(*goals)


def stage_is(*stages: str) -> Predicate:
    return lambda features: features.has_stage(*stages)


def products_over(count: int) -> Predicate:
    return lambda features: len(features.products) > count


def length_at_most(count: int) -> Predicate:
    return lambda features: features.length <= count


def any_of(*predicates: Predicate) -> Predicate:
    return lambda features: any(predicate(features) for predicate in predicates)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda features: all(predicate(features) for predicate in predicates)


def not_(predicate: Predicate) -> Predicate:
    return lambda features: not predicate(features)


def always(features: JourneyFeatures) -> bool:
    return True


__all__ = [
    "BACKTRACK_URL_CUES",
    "COMPLETION_GOALS",
    "COMPLETION_PAGE_TYPES",
    "COMPLETION_STAGES",
    "COMPLETION_URL_FRAGMENTS",
    "CONVERSION_PHRASES",
    "DECISION_KEYWORDS",
    "DECISION_STAGES",
    "FUNNEL_ORDER",
    "JourneyFeatures",
    "LENGTH_CAP_GOALS",
    "LENGTH_CAP_PHRASES",
    "MAJOR_TASK_CONTEXTS",
    "PAGE_FLOW",
    "PAGE_FLOW_FREE_TARGETS",
    "Predicate",
    "Rule",
    "STAGE_ORDER",
    "TASK_BUNDLE_GOALS",
    "TASK_URL_CUES",
    "all_of",
    "always",
    "any_of",
    "contains_any",
    "element_has",
    "element_has_all",
    "first_match",
    "goal_is",
    "length_at_most",
    "not_",
    "page_is",
    "products_over",
    "stage_is",
    "stage_index",
    "url_has",
]
