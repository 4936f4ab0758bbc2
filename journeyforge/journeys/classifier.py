"""Heuristic journey classification: vertical, sub-pattern, goal and intent.

Each vertical is a matcher predicate plus an ordered sub-pattern table. The
first vertical whose matcher accepts the journey's features wins and its
first matching sub-pattern names the journey type. The classifier is allowed
to be wrong; it only promises to always return a defined label.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..capture.models import InteractionEvent, SessionInfo
from .rules import (
    JourneyFeatures,
    Predicate,
    Rule,
    all_of,
    always,
    any_of,
    element_has,
    element_has_all,
    first_match,
    goal_is,
    length_at_most,
    not_,
    page_is,
    products_over,
    stage_is,
    url_has,
)

logger = logging.getLogger(__name__)

GENERAL_VERTICAL = "general"
FALLBACK_TYPE = "general-task"
FALLBACK_GOAL = "complete-user-intent"
FALLBACK_INTENT = "complete-task"


@dataclass(frozen=True, slots=True)
class Vertical:
    """A business vertical: how to recognise it and how to label its journeys."""

    name: str
    matcher: Predicate
    patterns: Tuple[Rule, ...]
    intent: str


ECOMMERCE = Vertical(
    name="ecommerce",
    matcher=any_of(
        goal_is("add-to-cart", "purchase", "reach-checkout"),
        products_over(0),
        page_is("product", "cart", "checkout"),
        url_has("shop", "product", "cart"),
        element_has("add to cart", "buy", "price"),
    ),
    patterns=(
        Rule("ecommerce-high-intent-purchase", element_has("buy now", "purchase")),
        Rule(
            "ecommerce-research-validation-purchase",
            all_of(stage_is("validation"), element_has("review", "compare")),
        ),
        Rule("ecommerce-price-comparison-purchase", element_has_all("price", "compare")),
        Rule("ecommerce-add-to-cart-journey", all_of(goal_is("add-to-cart"), not_(goal_is("reach-checkout")))),
        Rule("ecommerce-multi-product-comparison", any_of(products_over(1), element_has("compare"))),
        Rule("ecommerce-quick-checkout", all_of(goal_is("add-to-cart", "reach-checkout"), length_at_most(4))),
        Rule("ecommerce-browse-discovery-purchase", all_of(page_is("search-results"), page_is("category"))),
        Rule("ecommerce-purchase", always),
    ),
    intent="looking to buy product",
)

SAAS = Vertical(
    name="saas",
    matcher=any_of(
        goal_is("signup", "subscription", "subscription-selected"),
        page_is("pricing", "signup", "trial"),
        url_has("pricing", "signup", "trial"),
        element_has("sign up", "subscribe", "plan", "trial"),
    ),
    patterns=(
        Rule("saas-freemium-trial-signup", all_of(page_is("pricing"), element_has("trial", "free"))),
        Rule("saas-enterprise-sales-inquiry", element_has("enterprise", "sales")),
        Rule("saas-demo-consultation-request", element_has("demo", "schedule")),
        Rule("saas-feature-evaluation", all_of(page_is("features"), stage_is("evaluation"))),
        Rule("saas-pricing-research", all_of(page_is("pricing"), stage_is("consideration"))),
        Rule("saas-direct-paid-signup", goal_is("subscription", "subscription-selected")),
        Rule("saas-signup", always),
    ),
    intent="evaluating software solution",
)

BOOKING = Vertical(
    name="booking",
    matcher=any_of(
        goal_is("booking", "booking-form-complete"),
        page_is("booking", "reservation"),
        url_has("book", "reserve", "appointment"),
        element_has("book", "reserve", "schedule", "appointment"),
    ),
    patterns=(
        Rule("booking-restaurant-reservation", element_has("table", "restaurant")),
        Rule("booking-accommodation-reservation", element_has("room", "hotel", "stay")),
        Rule("booking-event-ticket-purchase", element_has("ticket", "event")),
        Rule("booking-service-appointment", element_has("appointment", "consultation")),
        Rule("booking-datetime-selection", element_has("date", "time", "calendar")),
        Rule("booking-flow", always),
    ),
    intent="making reservation/booking",
)

LEADGEN = Vertical(
    name="leadgen",
    matcher=any_of(
        goal_is("contact", "lead-generation"),
        page_is("contact", "download"),
        url_has("contact", "download", "newsletter"),
        element_has("contact", "download", "newsletter", "quote"),
    ),
    patterns=(
        Rule("leadgen-content-marketing-download", element_has("download", "whitepaper", "ebook")),
        Rule("leadgen-email-subscription", element_has("newsletter", "subscribe", "updates")),
        Rule("leadgen-quote-estimate-request", element_has("quote", "estimate", "pricing")),
        Rule("leadgen-webinar-registration", element_has("webinar", "register")),
        Rule("leadgen-contact-inquiry", any_of(page_is("contact"), element_has("contact", "inquiry"))),
        Rule("leadgen-contact", always),
    ),
    intent="requesting information or contact",
)

RESEARCH = Vertical(
    name="research",
    matcher=any_of(
        stage_is("evaluation", "validation"),
        page_is("search-results", "comparison", "reviews"),
        element_has("compare", "review", "spec", "feature"),
    ),
    patterns=(
        Rule("research-product-comparison-analysis", all_of(stage_is("validation"), element_has("compare", "vs"))),
        Rule("research-technical-specification", element_has("spec", "technical", "feature")),
        Rule("research-review-validation", element_has("review", "rating", "feedback")),
        Rule("research-market-discovery", all_of(page_is("search-results"), stage_is("discovery"))),
        Rule("research-evaluation", always),
    ),
    intent="researching products/options",
)

FINANCIAL = Vertical(
    name="financial",
    matcher=any_of(
        element_has("loan", "mortgage", "insurance", "bank", "account", "credit", "investment", "finance"),
        url_has("bank", "finance", "loan", "insurance", "invest"),
        page_is("financial", "banking"),
    ),
    patterns=(
        Rule("financial-loan-application", element_has("loan", "mortgage")),
        Rule("financial-insurance-quote", element_has("insurance", "coverage")),
        Rule("financial-account-opening", element_has("account", "open")),
        Rule("financial-services-inquiry", always),
    ),
    intent="exploring financial services",
)

EDUCATION = Vertical(
    name="education",
    matcher=any_of(
        element_has("course", "program", "degree", "university", "college", "school", "learn", "education", "study"),
        url_has("edu", "university", "college", "course", "learn"),
        page_is("education", "course", "program"),
    ),
    patterns=(
        Rule("education-course-enrollment", element_has("course", "program")),
        Rule("education-program-application", element_has("application", "apply")),
        Rule("education-research", always),
    ),
    intent="researching education programs",
)

HEALTHCARE = Vertical(
    name="healthcare",
    matcher=any_of(
        element_has("doctor", "appointment", "hospital", "clinic", "health", "medical", "provider", "patient"),
        url_has("health", "medical", "doctor", "clinic", "hospital"),
        page_is("healthcare", "medical", "appointment"),
    ),
    patterns=(
        Rule("healthcare-appointment-booking", element_has("appointment", "schedule")),
        Rule("healthcare-provider-search", element_has("provider", "doctor")),
        Rule("healthcare-information-lookup", always),
    ),
    intent="seeking healthcare services",
)

REALESTATE = Vertical(
    name="realestate",
    matcher=any_of(
        element_has("home", "house", "property", "real estate", "rent", "buy", "mortgage", "listing"),
        url_has("realestate", "zillow", "realtor", "homes", "property"),
        page_is("realestate", "property", "listing"),
    ),
    patterns=(
        Rule("realestate-home-buying-search", element_has("buy", "purchase")),
        Rule("realestate-rental-search", element_has("rent", "rental")),
        Rule("realestate-property-research", always),
    ),
    intent="searching for property",
)

ENTERTAINMENT = Vertical(
    name="entertainment",
    matcher=any_of(
        element_has("watch", "stream", "movie", "show", "video", "music", "play", "entertainment"),
        url_has("netflix", "youtube", "spotify", "stream", "media", "entertainment"),
        page_is("entertainment", "media", "streaming"),
    ),
    patterns=(
        Rule("entertainment-content-streaming", element_has("stream", "watch")),
        Rule("entertainment-subscription-signup", element_has("subscribe", "membership")),
        Rule("entertainment-content-discovery", always),
    ),
    intent="finding entertainment content",
)

LOCAL_BUSINESS = Vertical(
    name="local-business",
    matcher=any_of(
        element_has("location", "hours", "address", "phone"),
        url_has("location", "contact", "hours"),
    ),
    patterns=(
        Rule("local-business-location-hours-lookup", element_has("location", "hours", "address")),
        Rule("local-business-menu-services-research", element_has("menu", "service", "offerings")),
        Rule("local-business-contact-directions", element_has("phone", "directions", "map")),
        Rule("local-business-research", always),
    ),
    intent="finding local business information",
)

VERTICALS: Tuple[Vertical, ...] = (
    ECOMMERCE,
    SAAS,
    BOOKING,
    LEADGEN,
    RESEARCH,
    FINANCIAL,
    EDUCATION,
    HEALTHCARE,
    REALESTATE,
    ENTERTAINMENT,
    LOCAL_BUSINESS,
)

# Inferred goals stop before payment.
GOAL_RULES: Tuple[Rule, ...] = (
    Rule("reach-checkout", all_of(page_is("product", "search-results"), url_has("cart", "checkout"))),
    Rule("add-to-cart", all_of(page_is("product", "search-results"), element_has("add to cart"))),
    Rule("product-research-to-cart", page_is("product", "search-results")),
    Rule("complete-booking-form", any_of(page_is("booking"), url_has("book"))),
    Rule("complete-registration", any_of(page_is("signup"), url_has("signup", "register"))),
    Rule("select-subscription-plan", any_of(page_is("pricing"), element_has("subscribe", "plan"))),
    Rule("research-to-action", page_is("search-results")),
)

SEARCH_FIELDS = ("search", "query", "q")


@dataclass(frozen=True, slots=True)
class Classification:
    vertical: str
    journey_type: str
    goal: str
    intent: str


def match_vertical(features: JourneyFeatures) -> Optional[Vertical]:
    for vertical in VERTICALS:
        if vertical.matcher(features):
            return vertical
    return None


def classify_type(features: JourneyFeatures) -> Tuple[str, str]:
    """Return ``(vertical, journey_type)``; unmatched journeys are ``general-task``."""

    vertical = match_vertical(features)
    if vertical is None:
        return GENERAL_VERTICAL, FALLBACK_TYPE
    return vertical.name, first_match(vertical.patterns, features) or FALLBACK_TYPE


def extract_goal(events: Sequence[InteractionEvent], features: Optional[JourneyFeatures] = None) -> str:
    """Last explicit conversion goal, else a pre-payment goal inferred from cues."""

    for event in reversed(events):
        if event.conversion_goal:
            return event.conversion_goal
    features = features or JourneyFeatures.from_events(events)
    return first_match(GOAL_RULES, features) or FALLBACK_GOAL


def _form_value(events: Sequence[InteractionEvent], keys: Sequence[str]) -> str:
    for event in events:
        form = event.form_data
        for key in keys:
            value = form.get(key)
            if value:
                return str(value)
    return ""


def extract_intent(
    events: Sequence[InteractionEvent],
    session: Optional[SessionInfo] = None,
    vertical: str = GENERAL_VERTICAL,
) -> str:
    """Why the user is on this journey.

    Parameters
    ----------
    events:
        The journey's events in order.
    session:
        Supplies an externally generated task description or title, which
        always takes priority.
    vertical:
        Name of the matched vertical, used for the generic fallback phrase.
    """

    if session is not None:
        if session.task_description:
            return session.task_description
        if session.task_title:
            return session.task_title
    query = _form_value(events, SEARCH_FIELDS)
    if query:
        return f"searching for: {query}"
    category = _form_value(events, ("category",))
    if category:
        return f"browsing category: {category}"
    for event in events:
        if event.business and event.business.product_name:
            return f"interested in: {event.business.product_name}"
    for candidate in VERTICALS:
        if candidate.name == vertical:
            return candidate.intent
    return FALLBACK_INTENT


def classify(events: Sequence[InteractionEvent], session: Optional[SessionInfo] = None) -> Classification:
    features = JourneyFeatures.from_events(events)
    vertical, journey_type = classify_type(features)
    goal = extract_goal(events, features)
    intent = extract_intent(events, session, vertical)
    logger.debug(
        f"Classified journey of {len(events)} events as {journey_type}",
        extra={"vertical": vertical, "journey_type": journey_type, "goal": goal},
    )
    return Classification(vertical=vertical, journey_type=journey_type, goal=goal, intent=intent)


__all__ = [
    "Classification",
    "FALLBACK_GOAL",
    "FALLBACK_INTENT",
    "FALLBACK_TYPE",
    "GENERAL_VERTICAL",
    "GOAL_RULES",
    "VERTICALS",
    "Vertical",
    "classify",
    "classify_type",
    "extract_goal",
    "extract_intent",
    "match_vertical",
]
