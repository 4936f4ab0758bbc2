import pytest

from conftest import make_event, make_events, scenario_a_records
from journeyforge.capture.models import SessionInfo
from journeyforge.journeys.classifier import (
    FALLBACK_GOAL,
    FALLBACK_INTENT,
    FALLBACK_TYPE,
    classify,
    classify_type,
    extract_goal,
    extract_intent,
)
from journeyforge.journeys.rules import JourneyFeatures, Rule, always, element_has, first_match, page_is


def test_add_to_cart_session_is_an_ecommerce_journey() -> None:
    result = classify(make_events(scenario_a_records()))

    assert result.vertical == "ecommerce"
    assert result.journey_type == "ecommerce-add-to-cart-journey"
    assert result.goal == "add-to-cart"
    assert result.intent == "looking to buy product"


def test_pricing_trial_session_is_saas() -> None:
    events = [
        make_event(0, text="See plans", url="https://app.example.io/pricing", page_type="pricing"),
        make_event(1000, text="Start free trial", url="https://app.example.io/pricing", page_type="pricing"),
    ]
    result = classify(events)

    assert result.vertical == "saas"
    assert result.journey_type == "saas-freemium-trial-signup"
    assert result.goal == "select-subscription-plan"
    assert result.intent == "evaluating software solution"


def test_unrecognised_session_falls_back_to_general_labels() -> None:
    events = [
        make_event(0, text="Read article", url="https://blog.example.org/posts/1"),
        make_event(1000, text="Next page", url="https://blog.example.org/posts/2"),
    ]
    result = classify(events)

    assert result.vertical == "general"
    assert result.journey_type == FALLBACK_TYPE
    assert result.goal == FALLBACK_GOAL
    assert result.intent == FALLBACK_INTENT


def test_classify_type_uses_the_first_matching_vertical() -> None:
    event = make_event(text="Compare specs", funnel_stage="evaluation", url="https://blog.example.org/")
    features = JourneyFeatures.from_events([event])

    assert classify_type(features) == ("research", "research-technical-specification")


def test_explicit_goal_uses_the_last_annotated_event() -> None:
    events = [
        make_event(0, conversion_goal="add-to-cart"),
        make_event(1000),
        make_event(2000, conversion_goal="reach-checkout"),
        make_event(3000),
    ]

    assert extract_goal(events) == "reach-checkout"


@pytest.mark.parametrize(
    "kwargs, goal",
    [
        ({"page_type": "product", "url": "https://shop.example.com/cart"}, "reach-checkout"),
        ({"page_type": "product", "text": "Add to cart"}, "add-to-cart"),
        ({"page_type": "search-results"}, "product-research-to-cart"),
        ({"url": "https://hotel.example.com/book/room"}, "complete-booking-form"),
        ({"url": "https://app.example.io/register"}, "complete-registration"),
        ({"text": "Choose plan"}, "select-subscription-plan"),
    ],
)
def test_inferred_goals_stop_before_payment(kwargs, goal: str) -> None:
    assert extract_goal([make_event(**kwargs)]) == goal


def test_intent_prefers_the_session_task() -> None:
    events = [make_event(form_data={"q": "red shoes"})]

    assert extract_intent(events, SessionInfo(task_description="Buy a gift", task_title="Gift")) == "Buy a gift"
    assert extract_intent(events, SessionInfo(task_title="Gift")) == "Gift"
    assert extract_intent(events, SessionInfo()) == "searching for: red shoes"


def test_intent_falls_through_form_fields_and_products() -> None:
    assert extract_intent([make_event(form_data={"category": "Shoes"})]) == "browsing category: Shoes"
    assert extract_intent([make_event(ecommerce={"productName": "Oxford Shirt"})]) == "interested in: Oxford Shirt"
    assert extract_intent([make_event()], vertical="booking") == "making reservation/booking"
    assert extract_intent([make_event()], vertical="unknown") == FALLBACK_INTENT


def test_first_match_respects_table_order() -> None:
    rules = [
        Rule("product-page", page_is("product")),
        Rule("cart-text", element_has("cart")),
        Rule("fallback", always),
    ]

    product = JourneyFeatures.from_events([make_event(page_type="product", text="Add to cart")])
    assert first_match(rules, product) == "product-page"
    assert first_match(rules, JourneyFeatures.from_events([make_event(text="View cart")])) == "cart-text"
    assert first_match(rules, JourneyFeatures()) == "fallback"
    assert first_match(rules[:2], JourneyFeatures()) is None
