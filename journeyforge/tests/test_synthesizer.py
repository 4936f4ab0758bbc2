import json

import pytest

from conftest import PRODUCT_URL, make_event, make_events, make_record, scenario_a_records
from journeyforge.journeys.detector import JourneyDetector
from journeyforge.state.accumulator import ProductStateStore
from journeyforge.training.synthesizer import (
    ExampleSynthesizer,
    data_completion,
    enhancement_flags,
    expected_outcome,
    step_type,
)
from journeyforge.workflow.config import Settings
from journeyforge.workflow.pipeline import SessionPipeline


class IdOnlyProbe:
    """ID selectors are unique on the page; everything else matches fifteen elements."""

    def count(self, selector: str) -> int:
        return 1 if selector.startswith("#") else 15


def _synthesize(settings: Settings, records, probe=None):
    events = make_events(records)
    pipeline = SessionPipeline(settings, probe)
    store = ProductStateStore(settings)
    items = pipeline.prepare(events, store)
    journeys = JourneyDetector(settings).detect(events)
    return items, journeys, ExampleSynthesizer(settings).synthesize(items, journeys)


def _scenario_e_records():
    return [
        make_record(
            1000,
            text="View product",
            attributes={"id": "view"},
            url=PRODUCT_URL,
            page_type="product",
            funnel_stage="consideration",
        ),
        make_record(
            2000,
            text="Product card",
            tag="div",
            attributes={"class": "card"},
            url=PRODUCT_URL,
            page_type="product",
            funnel_stage="consideration",
        ),
        make_record(
            3000,
            text="Add to Cart",
            attributes={"id": "add-to-cart"},
            url=PRODUCT_URL,
            page_type="product",
            funnel_stage="conversion",
            conversion_goal="add-to-cart",
            ecommerce={"productName": "Oxford Shirt", "productPrice": 49},
        ),
    ]


def test_weak_selector_gets_no_structured_example(settings: Settings) -> None:
    items, journeys, examples = _synthesize(settings, _scenario_e_records(), IdOnlyProbe())

    assert items[1].resolution.best_selector == ".card"
    structured = [example for example in examples if example.kind == "structured"]
    assert [example.raw_data["eventIndex"] for example in structured] == [0, 2]
    assert all((example.raw_data or {}).get("eventIndex") != 1 for example in examples)

    assert len(journeys) == 1
    flow = next(example for example in examples if example.kind == "journey-flow")
    assert "await page.click('.card')" in flow.completion
    assert "await page.click('#add-to-cart')" in flow.completion


def test_interaction_examples_precede_journey_examples(settings: Settings) -> None:
    _, _, examples = _synthesize(settings, _scenario_e_records(), IdOnlyProbe())
    kinds = [example.kind for example in examples]

    assert kinds[-3:] == ["journey-flow", "funnel-stages", "decision-validation"]
    assert "ecommerce" in kinds
    assert not any(example.is_journey_example for example in examples[:-3])


def test_structured_example_sections(settings: Settings) -> None:
    _, _, examples = _synthesize(settings, scenario_a_records())
    cart = next(
        example for example in examples if example.kind == "structured" and example.raw_data["eventIndex"] == 2
    )

    for section in ("[USER GOAL]", "[JOURNEY]", "[PAGE CONTEXT]", "[DOM CONTEXT]", "[SPATIAL CONTEXT]", "[SELECTORS]"):
        assert section in cart.prompt
    assert "[PRODUCT STATE]" in cart.prompt
    assert "Cart Ready: Yes" in cart.prompt
    assert "Step: 3/3 (100%)" in cart.prompt
    assert "Bounding Box: {x: 100, y: 200, width: 120, height: 40}" in cart.prompt

    assert cart.completion.startswith("[ACTION]\nClick: await page.click('#add-to-cart')")
    for section in ("[SELECTOR]", "[REASONING]", "[CONFIDENCE]", "[JOURNEY IMPACT]", "[FALLBACKS]", "[COORDINATES]"):
        assert section in cart.completion
    assert "Expected Outcome: product added to cart, cart counter update" in cart.completion
    assert cart.journey_metadata["journeyType"] == "ecommerce-add-to-cart-journey"
    assert cart.context["productState"].startswith("Product:")


def test_placeholder_selector_gets_no_anchored_examples(settings: Settings) -> None:
    records = [
        make_record(0, text="Open", attributes={"id": "open"}, url=PRODUCT_URL, page_type="product"),
        make_record(1000, text="", tag="", url=PRODUCT_URL, page_type="product", bounding_box=None),
        make_record(2000, text="Buy", attributes={"id": "buy"}, url=PRODUCT_URL, page_type="product"),
    ]
    items, _, examples = _synthesize(settings, records)

    assert items[1].resolution.is_placeholder
    assert all((example.raw_data or {}).get("eventIndex") != 1 for example in examples)
    flow = next(example for example in examples if example.kind == "journey-flow")
    assert "await page.click('element')" in flow.completion


def test_placeholder_selector_still_feeds_context_examples(settings: Settings) -> None:
    record = make_record(
        0,
        text="Add to Cart",
        tag="",
        url=PRODUCT_URL,
        page_type="product",
        funnel_stage="conversion",
        conversion_goal="add-to-cart",
        ecommerce={"productName": "Oxford Shirt", "productPrice": 49},
    )
    items, _, examples = _synthesize(settings, [record])

    assert items[0].resolution.is_placeholder
    kinds = [example.kind for example in examples]
    assert "ecommerce" in kinds
    assert "structured" not in kinds
    assert "site-pattern" not in kinds
    ecommerce = next(example for example in examples if example.kind == "ecommerce")
    assert "Oxford Shirt" in ecommerce.prompt
    assert ecommerce.completion.startswith("await page.click('element')")


def test_form_input_example_is_json(settings: Settings) -> None:
    record = make_record(
        0,
        type="INPUT",
        tag="input",
        attributes={"id": "email", "type": "email", "name": "email", "value": "a@b.co"},
        url="https://app.example.io/signup",
        page_type="signup",
    )
    record["element"]["formContext"] = {"formName": "signup", "fieldName": "email", "fieldType": "email"}
    _, _, examples = _synthesize(settings, [record])

    form = next(example for example in examples if example.kind == "form-input")
    payload = json.loads(form.completion)
    assert payload["action"] == "fill"
    assert payload["selector"] == "#email"
    assert payload["inputContext"]["fieldType"] == "email"
    assert "- Form: signup.email (email)" in form.prompt


def test_single_event_outside_journeys_is_classified_alone(settings: Settings) -> None:
    items, journeys, examples = _synthesize(settings, [scenario_a_records()[2]])

    assert journeys == []
    structured = next(example for example in examples if example.kind == "structured")
    assert "Step: 1/1 (100%)" in structured.prompt
    assert structured.journey_metadata["journeyGoal"] == "add-to-cart"


def test_raw_data_is_deterministic(settings: Settings) -> None:
    first = _synthesize(settings, scenario_a_records())[2]
    second = _synthesize(settings, scenario_a_records())[2]

    assert [example.to_dict() for example in first] == [example.to_dict() for example in second]


def test_data_completion_walks_nested_mappings() -> None:
    assert data_completion({"a": 1, "b": "", "c": {"d": None, "e": 2}}) == pytest.approx(60.0)
    assert data_completion({}) == 0.0


def test_enhancement_flags() -> None:
    event = make_event(selectors={"reliability": {"#x": 0.9}}, funnel_stage="consideration")

    assert enhancement_flags(event) == ["reliability-scores", "visual-positioning", "business-intelligence"]


@pytest.mark.parametrize(
    "kwargs, outcome",
    [
        ({"text": "Add to Bag"}, "product added to cart, cart counter update"),
        ({"text": "Sign in"}, "authentication modal or login page"),
        ({"type": "INPUT", "tag": "input"}, "form field populated, validation feedback"),
        ({"page_type": "cart"}, "cart modification, total update"),
        ({}, "page state change, UI update"),
    ],
)
def test_expected_outcome(kwargs, outcome: str) -> None:
    assert expected_outcome(make_event(**kwargs)) == outcome


def test_step_types() -> None:
    event = make_event(funnel_stage="evaluation")

    assert step_type(event, 0, 3) == "START"
    assert step_type(event, 1, 3) == "EVALUATE"
    assert step_type(event, 2, 3) == "CONVERT"
    assert step_type(make_event(), 1, 3) == "STEP"
