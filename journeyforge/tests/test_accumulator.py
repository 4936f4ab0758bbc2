import pytest

from conftest import PRODUCT_URL, make_event, make_events, scenario_a_records
from journeyforge.state.accumulator import SELECTION_TYPES, ProductStateStore, extract_product_id
from journeyforge.workflow.config import Settings


def _feed(store: ProductStateStore, events) -> None:
    for index, event in enumerate(events):
        store.process_interaction(event, events, index)


def test_size_color_then_add_to_cart_is_ready(settings: Settings) -> None:
    events = make_events(scenario_a_records())
    store = ProductStateStore(settings)
    _feed(store, events)

    state = store.get("shirt-123")
    assert state is not None
    assert state.selected_size == "M"
    assert state.selected_color == "blue"
    assert state.ready_for_cart is True
    assert state.required_selections == ["size", "color"]
    assert [step.selection_type for step in state.selection_history] == ["size", "color"]
    assert "Cart Ready: Yes" in store.business_context_for(events[2])


def test_cart_not_ready_reports_missing_selection(settings: Settings) -> None:
    events = make_events([scenario_a_records()[0], scenario_a_records()[2]])
    store = ProductStateStore(settings)
    _feed(store, events)

    context = store.business_context_for(events[1])
    assert "Cart Ready: No" in context
    assert "Missing: color" in context
    assert "Next Required: Select color" in store.generate_state_context("shirt-123")


@pytest.mark.parametrize("records", [scenario_a_records()[:1], scenario_a_records()[1:2], scenario_a_records()])
def test_ready_for_cart_iff_required_selections_completed(settings: Settings, records) -> None:
    events = make_events(records)
    store = ProductStateStore(settings)
    _feed(store, events)

    for state in store.all_states().values():
        assert set(state.completed_selections) <= set(SELECTION_TYPES)
        assert state.ready_for_cart == set(state.required_selections).issubset(state.completed_selections)


def test_non_apparel_products_only_require_size(settings: Settings) -> None:
    event = make_event(text="L", attributes={"name": "size"}, url="https://store.example.com/p/lamp-9")
    store = ProductStateStore(settings)
    store.process_interaction(event, [event], 0)

    state = store.get("lamp-9")
    assert state.required_selections == ["size"]
    assert state.ready_for_cart


def test_state_context_lists_previous_actions(settings: Settings) -> None:
    events = make_events(scenario_a_records())
    store = ProductStateStore(settings)
    _feed(store, events)

    context = store.generate_state_context("shirt-123")
    assert 'Step 1: Selected Size "M"' in context
    assert 'Step 2: Selected Color "blue"' in context
    assert "- Product: Oxford Shirt (ID: shirt-123)" in context
    assert "Readiness Status: Ready for cart (2/2 selections complete)" in context


def test_repeated_selection_is_not_recorded_twice(settings: Settings) -> None:
    record = scenario_a_records()[0]
    events = make_events([record, dict(record, timestamp=1500)])
    store = ProductStateStore(settings)
    _feed(store, events)

    assert len(store.get("shirt-123").selection_history) == 1


def test_quantity_selection(settings: Settings) -> None:
    event = make_event(type="INPUT", tag="input", attributes={"name": "quantity", "value": "2"}, url=PRODUCT_URL)
    store = ProductStateStore(settings)
    store.process_interaction(event, [event], 0)

    assert store.get("shirt-123").selected_quantity == 2
    assert "- Quantity: 2" in store.generate_state_context("shirt-123")


def test_interactions_without_product_are_ignored(settings: Settings) -> None:
    event = make_event(text="Home", url="https://shop.example.com/")
    store = ProductStateStore(settings)

    assert store.process_interaction(event, [event], 0) is None
    assert len(store) == 0
    assert store.business_context_for(event) == ""


@pytest.mark.parametrize(
    "url, attributes, expected",
    [
        ("https://shop.example.com/item?pid=ABC-1&x=1", {}, "ABC-1"),
        ("https://shop.example.com/product/shoe-7?ref=nav", {}, "shoe-7"),
        ("https://www.amazon.com/dp/B00X", {}, "B00X"),
        ("https://www.walmart.com/ip/lamp/12345", {}, "12345"),
        ("https://shop.example.com/", {"data-product-id": "sku-9"}, "sku-9"),
        ("https://shop.example.com/", {}, None),
    ],
)
def test_extract_product_id(url: str, attributes, expected) -> None:
    assert extract_product_id(make_event(url=url, attributes=attributes)) == expected


def test_annotated_product_id_wins() -> None:
    event = make_event(url=PRODUCT_URL, ecommerce={"productId": "annotated-1"})
    assert extract_product_id(event) == "annotated-1"


def test_clear_resets_the_store(settings: Settings) -> None:
    events = make_events(scenario_a_records())
    store = ProductStateStore(settings)
    _feed(store, events)
    store.clear()

    assert len(store) == 0
    assert "shirt-123" not in store


def test_state_serialises_with_camel_case_keys(settings: Settings) -> None:
    events = make_events(scenario_a_records())
    store = ProductStateStore(settings)
    _feed(store, events)

    payload = store.get("shirt-123").to_dict()
    assert payload["readyForCart"] is True
    assert payload["selectedSize"] == "M"
    assert payload["selectionHistory"][0]["selectionType"] == "size"
