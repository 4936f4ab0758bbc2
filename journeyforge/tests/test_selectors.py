import pytest
from playwright.sync_api import Error as PlaywrightError

from conftest import FakePage, UniformProbe, make_event
from journeyforge.capture.models import ElementDescriptor, SelectorSet
from journeyforge.capture.probe import PlaywrightProbe, RecordedProbe
from journeyforge.capture.selectors import (
    PLACEHOLDER_SELECTOR,
    classify_selector,
    generate_candidates,
    playwright_action,
    reliability_from_count,
    resolve_event_selectors,
    resolve_selectors,
    selector_reasoning,
)


@pytest.mark.parametrize(
    "count, expected",
    [(1, 1.0), (0, 0.0), (2, 0.8), (3, 0.8), (4, 0.6), (10, 0.6), (11, 0.3), (15, 0.3)],
)
def test_reliability_from_count(count: int, expected: float) -> None:
    assert reliability_from_count(count) == expected


def test_single_match_always_scores_one() -> None:
    event = make_event(text="Buy", attributes={"id": "buy", "class": "btn"}, selectors={"reliability": {"#buy": 0.1}})
    resolution = resolve_event_selectors(event, probe=RecordedProbe({"#buy": 1}))

    assert resolution.best_selector == "#buy"
    assert resolution.reliability == 1.0
    assert resolution.scores["#buy"] == 1.0


def test_zero_matches_score_zero_and_fall_back_to_placeholder() -> None:
    event = make_event(text="Buy", attributes={"id": "buy"})
    resolution = resolve_event_selectors(event, probe=UniformProbe(0))

    assert resolution.scores["#buy"] == 0.0
    assert resolution.best_selector == PLACEHOLDER_SELECTOR
    assert resolution.reliability == 0.0
    assert resolution.is_placeholder
    assert not resolution.is_anchorable()


def test_recorded_match_counts_override_recorded_reliability() -> None:
    event = make_event(
        attributes={"id": "buy"},
        selectors={"reliability": {"#buy": 0.2}, "matchCounts": {"#buy": 1}},
    )
    assert resolve_event_selectors(event).reliability == 1.0


def test_recorded_reliability_overrides_estimate() -> None:
    event = make_event(attributes={"id": "buy"}, selectors={"reliability": {"#buy": 0.55}})
    resolution = resolve_event_selectors(event)

    assert resolution.best_selector == "#buy"
    assert resolution.reliability == pytest.approx(0.55)


def test_strategy_estimates_without_probe() -> None:
    event = make_event(tag="button", attributes={"id": "buy", "data-testid": "buy-button"})
    resolution = resolve_event_selectors(event)

    assert resolution.best_selector == '[data-testid="buy-button"]'
    assert resolution.reliability == pytest.approx(0.9)
    assert resolution.strategy == "test-attr"
    assert resolution.backup_selectors[0] == "#buy"


def test_unstable_classes_are_ignored() -> None:
    element = ElementDescriptor(tag="div", attributes={"class": "card css-1a2b3c active sc-xyz primary"})
    selectors = [candidate.selector for candidate in generate_candidates(element)]

    assert ".card.primary" in selectors
    assert all("css-" not in selector and "active" not in selector for selector in selectors)


def test_empty_element_resolves_to_placeholder() -> None:
    resolution = resolve_selectors(ElementDescriptor())

    assert resolution.best_selector == PLACEHOLDER_SELECTOR
    assert resolution.reliability == 0.0


def test_recorded_selectors_are_classified() -> None:
    assert classify_selector("//div[@id='x']") == "xpath"
    assert classify_selector("main > div:nth-child(2)") == "css-path"
    assert classify_selector('[data-cy="submit"]') == "test-attr"
    assert classify_selector("#submit") == "id"
    assert classify_selector('[aria-label="Close"]') == "aria"
    assert classify_selector('[name="email"]') == "name"
    assert classify_selector(".btn") == "class"
    assert classify_selector("button") == "tag"


def test_recorded_selectors_join_candidates() -> None:
    recorded = SelectorSet(primary="#buy", alternatives=(".buy-btn",), xpath="//button[1]")
    candidates = generate_candidates(ElementDescriptor(tag="button"), recorded)

    assert [candidate.selector for candidate in candidates] == ["button", "//button[1]", "#buy", ".buy-btn"]


def test_backups_are_capped_and_exclude_zero_scores() -> None:
    event = make_event(
        tag="input",
        attributes={"id": "q", "name": "q", "aria-label": "Search", "data-testid": "search", "type": "text"},
    )
    probe = RecordedProbe({"#q": 1, '[name="q"]': 2, '[aria-label="Search"]': 4, '[data-testid="search"]': 0})
    resolution = resolve_event_selectors(event, probe=probe, max_backups=1)

    assert resolution.best_selector == "#q"
    assert resolution.backup_selectors == ('[name="q"]',)


def test_all_candidates_matching_many_elements_are_not_anchorable() -> None:
    event = make_event(tag="div", text="Product card", attributes={"class": "card"})
    resolution = resolve_event_selectors(event, probe=UniformProbe(15))

    assert resolution.reliability == pytest.approx(0.3)
    assert resolution.best_selector == ".card"
    assert not resolution.is_placeholder
    assert not resolution.is_anchorable(0.3)


def test_playwright_probe_counts_and_caches() -> None:
    page = FakePage({"#buy": 1})
    probe = PlaywrightProbe(page)

    assert probe.count("#buy") == 1
    assert probe.count("#buy") == 1
    assert page.calls == ["#buy"]


def test_playwright_probe_recounts_after_navigation() -> None:
    page = FakePage({"#buy": 1}, url="https://shop.example.com/product/1")
    probe = PlaywrightProbe(page)
    assert probe.count("#buy") == 1

    page.url = "https://shop.example.com/cart"
    page.counts["#buy"] = 0

    assert probe.count("#buy") == 0
    assert page.calls == ["#buy", "#buy"]


def test_playwright_probe_treats_errors_as_zero_matches() -> None:
    page = FakePage(broken={"div[["}, error_factory=PlaywrightError)
    probe = PlaywrightProbe(page)

    assert probe.count("div[[") == 0


def test_playwright_action_rendering() -> None:
    fill = make_event(type="INPUT", tag="input", attributes={"value": "red shoes"})
    assert playwright_action(fill, "#q") == "await page.fill('#q', 'red shoes')"

    click = make_event(text="Buy")
    assert playwright_action(click, "[aria-label='Buy']") == "await page.click('[aria-label=\\'Buy\\']')"

    navigation = make_event(type="NAVIGATION", url="https://shop.example.com/cart")
    assert playwright_action(navigation, "element") == "await page.goto('https://shop.example.com/cart')"


def test_selector_reasoning_mentions_strategy() -> None:
    assert "data-testid" in selector_reasoning('[data-testid="buy"]', 0.9)
    assert "unique ID" in selector_reasoning("#buy", 0.7)
    assert "strong" in selector_reasoning("//button", 0.9)
    assert "0.3 reliability" in selector_reasoning("button", 0.3)
