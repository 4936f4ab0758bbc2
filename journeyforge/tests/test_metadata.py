import pytest

from conftest import make_event, make_events, scenario_a_records
from journeyforge.journeys.bundles import BundleKind
from journeyforge.journeys.metadata import (
    FunnelProgression,
    analyze_funnel,
    build_journey,
    context_richness,
    conversion_probability,
    decision_factors,
    flow_pattern,
    stage_transition,
)


@pytest.fixture
def journey():
    events = make_events(scenario_a_records())
    return build_journey(events, (5, 6, 7), BundleKind.PRIMARY)


def test_journey_labels_and_analytics(journey) -> None:
    assert len(journey) == 3
    assert journey.journey_type == "ecommerce-add-to-cart-journey"
    assert journey.decision_points == (1, 2)
    assert journey.stages == ["consideration", "evaluation", "conversion"]
    assert journey.conversion_probability == pytest.approx(0.95)
    assert journey.completeness == pytest.approx(0.5)
    assert journey.complexity == pytest.approx(0.2)


def test_funnel_progression_of_a_forward_run(journey) -> None:
    funnel = journey.funnel

    assert funnel.progressions == 3
    assert funnel.regressions == 0
    assert funnel.max_stage_reached == 5
    assert funnel.efficiency == pytest.approx(0.75)
    assert funnel.total_stages == 3


def test_step_metadata(journey) -> None:
    first, second, last = journey.steps

    assert first.is_start and not first.is_end
    assert first.progress == "33%"
    assert first.transition is None
    assert first.bundle_role == "journey-initiator"

    assert second.is_decision_point
    assert second.decision_type == "evaluation"
    assert second.transition.direction == "forward"
    assert second.transition.stages_skipped == 0
    assert second.bundle_role == "decision-maker"

    assert last.is_end
    assert last.progress == "100%"
    assert last.decision_type == "purchase-decision"
    assert last.strong_conversion_intent
    assert last.transition.stages_skipped == 1
    assert last.bundle_role == "journey-completer"


def test_step_lookup_by_session_index(journey) -> None:
    assert journey.step_for(6).step_number == 2
    assert journey.step_for(0) is None


def test_metadata_serialisation(journey) -> None:
    metadata = journey.to_metadata()

    assert metadata["origin"] == "primary"
    assert metadata["totalSteps"] == 3
    assert metadata["funnelProgression"]["funnelEfficiency"] == pytest.approx(0.75)
    assert metadata["conversionSignals"][0] == {"stepIndex": 0, "type": "product-engagement", "strength": "medium"}
    assert journey.steps[1].to_dict()["stageTransition"]["isProgression"] is True


def test_analyze_funnel_counts_regressions() -> None:
    events = [
        make_event(funnel_stage="evaluation"),
        make_event(funnel_stage="discovery"),
        make_event(funnel_stage="consideration"),
        make_event(),
    ]
    funnel = analyze_funnel(events)

    assert funnel.progressions == 2
    assert funnel.regressions == 1
    assert funnel.max_stage_reached == 3
    assert funnel.efficiency == pytest.approx(0.5)


def test_conversion_probability_floor_and_cap() -> None:
    assert conversion_probability([], FunnelProgression()) == pytest.approx(0.1)

    events = [make_event(text="Add to cart and checkout") for _ in range(4)]
    busy = build_journey(events, (0, 1, 2, 3))
    assert busy.conversion_probability == pytest.approx(0.95)


def test_stage_transition() -> None:
    same = stage_transition(make_event(funnel_stage="discovery"), make_event(funnel_stage="discovery"))
    assert same is None

    backward = stage_transition(make_event(funnel_stage="validation"), make_event(funnel_stage="consideration"))
    assert backward.direction == "backward"
    assert not backward.is_progression

    unknown = stage_transition(make_event(), make_event(funnel_stage="discovery"))
    assert unknown.from_stage == "unknown"
    assert unknown.direction == "forward"


def test_flow_pattern_recognition() -> None:
    flow, label = flow_pattern(["search", "category", "product", "cart"], 2)

    assert flow == "search → category → product"
    assert label == "browse-to-product"
    assert flow_pattern(["blog"], 0) == ("blog", "custom-flow")


def test_decision_factors_are_distinct() -> None:
    events = [make_event(text="Compare price"), make_event(text="Read reviews"), make_event(text="Lower price")]

    assert decision_factors(events) == ["price comparison", "user reviews"]


def test_context_richness_counts_captured_sections() -> None:
    bare = make_event(bounding_box=None)
    assert context_richness(bare) == 0.0

    rich = make_event(page_type="product", funnel_stage="consideration")
    assert context_richness(rich) == pytest.approx(3 / 15)
