import pytest

from conftest import make_event, make_events, scenario_a_records
from journeyforge.capture.probe import RecordedProbe
from journeyforge.capture.selectors import resolve_event_selectors
from journeyforge.journeys.metadata import build_journey
from journeyforge.training.models import QualityAssessment, TrainingExample
from journeyforge.training.quality import (
    INTERACTION_WEIGHTS,
    QualityFilter,
    compute_dataset_metadata,
    quality_tier,
    score_interaction,
    score_journey,
    weighted_score,
)
from journeyforge.workflow.config import Settings


def _individual(score: float, label: str = "") -> TrainingExample:
    return TrainingExample(
        prompt=f"prompt {label or score}",
        completion="done",
        context={"pageType": "product"},
        quality=QualityAssessment(score=score),
    )


def _journey_example(score: float) -> TrainingExample:
    return TrainingExample(
        prompt="journey",
        completion="steps",
        context={"pageType": "journey-sequence"},
        quality=QualityAssessment(score=score, factors={"multiStepJourney": True}),
        kind="journey-flow",
    )


def test_weighted_score_is_clipped_to_one() -> None:
    assert sum(weight for _, weight in INTERACTION_WEIGHTS) > 1.0
    assert weighted_score({name: True for name, _ in INTERACTION_WEIGHTS}) == 1.0
    assert weighted_score({}) == 0.0


def test_interaction_score_adds_present_context() -> None:
    event = make_event(attributes={"id": "buy"}, text="Buy")
    resolution = resolve_event_selectors(event, probe=RecordedProbe({"#buy": 1}))
    assessment = score_interaction(event, resolution)

    assert assessment.factors["hasReliableSelector"]
    assert assessment.factors["hasVisualContext"]
    assert not assessment.factors["hasBusinessContext"]
    assert assessment.score == pytest.approx(0.23)


def test_quality_assessment_clamps_scores() -> None:
    assert QualityAssessment(score=1.4).score == 1.0
    assert QualityAssessment(score=-0.2).score == 0.0
    assert QualityAssessment(score=0.95).boosted(0.1).score == 1.0


def test_complete_journey_scores_the_maximum() -> None:
    events = make_events(scenario_a_records())
    assessment = score_journey(build_journey(events, (0, 1, 2)))

    assert assessment.score == 1.0
    assert assessment.factors["multiStepJourney"]
    assert assessment.factors["funnelProgression"]
    assert assessment.factors["conversionComplete"]


def test_bare_journey_gets_the_base_score() -> None:
    events = [make_event(0, text="Read", url="https://blog.example.org/"), make_event(1, url="https://blog.example.org/")]
    assessment = score_journey(build_journey(events, (0, 1)), [{"hasVisualContext": True}, {}])

    assert assessment.score == pytest.approx(0.6)
    assert assessment.factors["hasVisualContext"] is True
    assert assessment.factors["clearUserIntent"] is False


def test_filter_keeps_journeys_first_and_caps_individuals(settings: Settings) -> None:
    scores = [0.95, 0.85, 0.75, 0.65, 0.55, 0.45, 0.35, 0.2]
    examples = [_individual(score) for score in scores] + [_journey_example(0.5)]
    result = QualityFilter(settings).apply(examples)

    assert [example.score for example in result] == pytest.approx([0.95, 0.85, 0.75, 0.65, 0.6, 0.55])
    journey = [example for example in result if example.is_journey_example]
    assert len(journey) == 1
    assert journey[0].quality.factors["journeyPrioritized"] is True


def test_strict_profile_raises_the_individual_threshold(settings: Settings) -> None:
    scores = [0.95, 0.85, 0.75, 0.65, 0.55, 0.45]
    examples = [_individual(score) for score in scores] + [_journey_example(0.5)]
    result = QualityFilter(settings.with_profile("strict")).apply(examples)

    assert len([example for example in result if not example.is_journey_example]) == 4
    assert all(example.score >= 0.6 for example in result)


def test_weak_journeys_are_dropped(settings: Settings) -> None:
    result = QualityFilter(settings).apply([_journey_example(0.3), _individual(0.4)])

    assert [example.kind for example in result] == ["structured"]


def test_equal_scores_keep_insertion_order(settings: Settings) -> None:
    examples = [_individual(0.7, "a"), _individual(0.7, "b"), _individual(0.9, "c")]
    result = QualityFilter(settings).apply(examples)

    assert [example.prompt for example in result] == ["prompt c", "prompt a", "prompt b"]


def test_individual_cap_grows_with_journey_count(settings: Settings) -> None:
    examples = [_individual(0.9) for _ in range(10)] + [_journey_example(0.8) for _ in range(7)]
    result = QualityFilter(settings).apply(examples)

    assert len([example for example in result if not example.is_journey_example]) == 7


@pytest.mark.parametrize("score, tier", [(0.8, "high"), (0.79, "medium"), (0.5, "medium"), (0.49, "low")])
def test_quality_tier(score: float, tier: str) -> None:
    assert quality_tier(score) == tier


def test_dataset_metadata() -> None:
    examples = [
        TrainingExample("a", "b", {"pageType": "product"}, QualityAssessment(0.9, {"hasSpatialContext": True})),
        TrainingExample("a", "b", {}, QualityAssessment(0.6, {"hasVisualContext": True, "hasBusinessContext": True})),
        TrainingExample("a", "b", {}, QualityAssessment(0.2)),
    ]
    metadata = compute_dataset_metadata(examples)

    assert metadata["totalExamples"] == 3
    assert metadata["qualityDistribution"] == {"high": 1, "medium": 1, "low": 1}
    assert metadata["contextTypes"] == {"spatial": 1, "visual": 1, "business": 1, "dom": 1}


def test_example_serialisation_can_drop_optional_fields() -> None:
    example = TrainingExample("p", "c", {"pageType": "product"}, QualityAssessment(0.5), raw_data={"eventIndex": 0})

    assert example.to_dict() == {
        "prompt": "p",
        "completion": "c",
        "context": {"pageType": "product"},
        "quality": {"score": 0.5, "factors": {}},
        "rawData": {"eventIndex": 0},
    }
    assert example.to_dict(drop=("context", "quality", "rawData")) == {"prompt": "p", "completion": "c"}
    with pytest.raises(ValueError):
        example.to_dict(drop=("prompt",))
