import pytest

from conftest import make_record, scenario_a_records
from journeyforge import process_session
from journeyforge.capture.models import SessionPayloadError
from journeyforge.workflow.config import Settings
from journeyforge.workflow.pipeline import SessionPipeline


def test_empty_session_produces_nothing(settings: Settings) -> None:
    result = SessionPipeline(settings).process_session([])

    assert result.examples == []
    assert result.journeys == []
    assert result.metadata["totalExamples"] == 0
    assert result.events == 0


@pytest.mark.parametrize("payload", ["not a list", {"timestamp": 1}, None, 42])
def test_non_list_payload_is_rejected(settings: Settings, payload) -> None:
    with pytest.raises(SessionPayloadError):
        SessionPipeline(settings).process_session(payload)


def test_non_mapping_records_are_skipped(settings: Settings) -> None:
    result = SessionPipeline(settings).process_session(["junk", make_record(0, text="Home"), 7])

    assert result.events == 1


def test_add_to_cart_session(settings: Settings) -> None:
    result = SessionPipeline(settings).process_session(scenario_a_records())

    assert result.events == 3
    assert result.selector_anchored == 3
    assert len(result.journeys) == 1
    assert "Cart Ready: Yes" in result.business_contexts[2]
    assert result.product_states["shirt-123"]["readyForCart"] is True

    first = result.examples[0]
    assert first.is_journey_example
    assert first.quality.factors["journeyPrioritized"] is True
    assert all(0.0 <= example.score <= 1.0 for example in result.examples)
    assert [example.score for example in result.examples] == sorted(
        (example.score for example in result.examples), reverse=True
    )
    assert result.metadata["totalExamples"] == len(result.examples)


def test_events_are_sorted_before_processing(settings: Settings) -> None:
    pipeline = SessionPipeline(settings)
    ordered = pipeline.process_session(scenario_a_records())
    shuffled = pipeline.process_session(list(reversed(scenario_a_records())))

    assert [example.to_dict() for example in shuffled.examples] == [example.to_dict() for example in ordered.examples]


def test_repeated_runs_are_identical(settings: Settings) -> None:
    first = process_session(scenario_a_records(), settings=settings).to_dict()
    second = process_session(scenario_a_records(), settings=settings).to_dict()

    first["stats"].pop("durationMs")
    second["stats"].pop("durationMs")
    assert first == second


def test_session_task_drives_intent(settings: Settings) -> None:
    session = {
        "sessionId": "s-1",
        "config": {"generatedTask": {"title": "Buy a shirt", "description": "Find a blue shirt in size M"}},
    }
    result = SessionPipeline(settings).process_session(scenario_a_records(), session)

    assert result.journeys[0].intent == "Find a blue shirt in size M"
    flow = next(example for example in result.examples if example.kind == "journey-flow")
    assert 'User Intent: "Find a blue shirt in size M"' in flow.prompt


def test_finetune_records_hold_only_prompt_and_completion(settings: Settings) -> None:
    result = SessionPipeline(settings).process_session(scenario_a_records())

    assert result.finetune_records()
    assert all(set(record) == {"prompt", "completion"} for record in result.finetune_records())


def test_result_serialisation(settings: Settings) -> None:
    payload = SessionPipeline(settings).process_session(scenario_a_records()).to_dict()

    assert set(payload) == {"examples", "journeys", "metadata", "productStates", "stats"}
    assert payload["journeys"][0]["journeyType"] == "ecommerce-add-to-cart-journey"
    assert payload["stats"]["events"] == 3
