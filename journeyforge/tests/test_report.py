import io

from rich.console import Console

from conftest import make_events, scenario_a_records
from journeyforge.journeys.detector import JourneyDetector
from journeyforge.workflow.config import Settings
from journeyforge.workflow.report import render_dataset_report, render_journey_table


def _console() -> Console:
    return Console(file=io.StringIO(), record=True, width=120, color_system=None)


def test_dataset_report_lists_tiers_and_contexts() -> None:
    metadata = {
        "totalExamples": 4,
        "qualityDistribution": {"high": 2, "medium": 1, "low": 1},
        "contextTypes": {"spatial": 0, "visual": 4, "business": 3, "dom": 2},
    }
    output = render_dataset_report(metadata, _console()).export_text()

    assert "Training examples: 4" in output
    assert "Quality Distribution" in output
    assert "Context Coverage" in output
    assert "50.0%" in output
    assert "75.0%" in output


def test_empty_dataset_report() -> None:
    output = render_dataset_report({"totalExamples": 0}, _console()).export_text()

    assert "Training examples: 0" in output


def test_journey_table(settings: Settings) -> None:
    journeys = JourneyDetector(settings).detect(make_events(scenario_a_records()))
    output = render_journey_table(journeys, _console()).export_text()

    assert "add-to-cart" in output
    assert "primary" in output


def test_journey_table_without_journeys() -> None:
    assert "No journeys detected." in render_journey_table([], _console()).export_text()
