import pytest

from journeyforge.workflow.config import QUALITY_PROFILES, Settings, get_settings


def test_quality_profiles() -> None:
    assert QUALITY_PROFILES["journey-priority"] == (0.4, 0.3)
    assert QUALITY_PROFILES["strict"] == (0.4, 0.6)


def test_with_profile_returns_an_updated_copy(settings: Settings) -> None:
    strict = settings.with_profile("strict")

    assert strict.quality_profile == "strict"
    assert strict.individual_quality_threshold == 0.6
    assert strict.journey_quality_threshold == 0.4
    assert settings.individual_quality_threshold == 0.3
    assert strict.idle_gap_ms == settings.idle_gap_ms


def test_unknown_profile_is_rejected(settings: Settings) -> None:
    with pytest.raises(ValueError, match="Unknown quality profile"):
        settings.with_profile("lenient")


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()
