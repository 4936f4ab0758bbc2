"""Configuration helpers for session processing."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

QUALITY_PROFILES: Dict[str, Tuple[float, float]] = {
    # name: (journey threshold, individual threshold)
    "journey-priority": (0.4, 0.3),
    "strict": (0.4, 0.6),
}
DEFAULT_QUALITY_PROFILE = "journey-priority"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _profile_thresholds(name: str) -> Tuple[float, float]:
    if name not in QUALITY_PROFILES:
        logger.warning(f"Unknown quality profile {name!r}; using {DEFAULT_QUALITY_PROFILE!r}")
        return QUALITY_PROFILES[DEFAULT_QUALITY_PROFILE]
    return QUALITY_PROFILES[name]


_ENV_PROFILE = os.getenv("JOURNEYFORGE_QUALITY_PROFILE", DEFAULT_QUALITY_PROFILE)
_ENV_JOURNEY_THRESHOLD, _ENV_INDIVIDUAL_THRESHOLD = _profile_thresholds(_ENV_PROFILE)


@dataclass
class Settings:
    """Container for environment-driven settings."""

    environment: str = os.getenv("ENVIRONMENT", "development")

    # Segmentation
    idle_gap_ms: float = float(os.getenv("JOURNEYFORGE_IDLE_GAP_MS", "300000"))
    regression_threshold: int = int(os.getenv("JOURNEYFORGE_REGRESSION_THRESHOLD", "2"))
    soft_length_cap: int = int(os.getenv("JOURNEYFORGE_SOFT_LENGTH_CAP", "5"))
    hard_length_cap: int = int(os.getenv("JOURNEYFORGE_HARD_LENGTH_CAP", "8"))
    page_flow_breaks: bool = _env_flag("JOURNEYFORGE_PAGE_FLOW_BREAKS", default=False)

    # Training bundles
    derive_bundles: bool = _env_flag("JOURNEYFORGE_DERIVE_BUNDLES", default=True)
    bundle_max_length: int = int(os.getenv("JOURNEYFORGE_BUNDLE_MAX_LENGTH", "8"))
    bundle_split_size: int = int(os.getenv("JOURNEYFORGE_BUNDLE_SPLIT_SIZE", "6"))

    # Quality filter
    quality_profile: str = _ENV_PROFILE
    journey_quality_threshold: float = _ENV_JOURNEY_THRESHOLD
    individual_quality_threshold: float = _ENV_INDIVIDUAL_THRESHOLD
    individual_cap_floor: int = int(os.getenv("JOURNEYFORGE_INDIVIDUAL_CAP_FLOOR", "5"))
    journey_boost: float = float(os.getenv("JOURNEYFORGE_JOURNEY_BOOST", "0.1"))

    # Selectors
    min_action_reliability: float = float(os.getenv("JOURNEYFORGE_MIN_ACTION_RELIABILITY", "0.3"))
    max_backup_selectors: int = int(os.getenv("JOURNEYFORGE_MAX_BACKUP_SELECTORS", "5"))

    # Product state
    size_threshold: float = float(os.getenv("JOURNEYFORGE_SIZE_THRESHOLD", "0.7"))
    color_threshold: float = float(os.getenv("JOURNEYFORGE_COLOR_THRESHOLD", "0.6"))
    fuzzy_cutoff: float = float(os.getenv("JOURNEYFORGE_FUZZY_CUTOFF", "88"))

    # Context extraction
    nearby_limit: int = int(os.getenv("JOURNEYFORGE_NEARBY_LIMIT", "15"))

    def with_profile(self, name: str) -> "Settings":
        """Return a copy with the named quality-threshold profile applied."""

        if name not in QUALITY_PROFILES:
            raise ValueError(f"Unknown quality profile '{name}'. Expected one of: {', '.join(QUALITY_PROFILES)}")
        journey, individual = QUALITY_PROFILES[name]
        return replace(
            self,
            quality_profile=name,
            journey_quality_threshold=journey,
            individual_quality_threshold=individual,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["DEFAULT_QUALITY_PROFILE", "QUALITY_PROFILES", "Settings", "get_settings"]
