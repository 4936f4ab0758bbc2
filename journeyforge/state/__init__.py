"""Product variant detection and session-scoped configuration state."""

from .accumulator import (
    ProductConfigurationState,
    ProductStateStore,
    SelectionStep,
    StateValidation,
    extract_product_id,
)
from .pattern_matcher import PatternMatch, PatternMatcher
from .site_patterns import domain_for_url, get_brand_colors_for_domain

__all__ = [
    "PatternMatch",
    "PatternMatcher",
    "ProductConfigurationState",
    "ProductStateStore",
    "SelectionStep",
    "StateValidation",
    "domain_for_url",
    "extract_product_id",
    "get_brand_colors_for_domain",
]
