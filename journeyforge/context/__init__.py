"""Context extractors for interaction records."""

from .extractors import (
    InteractionContext,
    extract_all,
    extract_behavior_patterns_context,
    extract_business_context,
    extract_design_system_context,
    extract_element_context,
    extract_nearby_elements,
    extract_page_context,
    extract_state_context,
    extract_technical_context,
)

__all__ = [
    "InteractionContext",
    "extract_all",
    "extract_behavior_patterns_context",
    "extract_business_context",
    "extract_design_system_context",
    "extract_element_context",
    "extract_nearby_elements",
    "extract_page_context",
    "extract_state_context",
    "extract_technical_context",
]
