"""Training example synthesis, quality scoring and filtering."""

from .models import QualityAssessment, TrainingExample
from .quality import (
    QualityFilter,
    compute_dataset_metadata,
    interaction_factors,
    quality_tier,
    score_interaction,
    score_journey,
)
from .synthesizer import ExampleSynthesizer, PreparedInteraction

__all__ = [
    "ExampleSynthesizer",
    "PreparedInteraction",
    "QualityAssessment",
    "QualityFilter",
    "TrainingExample",
    "compute_dataset_metadata",
    "interaction_factors",
    "quality_tier",
    "score_interaction",
    "score_journey",
]
