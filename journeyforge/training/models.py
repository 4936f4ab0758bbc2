"""Training example records handed to the fine-tuning client."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional

JOURNEY_PAGE_TYPES = ("journey-sequence", "funnel-progression", "decision-validation")
JOURNEY_FACTORS = ("multiStepJourney", "funnelProgression")
OPTIONAL_FIELDS = ("context", "quality", "journeyMetadata", "rawData")


@dataclass(frozen=True, slots=True)
class QualityAssessment:
    """A score in ``[0, 1]`` and the factors that justify it."""

    score: float = 0.0
    factors: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", min(1.0, max(0.0, float(self.score))))

    def boosted(self, amount: float, **flags: Any) -> "QualityAssessment":
        return QualityAssessment(score=self.score + amount, factors={**self.factors, **flags})

    def to_dict(self) -> Dict[str, Any]:
        return {"score": round(self.score, 4), "factors": dict(self.factors)}


@dataclass(frozen=True, slots=True)
class TrainingExample:
    """Prompt/completion pair plus analytics metadata.

    Only ``prompt`` and ``completion`` are required downstream; every other
    field may be dropped when serialising.
    """

    prompt: str
    completion: str
    context: Dict[str, Any] = field(default_factory=dict)
    quality: QualityAssessment = field(default_factory=QualityAssessment)
    journey_metadata: Optional[Dict[str, Any]] = None
    raw_data: Optional[Dict[str, Any]] = None
    kind: str = "structured"

    @property
    def score(self) -> float:
        return self.quality.score

    @property
    def is_journey_example(self) -> bool:
        if self.context.get("pageType") in JOURNEY_PAGE_TYPES:
            return True
        return any(self.quality.factors.get(name) for name in JOURNEY_FACTORS)

    def with_quality(self, quality: QualityAssessment) -> "TrainingExample":
        return replace(self, quality=quality)

    def to_finetune_record(self) -> Dict[str, str]:
        return {"prompt": self.prompt, "completion": self.completion}

    def to_dict(self, drop: Iterable[str] = ()) -> Dict[str, Any]:
        """Serialise with camelCase keys, omitting any optional field named in ``drop``."""

        dropped = set(drop)
        unknown = dropped - set(OPTIONAL_FIELDS)
        if unknown:
            raise ValueError(f"Cannot drop required or unknown fields: {', '.join(sorted(unknown))}")
        payload: Dict[str, Any] = self.to_finetune_record()
        optional = {
            "context": self.context,
            "quality": self.quality.to_dict(),
            "journeyMetadata": self.journey_metadata,
            "rawData": self.raw_data,
        }
        for key, value in optional.items():
            if key not in dropped and value is not None:
                payload[key] = value
        return payload


__all__ = ["JOURNEY_PAGE_TYPES", "OPTIONAL_FIELDS", "QualityAssessment", "TrainingExample"]
