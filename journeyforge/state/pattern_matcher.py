"""Scored size and color detection for product variant selections.

Detection runs as an ordered cascade. Each stage either returns a
:class:`PatternMatch` carrying its own confidence or defers to the next stage:

1. Exact vocabulary and regex lookups (alpha sizes, basic colors).
2. Range and specialty patterns (numeric sizes, toddler sizes, fractions).
3. RapidFuzz similarity against spelled-out sizes and basic colors, which
   absorbs spellings such as ``"X-Large"`` and typos such as ``"bleu"``.
4. Context inference from the element's attributes, at low confidence.

Per-domain vocabulary can grow at runtime through
:meth:`PatternMatcher.learn_site_patterns`.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from rapidfuzz import fuzz

from .site_patterns import SITE_PATTERNS, get_brand_colors_for_domain

logger = logging.getLogger(__name__)

ALPHA_SIZE_PATTERN = re.compile(r"^(XXX?L|XX?L|XL|L|M|S|XS)$", re.IGNORECASE)

NUMERIC_SIZE_RANGES: Tuple[Tuple[float, float, str], ...] = (
    (2, 18, "children"),
    (28, 44, "waist"),
    (6, 15, "shoes"),
    (32, 46, "eu-clothing"),
)

SPECIALTY_SIZE_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d+T$", re.IGNORECASE),
    re.compile(r"^\d+(?:\.\d+)?[WDHRL]$", re.IGNORECASE),
    re.compile(r"^ONE SIZE$", re.IGNORECASE),
    re.compile(r"^OS$", re.IGNORECASE),
    re.compile(r"^\d+/\d+$"),
)

SPELLED_SIZES: Dict[str, str] = {
    "extra small": "XS",
    "x small": "XS",
    "small": "S",
    "medium": "M",
    "large": "L",
    "x large": "XL",
    "extra large": "XL",
    "xx large": "XXL",
    "xxx large": "XXXL",
}

SIZE_CONTEXT_KEYWORDS = ("size", "fit", "length", "width", "dimension")

BASIC_COLORS = (
    "red",
    "blue",
    "black",
    "white",
    "green",
    "gray",
    "grey",
    "brown",
    "navy",
    "pink",
    "purple",
    "yellow",
    "orange",
    "beige",
    "tan",
)

FASHION_TERMS = (
    "vintage",
    "classic",
    "dark",
    "light",
    "bright",
    "muted",
    "bold",
    "metallic",
    "neon",
    "pastel",
    "jewel",
    "earth",
    "neutral",
)

PATTERN_WORDS = (
    "stripe",
    "striped",
    "plaid",
    "solid",
    "print",
    "printed",
    "floral",
    "geometric",
    "abstract",
    "checkered",
    "polka",
)

COLOR_CONTEXT_KEYWORDS = ("color", "swatch", "shade", "tone", "hue")

# Words removed from a color phrase before it is reported as a value
_COLOR_NOISE_WORDS = {"color", "colour", "select", "selected", "swatch", "shade", "tone", "hue", "option", "choose"}
_NOT_COLORS = {"small", "medium", "large"}
_COLOR_TYPO_CUTOFF = 75.0

_SCORES: Dict[str, float] = {
    "alpha-size": 0.95,
    "numeric-size": 0.8,
    "decimal-shoe-size": 0.9,
    "specialty-size": 0.85,
    "spelled-size": 0.75,
    "inferred-size": 0.6,
    "basic-color": 0.9,
    "brand-color": 0.85,
    "fuzzy-color": 0.7,
    "fashion-color": 0.75,
    "color-pattern": 0.8,
    "inferred-color": 0.6,
}


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """A detected variant value with the confidence of the stage that found it."""

    value: str
    confidence: float
    method: str
    category: str

    def with_bonus(self, bonus: float) -> "PatternMatch":
        return PatternMatch(self.value, min(1.0, self.confidence + bonus), self.method, self.category)


def _normalize_text(value: str) -> str:
    tokens = re.findall(r"[a-z0-9]+", value.lower())
    return " ".join(tokens)


def _word_pattern(words: Iterable[str]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(word) for word in sorted(set(words), key=len, reverse=True))
    return re.compile(rf"\b({alternation})\b", re.IGNORECASE)


_BASIC_COLOR_RE = _word_pattern(BASIC_COLORS)
_FASHION_RE = _word_pattern(FASHION_TERMS)
_PATTERN_WORD_RE = _word_pattern(PATTERN_WORDS)


def _clean_color_phrase(text: str) -> str:
    tokens = [token for token in re.findall(r"[a-z0-9]+(?:[-'][a-z0-9]+)*", text.lower()) if token not in _COLOR_NOISE_WORDS]
    return " ".join(tokens)


def _attribute_has(attributes: Mapping[str, Any], keys: Sequence[str], keywords: Sequence[str]) -> bool:
    for key in keys:
        value = str(attributes.get(key) or "").lower()
        if value and any(keyword in value for keyword in keywords):
            return True
    return False


class PatternMatcher:
    """Detects size and color values with per-stage confidence scores."""

    def __init__(self, *, fuzzy_cutoff: float = 88.0) -> None:
        self.fuzzy_cutoff = fuzzy_cutoff
        self._learned_colors: Dict[str, List[str]] = {}
        self._learned: Dict[str, Dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Sizes
    # ------------------------------------------------------------------
    def detect_size(
        self,
        text: str,
        attributes: Optional[Mapping[str, Any]] = None,
        surrounding_text: str = "",
    ) -> Optional[PatternMatch]:
        if not text or not isinstance(text, str):
            return None
        clean = text.strip()
        if not clean:
            return None
        upper = clean.upper()

        if ALPHA_SIZE_PATTERN.match(upper):
            return PatternMatch(upper, _SCORES["alpha-size"], "pattern", "alpha-size")

        numeric = self._detect_numeric_size(clean)
        if numeric is not None:
            return numeric

        for pattern in SPECIALTY_SIZE_PATTERNS:
            if pattern.match(clean):
                return PatternMatch(upper, _SCORES["specialty-size"], "pattern", "specialty-size")

        spelled = self._detect_spelled_size(clean)
        if spelled is not None:
            return spelled

        return self._infer_size_from_context(clean, attributes or {}, surrounding_text)

    def _detect_numeric_size(self, text: str) -> Optional[PatternMatch]:
        if not re.match(r"^\d+(?:\.\d+)?$", text):
            return None
        number = float(text)
        if "." in text:
            for low, high, category in NUMERIC_SIZE_RANGES:
                if category == "shoes" and low <= number <= high:
                    return PatternMatch(text, _SCORES["decimal-shoe-size"], "pattern", category)
        for low, high, category in NUMERIC_SIZE_RANGES:
            if low <= number <= high:
                return PatternMatch(text, _SCORES["numeric-size"], "pattern", category)
        return None

    def _detect_spelled_size(self, text: str) -> Optional[PatternMatch]:
        normalized = _normalize_text(text)
        if not normalized or len(normalized) > 16:
            return None
        best_score = 0.0
        best_code = None
        for spelled, code in SPELLED_SIZES.items():
            score = float(fuzz.ratio(normalized, spelled))
            if score > best_score:
                best_score = score
                best_code = code
        if best_code is None or best_score < self.fuzzy_cutoff:
            return None
        confidence = round(_SCORES["spelled-size"] * best_score / 100.0, 4)
        return PatternMatch(best_code, confidence, "fuzzy", "spelled-size")

    def _infer_size_from_context(
        self,
        text: str,
        attributes: Mapping[str, Any],
        surrounding_text: str,
    ) -> Optional[PatternMatch]:
        has_clue = has_size_context(attributes) or any(
            keyword in surrounding_text.lower() for keyword in SIZE_CONTEXT_KEYWORDS
        )
        if has_clue and len(text) <= 4 and re.match(r"^[A-Z0-9]+$", text, re.IGNORECASE):
            return PatternMatch(text.upper(), _SCORES["inferred-size"], "context", "inferred-size")
        return None

    # ------------------------------------------------------------------
    # Colors
    # ------------------------------------------------------------------
    def detect_color(
        self,
        text: str,
        attributes: Optional[Mapping[str, Any]] = None,
        domain: str = "",
    ) -> Optional[PatternMatch]:
        if not text or not isinstance(text, str):
            return None
        clean = text.strip()
        if not clean:
            return None
        phrase = _clean_color_phrase(clean) or clean.lower()

        basic = _BASIC_COLOR_RE.search(phrase)
        if basic:
            return PatternMatch(phrase, _SCORES["basic-color"], "exact", "basic-color")

        brand_terms = self.brand_colors(domain)
        if brand_terms and _word_pattern(brand_terms).search(phrase):
            return PatternMatch(phrase, _SCORES["brand-color"], "exact", "brand-color")

        fuzzy = self._detect_color_typo(phrase)
        if fuzzy is not None:
            return fuzzy

        if _FASHION_RE.search(phrase):
            return PatternMatch(phrase, _SCORES["fashion-color"], "pattern", "fashion-color")

        if _PATTERN_WORD_RE.search(phrase):
            return PatternMatch(phrase, _SCORES["color-pattern"], "pattern", "color-pattern")

        return self._infer_color_from_context(clean, attributes or {})

    def _detect_color_typo(self, phrase: str) -> Optional[PatternMatch]:
        tokens = phrase.split()
        if len(tokens) != 1 or len(tokens[0]) < 4:
            return None
        token = tokens[0]
        for color in BASIC_COLORS:
            if abs(len(color) - len(token)) > 1:
                continue
            if float(fuzz.ratio(token, color)) >= _COLOR_TYPO_CUTOFF:
                return PatternMatch(color, _SCORES["fuzzy-color"], "fuzzy", "basic-color")
        return None

    def _infer_color_from_context(self, text: str, attributes: Mapping[str, Any]) -> Optional[PatternMatch]:
        has_clue = _attribute_has(attributes, ("name", "aria-label", "class"), COLOR_CONTEXT_KEYWORDS)
        reasonable = 3 <= len(text) <= 25
        not_size = not ALPHA_SIZE_PATTERN.match(text) and text.lower() not in _NOT_COLORS
        if has_clue and reasonable and not_size:
            return PatternMatch(text, _SCORES["inferred-color"], "context", "inferred-color")
        return None

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def learn_site_patterns(self, domain: str, events: Sequence[Any]) -> Dict[str, List[str]]:
        """Add the color and size vocabulary observed on ``domain``.

        ``events`` may be :class:`~journeyforge.capture.models.InteractionEvent`
        instances or raw capture records.
        """

        colors: Set[str] = set()
        sizes: Set[str] = set()
        for event in events:
            text, attributes = _text_and_attributes(event)
            if not text:
                continue
            if has_color_context(attributes):
                colors.add(text.lower())
            if has_size_context(attributes):
                sizes.add(text.upper())
        if colors:
            known = self._learned_colors.setdefault(domain, [])
            static = get_brand_colors_for_domain(domain)
            known.extend(color for color in sorted(colors) if color not in known and color not in static)
        learned = {"colors": sorted(colors), "sizes": sorted(sizes)}
        self._learned[domain] = {**learned, "learned_at": time.time()}
        logger.debug(
            f"Learned {len(colors)} colors and {len(sizes)} sizes for {domain}",
            extra={"domain": domain},
        )
        return learned

    def brand_colors(self, domain: str) -> List[str]:
        """Registry colors for ``domain`` followed by any learned this session."""

        return get_brand_colors_for_domain(domain) + self._learned_colors.get(domain, [])

    def pattern_stats(self) -> Dict[str, Dict[str, Any]]:
        return {
            "size_patterns": {
                "alpha_pattern": ALPHA_SIZE_PATTERN.pattern,
                "numeric_ranges": len(NUMERIC_SIZE_RANGES),
                "specialty_patterns": len(SPECIALTY_SIZE_PATTERNS),
            },
            "color_patterns": {
                "basic_colors": len(BASIC_COLORS),
                "fashion_terms": len(FASHION_TERMS),
                "brand_specific": len(set(SITE_PATTERNS) | set(self._learned_colors)),
                "sites_learned": len(self._learned),
            },
        }


def has_size_context(attributes: Mapping[str, Any]) -> bool:
    return _attribute_has(attributes, ("name", "aria-label"), SIZE_CONTEXT_KEYWORDS)


def has_color_context(attributes: Mapping[str, Any]) -> bool:
    return _attribute_has(attributes, ("name", "aria-label"), COLOR_CONTEXT_KEYWORDS)


def _text_and_attributes(event: Any) -> Tuple[str, Mapping[str, Any]]:
    element = getattr(event, "element", None)
    if element is not None and hasattr(element, "attributes"):
        return element.text.strip(), element.attributes
    if isinstance(event, Mapping):
        raw_element = event.get("element") or {}
        if isinstance(raw_element, Mapping):
            attributes = raw_element.get("attributes") or {}
            return str(raw_element.get("text") or "").strip(), attributes if isinstance(attributes, Mapping) else {}
    return "", {}


__all__ = [
    "BASIC_COLORS",
    "PatternMatch",
    "PatternMatcher",
    "has_color_context",
    "has_size_context",
]
