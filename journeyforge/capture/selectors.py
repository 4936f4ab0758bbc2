"""Selector candidate generation and reliability resolution."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence, Tuple

from .models import ElementDescriptor, InteractionEvent, SelectorSet
from .probe import MatchProbe

logger = logging.getLogger(__name__)

Strategy = Literal["id", "test-attr", "aria", "name", "class", "tag", "xpath", "css-path"]
STRATEGY_PRIORITY: Tuple[Strategy, ...] = ("id", "test-attr", "aria", "name", "class", "tag", "xpath", "css-path")
PLACEHOLDER_SELECTOR = "element"

TEST_ATTRIBUTES = ("data-testid", "data-test", "data-cy", "data-qa", "data-automation")
MAX_STABLE_CLASSES = 3
MAX_HREF_LENGTH = 100

_UNSTABLE_CLASS_PATTERNS = (
    re.compile(r"^(active|hover|focus|selected|current)$", re.IGNORECASE),
    re.compile(r"^(is-|has-)", re.IGNORECASE),
    re.compile(r"\d{4,}"),
    re.compile(r"^[a-f0-9]{8,}$", re.IGNORECASE),
    re.compile(r"^css-", re.IGNORECASE),
    re.compile(r"^sc-", re.IGNORECASE),
    re.compile(r"^emotion-", re.IGNORECASE),
    re.compile(r"^jsx-", re.IGNORECASE),
)

_STRATEGY_ESTIMATES: Dict[str, float] = {
    "test-attr": 0.9,
    "xpath": 0.8,
    "id": 0.7,
    "aria": 0.6,
    "name": 0.6,
    "class": 0.4,
}
_DEFAULT_ESTIMATE = 0.3

_SIMPLE_ID = re.compile(r"^[A-Za-z_][\w-]*$")

_ACTION_VERBS: Dict[str, str] = {
    "CLICK": "Click",
    "INPUT": "Fill",
    "FOCUS": "Focus",
    "FORM_SUBMIT": "Submit",
    "KEY_PRESS": "Press",
    "NAVIGATION": "Navigate",
}


@dataclass(frozen=True, slots=True)
class SelectorCandidate:
    selector: str
    strategy: Strategy


@dataclass(frozen=True, slots=True)
class SelectorResolution:
    """Outcome of resolving a selector set against a page."""

    best_selector: str
    reliability: float
    backup_selectors: Tuple[str, ...] = ()
    strategy: str = "tag"
    scores: Dict[str, float] = field(default_factory=dict)

    @property
    def is_placeholder(self) -> bool:
        return self.best_selector == PLACEHOLDER_SELECTOR

    def is_anchorable(self, minimum: float = 0.3) -> bool:
        """True when the selector is good enough to anchor a single-action example."""

        return not self.is_placeholder and self.reliability > minimum

    def to_dict(self) -> Dict[str, object]:
        return {
            "bestSelector": self.best_selector,
            "reliability": self.reliability,
            "backupSelectors": list(self.backup_selectors),
            "strategy": self.strategy,
        }


def reliability_from_count(count: int) -> float:
    """Map a live-page match count onto a reliability score."""

    if count == 1:
        return 1.0
    if count <= 0:
        return 0.0
    if count <= 3:
        return 0.8
    if count <= 10:
        return 0.6
    return 0.3


def is_unstable_class(name: str) -> bool:
    return any(pattern.search(name) for pattern in _UNSTABLE_CLASS_PATTERNS)


def stable_classes(classes: Sequence[str]) -> List[str]:
    return [name for name in classes if name and not is_unstable_class(name)]


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def classify_selector(selector: str) -> Strategy:
    """Infer which strategy produced a recorded selector string."""

    stripped = selector.strip()
    if stripped.startswith(("/", "(/", "xpath=")):
        return "xpath"
    if " > " in stripped or ":nth-" in stripped:
        return "css-path"
    if any(f"[{attr}" in stripped for attr in TEST_ATTRIBUTES):
        return "test-attr"
    if stripped.startswith("#") and " " not in stripped or stripped.startswith("[id="):
        return "id"
    if "[aria-" in stripped or "[role=" in stripped:
        return "aria"
    if "[name=" in stripped:
        return "name"
    if stripped.startswith("."):
        return "class"
    return "tag"


def _id_selector(element_id: str) -> str:
    if _SIMPLE_ID.match(element_id):
        return f"#{element_id}"
    return f'[id="{_quote(element_id)}"]'


def _tag_selector(element: ElementDescriptor) -> str:
    if not element.tag:
        return ""
    selector = element.tag
    attrs = element.attributes
    if attrs.get("type"):
        selector += f'[type="{_quote(attrs["type"])}"]'
    if attrs.get("role"):
        selector += f'[role="{_quote(attrs["role"])}"]'
    href = attrs.get("href", "")
    if href and len(href) < MAX_HREF_LENGTH:
        selector += f'[href="{_quote(href)}"]'
    return selector


def generate_candidates(
    element: ElementDescriptor,
    recorded: Optional[SelectorSet] = None,
) -> List[SelectorCandidate]:
    """Build candidates from the element descriptor, then merge recorded selectors.

    Generated candidates come in priority order; recorded selectors follow in
    capture order and are classified with :func:`classify_selector`.
    """

    attrs = element.attributes
    candidates: List[SelectorCandidate] = []

    def _add(selector: str, strategy: Strategy) -> None:
        if selector and all(existing.selector != selector for existing in candidates):
            candidates.append(SelectorCandidate(selector, strategy))

    if attrs.get("id"):
        _add(_id_selector(attrs["id"]), "id")
    for attr in TEST_ATTRIBUTES:
        if attrs.get(attr):
            _add(f'[{attr}="{_quote(attrs[attr])}"]', "test-attr")
    if attrs.get("aria-label"):
        _add(f'[aria-label="{_quote(attrs["aria-label"])}"]', "aria")
    if attrs.get("name"):
        _add(f'[name="{_quote(attrs["name"])}"]', "name")
    classes = stable_classes(element.classes)[:MAX_STABLE_CLASSES]
    if classes:
        _add("." + ".".join(classes), "class")
    _add(_tag_selector(element), "tag")

    if recorded is not None:
        _add(recorded.xpath, "xpath")
        _add(recorded.css_path, "css-path")
        for selector in (recorded.primary, *recorded.alternatives):
            if selector:
                _add(selector, classify_selector(selector))
    return candidates


def estimate_reliability(strategy: str) -> float:
    return _STRATEGY_ESTIMATES.get(strategy, _DEFAULT_ESTIMATE)


def _score(
    candidate: SelectorCandidate,
    recorded: SelectorSet,
    probe: Optional[MatchProbe],
) -> float:
    if probe is not None:
        return reliability_from_count(probe.count(candidate.selector))
    if candidate.selector in recorded.match_counts:
        return reliability_from_count(recorded.match_counts[candidate.selector])
    if candidate.selector in recorded.reliability:
        return recorded.reliability[candidate.selector]
    return estimate_reliability(candidate.strategy)


def resolve_selectors(
    element: ElementDescriptor,
    recorded: Optional[SelectorSet] = None,
    *,
    probe: Optional[MatchProbe] = None,
    max_backups: int = 5,
) -> SelectorResolution:
    """Pick the most trustworthy selector and rank the usable fallbacks.

    Parameters
    ----------
    element:
        Target element descriptor used for candidate generation.
    recorded:
        Selector set captured with the interaction, including any recorded
        match counts or reliability scores.
    probe:
        Optional live-page match counter. When supplied its counts take
        precedence over anything recorded.
    max_backups:
        Upper bound on the number of backup selectors returned.
    """

    recorded = recorded or SelectorSet()
    candidates = generate_candidates(element, recorded)
    if not candidates:
        return SelectorResolution(PLACEHOLDER_SELECTOR, 0.0, strategy="tag")

    scored: List[Tuple[SelectorCandidate, float, int]] = []
    for position, candidate in enumerate(candidates):
        scored.append((candidate, _score(candidate, recorded, probe), position))
    scores = {candidate.selector: reliability for candidate, reliability, _ in scored}

    ranked = sorted(
        scored,
        key=lambda item: (-item[1], STRATEGY_PRIORITY.index(item[0].strategy), item[2]),
    )
    best, best_reliability, _ = ranked[0]
    if best_reliability <= 0.0:
        logger.debug(f"No usable selector among {len(candidates)} candidates")
        return SelectorResolution(PLACEHOLDER_SELECTOR, 0.0, strategy="tag", scores=scores)

    backups = tuple(candidate.selector for candidate, reliability, _ in ranked[1:] if reliability > 0.0)
    return SelectorResolution(
        best_selector=best.selector,
        reliability=best_reliability,
        backup_selectors=backups[:max_backups],
        strategy=best.strategy,
        scores=scores,
    )


def resolve_event_selectors(
    event: InteractionEvent,
    *,
    probe: Optional[MatchProbe] = None,
    max_backups: int = 5,
) -> SelectorResolution:
    return resolve_selectors(event.element, event.selectors, probe=probe, max_backups=max_backups)


def selector_reasoning(selector: str, reliability: float) -> str:
    """One-line explanation of why a selector can be trusted."""

    if "data-testid" in selector or any(f"[{attr}" in selector for attr in TEST_ATTRIBUTES):
        return "data-testid provides stable semantic identification"
    if selector.startswith("#") or selector.startswith("[id="):
        return "unique ID selector offers high specificity"
    if selector.startswith(("/", "(/", "xpath=")):
        stability = "strong" if reliability > 0.8 else "moderate"
        return f"XPath selector with {stability} DOM stability"
    if "aria-" in selector or "role=" in selector:
        return "accessibility attributes provide semantic context"
    if selector.startswith("."):
        return "class-based selector with reasonable specificity"
    return f"generic selector with {reliability:.1f} reliability score"


def action_verb(event_type: str) -> str:
    return _ACTION_VERBS.get(event_type, "Interact")


def _js_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def playwright_action(event: InteractionEvent, selector: str) -> str:
    """Render the Playwright call that replays ``event`` against ``selector``."""

    target = _js_string(selector)
    if event.type == "INPUT":
        value = event.element.value or "text"
        return f"await page.fill('{target}', '{_js_string(value)}')"
    if event.type == "FOCUS":
        return f"await page.hover('{target}')"
    if event.type == "FORM_SUBMIT":
        return f"await page.locator('{target}').press('Enter')"
    if event.type == "KEY_PRESS":
        interaction = event.raw.get("interaction")
        key = ""
        if isinstance(interaction, dict):
            key = str(interaction.get("key") or "")
        return f"await page.locator('{target}').press('{_js_string(key or 'Enter')}')"
    if event.type == "NAVIGATION":
        return f"await page.goto('{_js_string(event.url)}')"
    return f"await page.click('{target}')"


__all__ = [
    "PLACEHOLDER_SELECTOR",
    "STRATEGY_PRIORITY",
    "SelectorCandidate",
    "SelectorResolution",
    "Strategy",
    "TEST_ATTRIBUTES",
    "action_verb",
    "classify_selector",
    "estimate_reliability",
    "generate_candidates",
    "is_unstable_class",
    "playwright_action",
    "reliability_from_count",
    "resolve_event_selectors",
    "resolve_selectors",
    "selector_reasoning",
    "stable_classes",
]
