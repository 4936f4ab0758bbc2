"""Render interactions and journeys into prompt/completion training examples.

Per interaction the synthesizer emits a canonical, section-labelled example
when the resolved selector is anchorable, plus secondary examples for each
kind of context that was captured. Per journey it emits the complete flow, a
funnel-stage summary and a decision-validation summary.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..capture.models import InteractionEvent, SessionInfo
from ..capture.selectors import SelectorResolution, action_verb, playwright_action, selector_reasoning
from ..context.extractors import InteractionContext
from ..journeys.bundles import BundleKind
from ..journeys.classifier import Classification, classify
from ..journeys.metadata import Journey, StepMetadata, build_steps, conversion_signals, decision_factors, decision_points
from ..state.site_patterns import domain_for_url
from ..workflow.config import Settings, get_settings
from .models import QualityAssessment, TrainingExample
from .quality import interaction_factors, score_interaction, score_journey

logger = logging.getLogger(__name__)

MAX_PROMPT_BACKUPS = 2

STEP_TYPES: Dict[str, str] = {
    "discovery": "DISCOVER",
    "consideration": "CONSIDER",
    "evaluation": "EVALUATE",
    "validation": "VALIDATE",
}
STEP_COMMENTS: Dict[str, str] = {
    "consideration": "// User comparing options",
    "validation": "// User validating decision",
    "evaluation": "// User evaluating details",
}
VALIDATION_REASONS = (
    ("review", "checking user reviews"),
    ("spec", "reviewing specifications"),
    ("price", "comparing prices"),
    ("rating", "checking ratings"),
)
EXPECTED_OUTCOMES = (
    (("add to cart", "add to bag"), "product added to cart, cart counter update"),
    (("checkout", "proceed"), "navigation to checkout/payment page"),
    (("search", "find"), "search results display, page content update"),
    (("sign up", "register"), "navigation to registration form"),
    (("login", "sign in"), "authentication modal or login page"),
)
PAGE_OUTCOMES = {
    "product": "product detail interaction, state change",
    "category": "category navigation, filtered results",
    "cart": "cart modification, total update",
}


@dataclass(frozen=True, slots=True)
class PreparedInteraction:
    """An event with everything resolved once per pipeline run."""

    index: int
    event: InteractionEvent
    resolution: SelectorResolution
    context: InteractionContext
    product_state: str = ""
    business_context: str = ""


@dataclass(frozen=True, slots=True)
class JourneyPosition:
    classification: Classification
    step: StepMetadata
    journey: Optional[Journey] = None


def _value(value: Any, default: str = "unknown") -> str:
    return str(value) if value not in (None, "") else default


def _box(event: InteractionEvent) -> Dict[str, float]:
    box = event.bounding_box
    return box.to_dict() if box else {"x": 0, "y": 0, "width": 0, "height": 0}


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def expected_outcome(event: InteractionEvent) -> str:
    text = event.text_lower
    for cues, outcome in EXPECTED_OUTCOMES:
        if any(cue in text for cue in cues):
            return outcome
    if event.element.tag.lower() == "input" or event.type == "INPUT":
        return "form field populated, validation feedback"
    return PAGE_OUTCOMES.get(event.page_type, "page state change, UI update")


def action_reasoning(event: InteractionEvent, goal: str) -> str:
    text = event.text_lower
    if "add to cart" in text:
        return "Adding product to cart advances toward purchase completion"
    if "checkout" in text:
        return "Proceeding to checkout moves closer to transaction completion"
    if "search" in text:
        return "Search helps locate specific products needed for purchase goal"
    return f"This action progresses the user journey toward: {goal}"


def enhancement_flags(event: InteractionEvent) -> List[str]:
    flags: List[str] = []
    checks = (
        ("reliability-scores", bool(event.selectors.reliability)),
        ("visual-positioning", event.bounding_box is not None),
        ("spatial-context", bool(event.element.nearby)),
        ("accessibility-data", event.page.accessibility is not None),
        ("performance-data", event.page.performance is not None),
        ("business-intelligence", event.business is not None),
        ("state-tracking", event.state.changes is not None),
        ("form-context", event.element.form_context is not None),
        ("analytics-data", event.page.analytics is not None),
        ("timing-data", event.timing is not None),
        ("complete-nearby-elements", len(event.element.nearby) > 3),
        ("design-system-context", isinstance(event.visual.get("designSystem"), Mapping)),
        ("behavior-patterns", bool(event.user.get("behaviorPatterns"))),
    )
    for flag, present in checks:
        if present:
            flags.append(flag)
    return flags


def data_completion(payload: Mapping[str, Any]) -> float:
    """Percentage of populated fields across nested mappings of ``payload``."""

    total = populated = 0
    stack: List[Mapping[str, Any]] = [payload]
    while stack:
        current = stack.pop()
        for value in current.values():
            total += 1
            if value is not None and value != "":
                populated += 1
            if isinstance(value, Mapping):
                stack.append(value)
    return round(populated / total * 100, 2) if total else 0.0


def step_type(event: InteractionEvent, position: int, total: int) -> str:
    if position == 0:
        return "START"
    if position == total - 1:
        return "CONVERT"
    return STEP_TYPES.get(event.funnel_stage, "STEP")


def step_context(event: InteractionEvent) -> str:
    if event.page_type == "search-results":
        return "searching"
    if event.page_type == "product":
        return "researching"
    text = event.text_lower
    if "review" in text:
        return "validating"
    if "cart" in text or "checkout" in text:
        return "converting"
    return "progressing"


def step_comment(event: InteractionEvent, position: int, total: int, intent: str) -> str:
    if position == 0:
        return f"// User starts journey: {intent}"
    if position == total - 1:
        return f"// User reaches conversion endpoint: {intent}"
    return STEP_COMMENTS.get(event.funnel_stage, f"// User progressing toward: {intent}")


def validation_reason(event: InteractionEvent) -> str:
    for cue, reason in VALIDATION_REASONS:
        if cue in event.text_lower:
            return reason
    return "validating decision"


def is_validation_step(event: InteractionEvent) -> bool:
    text = event.text_lower
    return event.funnel_stage == "validation" or event.page_type == "product" or "review" in text or "spec" in text


class ExampleSynthesizer:
    """Build training examples for one session.

    Parameters
    ----------
    settings:
        Supplies the anchorable-reliability minimum.
    session:
        Session information whose task description or title drives intent.
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[SessionInfo] = None) -> None:
        self.settings = settings or get_settings()
        self.session = session

    # Journey context -------------------------------------------------

    def position_for(self, item: PreparedInteraction, journeys: Sequence[Journey]) -> JourneyPosition:
        """Journey context shared by the journey containing ``item``.

        Primary journeys are preferred; an event outside every journey is
        classified on its own as a one-step run.
        """

        containing = [journey for journey in journeys if item.index in journey.indices]
        containing.sort(key=lambda journey: journey.origin is not BundleKind.PRIMARY)
        if containing:
            journey = containing[0]
            step = journey.step_for(item.index)
            if step is not None:
                classification = Classification(
                    vertical=journey.vertical,
                    journey_type=journey.journey_type,
                    goal=journey.goal,
                    intent=journey.intent,
                )
                return JourneyPosition(classification, step, journey)
        events = [item.event]
        step = build_steps(events, decision_points(events), conversion_signals(events))[0]
        return JourneyPosition(classify(events, self.session), step)

    # Interaction examples --------------------------------------------

    def interaction_examples(self, item: PreparedInteraction, position: JourneyPosition) -> List[TrainingExample]:
        resolution = item.resolution
        quality = score_interaction(item.event, resolution, self.settings.min_action_reliability)
        raw_data = {
            "eventIndex": item.index,
            "dataCompletion": data_completion(item.event.raw),
            "enhancementFlags": enhancement_flags(item.event),
        }
        anchorable = resolution.is_anchorable(self.settings.min_action_reliability)
        examples: List[TrainingExample] = []
        if anchorable:
            examples.append(self._structured_example(item, position, quality, raw_data))
            examples.append(self._site_example(item, quality, raw_data))
            form_example = self._form_input_example(item, quality)
            if form_example is not None:
                examples.append(form_example)
        elif resolution.is_placeholder:
            logger.debug(f"No usable selector for interaction {item.index}", extra={"position": item.index})
        else:
            logger.debug(
                f"Interaction {item.index} below anchorable reliability ({resolution.reliability:.2f})",
                extra={"position": item.index, "reliability": resolution.reliability},
            )
        examples.extend(self._context_examples(item, quality))
        return examples

    def _structured_example(
        self,
        item: PreparedInteraction,
        position: JourneyPosition,
        quality: QualityAssessment,
        raw_data: Dict[str, Any],
    ) -> TrainingExample:
        event, resolution, context = item.event, item.resolution, item.context
        classification, step = position.classification, position.step
        box = _box(event)
        backups = list(resolution.backup_selectors[:MAX_PROMPT_BACKUPS])
        attributes = " ".join(f'{key}="{value}"' for key, value in event.element.attributes.items())
        tag = event.element.tag or "element"
        opening = f"<{tag} {attributes}>" if attributes else f"<{tag}>"

        prompt_lines = [
            "[USER GOAL]",
            classification.intent,
            f"Goal: {classification.goal}",
            "",
            "[JOURNEY]",
            f"Type: {classification.journey_type}",
            f"Step: {step.step_number}/{step.total_steps} ({step.progress})",
            f"Stage: {step.funnel_stage}",
            f"Role: {step.bundle_role}",
            f"Flow: {step.flow or 'unknown'}",
            "",
            "[PAGE CONTEXT]",
            f"Site: {domain_for_url(event.url) or 'unknown-site'}",
            f"URL: {event.url}",
            f"Page Type: {event.page_type or 'unknown'}",
        ]
        if event.page.title:
            prompt_lines.append(f"Title: {event.page.title}")
        prompt_lines += [
            "",
            "[DOM CONTEXT]",
            f"Element: {opening}{event.text}</{tag}>",
            f'Text Content: "{event.text}"',
        ]
        if context.element.get("domHierarchy"):
            prompt_lines.append(f"Hierarchy: {context.element['domHierarchy']}")
        if context.element.get("formContext"):
            prompt_lines.append(f"Form: {context.element['formContext']}")
        prompt_lines += [
            f"Bounding Box: {{x: {_number(box['x'])}, y: {_number(box['y'])}, "
            f"width: {_number(box['width'])}, height: {_number(box['height'])}}}",
            "",
            "[SPATIAL CONTEXT]",
            context.nearby["spatialSummary"] if context.nearby_count else "No nearby elements detected",
            f"Relationships: {context.nearby['relationships']}",
        ]
        if item.product_state:
            prompt_lines += ["", "[PRODUCT STATE]", item.product_state]
            if item.business_context:
                prompt_lines.append(item.business_context)
        prompt_lines += ["", "[SELECTORS]", f"1. {resolution.best_selector} ({resolution.reliability:.2f})"]
        for offset, selector in enumerate(backups, start=2):
            prompt_lines.append(f"{offset}. {selector} ({resolution.scores.get(selector, 0.0):.2f})")

        impact = [
            f"Step {step.step_number}/{step.total_steps} ({step.progress}) toward {classification.goal}",
            f"Expected Outcome: {expected_outcome(event)}",
        ]
        if step.decision_factors:
            impact.append(f"Decision Factors: {', '.join(step.decision_factors)}")
        fallbacks = [f"{offset}. {selector}" for offset, selector in enumerate(backups, start=1)] or ["none"]
        completion_lines = [
            "[ACTION]",
            f"{action_verb(event.type)}: {playwright_action(event, resolution.best_selector)}",
            "",
            "[SELECTOR]",
            resolution.best_selector,
            "",
            "[REASONING]",
            f"{selector_reasoning(resolution.best_selector, resolution.reliability)} - "
            f"{action_reasoning(event, classification.goal)}",
            "",
            "[CONFIDENCE]",
            f"{resolution.reliability:.2f}",
            "",
            "[JOURNEY IMPACT]",
            *impact,
            "",
            "[FALLBACKS]",
            *fallbacks,
            "",
            "[COORDINATES]",
            f"{{x: {_number(box['x'])}, y: {_number(box['y'])}}}",
        ]

        example_context: Dict[str, Any] = {
            "pageType": event.page_type,
            "userJourney": event.page.user_journey or step.flow,
            "reliability": resolution.reliability,
            "selectors": resolution.to_dict(),
            "spatialContext": context.nearby["spatialSummary"],
            "businessContext": context.business.get("conversion", ""),
            **context.to_dict(),
        }
        if item.business_context:
            example_context["productState"] = item.business_context
        journey_metadata = {
            "journeyType": classification.journey_type,
            "journeyGoal": classification.goal,
            "userIntent": classification.intent,
            **step.to_dict(),
        }
        return TrainingExample(
            prompt="\n".join(prompt_lines),
            completion="\n".join(completion_lines),
            context=example_context,
            quality=quality,
            journey_metadata=journey_metadata,
            raw_data=raw_data,
            kind="structured",
        )

    def _site_example(self, item: PreparedInteraction, quality: QualityAssessment, raw_data: Dict[str, Any]) -> TrainingExample:
        event, resolution, context = item.event, item.resolution, item.context
        host = (domain_for_url(event.url) or "unknown-site").upper()
        action = playwright_action(event, resolution.best_selector)
        design, behavior, nearby = context.design_system, context.behavior, context.nearby
        options = ",".join(
            f"{option['text']}[{option['selector'][:15]}]" for option in nearby["allElementSelectors"][:5]
        )
        prompt = (
            f'{host}: "{event.text}" {event.type.lower()} | '
            f"{_value(context.visual.get('layout'))} {design['componentLibrary']} | "
            f"{_value(context.element.get('formContext'), 'no-form')} | {nearby['spatialSummary']} | "
            f"{behavior['devicePreference']} {behavior['interactionPatterns']} user | "
            f"{_value(context.page.get('performance'))} performance"
        )
        completion = (
            f"{action} // {_value(context.business.get('ecommerce'), 'no-product')} | "
            f"Design: {design['brandColors']} {design['designPatterns']} | "
            f"Behavior: {behavior['devicePreference']} {behavior['interactionPatterns']} | "
            f"Nearby: {nearby['interactionTargets']} | Rel: {resolution.reliability:.2f} | "
            f"{_value(context.technical.get('timing'), 'no-timing')} | "
            f"Backups: {len(resolution.backup_selectors)} | NearbyOptions: {options or 'none'}"
        )
        return TrainingExample(
            prompt=prompt,
            completion=completion,
            context={
                "pageType": event.page_type,
                "userJourney": event.page.user_journey,
                "reliability": resolution.reliability,
                "businessContext": context.business.get("conversion", ""),
                **context.to_dict(),
            },
            quality=quality,
            raw_data=raw_data,
            kind="site-pattern",
        )

    def _form_input_example(self, item: PreparedInteraction, quality: QualityAssessment) -> Optional[TrainingExample]:
        event, resolution, context = item.event, item.resolution, item.context
        form_context = context.element.get("formContext", "")
        if event.type != "INPUT" and not form_context:
            return None
        attributes = event.element.attributes
        box = _box(event)
        required = " required" if attributes.get("required") is not None else ""
        field_tag = event.element.tag or "input"
        nearby_fields = [
            f"- {nearby.text} ({nearby.direction} {_number(nearby.distance)}px)"
            for nearby in event.element.nearby
            if nearby.element_type == "input" or "field" in nearby.text
        ] or ["- No nearby form fields"]
        backups = [
            f"{offset}. {selector}"
            for offset, selector in enumerate(resolution.backup_selectors[:MAX_PROMPT_BACKUPS], start=2)
        ]
        prompt = "\n".join(
            [
                f'FORM INPUT: Enter text in "{event.text}" field on {event.url}',
                "",
                "FORM CONTEXT:",
                f'- Field: <{field_tag} type="{attributes.get("type", "text")}" name="{attributes.get("name", "")}" '
                f'placeholder="{attributes.get("placeholder", "")}"{required}>',
                f"- Form: {form_context or 'unknown form'}",
                f"- Validation: {'has pattern validation' if attributes.get('pattern') else 'basic validation'}",
                f"- Bounding Box: {{x: {_number(box['x'])}, y: {_number(box['y'])}, "
                f"width: {_number(box['width'])}, height: {_number(box['height'])}}}",
                "",
                "NEARBY FIELDS:",
                *nearby_fields,
                "",
                "SELECTOR OPTIONS:",
                f"1. {resolution.best_selector} (reliability: {resolution.reliability:.2f})",
                *backups,
                "",
                f"FORM STATE: {context.state.get('before') or 'clean form'}",
            ]
        )
        completion = json.dumps(
            {
                "action": "fill",
                "selector": resolution.best_selector,
                "reasoning": f"Using {selector_reasoning(resolution.best_selector, resolution.reliability)} for form field interaction",
                "confidence": round(resolution.reliability, 2),
                "validation": f"Expect {form_context or 'form validation'} and field state update",
                "inputContext": {
                    "fieldType": attributes.get("type", "text"),
                    "required": attributes.get("required") is not None,
                    "hasValidation": bool(attributes.get("pattern")),
                },
            },
            indent=2,
        )
        return TrainingExample(
            prompt=prompt,
            completion=completion,
            context={
                "pageType": event.page_type,
                "userJourney": event.page.user_journey,
                "reliability": resolution.reliability,
                "element": context.element,
                "state": context.state,
            },
            quality=quality,
            kind="form-input",
        )

    def _context_examples(self, item: PreparedInteraction, quality: QualityAssessment) -> List[TrainingExample]:
        """Secondary examples, one per kind of captured context."""

        event, resolution, context = item.event, item.resolution, item.context
        action = playwright_action(event, resolution.best_selector)
        label = f'"{event.text}" {event.type.lower()}'
        host = domain_for_url(event.url) or "unknown-site"
        visual, element, page = context.visual, context.element, context.page
        state, business, technical = context.state, context.business, context.technical
        examples: List[TrainingExample] = []

        def _add(kind: str, prompt: str, completion: str, example_context: Dict[str, Any]) -> None:
            examples.append(
                TrainingExample(prompt=prompt, completion=completion, context=example_context, quality=quality, kind=kind)
            )

        if visual.get("positioning") and element.get("ariaContext"):
            _add(
                "visual-a11y",
                f"VISUAL-A11Y: {label} {visual['positioning']} | {_value(visual.get('colors'), 'default-colors')} | "
                f"ARIA: {element['ariaContext']} | {_value(page.get('accessibility'))} on {host}",
                f"{action} // Visual: {visual['deviceType']} | A11y: WCAG-{_value(page.get('accessibility'))} | "
                f"Colors: {_value(visual.get('colors'), 'default-colors')}",
                {
                    "spatialContext": f"{visual['positioning']} with {element['ariaContext']}",
                    "visual": visual,
                    "element": element,
                    "page": page,
                },
            )
        if business.get("ecommerce") and business.get("conversion"):
            _add(
                "ecommerce",
                f"E-COMMERCE: {business['ecommerce']} | Funnel: {business['conversion']} | "
                f"User: {_value(business.get('user'))} | {label}",
                f"{action} // Product: {business['ecommerce']} | Stage: {business['conversion']} | "
                f"Timing: {_value(technical.get('timing'), 'no-timing')}",
                {
                    "businessContext": f"{business['ecommerce']} at {business['conversion']}",
                    "business": business,
                    "technical": technical,
                },
            )
        if page.get("performance") and technical.get("network"):
            _add(
                "performance",
                f"PERFORMANCE: {page['performance']} | Network: {technical['network']} | "
                f"SEO: {_value(page.get('seo'))} | {label}",
                f"{action} // Load: {page['performance']} | Requests: {technical['network']} | {_value(page.get('seo'))}",
                {"page": page, "technical": technical},
            )
        if state.get("before") is not None and element.get("formContext"):
            _add(
                "form-state",
                f"FORM-STATE: {element['formContext']} | Before: {state['before']} | "
                f"Changes: {_value(state.get('changes'), 'none')} | {label}",
                f"{action} // Form: {element['formContext']} | State: {state['before']} → {_value(state.get('after'), 'unchanged')}",
                {"element": element, "state": state},
            )
        if element.get("domHierarchy") and event.element.siblings:
            siblings = ", ".join(str(sibling.get("text") or "") for sibling in event.element.siblings[:3])
            _add(
                "dom-complete",
                f"DOM-COMPLETE: {element['domHierarchy']} | Siblings: {siblings} | "
                f"Attrs: {_value(element.get('attributes'), 'none')} | {label}",
                f"{action} // Path: {element['domHierarchy']} | Near: {siblings} | "
                f"Computed: {_value(element.get('computedStyles'), 'none')}",
                {"element": element, "spatialContext": f"in {element['domHierarchy']} with siblings: {siblings}"},
            )
        if page.get("analytics") and business.get("user"):
            _add(
                "analytics",
                f"ANALYTICS: {page['analytics']} | User: {business['user']} | "
                f"Session: {_value(technical.get('timing'), 'no-timing')} | {label}",
                f"{action} // Track: {page['analytics']} | User: {business['user']} | "
                f"Time: {_value(technical.get('timing'), 'no-timing')}",
                {"page": page, "business": business, "technical": technical},
            )
        if context.is_enhanced:
            design, behavior, nearby = context.design_system, context.behavior, context.nearby
            _add(
                "enhanced-complete",
                f"ENHANCED-COMPLETE: {label} | Design: {design['componentLibrary']} {design['brandColors']} | "
                f"Nearby: {nearby['spatialSummary']} ({nearby['interactionTargets']}) | "
                f"User: {behavior['patterns']} | on {host}",
                f"{action} // UI: {design['componentLibrary']} {design['designPatterns']} | "
                f"Spatial: {nearby['relationships']} | Behavior: {behavior['navigationStyle']} {behavior['interactionPatterns']}",
                {
                    "visual": {**visual, "designSystem": design},
                    "element": element,
                    "nearby": context.to_dict()["nearby"],
                    "business": {**business, "behaviorPatterns": behavior["patterns"]},
                },
            )
        return examples

    # Journey examples ------------------------------------------------

    def journey_examples(
        self,
        journey: Journey,
        resolutions: Mapping[int, SelectorResolution],
        step_factors: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> List[TrainingExample]:
        """The complete flow, funnel-stage and decision-validation examples for ``journey``."""

        if len(journey) < 2:
            return []
        quality = score_journey(journey, step_factors)
        metadata = {
            **journey.to_metadata(),
            "journeyQuality": round(quality.score, 4),
            "steps": [step.to_dict() for step in journey.steps],
        }
        actions = [
            playwright_action(event, resolutions[index].best_selector) for index, event in zip(journey.indices, journey.events)
        ]
        examples = [self._complete_journey_example(journey, actions, quality, metadata)]
        stages_example = self._funnel_stages_example(journey, actions, quality, metadata)
        if stages_example is not None:
            examples.append(stages_example)
        decision_example = self._decision_validation_example(journey, actions, quality, metadata)
        if decision_example is not None:
            examples.append(decision_example)
        return examples

    def _complete_journey_example(
        self,
        journey: Journey,
        actions: Sequence[str],
        quality: QualityAssessment,
        metadata: Dict[str, Any],
    ) -> TrainingExample:
        total = len(journey)
        steps = [
            f"{step_type(event, position, total)}: {event.text or 'element'} ({event.type}) {step_context(event)}"
            for position, event in enumerate(journey.events)
        ]
        lines = [
            f"{action}; {step_comment(event, position, total, journey.intent)}"
            for position, (event, action) in enumerate(zip(journey.events, actions))
        ]
        last_stage = journey.events[-1].funnel_stage or "unknown"
        return TrainingExample(
            prompt=(
                f'JOURNEY ({journey.journey_type}): User Intent: "{journey.intent}" | '
                f"Goal: {journey.goal} | Flow: {' → '.join(steps)}"
            ),
            completion=f"// Complete {journey.journey_type} journey: {journey.intent}\n" + "\n".join(lines),
            context={
                "pageType": "journey-sequence",
                "userJourney": journey.journey_type,
                "journeyGoal": journey.goal,
                "userIntent": journey.intent,
                "journeyLength": total,
                "businessContext": last_stage,
            },
            quality=quality,
            journey_metadata=metadata,
            kind="journey-flow",
        )

    def _funnel_stages_example(
        self,
        journey: Journey,
        actions: Sequence[str],
        quality: QualityAssessment,
        metadata: Dict[str, Any],
    ) -> Optional[TrainingExample]:
        stages = journey.stages
        if len(stages) < 2:
            return None
        blocks = [
            f"// {event.funnel_stage.upper()} STAGE\n{action}"
            for event, action in zip(journey.events, actions)
            if event.funnel_stage
        ]
        return TrainingExample(
            prompt=(
                f"FUNNEL STAGES ({' → '.join(stages)}): User progressing through "
                f'{journey.journey_type} with intent: "{journey.intent}"'
            ),
            completion="\n\n".join(blocks),
            context={
                "pageType": "funnel-progression",
                "userJourney": journey.journey_type,
                "funnelStages": stages,
                "userIntent": journey.intent,
            },
            quality=quality,
            journey_metadata=metadata,
            kind="funnel-stages",
        )

    def _decision_validation_example(
        self,
        journey: Journey,
        actions: Sequence[str],
        quality: QualityAssessment,
        metadata: Dict[str, Any],
    ) -> Optional[TrainingExample]:
        steps = [(event, action) for event, action in zip(journey.events, actions) if is_validation_step(event)]
        if not steps:
            return None
        factors = decision_factors(journey.events)
        listed = ", ".join(factors)
        lines = [f"{action}; // {validation_reason(event)}" for event, action in steps]
        return TrainingExample(
            prompt=f'DECISION VALIDATION: User "{journey.intent}" needs to validate: {listed} before {journey.goal}',
            completion=f"// User validation process: {listed}\n" + "\n".join(lines),
            context={
                "pageType": "decision-validation",
                "userJourney": "validation-process",
                "decisionFactors": factors,
                "userIntent": journey.intent,
            },
            quality=quality,
            journey_metadata=metadata,
            kind="decision-validation",
        )

    # Session ---------------------------------------------------------

    def synthesize(self, items: Sequence[PreparedInteraction], journeys: Sequence[Journey]) -> List[TrainingExample]:
        """All candidate examples: interaction examples in event order, then journey examples."""

        examples: List[TrainingExample] = []
        for item in items:
            examples.extend(self.interaction_examples(item, self.position_for(item, journeys)))

        resolutions = {item.index: item.resolution for item in items}
        factors = {
            item.index: interaction_factors(item.event, item.resolution, self.settings.min_action_reliability)
            for item in items
        }
        for journey in journeys:
            examples.extend(
                self.journey_examples(journey, resolutions, [factors[index] for index in journey.indices])
            )
        logger.debug(
            f"Synthesized {len(examples)} candidate examples",
            extra={"interactions": len(items), "journeys": len(journeys), "examples": len(examples)},
        )
        return examples


__all__ = [
    "ExampleSynthesizer",
    "JourneyPosition",
    "PreparedInteraction",
    "action_reasoning",
    "data_completion",
    "enhancement_flags",
    "expected_outcome",
    "step_comment",
    "step_context",
    "step_type",
    "validation_reason",
]
