"""Stateless extractors that summarise sub-contexts of an interaction record.

Every extractor tolerates missing data: absent sections yield documented
defaults rather than exceptions.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from ..capture.models import InteractionEvent
from ..state.site_patterns import domain_for_url

NEARBY_DEFAULTS: Dict[str, Any] = {
    "spatialSummary": "no-nearby",
    "relationships": "isolated",
    "interactionTargets": "none",
    "elementTypes": "",
    "accessibility": "no-aria",
    "allElementSelectors": [],
}
DESIGN_SYSTEM_DEFAULTS: Dict[str, str] = {
    "summary": "no-design-system",
    "componentLibrary": "unknown",
    "brandColors": "default",
    "designPatterns": "basic",
    "framework": "vanilla",
}
BEHAVIOR_DEFAULTS: Dict[str, str] = {
    "patterns": "standard-user",
    "devicePreference": "desktop",
    "interactionPatterns": "standard",
    "navigationStyle": "standard",
}
_INTERACTIVE_TYPES = {"button", "link", "input"}


def _num(value: Any, default: Any = 0) -> str:
    """Format numbers the way they appear in captured payloads (``12`` not ``12.0``)."""

    if value is None or value == "":
        value = default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _len(value: Any) -> int:
    if isinstance(value, (list, tuple, dict, str)):
        return len(value)
    return 0


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def extract_visual_context(event: InteractionEvent) -> Dict[str, str]:
    visual = event.visual
    context: Dict[str, str] = {}
    box = event.bounding_box
    if box is not None:
        context["positioning"] = f"({_num(box.x)},{_num(box.y)}) {_num(box.width)}×{_num(box.height)}"
    colors = _mapping(visual.get("colors"))
    if colors:
        context["colors"] = (
            f"bg:{colors.get('background') or 'auto'} txt:{colors.get('text') or 'auto'} "
            f"border:{colors.get('border') or 'auto'}"
        )
    typography = _mapping(visual.get("typography"))
    if typography:
        context["typography"] = (
            f"{typography.get('fontSize') or '16px'} {typography.get('fontFamily') or 'default'} "
            f"{typography.get('fontWeight') or 'normal'}"
        )
    layout = _mapping(visual.get("layout"))
    if layout:
        context["layout"] = f"{layout.get('display') or 'block'} {layout.get('position') or 'static'}"
    animations = _mapping(visual.get("animations"))
    if animations:
        if animations.get("hasAnimations"):
            context["animations"] = f"{animations.get('animationType') or 'transition'} {_num(animations.get('duration'))}ms"
        else:
            context["animations"] = "static"
    context["deviceType"] = str(visual.get("deviceType") or "desktop")
    return context


def extract_element_context(event: InteractionEvent) -> Dict[str, str]:
    element = event.element
    context: Dict[str, str] = {"tag": element.tag or "unknown"}
    if element.attributes:
        context["attributes"] = " ".join(f'{key}="{value}"' for key, value in list(element.attributes.items())[:3])
    if element.computed_styles:
        context["computedStyles"] = "; ".join(f"{key}:{value}" for key, value in list(element.computed_styles.items())[:3])
    if element.aria_attributes:
        context["ariaContext"] = " ".join(f'{key}="{value}"' for key, value in element.aria_attributes.items())
    if element.form_context:
        form = element.form_context
        required = " *required" if form.get("required") else ""
        context["formContext"] = (
            f"{form.get('formName') or 'form'}.{form.get('fieldName') or 'field'} "
            f"({form.get('fieldType') or 'text'}){required}"
        )
    if element.ancestors:
        parts: List[str] = []
        for ancestor in element.ancestors[-3:]:
            classes = ancestor.get("classes")
            tag = str(ancestor.get("tag") or ancestor.get("tagName") or "div").lower()
            if isinstance(classes, (list, tuple)) and classes:
                parts.append(f"{tag}.{classes[0]}")
            else:
                parts.append(tag)
        context["domHierarchy"] = " > ".join(parts)
    return context


def extract_page_context(event: InteractionEvent) -> Dict[str, str]:
    page = event.page
    context: Dict[str, str] = {}
    if page.performance is not None:
        context["performance"] = (
            f"load:{_num(page.performance.get('loadTime'), 'unknown')}ms "
            f"fcp:{_num(page.performance.get('firstContentfulPaint'), 'unknown')}ms"
        )
    if page.seo is not None:
        canonical = "yes" if page.seo.get("canonicalUrl") else "no"
        context["seo"] = f"h1:{_len(page.seo.get('h1Tags'))} canonical:{canonical}"
    if page.accessibility is not None:
        context["accessibility"] = (
            f"{page.accessibility.get('wcagLevel') or 'unknown'} "
            f"landmarks:{_len(page.accessibility.get('ariaLandmarks'))}"
        )
    if page.meta is not None:
        description = str(page.meta.get("description") or "")[:50] or "none"
        context["meta"] = f'desc:"{description}" keywords:{_len(page.meta.get("keywords"))}'
    if page.analytics is not None:
        custom = _mapping(page.analytics.get("customEvents"))
        context["analytics"] = f"gtm:{_len(page.analytics.get('gtmEvents'))} custom:{len(custom)}"
    return context


def _snapshot_parts(snapshot: Mapping[str, Any], *, include_form: bool) -> List[str]:
    parts: List[str] = []
    if snapshot.get("focused"):
        parts.append(f"focus:{snapshot['focused']}")
    scroll = _mapping(snapshot.get("scrollPosition"))
    if scroll:
        parts.append(f"scroll:({_num(scroll.get('x'))},{_num(scroll.get('y'))})")
    if snapshot.get("activeModal"):
        parts.append(f"modal:{snapshot['activeModal']}")
    if include_form and isinstance(snapshot.get("formData"), Mapping):
        parts.append(f"form:{len(snapshot['formData'])}fields")
    return parts


def extract_state_context(event: InteractionEvent) -> Dict[str, str]:
    state = event.state
    context: Dict[str, str] = {}
    if state.before is not None:
        context["before"] = " ".join(_snapshot_parts(state.before, include_form=True))
    if state.after is not None:
        context["after"] = " ".join(_snapshot_parts(state.after, include_form=False))
    if state.changes is not None:
        parts: List[str] = []
        if state.changes.get("urlChanged"):
            parts.append("url-change")
        if _len(state.changes.get("domMutations")):
            parts.append(f"dom:{_len(state.changes['domMutations'])}mutations")
        if _len(state.changes.get("networkRequests")):
            parts.append(f"network:{_len(state.changes['networkRequests'])}requests")
        context["changes"] = " ".join(parts)
    return context


def extract_business_context(event: InteractionEvent) -> Dict[str, str]:
    business = event.business
    context: Dict[str, str] = {}
    if business is None:
        hostname = domain_for_url(event.url)
        if hostname and ("nordstrom" in hostname or "shop" in hostname):
            context["ecommerce"] = "e-commerce site"
            context["conversion"] = "retail funnel"
        return context
    if business.ecommerce is not None:
        ecommerce = business.ecommerce
        context["ecommerce"] = (
            f"{ecommerce.get('productName') or 'product'} ${_num(ecommerce.get('productPrice'))} "
            f"{ecommerce.get('productCategory') or 'category'}"
        )
    if business.conversion is not None:
        conversion = business.conversion
        context["conversion"] = (
            f"{conversion.get('funnelStage') or 'unknown'} step-{_num(conversion.get('funnelPosition'))} "
            f"{conversion.get('abTestVariant') or 'control'}"
        )
    if business.user is not None:
        user = business.user
        context["user"] = (
            f"segment:{user.get('customerSegment') or 'unknown'} session:{_num(user.get('timeOnSite'))}s "
            f"interactions:{_num(user.get('previousInteractions'))}"
        )
    return context


def _network_requests(event: InteractionEvent) -> List[Mapping[str, Any]]:
    requests = (event.state.changes or {}).get("networkRequests")
    if not isinstance(requests, (list, tuple)):
        return []
    return [request for request in requests if isinstance(request, Mapping)]


def has_error_states(event: InteractionEvent) -> bool:
    return bool((event.state.before or {}).get("errorStates") or (event.state.after or {}).get("errorStates"))


def extract_technical_context(event: InteractionEvent) -> Dict[str, str]:
    context: Dict[str, str] = {}
    if event.timing is not None:
        context["timing"] = f"{_num(event.timing.get('duration'))}ms delay:{_num(event.timing.get('delay'))}ms"
    if not event.selectors.is_empty or event.selectors.reliability:
        context["selectors"] = (
            f"{len(event.selectors.recorded())}selectors reliability:{len(event.selectors.reliability)}scores"
        )
    requests = (event.state.changes or {}).get("networkRequests")
    if isinstance(requests, (list, tuple)):
        usable = _network_requests(event)
        durations = [float(request.get("duration") or 0) for request in usable]
        average = sum(durations) / len(requests) if requests else 0.0
        context["network"] = f"{len(requests)}requests {average:.0f}ms avg"
    if has_error_states(event):
        errors: Dict[str, Any] = {}
        errors.update(_mapping((event.state.before or {}).get("errorStates")))
        errors.update(_mapping((event.state.after or {}).get("errorStates")))
        context["errors"] = f"{len(errors)}errors" if errors else "no-errors"
    return context


def extract_nearby_elements(event: InteractionEvent, limit: int = 15) -> Dict[str, Any]:
    """Summarise up to ``limit`` nearby elements, including their selectors."""

    nearby = event.element.nearby[:limit]
    if not nearby:
        return dict(NEARBY_DEFAULTS, allElementSelectors=[])

    spatial: List[str] = []
    for item in nearby:
        text = item.text or item.tag or "element"
        interactive = "+" if item.interactive else "-"
        visible = "+" if item.visible else "-"
        spatial.append(
            f"{item.tag or 'unknown'}:{text[:12]} {interactive}{visible} "
            f"({item.direction}, {_num(item.distance)}px) [{item.selector[:20]}]"
        )

    relationships = Counter(item.direction for item in nearby)
    targets = [
        f'{item.element_type}:"{(item.text or "btn")[:10]}"[{item.selector[:15]}]'
        for item in nearby
        if item.interactive or item.element_type in _INTERACTIVE_TYPES
    ][:8]
    types = Counter(item.element_type or "unknown" for item in nearby)
    accessible = [item for item in nearby if item.aria_role or item.attributes.get("aria-label")]
    if accessible:
        roles = ",".join(item.aria_role for item in accessible if item.aria_role)
        accessibility = f"{len(accessible)}accessible roles:{roles}"
    else:
        accessibility = "no-aria"

    return {
        "spatialSummary": ", ".join(spatial),
        "relationships": " ".join(f"{direction}:{count}" for direction, count in relationships.items()),
        "interactionTargets": " ".join(targets) or "none",
        "elementTypes": " ".join(f"{kind}:{count}" for kind, count in types.items()),
        "accessibility": accessibility,
        "allElementSelectors": [
            {
                "text": item.text or item.tag or "element",
                "selector": item.selector,
                "tagName": item.tag or "unknown",
                "distance": item.distance,
                "direction": item.direction,
                "interactive": item.interactive,
            }
            for item in nearby
        ],
    }


def extract_design_system_context(event: InteractionEvent) -> Dict[str, str]:
    design = event.visual.get("designSystem")
    if not isinstance(design, Mapping):
        return dict(DESIGN_SYSTEM_DEFAULTS)
    library = str(design.get("componentLibrary") or design.get("uiFramework") or "custom")
    brand = _mapping(design.get("brandColors"))
    colors = [f"{key}:{brand[key]}" for key in ("primary", "secondary", "accent") if brand.get(key)]
    patterns = design.get("designPatterns")
    if isinstance(patterns, (list, tuple)) and patterns:
        design_patterns = " ".join(str(pattern) for pattern in patterns[:3])
    else:
        design_patterns = "basic-patterns"
    frameworks = [str(design[key]) for key in ("uiFramework", "cssFramework") if design.get(key)]
    framework = "+".join(frameworks) or "vanilla"
    return {
        "summary": f"{library} {framework} {design_patterns}",
        "componentLibrary": library,
        "brandColors": " ".join(colors) or "default-colors",
        "designPatterns": design_patterns,
        "framework": framework,
    }


def extract_behavior_patterns_context(event: InteractionEvent) -> Dict[str, str]:
    patterns_data = _mapping(event.user.get("behaviorPatterns"))
    if not patterns_data:
        return dict(BEHAVIOR_DEFAULTS)
    patterns: List[str] = []
    devices = patterns_data.get("devicePreferences") or []
    device = str(devices[0]) if isinstance(devices, (list, tuple)) and devices else "desktop"
    if isinstance(devices, (list, tuple)) and devices:
        patterns.append(f"{device}-user")
    interactions = patterns_data.get("commonInteractionPatterns") or []
    if isinstance(interactions, (list, tuple)) and interactions:
        interaction_patterns = "+".join(str(item) for item in interactions[:2])
        patterns.append(interaction_patterns)
    else:
        interaction_patterns = "click-direct"
    navigation = patterns_data.get("navigationPreferences") or []
    if isinstance(navigation, (list, tuple)) and navigation:
        navigation_style = str(navigation[0])
        patterns.append(navigation_style)
    else:
        navigation_style = "browse-categories"
    return {
        "patterns": " ".join(patterns) or "standard-behavior",
        "devicePreference": device,
        "interactionPatterns": interaction_patterns,
        "navigationStyle": navigation_style,
    }


@dataclass(frozen=True, slots=True)
class InteractionContext:
    """All extracted sub-contexts for one interaction."""

    visual: Dict[str, str] = field(default_factory=dict)
    element: Dict[str, str] = field(default_factory=dict)
    page: Dict[str, str] = field(default_factory=dict)
    state: Dict[str, str] = field(default_factory=dict)
    business: Dict[str, str] = field(default_factory=dict)
    technical: Dict[str, str] = field(default_factory=dict)
    nearby: Dict[str, Any] = field(default_factory=lambda: dict(NEARBY_DEFAULTS))
    design_system: Dict[str, str] = field(default_factory=lambda: dict(DESIGN_SYSTEM_DEFAULTS))
    behavior: Dict[str, str] = field(default_factory=lambda: dict(BEHAVIOR_DEFAULTS))
    has_design_system: bool = False
    has_behavior_patterns: bool = False
    nearby_count: int = 0

    @property
    def is_enhanced(self) -> bool:
        """True when nearby-element, design-system and behaviour data were all captured."""

        return self.nearby_count > 0 and self.has_design_system and self.has_behavior_patterns

    def to_dict(self) -> Dict[str, Any]:
        return {
            "visual": self.visual,
            "element": self.element,
            "page": self.page,
            "state": self.state,
            "business": self.business,
            "technical": self.technical,
            "nearby": {key: value for key, value in self.nearby.items() if key != "allElementSelectors"},
            "designSystem": self.design_system,
            "behavior": self.behavior,
        }


def extract_all(event: InteractionEvent, *, nearby_limit: int = 15) -> InteractionContext:
    """Run every extractor against ``event``."""

    return InteractionContext(
        visual=extract_visual_context(event),
        element=extract_element_context(event),
        page=extract_page_context(event),
        state=extract_state_context(event),
        business=extract_business_context(event),
        technical=extract_technical_context(event),
        nearby=extract_nearby_elements(event, nearby_limit),
        design_system=extract_design_system_context(event),
        behavior=extract_behavior_patterns_context(event),
        has_design_system=isinstance(event.visual.get("designSystem"), Mapping),
        has_behavior_patterns=bool(_mapping(event.user.get("behaviorPatterns"))),
        nearby_count=min(len(event.element.nearby), nearby_limit),
    )


__all__ = [
    "BEHAVIOR_DEFAULTS",
    "DESIGN_SYSTEM_DEFAULTS",
    "InteractionContext",
    "NEARBY_DEFAULTS",
    "extract_all",
    "extract_behavior_patterns_context",
    "extract_business_context",
    "extract_design_system_context",
    "extract_element_context",
    "extract_nearby_elements",
    "extract_page_context",
    "extract_state_context",
    "extract_technical_context",
    "has_error_states",
]
