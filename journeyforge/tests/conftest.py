from typing import Any, Dict, Iterable, List, Mapping, Optional

import pytest

from journeyforge.capture.models import InteractionEvent
from journeyforge.workflow.config import Settings

DEFAULT_BOX = {"x": 100, "y": 200, "width": 120, "height": 40}
PRODUCT_URL = "https://shop.example.com/product/shirt-123"


def make_record(
    timestamp: float = 0,
    *,
    type: str = "CLICK",
    text: str = "",
    tag: str = "button",
    attributes: Optional[Mapping[str, str]] = None,
    url: str = "https://shop.example.com/",
    page_type: str = "",
    title: str = "",
    funnel_stage: str = "",
    conversion_goal: str = "",
    ecommerce: Optional[Mapping[str, Any]] = None,
    user: Optional[Mapping[str, Any]] = None,
    selectors: Optional[Mapping[str, Any]] = None,
    bounding_box: Optional[Mapping[str, float]] = DEFAULT_BOX,
    nearby: Optional[Iterable[Mapping[str, Any]]] = None,
    form_data: Optional[Mapping[str, Any]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a capture record shaped like the browser agent's output."""

    record: Dict[str, Any] = {
        "timestamp": timestamp,
        "type": type,
        "element": {"tag": tag, "text": text, "attributes": dict(attributes or {})},
        "context": {"pageUrl": url, "pageType": page_type, "pageTitle": title},
        "visual": {},
    }
    if bounding_box is not None:
        record["visual"]["boundingBox"] = dict(bounding_box)
    if nearby is not None:
        record["element"]["nearbyElements"] = [dict(item) for item in nearby]
    if selectors is not None:
        record["selectors"] = dict(selectors)
    business: Dict[str, Any] = {}
    if funnel_stage or conversion_goal:
        business["conversion"] = {"funnelStage": funnel_stage, "conversionGoal": conversion_goal}
    if ecommerce is not None:
        business["ecommerce"] = dict(ecommerce)
    if user is not None:
        business["user"] = dict(user)
    if business:
        record["business"] = business
    if form_data is not None:
        record["state"] = {"before": {"formData": dict(form_data)}}
    record.update(extra)
    return record


def make_event(timestamp: float = 0, **kwargs: Any) -> InteractionEvent:
    return InteractionEvent.from_dict(make_record(timestamp, **kwargs))


def make_events(records: Iterable[Mapping[str, Any]]) -> List[InteractionEvent]:
    return [InteractionEvent.from_dict(record) for record in records]


def scenario_a_records() -> List[Dict[str, Any]]:
    """Size, color, then add-to-cart on one apparel product."""

    return [
        make_record(
            1000,
            text="M",
            attributes={"id": "size-M", "name": "size"},
            url=PRODUCT_URL,
            page_type="product",
            title="Oxford Shirt | Example Shop",
            funnel_stage="consideration",
        ),
        make_record(
            2000,
            text="Blue",
            attributes={"id": "color-blue", "name": "color", "aria-label": "Blue"},
            url=PRODUCT_URL,
            page_type="product",
            title="Oxford Shirt | Example Shop",
            funnel_stage="evaluation",
        ),
        make_record(
            3000,
            text="Add to Cart",
            attributes={"id": "add-to-cart"},
            url=PRODUCT_URL,
            page_type="product",
            title="Oxford Shirt | Example Shop",
            funnel_stage="conversion",
            conversion_goal="add-to-cart",
        ),
    ]


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str) -> None:
        self._page = page
        self._selector = selector

    def count(self) -> int:
        self._page.calls.append(self._selector)
        if self._selector in self._page.broken:
            raise self._page.error_factory(f"Invalid selector: {self._selector}")
        return self._page.counts.get(self._selector, self._page.default)


class FakePage:
    """Just enough of a Playwright page for match counting."""

    def __init__(
        self,
        counts: Optional[Mapping[str, int]] = None,
        *,
        default: int = 0,
        broken: Iterable[str] = (),
        error_factory: Any = None,
        url: str = "https://shop.example.com/",
    ) -> None:
        self.counts = dict(counts or {})
        self.url = url
        self.default = default
        self.broken = set(broken)
        self.error_factory = error_factory
        self.calls: List[str] = []

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)


class UniformProbe:
    """Reports the same match count for every selector."""

    def __init__(self, count: int) -> None:
        self._count = count

    def count(self, selector: str) -> int:
        return self._count


@pytest.fixture
def settings() -> Settings:
    return Settings(
        idle_gap_ms=300000,
        regression_threshold=2,
        soft_length_cap=5,
        hard_length_cap=8,
        page_flow_breaks=False,
        derive_bundles=True,
        quality_profile="journey-priority",
        journey_quality_threshold=0.4,
        individual_quality_threshold=0.3,
        individual_cap_floor=5,
        journey_boost=0.1,
        min_action_reliability=0.3,
    )
