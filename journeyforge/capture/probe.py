"""Live-page match counting used to grade selector candidates."""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Protocol, Tuple

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

logger = logging.getLogger(__name__)


class MatchProbe(Protocol):
    """Anything that can report how many elements a selector matches."""

    def count(self, selector: str) -> int:
        ...


class PlaywrightProbe:
    """Counts matches on a live Playwright page.

    Counts are cached per page URL, so a probe can follow the page across
    navigations. Invalid selectors and detached pages count as zero matches.
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self._cache: Dict[Tuple[str, str], int] = {}

    def count(self, selector: str) -> int:
        key = (self._page.url, selector)
        if key in self._cache:
            return self._cache[key]
        try:
            matches = self._page.locator(selector).count()
        except PlaywrightError as exc:
            logger.debug(f"Selector probe failed for {selector!r}: {exc}")
            matches = 0
        self._cache[key] = matches
        return matches


class RecordedProbe:
    """Replays match counts captured alongside a session."""

    def __init__(self, counts: Mapping[str, int]) -> None:
        self._counts = {str(key): max(0, int(value)) for key, value in counts.items()}

    def count(self, selector: str) -> int:
        return self._counts.get(selector, 0)


__all__ = ["MatchProbe", "PlaywrightProbe", "RecordedProbe"]
