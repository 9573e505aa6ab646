"""Playwright-backed access to a live Google Maps results feed."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup
from playwright.sync_api import Page, sync_playwright

from leadmap.core.config import Settings, get_settings
from leadmap.core.page import CARD_SELECTORS, MapsPage

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30000

SCROLL_CONTAINER_SELECTORS = (
    '[role="feed"]',
    ".m6QErb.DxyBCb.XiKgde",
    ".m6QErb.DxyBCb",
    ".m6QErb.XiKgde",
    ".m6QErb",
    '[aria-label*="Results"]',
    ".section-layout.section-scrollbox",
)

# Returns "container" when a scrollable container moved, "card" when the last
# card was scrolled into view instead, and "" when nothing could be scrolled.
_SCROLL_SCRIPT = """
([containerSelectors, cardSelectors]) => {
    for (const selector of containerSelectors) {
        const container = document.querySelector(selector);
        if (container && container.scrollHeight > container.clientHeight) {
            const previous = container.scrollTop;
            container.scrollTop = container.scrollHeight;
            container.scrollBy({ top: 500, behavior: 'smooth' });
            if (container.scrollTop !== previous) {
                return 'container';
            }
        }
    }
    for (const selector of cardSelectors) {
        const cards = document.querySelectorAll(selector);
        if (cards.length > 0) {
            cards[cards.length - 1].scrollIntoView({ behavior: 'smooth', block: 'end' });
            return 'card';
        }
    }
    return '';
}
"""


def build_search_url(keyword: str, location: str, maps_base_url: str) -> str:
    if not keyword or not keyword.strip():
        raise ValueError("A search keyword is required")
    query = f"{keyword.strip()} in {location.strip()}" if location and location.strip() else keyword.strip()
    return f"{maps_base_url.rstrip('/')}/maps/search/{quote(query)}"


class BrowserMapsPage(MapsPage):
    """MapsPage over a Playwright page; every snapshot re-reads the live DOM."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def current_url(self) -> str:  # type: ignore[override]
        return self._page.url

    def snapshot(self) -> BeautifulSoup:
        return BeautifulSoup(self._page.content(), "html.parser")

    def scroll_for_more(self) -> None:
        outcome = self._page.evaluate(
            _SCROLL_SCRIPT, [list(SCROLL_CONTAINER_SELECTORS), list(CARD_SELECTORS)]
        )
        if outcome == "container":
            logger.debug("Scrolled results container")
        elif outcome == "card":
            logger.debug("Used scrollIntoView fallback")
        else:
            logger.debug("Nothing to scroll on %s", self._page.url)


class MapsBrowser:
    """Thin wrapper around Playwright that opens Maps searches in Chromium."""

    def __init__(self, settings: Optional[Settings] = None, *, headless: Optional[bool] = None) -> None:
        self.settings = settings or get_settings()
        self._headless = self.settings.browser_headless if headless is None else headless
        self._playwright = None
        self._browser = None
        self._page: Optional[Page] = None

    def _ensure_browser(self) -> None:
        if self._playwright is None:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self._headless)

    def open_search(self, keyword: str, location: str) -> BrowserMapsPage:
        url = build_search_url(keyword, location, self.settings.maps_base_url)
        self._ensure_browser()
        if self._page is not None:
            self._page.close()
        self._page = self._browser.new_page()
        logger.info("Opening Maps search %s", url)
        self._page.goto(url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
        return BrowserMapsPage(self._page)

    def close(self) -> None:
        if self._page is not None:
            self._page.close()
            self._page = None
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "MapsBrowser":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()
