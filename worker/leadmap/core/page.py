"""Read-only views over a Google Maps results page."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Google changes class names frequently; the first selector with any hit wins.
CARD_SELECTORS = (
    ".Nv2PK",
    'div[role="article"]',
    ".bfdHYd",
    'a[href*="/maps/place/"]',
    "[data-result-index]",
    ".lI9IFe",
    ".THOPZb",
)
END_OF_LIST_SELECTORS = (".HlvSq", ".TIHn2", ".section-no-result")
END_OF_LIST_TEXT = ("You've reached the end", "No more results")


class MapsPage:
    """Shared card lookup and end-of-list detection over an HTML snapshot.

    Subclasses provide ``snapshot()`` (the current DOM as soup),
    ``scroll_for_more()`` and ``current_url``.
    """

    current_url: str = ""

    def snapshot(self) -> BeautifulSoup:
        raise NotImplementedError

    def scroll_for_more(self) -> None:
        raise NotImplementedError

    def find_cards(self) -> List[Tag]:
        soup = self.snapshot()
        for selector in CARD_SELECTORS:
            cards = soup.select(selector)
            if cards:
                logger.debug("Found %d cards with selector %s", len(cards), selector)
                return cards
        return []

    def end_of_list_reached(self) -> bool:
        soup = self.snapshot()
        if any(soup.select_one(selector) for selector in END_OF_LIST_SELECTORS):
            return True
        body = soup.body or soup
        page_text = body.get_text(" ")
        return any(marker in page_text for marker in END_OF_LIST_TEXT)


class SnapshotPage(MapsPage):
    """A page backed by a sequence of saved HTML snapshots.

    Each ``scroll_for_more()`` advances to the next snapshot and stays on the
    last one once the sequence is exhausted, mimicking a feed that has stopped
    loading. Useful for offline parsing and tests.
    """

    def __init__(self, snapshots: Sequence[str], url: Optional[str] = None) -> None:
        if not snapshots:
            raise ValueError("At least one HTML snapshot is required")
        self._soups = [BeautifulSoup(html, "html.parser") for html in snapshots]
        self._position = 0
        self.current_url = url or ""
        self.scrolls = 0

    def snapshot(self) -> BeautifulSoup:
        return self._soups[self._position]

    def scroll_for_more(self) -> None:
        self.scrolls += 1
        if self._position < len(self._soups) - 1:
            self._position += 1
