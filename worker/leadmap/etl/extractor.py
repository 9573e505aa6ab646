"""Turn Google Maps result cards into ListingRecord objects.

Google renames its obfuscated class names often, so every field is resolved
through an ordered tuple of strategies: plain functions that take the card and
return a value or None. The first strategy that yields a value wins and a field
that no strategy can resolve is simply left empty.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from bs4 import Tag

from leadmap.etl.address import decompose_address, detect_country
from leadmap.etl.classifiers import FRAGMENT_SEPARATOR, classify_fragments
from leadmap.models import ListingRecord

logger = logging.getLogger(__name__)

Strategy = Callable[[Tag], Optional[str]]

NAME_SELECTORS = (
    ".qBF1Pd",
    ".fontHeadlineSmall",
    ".NrDZNb",
    ".dbg0pd",
    '[class*="fontTitle"]',
    '[class*="headline"]',
    "a.hfpxzc",
)
PLACE_LINK_SELECTORS = ('a[href*="/maps/place/"]', "a.hfpxzc", "a[data-item-id]")
NAME_FALLBACK_LINK_SELECTORS = ('a[href*="maps/place"]', "a[data-item-id]", "a.hfpxzc")
RATING_SELECTORS = (".MW4etd", ".e4rVHe", ".ZkP5Je", ".yi40Hd", ".fzTgPe")
RATING_LABEL_SELECTOR = '[aria-label*="star"], [aria-label*="rating"]'
REVIEW_SELECTORS = (".UY7F9", ".HypWnf", ".e4rVHe", ".RDApEe")
INFO_SELECTORS = (".W4Efsd", ".lI9IFe", ".UaQhfb", ".rogA2c", ".Io6YTe", ".fontBodyMedium")
INFO_TEXT_SELECTOR = 'span, [role="text"]'

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 200
FRAGMENT_MAX_LENGTH = 300
EXCLUDED_WEBSITE_HOSTS = ("google.com", "gstatic.com")

HEX_PLACE_ID_REGEX = re.compile(r"0x[\da-f]+:0x([\da-f]+)", re.IGNORECASE)
FTID_REGEX = re.compile(r"ftid=([\w:]+)")
COORDINATE_PATTERNS = (
    re.compile(r"!3d(-?\d+\.?\d*)!4d(-?\d+\.?\d*)"),
    re.compile(r"@(-?\d+\.?\d*),(-?\d+\.?\d*)"),
    re.compile(r"ll=(-?\d+\.?\d*),(-?\d+\.?\d*)"),
)
RATING_TEXT_REGEX = re.compile(r"^\d+\.?\d*$")
RATING_LABEL_REGEX = re.compile(r"(\d+\.?\d*)\s*star", re.IGNORECASE)
REVIEW_PARENS_REGEX = re.compile(r"\(([\d,]+)\)")
REVIEW_LOOSE_REGEX = re.compile(r"\(?([\d,]+)\)?(\s*reviews?)?", re.IGNORECASE)

MAX_PHONES = 3
MAX_EMAILS = 2
MAX_WEBSITES = 2


# ---------- Strategy helpers ----------


def first_success(card: Tag, strategies: Sequence[Strategy]) -> Optional[str]:
    for strategy in strategies:
        value = strategy(card)
        if value:
            return value
    return None


def _text(node: Tag) -> str:
    return node.get_text().strip()


def _is_match(card: Tag, selector: str) -> bool:
    return bool(card.css.match(selector))


def _label_or_text(selector: str) -> Strategy:
    def strategy(card: Tag) -> Optional[str]:
        node = card.select_one(selector)
        if node is None:
            return None
        name = (node.get("aria-label") or "").strip() or _text(node)
        if NAME_MIN_LENGTH < len(name) < NAME_MAX_LENGTH:
            return name
        return None

    return strategy


def _link_label(selector: str) -> Strategy:
    def strategy(card: Tag) -> Optional[str]:
        node = card if _is_match(card, selector) else card.select_one(selector)
        if node is None:
            return None
        return (node.get("aria-label") or "").strip() or None

    return strategy


def _link_href(selector: str) -> Strategy:
    def strategy(card: Tag) -> Optional[str]:
        node = card if _is_match(card, selector) else card.select_one(selector)
        if node is None:
            return None
        return node.get("href") or None

    return strategy


def _decimal_text(selector: str) -> Strategy:
    def strategy(card: Tag) -> Optional[str]:
        node = card.select_one(selector)
        if node is None:
            return None
        text = _text(node)
        return text if RATING_TEXT_REGEX.match(text) else None

    return strategy


def _rating_from_label(card: Tag) -> Optional[str]:
    node = card.select_one(RATING_LABEL_SELECTOR)
    if node is None:
        return None
    match = RATING_LABEL_REGEX.search(node.get("aria-label") or "")
    return match.group(1) if match else None


def _review_count(selector: str) -> Strategy:
    def strategy(card: Tag) -> Optional[str]:
        node = card.select_one(selector)
        if node is None:
            return None
        text = node.get_text()
        match = REVIEW_PARENS_REGEX.search(text) or REVIEW_LOOSE_REGEX.search(text)
        if not match:
            return None
        return match.group(1).replace(",", "") or None

    return strategy


NAME_STRATEGIES: Tuple[Strategy, ...] = tuple(_label_or_text(sel) for sel in NAME_SELECTORS) + tuple(
    _link_label(sel) for sel in NAME_FALLBACK_LINK_SELECTORS
)
PLACE_LINK_STRATEGIES: Tuple[Strategy, ...] = tuple(_link_href(sel) for sel in PLACE_LINK_SELECTORS)
RATING_STRATEGIES: Tuple[Strategy, ...] = tuple(_decimal_text(sel) for sel in RATING_SELECTORS) + (
    _rating_from_label,
)
REVIEW_STRATEGIES: Tuple[Strategy, ...] = tuple(_review_count(sel) for sel in REVIEW_SELECTORS)


# ---------- Link parsing ----------


def absolutize_place_url(href: str, maps_base_url: str) -> Optional[str]:
    if href.startswith("http"):
        return href
    if href.startswith("/"):
        return f"{maps_base_url.rstrip('/')}{href}"
    return None


def hex_to_decimal(value: str) -> str:
    try:
        return str(int(value, 16))
    except ValueError:
        return value


def place_id_from_link(href: str) -> Optional[str]:
    """Decode the place identifier embedded in a detail link, if any."""
    match = HEX_PLACE_ID_REGEX.search(href or "")
    if match:
        return hex_to_decimal(match.group(1))
    match = FTID_REGEX.search(href or "")
    if match:
        return match.group(1)
    return None


def coordinates_from_link(href: str) -> Tuple[Optional[str], Optional[str]]:
    for pattern in COORDINATE_PATTERNS:
        match = pattern.search(href or "")
        if match:
            return match.group(1), match.group(2)
    return None, None


def synthetic_place_id(id_prefix: str, record: ListingRecord, position: Optional[int] = None) -> str:
    """Session scoped placeholder id, stable for the same card across cycles.

    Only the name, the link and the card's position in the feed go into the
    fingerprint. The feed only appends, so the position stays fixed for a card,
    while its info text may still be rendering between cycles.
    """
    slot = "" if position is None else str(position)
    fingerprint = "|".join((record.business_name, record.place_url or "", slot)).encode("utf-8")
    return f"{id_prefix}_{hashlib.sha1(fingerprint).hexdigest()[:12]}"


# ---------- Text collection ----------


def collect_fragments(card: Tag) -> List[str]:
    fragments: List[str] = []
    for selector in INFO_SELECTORS:
        for container in card.select(selector):
            for node in container.select(INFO_TEXT_SELECTOR):
                text = _text(node)
                if not text or text == FRAGMENT_SEPARATOR:
                    continue
                if 1 < len(text) < FRAGMENT_MAX_LENGTH and text not in fragments:
                    fragments.append(text)
    return fragments


def collect_websites(card: Tag) -> List[str]:
    websites: List[str] = []
    for link in card.select("a[href]"):
        href = link.get("href") or ""
        if not href.startswith("http"):
            continue
        if any(host in href for host in EXCLUDED_WEBSITE_HOSTS):
            continue
        if href not in websites:
            websites.append(href)
    return websites


def build_full_address(parts: Iterable[str], category: Optional[str]) -> Optional[str]:
    full_address = ", ".join(parts)
    full_address = re.sub(r"\s+", " ", full_address)
    full_address = re.sub(r",\s*,", ",", full_address)
    full_address = re.sub(r"(^,\s*|\s*,$)", "", full_address).strip()

    if category and full_address.lower().startswith(category.lower()):
        full_address = re.sub(r"^[\s·,]+", "", full_address[len(category):]).strip()
    return full_address or None


def _fill_slots(record: ListingRecord, names: Sequence[str], values: Sequence[str]) -> None:
    for name, value in zip(names, values):
        setattr(record, name, value)


# ---------- Public API ----------


def extract_record(
    card: Tag,
    *,
    id_prefix: str = "gen",
    maps_base_url: str = "https://www.google.com",
    page_url: Optional[str] = None,
    position: Optional[int] = None,
) -> Optional[ListingRecord]:
    """Build one ListingRecord from a result card, or None when no business name resolves."""
    name = first_success(card, NAME_STRATEGIES)
    if not name:
        logger.debug("Skipping card without a resolvable business name")
        return None

    record = ListingRecord(business_name=name)

    href = first_success(card, PLACE_LINK_STRATEGIES)
    if href:
        record.place_url = absolutize_place_url(href, maps_base_url)
        record.place_id = place_id_from_link(href)
        record.latitude, record.longitude = coordinates_from_link(href)

    record.average_rating = first_success(card, RATING_STRATEGIES)
    record.total_reviews = first_success(card, REVIEW_STRATEGIES)

    classified = classify_fragments(collect_fragments(card))
    websites = collect_websites(card)

    _fill_slots(record, ("phone", "phone_2", "phone_3"), classified.phones[:MAX_PHONES])
    _fill_slots(record, ("email", "email_2"), classified.emails[:MAX_EMAILS])
    _fill_slots(record, ("website", "website_2"), websites[:MAX_WEBSITES])
    record.category = classified.category

    record.full_address = build_full_address(classified.address_parts, classified.category)
    if record.full_address:
        decompose_address(record)
    if not record.country:
        record.country = detect_country(record.full_address, page_url)

    if not record.place_id:
        record.place_id = synthetic_place_id(id_prefix, record, position)

    logger.debug(
        "Extracted %s | phones=%d emails=%d websites=%d",
        record.business_name,
        len(classified.phones),
        len(classified.emails),
        len(websites),
    )
    return record


def extract_records(
    cards: Iterable[Tag],
    *,
    id_prefix: str = "gen",
    maps_base_url: str = "https://www.google.com",
    page_url: Optional[str] = None,
) -> List[ListingRecord]:
    """Extract every card, skipping (and logging) cards that fail to parse."""
    records: List[ListingRecord] = []
    for index, card in enumerate(cards):
        try:
            record = extract_record(
                card,
                id_prefix=id_prefix,
                maps_base_url=maps_base_url,
                page_url=page_url,
                position=index,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to parse card %d: %s", index, exc)
            continue
        if record is not None:
            records.append(record)
    return records
