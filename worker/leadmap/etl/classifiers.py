"""Pattern-based classifiers for short text fragments pulled out of a listing card.

Each fragment is tested independently. Phone and email detection collect every
match; category detection claims at most one fragment per card; everything
that looks like part of a postal address is kept in discovery order so the
address decomposer can work on the joined string.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

PHONE_PATTERNS = (
    re.compile(r"(?:\+91[\s\-]?)?[6-9]\d{9}"),
    re.compile(r"(?:\+91[\s\-]?)?\d{3,4}[\s\-]?\d{3}[\s\-]?\d{4}"),
    re.compile(r"(?:\+1[\s\-]?)?\(?\d{3}\)?[\s\-]?\d{3}[\s\-]?\d{4}"),
    re.compile(r"(?:\+\d{1,3}[\s\-]?)?\d{6,15}"),
)
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

EMAIL_REGEX = re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}")

HOURS_PREFIX_REGEX = re.compile(r"^(open|closed|hours|24 hours|open now|closes|opens)", re.IGNORECASE)
BARE_NUMBER_REGEX = re.compile(r"^\d+\.?\d*$")

CATEGORY_KEYWORDS = (
    "restaurant", "hotel", "hospital", "clinic", "school", "college",
    "shop", "store", "market", "bank", "office", "salon", "spa",
    "gym", "fitness", "cafe", "bar", "pub", "pharmacy", "medical",
    "dental", "doctor", "lawyer", "consultant", "agency", "studio",
    "institute", "academy", "center", "centre", "service", "repair",
    "electronics", "mobile", "computer", "software", "coaching",
    "tuition", "classes", "training", "builder", "contractor", "pvt",
    "ltd", "private", "limited", "inc", "corp", "llc",
)
CATEGORY_MAX_LENGTH = 60
CATEGORY_LOOSE_MAX_LENGTH = 40
CATEGORY_REJECT_WORDS = re.compile(r"(road|street|floor|block|sector|nagar|colony|plot)", re.IGNORECASE)

ADDRESS_WORDS = re.compile(
    r"(road|rd|street|st|colony|nagar|block|sector|floor|plot|apartment|apt|building|bldg"
    r"|no\.|house|shop|office|tower|complex|mall|market)",
    re.IGNORECASE,
)
ADDRESS_MIN_LENGTH = 5
PHONE_ONLY_REGEX = re.compile(r"^\d{7,15}$")
PHONE_PUNCTUATION = re.compile(r"[+\-()\s]")

FRAGMENT_SEPARATOR = "·"


def digits_only(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def find_phones(text: str) -> List[str]:
    """Return phone-like substrings of *text*, one per distinct digit sequence."""
    found: List[str] = []
    if not text:
        return found

    for pattern in PHONE_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(0).strip()
            digits = digits_only(candidate)
            if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
                continue
            if any(digits_only(existing) == digits for existing in found):
                continue
            found.append(candidate)
    return found


def merge_phones(kept: List[str], candidates: Iterable[str]) -> List[str]:
    """Append candidates whose digits differ from every phone already kept."""
    known = {digits_only(phone) for phone in kept}
    for candidate in candidates:
        digits = digits_only(candidate)
        if digits in known:
            continue
        known.add(digits)
        kept.append(candidate)
    return kept


def find_emails(text: str) -> List[str]:
    """Return lower-cased email addresses in discovery order."""
    emails: List[str] = []
    for match in EMAIL_REGEX.finditer(text or ""):
        email = match.group(0).lower()
        if email not in emails:
            emails.append(email)
    return emails


def is_skippable(text: str) -> bool:
    """Opening-hours blurbs and bare numbers (the rating) carry no listing fields."""
    return bool(HOURS_PREFIX_REGEX.match(text.lower()) or BARE_NUMBER_REGEX.match(text))


def is_category(text: str) -> bool:
    if len(text) >= CATEGORY_MAX_LENGTH or "," in text:
        return False

    lowered = text.lower()
    has_keyword = any(keyword in lowered for keyword in CATEGORY_KEYWORDS)
    looks_plain = (
        len(text) < CATEGORY_LOOSE_MAX_LENGTH
        and not re.search(r"\d{4,}", text)
        and not re.search(r"\d+[,\s]+\d+", text)
    )
    if not (has_keyword or looks_plain):
        return False

    return not re.search(r"\d{3,}", text) and not CATEGORY_REJECT_WORDS.search(text)


def is_address_like(text: str) -> bool:
    looks_like_address = "," in text or bool(re.search(r"\d", text)) or bool(ADDRESS_WORDS.search(text))
    if not looks_like_address or len(text) <= ADDRESS_MIN_LENGTH:
        return False
    return not PHONE_ONLY_REGEX.match(PHONE_PUNCTUATION.sub("", text))


@dataclass
class FragmentClassification:
    phones: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    category: Optional[str] = None
    address_parts: List[str] = field(default_factory=list)


def classify_fragments(fragments: Iterable[str]) -> FragmentClassification:
    """Run every classifier over the card's fragments in a single ordered pass.

    Order per fragment: phone, email, hours/rating skip, category, address.
    Phone and email matches never stop the fragment from also counting as an
    address part; a fragment claimed as the category does.
    """
    result = FragmentClassification()

    for text in fragments:
        if text == FRAGMENT_SEPARATOR or len(text) < 2:
            continue

        merge_phones(result.phones, find_phones(text))
        for email in find_emails(text):
            if email not in result.emails:
                result.emails.append(email)

        if is_skippable(text):
            continue

        if result.category is None and is_category(text):
            result.category = text
            continue

        if is_address_like(text) and text not in result.address_parts:
            result.address_parts.append(text)

    logger.debug(
        "Classified fragments: phones=%d emails=%d category=%s address_parts=%d",
        len(result.phones),
        len(result.emails),
        result.category,
        len(result.address_parts),
    )
    return result
