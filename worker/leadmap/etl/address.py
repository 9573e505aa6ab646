"""Positional address decomposition tuned for Indian listings.

Google Maps cards expose the address as loose comma separated text. We walk
the parts from the end (country, then state, then city) and treat whatever is
left as the street line. This is a best-effort heuristic, not a geocoder:
addresses outside the tuned locale can land in the wrong fields.
"""

from __future__ import annotations

import re
from typing import List, Optional

from leadmap.models import ListingRecord

POSTAL_CODE_PATTERNS = (
    re.compile(r"\b(\d{6})\b"),
    re.compile(r"\b(\d{5}(?:-\d{4})?)\b"),
    re.compile(r"\b([A-Z]\d[A-Z]\s?\d[A-Z]\d)\b", re.IGNORECASE),
    re.compile(r"\b([A-Z]{1,2}\d{1,2}\s?\d[A-Z]{2})\b", re.IGNORECASE),
)

INDIAN_STATES = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal",
    "Delhi", "Chandigarh", "Puducherry", "Ladakh", "J&K", "Jammu", "Kashmir",
    "MP", "UP", "AP", "TN", "WB", "MH", "KA", "RJ", "GJ", "HR", "PB", "HP",
)

COUNTRIES = (
    "India", "USA", "United States", "UK", "United Kingdom",
    "Canada", "Australia", "Germany", "France", "Japan",
    "China", "Brazil", "Mexico", "Spain", "Italy", "Singapore",
    "UAE", "Dubai", "Saudi Arabia", "Nepal", "Bangladesh", "Pakistan",
)

# Ordered: the first pattern that matches wins.
COUNTRY_PATTERNS = (
    ("India", re.compile(r"india|bharat|\bIN\b", re.IGNORECASE)),
    ("United States", re.compile(r"usa|united states|america|\bUS\b", re.IGNORECASE)),
    ("United Kingdom", re.compile(r"uk|united kingdom|england|britain|\bGB\b", re.IGNORECASE)),
    ("Canada", re.compile(r"canada|\bCA\b", re.IGNORECASE)),
    ("Australia", re.compile(r"australia|\bAU\b", re.IGNORECASE)),
    ("Germany", re.compile(r"germany|deutschland|\bDE\b", re.IGNORECASE)),
    ("France", re.compile(r"france|\bFR\b", re.IGNORECASE)),
    ("Japan", re.compile(r"japan|nippon|\bJP\b", re.IGNORECASE)),
    ("China", re.compile(r"china|zhongguo|\bCN\b", re.IGNORECASE)),
)

URL_LOCALE_MARKERS = (
    ((".co.in", "/IN/"), "India"),
    (("/US/",), "United States"),
    ((".co.uk", "/GB/"), "United Kingdom"),
)

STATE_MAX_LENGTH = 25
STATE_TAIL_WINDOW = 3


def _matches_any(part: str, names) -> bool:
    lowered = part.lower()
    return any(name.lower() in lowered for name in names)


def is_known_state(value: Optional[str]) -> bool:
    return bool(value) and _matches_any(value, INDIAN_STATES)


def find_postal_code(address: str) -> Optional[str]:
    for pattern in POSTAL_CODE_PATTERNS:
        match = pattern.search(address or "")
        if match:
            return match.group(1).upper()
    return None


def split_address(address: str) -> List[str]:
    return [part.strip() for part in (address or "").split(",") if part.strip()]


def decompose_address(record: ListingRecord) -> ListingRecord:
    """Fill postal_code, country, state, city and the street residue from full_address."""
    full_address = record.full_address or ""
    if not full_address:
        return record

    postal_code = find_postal_code(full_address)
    if postal_code:
        record.postal_code = postal_code

    parts = split_address(full_address)
    last_index = len(parts) - 1

    for index in range(last_index, -1, -1):
        part = re.sub(r"\d+", "", parts[index]).strip()

        if not record.country and _matches_any(part, COUNTRIES):
            record.country = part
            continue

        if not record.state:
            in_tail = index >= len(parts) - STATE_TAIL_WINDOW
            short_token = len(part) <= STATE_MAX_LENGTH and " " not in part
            if _matches_any(part, INDIAN_STATES) or (short_token and in_tail):
                record.state = part
                continue

        if not record.city and record.state and index < last_index:
            record.city = re.sub(r"\d{6}", "", parts[index]).strip()
            break

    exclusions = [
        value.lower()
        for value in (record.city, record.state, record.country, record.postal_code)
        if value
    ]
    street_parts = []
    for part in parts:
        cleaned = re.sub(r"\d{6}", "", part).strip().lower()
        if any(excluded in cleaned or cleaned in excluded for excluded in exclusions):
            continue
        street_parts.append(part)
    record.address = ", ".join(street_parts).strip() or None

    if record.state and record.postal_code:
        record.state = record.state.replace(record.postal_code, "").strip() or None

    if not record.country and is_known_state(record.state):
        record.country = "India"

    return record


def detect_country(text: Optional[str], page_url: Optional[str] = None) -> Optional[str]:
    """Guess the country from address text, then from locale markers in the page URL."""
    for country, pattern in COUNTRY_PATTERNS:
        if text and pattern.search(text):
            return country

    url = page_url or ""
    for markers, country in URL_LOCALE_MARKERS:
        if any(marker in url for marker in markers):
            return country
    return None
