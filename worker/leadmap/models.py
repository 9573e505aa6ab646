"""Core data models shared by the Google Maps listing scanner."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Dict, Optional

EXPORT_COLUMNS = (
    "business_name",
    "phone",
    "phone_2",
    "phone_3",
    "email",
    "email_2",
    "website",
    "website_2",
    "full_address",
    "address",
    "city",
    "state",
    "postal_code",
    "country",
    "latitude",
    "longitude",
    "average_rating",
    "total_reviews",
    "category",
    "place_url",
    "place_id",
    "search_keyword",
    "search_location",
)


@dataclass(slots=True)
class ListingRecord:
    """Normalized snapshot of one business card scraped from the results feed."""

    business_name: str
    phone: Optional[str] = None
    phone_2: Optional[str] = None
    phone_3: Optional[str] = None
    email: Optional[str] = None
    email_2: Optional[str] = None
    website: Optional[str] = None
    website_2: Optional[str] = None
    full_address: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None
    average_rating: Optional[str] = None
    total_reviews: Optional[str] = None
    place_url: Optional[str] = None
    place_id: Optional[str] = None
    category: Optional[str] = None
    search_keyword: Optional[str] = None
    search_location: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    def as_export_row(self) -> Dict[str, str]:
        """Return the record keyed in export column order, with blanks for missing values."""
        return {column: getattr(self, column) or "" for column in EXPORT_COLUMNS}


class ScanStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    COMPLETE = "complete"
