"""Database helpers for persisting scanned listings."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional

from psycopg2 import pool

from leadmap.core.config import get_settings
from leadmap.models import ListingRecord

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        return float(value) if value else None
    except ValueError:
        return None


def _to_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def _prepare_params(record: ListingRecord) -> Dict[str, Any]:
    params: Dict[str, Any] = record.to_dict()
    params["latitude"] = _to_float(record.latitude)
    params["longitude"] = _to_float(record.longitude)
    params["average_rating"] = _to_float(record.average_rating)
    params["total_reviews"] = _to_int(record.total_reviews)
    return params


_UPSERT_LISTING = """
INSERT INTO listings (
    place_id,
    business_name,
    phone,
    phone_2,
    phone_3,
    email,
    email_2,
    website,
    website_2,
    full_address,
    address,
    city,
    state,
    postal_code,
    country,
    latitude,
    longitude,
    average_rating,
    total_reviews,
    category,
    place_url,
    search_keyword,
    search_location,
    updated_at
) VALUES (
    %(place_id)s,
    %(business_name)s,
    %(phone)s,
    %(phone_2)s,
    %(phone_3)s,
    %(email)s,
    %(email_2)s,
    %(website)s,
    %(website_2)s,
    %(full_address)s,
    %(address)s,
    %(city)s,
    %(state)s,
    %(postal_code)s,
    %(country)s,
    %(latitude)s,
    %(longitude)s,
    %(average_rating)s,
    %(total_reviews)s,
    %(category)s,
    %(place_url)s,
    %(search_keyword)s,
    %(search_location)s,
    NOW()
)
ON CONFLICT (place_id) DO UPDATE SET
    business_name = EXCLUDED.business_name,
    phone = COALESCE(EXCLUDED.phone, listings.phone),
    phone_2 = COALESCE(EXCLUDED.phone_2, listings.phone_2),
    phone_3 = COALESCE(EXCLUDED.phone_3, listings.phone_3),
    email = COALESCE(EXCLUDED.email, listings.email),
    email_2 = COALESCE(EXCLUDED.email_2, listings.email_2),
    website = COALESCE(EXCLUDED.website, listings.website),
    website_2 = COALESCE(EXCLUDED.website_2, listings.website_2),
    full_address = COALESCE(EXCLUDED.full_address, listings.full_address),
    address = COALESCE(EXCLUDED.address, listings.address),
    city = COALESCE(EXCLUDED.city, listings.city),
    state = COALESCE(EXCLUDED.state, listings.state),
    postal_code = COALESCE(EXCLUDED.postal_code, listings.postal_code),
    country = COALESCE(EXCLUDED.country, listings.country),
    latitude = COALESCE(EXCLUDED.latitude, listings.latitude),
    longitude = COALESCE(EXCLUDED.longitude, listings.longitude),
    average_rating = COALESCE(EXCLUDED.average_rating, listings.average_rating),
    total_reviews = COALESCE(EXCLUDED.total_reviews, listings.total_reviews),
    category = COALESCE(EXCLUDED.category, listings.category),
    place_url = COALESCE(EXCLUDED.place_url, listings.place_url),
    search_keyword = EXCLUDED.search_keyword,
    search_location = EXCLUDED.search_location,
    updated_at = NOW();
"""


def upsert_listing(record: ListingRecord) -> None:
    """Persist a listing, performing an idempotent upsert keyed on place_id."""
    params = _prepare_params(record)
    if not params["business_name"] or not params["place_id"]:
        raise ValueError("business_name and place_id are required for upsert")

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_UPSERT_LISTING, params)
        conn.commit()
        logger.debug("Upserted listing %s", params["business_name"])


def save_batch(records: Iterable[ListingRecord]) -> int:
    """Store listener: upsert each record, logging (not raising) per-record failures."""
    saved = 0
    for record in records:
        try:
            upsert_listing(record)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to upsert %s: %s", record.place_id, exc)
            continue
        saved += 1
    return saved
