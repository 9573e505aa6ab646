"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    database_url: str = ""
    ingest_api_url: str = ""
    worker_port: int = 9000
    maps_base_url: str = "https://www.google.com"
    max_scrolls: int = 100
    stall_limit: int = 5
    poll_attempts: int = 30
    poll_interval: float = 0.5
    first_cycle_delay: float = 2.0
    cycle_delay_min: float = 2.0
    cycle_delay_max: float = 3.5
    heartbeat_timeout: float = 10.0
    keepalive_interval: float = 15.0
    browser_headless: bool = True


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    ingest_api_url = os.getenv("INGEST_API_URL", "")
    maps_base_url = os.getenv("MAPS_BASE_URL", "https://www.google.com").rstrip("/")
    cycle_delay_min = _env_float("SCAN_CYCLE_DELAY_MIN", 2.0)
    cycle_delay_max = _env_float("SCAN_CYCLE_DELAY_MAX", 3.5)
    browser_headless = os.getenv("BROWSER_HEADLESS", "true").lower() in {"1", "true", "yes"}

    if cycle_delay_max < cycle_delay_min:
        logger.warning(
            "SCAN_CYCLE_DELAY_MAX (%s) is below SCAN_CYCLE_DELAY_MIN (%s); using the minimum for both.",
            cycle_delay_max,
            cycle_delay_min,
        )
        cycle_delay_max = cycle_delay_min

    if not database_url:
        logger.warning("DATABASE_URL is not set; listings will not be persisted.")
    if not ingest_api_url:
        logger.warning("INGEST_API_URL is not configured; batches will not be forwarded.")

    return Settings(
        database_url=database_url,
        ingest_api_url=ingest_api_url,
        worker_port=_env_int("WORKER_PORT", 9000),
        maps_base_url=maps_base_url,
        max_scrolls=_env_int("SCAN_MAX_SCROLLS", 100),
        stall_limit=_env_int("SCAN_STALL_LIMIT", 5),
        poll_attempts=_env_int("SCAN_POLL_ATTEMPTS", 30),
        poll_interval=_env_float("SCAN_POLL_INTERVAL", 0.5),
        first_cycle_delay=_env_float("SCAN_FIRST_CYCLE_DELAY", 2.0),
        cycle_delay_min=cycle_delay_min,
        cycle_delay_max=cycle_delay_max,
        heartbeat_timeout=_env_float("KEEPALIVE_HEARTBEAT_TIMEOUT", 10.0),
        keepalive_interval=_env_float("KEEPALIVE_INTERVAL", 15.0),
        browser_headless=browser_headless,
    )
