"""CLI job to scan a Google Maps search and hand listings to the configured sinks."""

import argparse
import dataclasses
import logging
from typing import Optional

from leadmap.core import db, ingest
from leadmap.core.browser import MapsBrowser
from leadmap.core.config import Settings, get_settings
from leadmap.core.keepalive import ScrollKeepalive
from leadmap.core.scan_driver import ScanDriver
from leadmap.core.store import RecordStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    """Create a store wired to every sink that is configured."""
    store = RecordStore()
    if settings.database_url:
        db.init_pool()
        store.add_listener(db.save_batch)
    if settings.ingest_api_url:
        store.add_listener(ingest.forward_batch)
    return store


def run_scan_job(
    *,
    keyword: str,
    location: str,
    max_scrolls: Optional[int] = None,
    headless: Optional[bool] = None,
) -> RecordStore:
    keyword = (keyword or "").strip()
    location = (location or "").strip()
    if not keyword:
        raise ValueError("keyword must not be empty")

    settings = get_settings()
    if max_scrolls is not None:
        settings = dataclasses.replace(settings, max_scrolls=max_scrolls)

    store = build_store(settings)
    keepalive = ScrollKeepalive(
        heartbeat_timeout=settings.heartbeat_timeout,
        interval=settings.keepalive_interval,
    )

    with MapsBrowser(settings, headless=headless) as browser:
        page = browser.open_search(keyword, location)
        driver = ScanDriver(page, store, settings, heartbeat=keepalive.beat)
        driver.start(keyword, location)
        keepalive.start(lambda: driver.session.is_running, driver.resume)
        try:
            reason = driver.run()
        finally:
            keepalive.stop()

    logger.info("Completed scan (%s): listings=%d", reason, len(store))
    return store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan Google Maps search results into listings")
    parser.add_argument("--keyword", dest="keyword", required=True, help="Business keyword to search")
    parser.add_argument("--location", dest="location", default="", help="Location appended as 'in <location>'")
    parser.add_argument(
        "--max-scrolls",
        dest="max_scrolls",
        type=int,
        default=get_settings().max_scrolls,
        help="Maximum number of extract-and-scroll cycles",
    )
    parser.add_argument("--headed", dest="headed", action="store_true", help="Show the browser window")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    run_scan_job(
        keyword=args.keyword,
        location=args.location,
        max_scrolls=args.max_scrolls,
        headless=False if args.headed else None,
    )


if __name__ == "__main__":
    main()
