"""Forward scanned listing batches to the ingest API."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from leadmap.core.config import get_settings
from leadmap.models import ListingRecord

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
FAILED_DIR = Path(__file__).resolve().parents[2].joinpath("data", "failed")


def to_ingest_payload(records: List[ListingRecord]) -> Dict[str, List[Dict[str, object]]]:
    """Convert ListingRecord objects into the JSON payload accepted by the ingest API."""
    return {"items": [record.to_dict() for record in records]}


def _build_session() -> requests.Session:
    session = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("POST", "GET"),
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def save_failed_payload(payload: Dict[str, object], failed_dir: Optional[Path] = None) -> Optional[Path]:
    """Write a payload to the failed spool for scripts/replay_failed.py."""
    failed_dir = failed_dir or FAILED_DIR
    try:
        failed_dir.mkdir(parents=True, exist_ok=True)
        fname = failed_dir.joinpath(f"failed-{time.time_ns()}.json")
        with fname.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
    except OSError as exc:
        logger.error("Failed to save failed payload to disk: %s", exc)
        return None
    logger.info("Saved failed payload to %s", str(fname))
    return fname


def send_to_ingest_api(payload: Dict[str, object], session: Optional[requests.Session] = None):
    """POST a batch to the ingest endpoint.

    - Retries transient network/5xx failures through the mounted adapter.
    - On persistent failure or non-2xx the payload is spooled to data/failed/.
    - Returns the Response (even for non-2xx) or None on network failure.
    """
    ingest_url = get_settings().ingest_api_url
    if not ingest_url:
        logger.warning("INGEST_API_URL missing; skipping batch of %d", len(payload.get("items", [])))
        return None

    session = session or _build_session()
    try:
        response = session.post(ingest_url, json=payload, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        logger.error("Failed to call ingest API: %s", exc)
        save_failed_payload(payload)
        return None

    if not (200 <= response.status_code < 300):
        logger.error(
            "Ingest API returned non-2xx status (%s): %s", response.status_code, response.text[:500]
        )
        save_failed_payload({"status": response.status_code, "text": response.text, "payload": payload})
    return response


def forward_batch(records: List[ListingRecord]) -> None:
    """Store listener: send one accepted batch to the ingest API."""
    response = send_to_ingest_api(to_ingest_payload(records))
    if response is not None:
        logger.info("Posted %d listings to ingest API. status=%s", len(records), response.status_code)
