"""HTTP entrypoint that starts, stops and nudges Google Maps scans."""

from __future__ import annotations

import dataclasses
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from leadmap.core.browser import MapsBrowser
from leadmap.core.config import get_settings
from leadmap.core.keepalive import ScrollKeepalive
from leadmap.core.scan_driver import ScanDriver
from leadmap.core.store import RecordStore
from leadmap.jobs.run_scan import build_store
from leadmap.models import EXPORT_COLUMNS

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker: the browser and the scan loop always live on the same thread.
_executor = ThreadPoolExecutor(max_workers=1)
_store: Optional[RecordStore] = None
_driver: Optional[ScanDriver] = None
_keepalive: Optional[ScrollKeepalive] = None


def get_store() -> RecordStore:
    global _store
    if _store is None:
        _store = build_store(get_settings())
    return _store


def _is_running() -> bool:
    return _driver is not None and _driver.session.is_running


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; only reads env-based settings."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": getattr(settings, "worker_port", None),
                "scan_running": _is_running(),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/scan")
def start_scan() -> Any:
    """
    Start a scan.
    Required JSON fields: keyword, location
    Optional: max_scrolls (int)
    """
    global _driver, _keepalive

    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    required = ("keyword", "location")
    missing = [f for f in required if not str(payload.get(f) or "").strip()]
    if missing:
        return jsonify({"error": f"missing fields: {', '.join(missing)}"}), 400

    settings = get_settings()
    max_scrolls_raw = payload.get("max_scrolls")
    if max_scrolls_raw is not None:
        try:
            max_scrolls = int(max_scrolls_raw)
            if max_scrolls <= 0:
                return jsonify({"error": "max_scrolls must be positive"}), 400
        except (TypeError, ValueError):
            return jsonify({"error": "max_scrolls must be numeric"}), 400
        settings = dataclasses.replace(settings, max_scrolls=max_scrolls)

    if _is_running():
        return jsonify({"error": "a scan is already running"}), 409

    keyword = str(payload["keyword"]).strip()
    location = str(payload["location"]).strip()

    _keepalive = ScrollKeepalive(
        heartbeat_timeout=settings.heartbeat_timeout,
        interval=settings.keepalive_interval,
    )
    _driver = ScanDriver(None, get_store(), settings, heartbeat=_keepalive.beat)
    _driver.start(keyword, location)

    logger.info("Queueing scan job: keyword=%s location=%s", keyword, location)
    _executor.submit(_run_scan_safe, _driver, _keepalive)

    return jsonify({"data": {"status": "queued", "session_id": _driver.session.session_id}}), 202


@app.post("/scan/stop")
def stop_scan() -> Any:
    if not _is_running():
        return jsonify({"error": "no scan is running"}), 409
    _driver.stop()
    return jsonify({"data": {"status": _driver.session.status.value}}), 200


@app.post("/scan/resume")
def resume_scan() -> Any:
    resumed = bool(_driver and _driver.resume())
    return jsonify({"data": {"resumed": resumed}}), 200


@app.get("/scan/status")
def scan_status() -> Any:
    summary = get_store().summary()
    if _driver is not None:
        summary["session_id"] = _driver.session.session_id
        summary["scroll_count"] = _driver.session.scroll_count
    return jsonify({"data": summary}), 200


@app.get("/records")
def list_records() -> Any:
    rows = [record.as_export_row() for record in get_store().records]
    return jsonify({"data": rows, "columns": list(EXPORT_COLUMNS)}), 200


# ---------- Internals ----------


def _run_scan_safe(driver: ScanDriver, keepalive: ScrollKeepalive) -> None:
    session = driver.session
    try:
        with MapsBrowser(driver.settings) as browser:
            driver.page = browser.open_search(session.keyword, session.location)
            keepalive.start(lambda: driver.session.is_running, driver.resume)
            driver.run()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scan job failed: %s", exc)
        driver.abort()
    finally:
        keepalive.stop()


def main() -> None:
    """Bind to $PORT when provided (Cloud Run injects it), otherwise 8080."""
    env_port = os.getenv("PORT")
    logger.info("[BOOT] ENV PORT=%s", env_port)

    port = int(env_port or 8080)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
