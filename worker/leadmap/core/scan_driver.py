"""Incremental extract-and-scroll loop over the Google Maps results feed.

``run_cycle`` performs exactly one cycle against an explicit ``ScanSession``
and returns a ``CycleDecision``; ``ScanDriver`` owns the waiting between
cycles. Control signals (stop, resume) may arrive from other threads and are
only observed at the next status check.
"""

from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from leadmap.core.config import Settings, get_settings
from leadmap.core.page import MapsPage
from leadmap.core.store import RecordStore
from leadmap.etl.extractor import extract_records
from leadmap.models import ListingRecord, ScanStatus

logger = logging.getLogger(__name__)

CONTINUE = "continue"
TERMINATE = "terminate"

REASON_STOPPED = "stopped"
REASON_END_OF_LIST = "end_of_list"
REASON_MAX_SCROLLS = "max_scrolls"
REASON_STALLED = "stalled"
REASON_NO_RESULTS = "no_results"
REASON_INTERRUPTED = "interrupted"


@dataclass
class ScanSession:
    """Mutable state of one start-to-terminal scan run."""

    session_id: str = ""
    status: ScanStatus = ScanStatus.IDLE
    keyword: str = ""
    location: str = ""
    seen_place_ids: Set[str] = field(default_factory=set)
    records: List[ListingRecord] = field(default_factory=list)
    scroll_count: int = 0
    no_new_items_count: int = 0
    loop_active: bool = False
    store_token: Optional[int] = None

    @property
    def id_prefix(self) -> str:
        return f"gen_{self.session_id}"

    @property
    def is_running(self) -> bool:
        return self.status is ScanStatus.RUNNING

    def start(self, keyword: str, location: str) -> None:
        self.session_id = uuid.uuid4().hex[:8]
        self.status = ScanStatus.RUNNING
        self.keyword = keyword
        self.location = location
        self.seen_place_ids = set()
        self.records = []
        self.scroll_count = 0
        self.no_new_items_count = 0
        self.loop_active = False
        self.store_token = None

    def stop(self) -> None:
        self.status = ScanStatus.STOPPED

    def complete(self) -> None:
        self.status = ScanStatus.COMPLETE


@dataclass(frozen=True)
class CycleDecision:
    action: str
    delay_seconds: float = 0.0
    reason: Optional[str] = None

    @property
    def should_continue(self) -> bool:
        return self.action == CONTINUE

    @classmethod
    def next_after(cls, delay_seconds: float) -> "CycleDecision":
        return cls(action=CONTINUE, delay_seconds=delay_seconds)

    @classmethod
    def terminate(cls, reason: str) -> "CycleDecision":
        return cls(action=TERMINATE, reason=reason)


def wait_for_results(
    page: MapsPage,
    *,
    attempts: int,
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
    is_running: Optional[Callable[[], bool]] = None,
) -> bool:
    """Poll the page for result cards, giving up after ``attempts`` polls or once the scan stops."""
    for attempt in range(1, attempts + 1):
        if is_running is not None and not is_running():
            logger.info("Scan stopped while waiting for results")
            return False
        cards = page.find_cards()
        if cards:
            logger.info("Results found: %d cards after %d polls", len(cards), attempt)
            return True
        sleep(interval)
    logger.info("Timed out waiting for results after %d polls", attempts)
    return False


def filter_new_records(session: ScanSession, records: List[ListingRecord]) -> List[ListingRecord]:
    """Drop records already seen in this session and remember the new ids."""
    fresh: List[ListingRecord] = []
    for record in records:
        if not record.place_id or record.place_id in session.seen_place_ids:
            continue
        session.seen_place_ids.add(record.place_id)
        fresh.append(record)
    return fresh


def run_cycle(
    session: ScanSession,
    page: MapsPage,
    store: RecordStore,
    settings: Settings,
    *,
    heartbeat: Optional[Callable[[], None]] = None,
    jitter: Callable[[float, float], float] = random.uniform,
) -> CycleDecision:
    """Extract visible cards, emit unseen ones, then decide whether to keep scrolling."""
    if not session.is_running:
        return CycleDecision.terminate(REASON_STOPPED)

    if heartbeat is not None:
        heartbeat()

    records = extract_records(
        page.find_cards(),
        id_prefix=session.id_prefix,
        maps_base_url=settings.maps_base_url,
        page_url=page.current_url,
    )
    fresh = filter_new_records(session, records)

    # A stop may have landed while extracting; emit nothing after it.
    if not session.is_running:
        return CycleDecision.terminate(REASON_STOPPED)

    if fresh:
        for record in fresh:
            record.search_keyword = session.keyword
            record.search_location = session.location
        session.records.extend(fresh)
        store.append_batch(fresh, token=session.store_token)

    session.scroll_count += 1
    logger.info(
        "Scroll %d/%d | total=%d | new this round=%d",
        session.scroll_count,
        settings.max_scrolls,
        len(session.seen_place_ids),
        len(fresh),
    )

    if page.end_of_list_reached():
        logger.info("End of list reached - scan complete")
        session.complete()
        return CycleDecision.terminate(REASON_END_OF_LIST)

    if session.scroll_count >= settings.max_scrolls:
        logger.info("Max scrolls reached - scan complete")
        session.complete()
        return CycleDecision.terminate(REASON_MAX_SCROLLS)

    if fresh:
        session.no_new_items_count = 0
    else:
        session.no_new_items_count += 1
        if session.no_new_items_count >= settings.stall_limit:
            logger.info("No new items for %d scrolls - scan complete", session.no_new_items_count)
            session.complete()
            return CycleDecision.terminate(REASON_STALLED)

    page.scroll_for_more()
    return CycleDecision.next_after(jitter(settings.cycle_delay_min, settings.cycle_delay_max))


class ScanDriver:
    """Drives a ScanSession over a MapsPage until it stops or completes.

    The page may be attached after construction (``driver.page = ...``) so a
    scan can be started before its browser tab exists.
    """

    def __init__(
        self,
        page: Optional[MapsPage],
        store: RecordStore,
        settings: Optional[Settings] = None,
        *,
        heartbeat: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
        resume_wait: Optional[float] = None,
    ) -> None:
        self.page = page
        self.store = store
        self.settings = settings or get_settings()
        self.session = ScanSession()
        self._heartbeat = heartbeat
        self._sleep = sleep
        self._jitter = jitter
        self._resume_wait = self.settings.heartbeat_timeout * 3 if resume_wait is None else resume_wait
        self._resume_event = threading.Event()

    def start(self, keyword: str, location: str) -> None:
        self.session.start(keyword, location)
        self._resume_event.clear()
        self.session.store_token = self.store.begin_scan(keyword, location)
        logger.info("Scan %s started for keyword=%s location=%s", self.session.session_id, keyword, location)

    def stop(self) -> None:
        if not self.session.is_running:
            return
        self.session.stop()
        self._resume_event.set()
        self.store.finish_scan(ScanStatus.STOPPED, token=self.session.store_token)
        logger.info("Scan %s stopped", self.session.session_id)

    def resume(self) -> bool:
        """Accept a liveness nudge; only meaningful while running with no active loop."""
        if not self.session.is_running or self.session.loop_active:
            return False
        logger.info("Resuming scan %s from nudge", self.session.session_id)
        self._resume_event.set()
        return True

    def abort(self) -> None:
        """Close out a session whose harness failed outside the cycle loop."""
        if self.session.is_running:
            self._finish(REASON_INTERRUPTED)

    def run(self) -> str:
        """Wait for the first cards, then cycle until a terminal condition. Returns the reason."""
        if not self.session.is_running:
            return REASON_STOPPED
        if self.page is None:
            raise RuntimeError("ScanDriver.run() needs a page; attach one before running")

        found = wait_for_results(
            self.page,
            attempts=self.settings.poll_attempts,
            interval=self.settings.poll_interval,
            sleep=self._sleep,
            is_running=lambda: self.session.is_running,
        )
        if not self.session.is_running:
            return REASON_STOPPED
        if not found:
            return self._finish(REASON_NO_RESULTS)

        self._sleep(self.settings.first_cycle_delay)
        while True:
            self._resume_event.clear()
            reason = self.run_cycles()
            if reason != REASON_INTERRUPTED:
                return self._finish(reason)
            if not self._resume_event.wait(self._resume_wait) or not self.session.is_running:
                return self._finish(reason)

    def run_cycles(self) -> str:
        self.session.loop_active = True
        try:
            while True:
                decision = run_cycle(
                    self.session,
                    self.page,
                    self.store,
                    self.settings,
                    heartbeat=self._heartbeat,
                    jitter=self._jitter,
                )
                if not decision.should_continue:
                    return decision.reason or REASON_STOPPED
                self._sleep(decision.delay_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Scan cycle failed; waiting for a resume nudge: %s", exc)
            return REASON_INTERRUPTED
        finally:
            self.session.loop_active = False

    def _finish(self, reason: str) -> str:
        if reason == REASON_STOPPED or self.session.status is ScanStatus.STOPPED:
            return REASON_STOPPED
        self.session.complete()
        self.store.finish_scan(ScanStatus.COMPLETE, token=self.session.store_token)
        logger.info(
            "Scan %s complete (%s): %d listings",
            self.session.session_id,
            reason,
            len(self.session.records),
        )
        return reason
