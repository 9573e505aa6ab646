"""Heartbeat watchdog that nudges a stalled scan back into its loop."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScrollKeepalive:
    """Tracks scan heartbeats and fires a nudge when they go stale.

    ``check()`` is cheap and side-effect free apart from the nudge, so it can be
    driven by ``start()``'s background timer or called directly.
    """

    def __init__(
        self,
        *,
        heartbeat_timeout: float = 10.0,
        interval: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.heartbeat_timeout = heartbeat_timeout
        self.interval = interval
        self._clock = clock
        self.last_heartbeat = clock()
        self._timer: Optional[threading.Timer] = None
        self._stopped = threading.Event()

    def beat(self) -> None:
        self.last_heartbeat = self._clock()

    def is_stale(self) -> bool:
        return self._clock() - self.last_heartbeat > self.heartbeat_timeout

    def check(self, is_running: Callable[[], bool], nudge: Callable[[], bool]) -> bool:
        """Nudge the scan when it should be running but has gone quiet."""
        if not is_running():
            return False
        if not self.is_stale():
            return False
        logger.info("Scroll heartbeat stale for %.1fs, nudging scan", self._clock() - self.last_heartbeat)
        return bool(nudge())

    def start(self, is_running: Callable[[], bool], nudge: Callable[[], bool]) -> None:
        self._stopped.clear()
        self.beat()

        def tick() -> None:
            if self._stopped.is_set():
                return
            try:
                self.check(is_running, nudge)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Keepalive check failed: %s", exc)
            if not is_running():
                logger.info("Scan no longer running; keepalive stopped")
                return
            self._schedule(tick)

        self._schedule(tick)
        logger.info("Scroll keepalive started (interval=%ss)", self.interval)

    def stop(self) -> None:
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self, tick: Callable[[], None]) -> None:
        self._timer = threading.Timer(self.interval, tick)
        self._timer.daemon = True
        self._timer.start()
