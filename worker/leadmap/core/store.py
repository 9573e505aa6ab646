"""In-memory collecting store for scanned listings."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from leadmap.models import ListingRecord, ScanStatus

logger = logging.getLogger(__name__)

BatchListener = Callable[[List[ListingRecord]], None]

HISTORY_LIMIT = 20


class RecordStore:
    """Accumulates record batches, deduplicated by place_id, and tracks scan status.

    Listeners are called with every accepted batch. A failing listener is
    logged and never interrupts the scan that produced the batch.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT) -> None:
        self.status = ScanStatus.IDLE
        self.keyword: Optional[str] = None
        self.location: Optional[str] = None
        self.history: List[Dict[str, Any]] = []
        self._history_limit = history_limit
        self._records: List[ListingRecord] = []
        self._place_ids: set = set()
        self._listeners: List[BatchListener] = []
        self._scan_token = 0
        self._lock = threading.Lock()

    def add_listener(self, listener: BatchListener) -> None:
        self._listeners.append(listener)

    @property
    def records(self) -> List[ListingRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def begin_scan(self, keyword: str, location: str) -> int:
        """Reset for a new scan and return its token; batches from older scans are refused."""
        with self._lock:
            self._scan_token += 1
            token = self._scan_token
            self.status = ScanStatus.RUNNING
            self.keyword = keyword
            self.location = location
            self._records = []
            self._place_ids = set()
            self.history.insert(0, {"keyword": keyword, "location": location, "timestamp": time.time()})
            del self.history[self._history_limit:]
        logger.info("Store reset for scan keyword=%s location=%s", keyword, location)
        return token

    def append_batch(self, batch: List[ListingRecord], token: Optional[int] = None) -> List[ListingRecord]:
        """Store records with an unseen place_id and return the accepted ones."""
        with self._lock:
            if token is not None and token != self._scan_token:
                logger.info("Dropping batch of %d from a superseded scan", len(batch))
                return []
            accepted = []
            for record in batch:
                if not record.place_id or record.place_id in self._place_ids:
                    continue
                self._place_ids.add(record.place_id)
                accepted.append(record)
            self._records.extend(accepted)
            total = len(self._records)

        if accepted:
            logger.info("Stored %d new listings. total=%d", len(accepted), total)
            self._notify(accepted)
        return accepted

    def finish_scan(self, status: ScanStatus, token: Optional[int] = None) -> None:
        if token is not None and token != self._scan_token:
            return
        self.status = status
        logger.info("Scan finished with status=%s total=%d", status.value, len(self._records))

    def summary(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "keyword": self.keyword,
            "location": self.location,
            "count": len(self._records),
            "history": list(self.history),
        }

    def _notify(self, batch: List[ListingRecord]) -> None:
        for listener in self._listeners:
            try:
                listener(batch)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Batch listener %r failed: %s", listener, exc)
