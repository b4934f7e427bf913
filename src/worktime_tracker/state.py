"""Shared in-memory state between the recorder and the aggregation engine."""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass, field

from .models import ActivityEvent


@dataclass(slots=True)
class TrackerState:
    """Pending raw events plus the debounce gate timestamp.

    Both the recorder and the engine hold a reference to the same instance;
    every access goes through the lock.
    """

    last_logged_time: int = 0
    _buffer: list[ActivityEvent] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def admit(self, now: int, window_ms: int) -> bool:
        """Check the debounce gate, stamping it when the event is admitted."""
        with self._lock:
            if now - self.last_logged_time < window_ms:
                return False
            self.last_logged_time = now
            return True

    def append(self, event: ActivityEvent) -> None:
        """Insert keeping the buffer ordered by timestamp.

        Events with equal timestamps keep their arrival order.
        """
        with self._lock:
            bisect.insort_right(self._buffer, event, key=lambda item: item.timestamp)

    def drain(self) -> list[ActivityEvent]:
        """Remove and return every buffered event as one batch."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        return batch

    def pending_count(self) -> int:
        with self._lock:
            return len(self._buffer)
