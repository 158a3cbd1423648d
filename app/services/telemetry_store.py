"""
Telemetry Store
===============

In-memory home of the latest reading and a bounded, oldest-first history of
readings. History is a ``deque(maxlen=capacity)``: appending beyond capacity
evicts the oldest entry in the same step.

The store does not create its own lock when one is supplied. The service
container hands the same ``RLock`` to the store and the irrigation controller
so that recording a reading and evaluating it happen in one critical section.
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from app.domain.telemetry import Reading
from app.utils.concurrency import synchronized

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 200


class TelemetryStore:
    """Latest reading plus a fixed-capacity FIFO history."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY, lock: threading.RLock | None = None):
        """
        Args:
            capacity: Maximum number of readings retained in history
            lock: Shared lock guarding the store (a private RLock when omitted)
        """
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._lock = lock or threading.RLock()
        self._latest: Reading | None = None
        self._history: deque[Reading] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @synchronized
    def record_reading(self, reading: Reading) -> None:
        """Make ``reading`` the latest and append it to history."""
        self._latest = reading
        self._history.append(reading)
        logger.debug("Recorded reading moisture=%s (history=%s)", reading.soil_moisture, len(self._history))

    @synchronized
    def latest(self) -> Reading | None:
        """Most recent reading, or None before the first message arrives."""
        return self._latest

    @synchronized
    def history(self) -> list[Reading]:
        """Snapshot copy of history, oldest first."""
        return list(self._history)

    @synchronized
    def __len__(self) -> int:
        return len(self._history)
