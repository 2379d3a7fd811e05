"""
Network time for the marketplace.

Auction timing compares unix seconds from a Clock. Clocks never go
backwards: a bid admitted at time t is always followed by bids stamped
at t or later, which keeps bid logs chronological.
"""

import threading
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> int:
        """Current network time in unix seconds."""
        ...


class SystemClock:
    """Wall-clock time, clamped so it never decreases."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """A clock moved explicitly (tests, simulations, the CLI demo)."""

    def __init__(self, start: Optional[int] = None):
        self._now = int(time.time()) if start is None else start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp

    def advance(self, seconds: int = 0, hours: int = 0) -> int:
        delta = seconds + hours * 3600
        if delta < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += delta
        return self._now
