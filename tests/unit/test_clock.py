"""
Tests for marketplace clocks.
"""

import time

import pytest

from ledgermarket.core.clock import ManualClock, SystemClock


class TestManualClock:
    """Tests for the explicitly driven clock."""

    def test_start(self):
        assert ManualClock(start=100).now() == 100

    def test_advance(self):
        clock = ManualClock(start=100)
        assert clock.advance(seconds=5) == 105
        assert clock.advance(hours=2) == 105 + 7200
        assert clock.now() == 7305

    def test_set_forward(self):
        clock = ManualClock(start=100)
        clock.set(100)
        clock.set(500)
        assert clock.now() == 500

    def test_never_backwards(self):
        clock = ManualClock(start=100)
        with pytest.raises(ValueError):
            clock.set(99)
        with pytest.raises(ValueError):
            clock.advance(seconds=-1)
        assert clock.now() == 100

    def test_defaults_to_wall_clock(self):
        assert abs(ManualClock().now() - int(time.time())) <= 2


class TestSystemClock:
    """Tests for the wall clock."""

    def test_close_to_wall_time(self):
        assert abs(SystemClock().now() - int(time.time())) <= 2

    def test_monotonic(self, monkeypatch):
        clock = SystemClock()
        monkeypatch.setattr(time, "time", lambda: 2000.0)
        assert clock.now() == 2000
        monkeypatch.setattr(time, "time", lambda: 1000.0)
        assert clock.now() == 2000
