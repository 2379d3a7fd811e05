"""
Tests for the event channel and durable event log.
"""

import pytest

from ledgermarket.core.clock import ManualClock
from ledgermarket.core.events import (
    CallbackSink,
    Event,
    EventDispatcher,
    EventKind,
    EventLog,
    RecordingSink,
)
from ledgermarket.core.identity import CallerIdentity
from ledgermarket.core.market import open_marketplace


@pytest.fixture
def market():
    identity = CallerIdentity()
    clock = ManualClock(start=10_000)
    mp = open_marketplace(identity, clock=clock, in_memory=True)
    with identity.acting_as("admin"):
        mp.auctions.initialize("admin")
        mp.registry.initialize("admin")
        mp.registry.mint("seller", "Leaf")
    with identity.acting_as("seller"):
        mp.auctions.create_auction("seller", "registry", 1, 100, 10, 0, "XLM")
    mp.auctions.end_auction(1)
    yield mp
    mp.close()


class TestDispatcher:
    """Tests for sink fan-out."""

    def test_dispatch_in_order(self):
        first, second = RecordingSink(), RecordingSink()
        dispatcher = EventDispatcher([first])
        dispatcher.attach(second)

        events = [Event(sequence=i, kind=EventKind.CREATED) for i in (1, 2)]
        dispatcher.dispatch(events)

        assert first.events == events
        assert second.events == events

    def test_detach(self):
        sink = RecordingSink()
        dispatcher = EventDispatcher([sink])
        dispatcher.detach(sink)
        dispatcher.dispatch([Event(sequence=1, kind=EventKind.ENDED)])
        assert sink.events == []

    def test_failing_sink_is_skipped(self, caplog):
        """A raising sink is logged; later sinks and later events still arrive."""
        def boom(event):
            raise RuntimeError("sink down")

        after = RecordingSink()
        dispatcher = EventDispatcher([CallbackSink(boom), after])
        events = [Event(sequence=i, kind=EventKind.BID_PLACED) for i in (1, 2)]

        dispatcher.dispatch(events)

        assert after.events == events
        assert "failed on event #1" in caplog.text
        assert "failed on event #2" in caplog.text

    def test_callback_sink(self):
        seen = []
        EventDispatcher([CallbackSink(seen.append)]).dispatch([Event(sequence=1, kind=EventKind.MINT)])
        assert [e.kind for e in seen] == [EventKind.MINT]

    def test_recording_sink_clear(self):
        sink = RecordingSink()
        sink.publish(Event(sequence=1, kind=EventKind.CANCELLED))
        assert sink.kinds() == [EventKind.CANCELLED]
        sink.clear()
        assert sink.events == []


class TestEventLog:
    """Tests for reading committed events."""

    def test_one_event_per_call(self, market):
        kinds = [e.kind for e in market.events.read()]
        assert kinds == [
            EventKind.INITIALIZED,
            EventKind.REGISTRY_INITIALIZED,
            EventKind.MINT,
            EventKind.CREATED,
            EventKind.ENDED,
        ]
        assert market.events.last_sequence() == 5

    def test_sequences_and_timestamps(self, market):
        events = market.events.read()
        assert [e.sequence for e in events] == [1, 2, 3, 4, 5]
        assert all(e.timestamp == 10_000 for e in events)

    def test_since(self, market):
        assert [e.sequence for e in market.events.read(since=3)] == [4, 5]

    def test_kind_filter(self, market):
        events = market.events.read(kind=EventKind.ENDED)
        assert len(events) == 1
        assert events[0].payload == {"auction_id": 1, "highest_bidder": "seller", "highest_bid": 100}

    def test_limit(self, market):
        assert [e.sequence for e in market.events.read(limit=2)] == [1, 2]

    def test_last_sequence(self, market):
        assert market.events.last_sequence() == 5

    def test_empty_log(self):
        mp = open_marketplace(CallerIdentity(), in_memory=True)
        log = EventLog(mp.storage)
        assert log.read() == []
        assert log.last_sequence() == 0
        mp.close()
