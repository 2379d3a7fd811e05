"""
Marketplace events - the externally observable notification channel.

Every committed mutating call records exactly one event. Events are
written to the `events` table inside the same SQLite transaction as the
state change, so a rolled-back call never leaves an event behind and a
committed call always does. Once the transaction commits, the events are
handed, in commit order, to every attached EventSink.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from ledgermarket.utils.logger import get_logger

logger = get_logger("events")


class EventKind(str, Enum):
    """Classification of marketplace events."""
    # Auction engine
    INITIALIZED = "initialized"
    CREATED = "created"
    BID_PLACED = "bid_placed"
    ENDED = "ended"
    CANCELLED = "cancelled"
    # Asset registry
    REGISTRY_INITIALIZED = "registry_initialized"
    MINT = "mint"
    TRANSFER = "transfer"


class Event(BaseModel):
    """
    A committed event.

    Attributes:
        sequence: Position in the durable log (1-based, assigned at commit)
        kind: Event classification
        payload: Event data (ids, principals, amounts)
        timestamp: Clock value of the call that produced it
    """
    model_config = ConfigDict(frozen=True)

    sequence: int = 0
    kind: EventKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: int = 0


class EventSink(Protocol):
    """Receives events after the producing call has committed."""

    def publish(self, event: Event) -> None:
        ...


class RecordingSink:
    """Collects delivered events in memory (tests, CLI echo)."""

    def __init__(self):
        self.events: List[Event] = []

    def publish(self, event: Event) -> None:
        self.events.append(event)

    def kinds(self) -> List[EventKind]:
        return [e.kind for e in self.events]

    def clear(self) -> None:
        self.events.clear()


class CallbackSink:
    """Adapts a plain function to the EventSink protocol."""

    def __init__(self, callback: Callable[[Event], None]):
        self.callback = callback

    def publish(self, event: Event) -> None:
        self.callback(event)


class EventDispatcher:
    """Fans committed events out to attached sinks, in order."""

    def __init__(self, sinks: Optional[List[EventSink]] = None):
        self.sinks: List[EventSink] = list(sinks or [])

    def attach(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def detach(self, sink: EventSink) -> None:
        self.sinks.remove(sink)

    def dispatch(self, events: List[Event]) -> None:
        """
        Deliver committed events to every sink.

        The producing call has already committed, so a failing sink is
        logged and skipped; the remaining sinks still receive the event.
        """
        for event in events:
            logger.debug(f"Event #{event.sequence} {event.kind.value}: {event.payload}")
            for sink in self.sinks:
                try:
                    sink.publish(event)
                except Exception:
                    logger.exception(
                        f"Sink {type(sink).__name__} failed on event #{event.sequence}"
                    )


class EventLog:
    """Read side of the durable event log."""

    def __init__(self, storage_manager):
        self.storage = storage_manager

    def read(
        self,
        since: int = 0,
        kind: Optional[EventKind] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        """
        List committed events.

        Args:
            since: Only events with sequence > since
            kind: Optional kind filter
            limit: Maximum number of events returned

        Returns:
            Events in commit order
        """
        events = self.storage.load_events(since=since, kind=kind.value if kind else None)
        if limit is not None:
            events = events[:limit]
        return events

    def last_sequence(self) -> int:
        return self.storage.last_event_sequence()


__all__ = [
    "EventKind",
    "Event",
    "EventSink",
    "RecordingSink",
    "CallbackSink",
    "EventDispatcher",
    "EventLog",
]
