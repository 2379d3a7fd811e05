import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from ledgermarket.core.events import Event, EventDispatcher, EventKind
from ledgermarket.core.storage import records
from ledgermarket.core.storage.records import RecordReader
from ledgermarket.core.storage.sqlite_adapter import SQLiteAdapter
from ledgermarket.core.storage.unit_of_work import UnitOfWork
from ledgermarket.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager(RecordReader):
    """
    Manages persistent storage for the marketplace.

    The only source of truth between calls. Handles:
    - Committed, typed reads of auctions, bid logs, seller indexes,
      assets and owner indexes
    - Units of work for mutating calls (atomic commit + event delivery)
    - The durable event log
    """

    def __init__(self, data_dir: Optional[Path] = None, db_name: str = "market.db"):
        """
        Args:
            data_dir: Directory holding the database. None = in-memory only.
            db_name: Database file name inside data_dir
        """
        self.data_dir = data_dir
        self.db_path = data_dir / db_name if data_dir is not None else None
        self.adapter = SQLiteAdapter(self.db_path)
        self.dispatcher = EventDispatcher()

        logger.info(f"StorageManager initialized at {self.db_path or 'memory'}")

    # =========================================================================
    # Committed reads
    # =========================================================================

    def _get(self, key: str) -> Optional[bytes]:
        return self.adapter.get(key)

    def _get_meta(self, name: str) -> Optional[str]:
        return self.adapter.get_meta(name)

    def count_auctions(self) -> int:
        return self.adapter.count(records.BUCKET_AUCTIONS)

    # =========================================================================
    # Mutations
    # =========================================================================

    @contextmanager
    def unit_of_work(self, clock) -> Iterator[UnitOfWork]:
        """
        Open the unit of work of one mutating call.

        The block validates and stages writes; on normal exit everything
        staged commits in one transaction and the committed events are
        dispatched. Any exception rolls the whole call back.

        The call timestamp is read from `clock` once the write lock is
        held, so commit order and timestamp order agree.
        """
        with self.adapter.transaction() as conn:
            uow = UnitOfWork(self.adapter, clock.now())
            yield uow
            uow.events = uow.flush(conn)
        self.dispatcher.dispatch(uow.events)

    # =========================================================================
    # Event Log
    # =========================================================================

    def load_events(self, since: int = 0, kind: Optional[str] = None) -> List[Event]:
        return [
            Event(sequence=seq, kind=EventKind(k), payload=json.loads(payload), timestamp=ts)
            for seq, k, payload, ts in self.adapter.get_events(since=since, kind=kind)
        ]

    def last_event_sequence(self) -> int:
        return self.adapter.last_event_sequence()

    def close(self) -> None:
        self.adapter.close()
