"""
Unit of work - one marketplace call's buffered reads and writes.

A call validates against the store, then stages its writes and its event
here. Nothing reaches the database until the unit commits; staged writes
are visible to later reads of the same unit. On commit every staged row
and event is written inside one SQLite transaction, so a call is applied
completely or not at all.
"""

import json
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from ledgermarket.core.auction.models import AuctionRecord, Bid, MarketplaceState
from ledgermarket.core.events import Event, EventKind
from ledgermarket.core.registry.models import AssetRecord, RegistryState
from ledgermarket.core.storage import records
from ledgermarket.core.storage.records import RecordReader


class UnitOfWork(RecordReader):
    """
    Staged writes for a single call.

    Attributes:
        timestamp: Clock value of the call (stamped on its events)
        events: Events committed by this unit (filled in at commit)
    """

    def __init__(self, adapter, timestamp: int):
        self.adapter = adapter
        self.timestamp = timestamp
        self._puts: Dict[str, Tuple[bytes, str]] = {}
        self._meta: Dict[str, str] = {}
        self._pending_events: List[Tuple[EventKind, Dict[str, Any]]] = []
        self.events: List[Event] = []

    # =========================================================================
    # Raw reads (staged first, then committed)
    # =========================================================================

    def _get(self, key: str) -> Optional[bytes]:
        if key in self._puts:
            return self._puts[key][0]
        return self.adapter.get(key)

    def _get_meta(self, name: str) -> Optional[str]:
        if name in self._meta:
            return self._meta[name]
        return self.adapter.get_meta(name)

    @property
    def is_dirty(self) -> bool:
        return bool(self._puts or self._meta or self._pending_events)

    # =========================================================================
    # Marketplace writes
    # =========================================================================

    def put_market_state(self, state: MarketplaceState) -> None:
        self._meta[records.META_MARKET_ADMIN] = state.admin
        self._meta[records.META_NEXT_AUCTION_ID] = str(state.next_auction_id)

    def allocate_auction_id(self, state: MarketplaceState) -> Tuple[int, MarketplaceState]:
        """
        Reserve the next auction id.

        The advanced counter is staged in this unit, so the id is only
        consumed if the record that uses it commits too.
        """
        auction_id = state.next_auction_id
        advanced = state.model_copy(update={"next_auction_id": auction_id + 1})
        self.put_market_state(advanced)
        return auction_id, advanced

    def put_auction(self, auction: AuctionRecord) -> None:
        self._puts[records.auction_key(auction.id)] = (
            auction.model_dump_json().encode(), records.BUCKET_AUCTIONS
        )

    def append_bid(self, auction_id: int, bid: Bid) -> None:
        bids = self.get_bids(auction_id)
        bids.append(bid)
        self._puts[records.bids_key(auction_id)] = (records.encode_bids(bids), records.BUCKET_BIDS)

    def append_seller_auction(self, seller: str, auction_id: int) -> None:
        ids = self.get_seller_auctions(seller)
        ids.append(auction_id)
        self._puts[records.seller_key(seller)] = (records.encode_ids(ids), records.BUCKET_SELLERS)

    # =========================================================================
    # Registry writes
    # =========================================================================

    def put_registry_state(self, state: RegistryState) -> None:
        self._meta[records.META_REGISTRY_ADMIN] = state.admin
        self._meta[records.META_NEXT_TOKEN_ID] = str(state.next_token_id)

    def allocate_token_id(self, state: RegistryState) -> Tuple[int, RegistryState]:
        token_id = state.next_token_id
        advanced = state.model_copy(update={"next_token_id": token_id + 1})
        self.put_registry_state(advanced)
        return token_id, advanced

    def put_asset(self, asset: AssetRecord) -> None:
        self._puts[records.asset_key(asset.id)] = (
            asset.model_dump_json().encode(), records.BUCKET_ASSETS
        )

    def put_owner_tokens(self, owner: str, token_ids: List[int]) -> None:
        self._puts[records.owner_key(owner)] = (records.encode_ids(token_ids), records.BUCKET_OWNERS)

    # =========================================================================
    # Events
    # =========================================================================

    def emit(self, kind: EventKind, **payload: Any) -> None:
        """Stage the event of this call."""
        self._pending_events.append((kind, payload))

    # =========================================================================
    # Commit
    # =========================================================================

    def flush(self, conn: sqlite3.Connection) -> List[Event]:
        """Write everything staged into the open transaction `conn`."""
        for key, (value, bucket) in self._puts.items():
            self.adapter.put_in(conn, key, value, bucket)
        for name, value in self._meta.items():
            self.adapter.set_meta_in(conn, name, value)

        committed = []
        for kind, payload in self._pending_events:
            sequence = self.adapter.append_event_in(
                conn, kind.value, json.dumps(payload, sort_keys=True), self.timestamp
            )
            committed.append(Event(sequence=sequence, kind=kind, payload=payload, timestamp=self.timestamp))
        return committed
