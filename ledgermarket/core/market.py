"""
Marketplace wiring - one store shared by the auction engine and registry.
"""

from dataclasses import dataclass
from typing import Optional

from ledgermarket.core.auction.engine import AuctionEngine
from ledgermarket.core.clock import Clock, SystemClock
from ledgermarket.core.config import MarketConfig
from ledgermarket.core.events import EventLog
from ledgermarket.core.identity import IdentityAssertion
from ledgermarket.core.registry.asset_registry import AssetRegistry
from ledgermarket.core.storage.storage_manager import StorageManager


@dataclass
class Marketplace:
    storage: StorageManager
    auctions: AuctionEngine
    registry: AssetRegistry
    events: EventLog

    def close(self) -> None:
        self.storage.close()


def open_marketplace(
    identity: IdentityAssertion,
    config: Optional[MarketConfig] = None,
    clock: Optional[Clock] = None,
    in_memory: bool = False,
) -> Marketplace:
    """
    Open (or create) the marketplace store described by `config`.

    Args:
        identity: Capability confirming acting principals
        config: Storage location and policies (defaults if None)
        clock: Time source (wall clock if None)
        in_memory: Ignore config.data_dir and keep everything in memory
    """
    config = config or MarketConfig()
    clock = clock or SystemClock()

    if in_memory:
        storage = StorageManager(data_dir=None)
    else:
        config.ensure_dirs()
        storage = StorageManager(data_dir=config.data_dir, db_name=config.db_name)

    registry = AssetRegistry(storage, identity, clock=clock, contract_id=config.registry_contract_id)
    auctions = AuctionEngine(storage, identity, clock=clock, config=config, registry=registry)
    return Marketplace(storage=storage, auctions=auctions, registry=registry, events=EventLog(storage))
