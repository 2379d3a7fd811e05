"""
Auction Module.

Timed ascending-price auctions:
- Auction records, bids and marketplace state
- The lifecycle state machine (create, bid, end, cancel)
"""

from ledgermarket.core.auction.models import (
    AuctionRecord,
    AuctionStatus,
    Bid,
    MarketplaceState,
)
from ledgermarket.core.auction.engine import AuctionEngine

__all__ = [
    "AuctionRecord",
    "AuctionStatus",
    "Bid",
    "MarketplaceState",
    "AuctionEngine",
]
