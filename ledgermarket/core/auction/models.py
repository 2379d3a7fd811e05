"""
Auction records - the persisted entities of the auction engine.

All records are immutable pydantic models. A state change produces a new
record via `model_copy(update=...)`, which the engine writes back in the
same unit of work that validated it.

Record lifecycle:
-----------------
    Active ──end──▶ Ended
       │
       └──cancel──▶ Cancelled

Ended and Cancelled are terminal. `highest_bidder == seller` together with
`highest_bid == starting_price` is the "no bid yet" sentinel; the bid log
is the authoritative answer to "has anyone bid".
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuctionStatus(str, Enum):
    """Status of an auction."""
    ACTIVE = "Active"
    ENDED = "Ended"
    CANCELLED = "Cancelled"


class Bid(BaseModel):
    """One admitted bid. Bid logs are append-only."""
    model_config = ConfigDict(frozen=True)

    bidder: str
    amount: int
    timestamp: int


class AuctionRecord(BaseModel):
    """
    Authoritative state of one auction.

    Attributes:
        id: Auction id, assigned once from the marketplace counter
        asset_contract: Registry holding the auctioned asset
        asset_token_id: Token id within that registry
        seller: Creating principal (immutable)
        highest_bidder: Leading principal; the seller until a bid lands
        highest_bid: Leading amount; the starting price until a bid lands
        starting_price: Opening price chosen by the seller
        min_bid_increment: Minimum step over highest_bid for a new bid
        start_time: Clock value at creation
        end_time: start_time + duration_hours * 3600
        asset: Settlement currency tag, opaque to the engine
        status: Lifecycle status
    """
    model_config = ConfigDict(frozen=True)

    id: int
    asset_contract: str
    asset_token_id: int
    seller: str
    highest_bidder: str
    highest_bid: int
    starting_price: int
    min_bid_increment: int
    start_time: int
    end_time: int
    asset: str
    status: AuctionStatus = AuctionStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status is AuctionStatus.ACTIVE

    def is_expired(self, now: int) -> bool:
        """Time expiry is authoritative whether or not end has been called."""
        return now >= self.end_time

    @property
    def min_next_bid(self) -> int:
        """Smallest amount the increment rule admits next."""
        return self.highest_bid + self.min_bid_increment

    def with_bid(self, bid: Bid) -> "AuctionRecord":
        return self.model_copy(update={"highest_bidder": bid.bidder, "highest_bid": bid.amount})

    def with_status(self, status: AuctionStatus) -> "AuctionRecord":
        return self.model_copy(update={"status": status})


class MarketplaceState(BaseModel):
    """
    Process-wide marketplace scalars.

    Created once by initialize(); every later call loads it from the
    store instead of reading ambient globals.
    """
    model_config = ConfigDict(frozen=True)

    admin: str
    next_auction_id: int = 1

    @property
    def total_auctions(self) -> int:
        return self.next_auction_id - 1


def last_bid(bids: list) -> Optional[Bid]:
    return bids[-1] if bids else None
