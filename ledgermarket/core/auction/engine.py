"""
Auction Engine - timed ascending-price auctions over persistent storage.

Manages the auction lifecycle:
- Bootstrap of the marketplace state (admin, id counter)
- Auction creation with per-seller indexing
- Bid admission under the strict increment rule
- Ending once the time window has elapsed
- Cancellation by the seller while no bid exists

Every mutating call is validate-then-commit: it reads what it needs
inside one unit of work, raises an AuctionError on the first failed
precondition (nothing written), and otherwise stages the new records plus
exactly one event, which commit together. The engine itself keeps no
entity state between calls.

Bid admission, for an Active auction with time remaining:
    amount > highest_bid                      else BidTooLow
    amount >= highest_bid + min_bid_increment else BidBelowIncrement
"""

from typing import List, Optional

from ledgermarket.core.auction.models import (
    AuctionRecord,
    AuctionStatus,
    Bid,
    MarketplaceState,
    last_bid,
)
from ledgermarket.core.clock import Clock, SystemClock
from ledgermarket.core.config import MarketConfig, SECONDS_PER_HOUR
from ledgermarket.core.errors import (
    AlreadyInitialized,
    AuctionError,
    BidBelowIncrement,
    BidTooLow,
    Expired,
    HasBids,
    InvalidInput,
    InvalidState,
    InvariantViolation,
    NotAssetOwner,
    NotFound,
    NotInitialized,
    NotSeller,
    StillActive,
)
from ledgermarket.core.events import EventKind
from ledgermarket.core.identity import IdentityAssertion
from ledgermarket.utils.logger import get_logger
from ledgermarket.utils.validation import (
    first_error,
    validate_amount,
    validate_auction_params,
    validate_id,
    validate_principal,
)

logger = get_logger("auction")


class AuctionEngine:
    """
    The auction lifecycle state machine.

    Attributes:
        storage: StorageManager holding every auction record
        identity: Capability confirming the acting principal of a call
        clock: Network time source
        config: Marketplace configuration
        registry: Optional AssetRegistry consulted for ownership checks
    """

    def __init__(
        self,
        storage,
        identity: IdentityAssertion,
        clock: Optional[Clock] = None,
        config: Optional[MarketConfig] = None,
        registry=None,
    ):
        self.storage = storage
        self.identity = identity
        self.clock = clock or SystemClock()
        self.config = config or MarketConfig()
        self.registry = registry

    # =========================================================================
    # Bootstrap
    # =========================================================================

    def initialize(self, admin: str) -> MarketplaceState:
        """
        Create the marketplace state. Runs once per store.

        Raises:
            AlreadyInitialized: the store already holds a marketplace state
        """
        self._check(validate_principal(admin, "admin"))
        self.identity.require(admin)

        with self.storage.unit_of_work(self.clock) as uow:
            if uow.get_market_state() is not None:
                raise self._reject(AlreadyInitialized("marketplace already initialized"))

            state = MarketplaceState(admin=admin, next_auction_id=1)
            uow.put_market_state(state)
            uow.emit(EventKind.INITIALIZED, admin=admin)

        logger.info(f"Marketplace initialized, admin={admin}")
        return state

    def get_state(self) -> MarketplaceState:
        state = self.storage.get_market_state()
        if state is None:
            raise NotInitialized("marketplace not initialized")
        return state

    # =========================================================================
    # Creation
    # =========================================================================

    def create_auction(
        self,
        seller: str,
        asset_contract: str,
        asset_token_id: int,
        starting_price: int,
        min_bid_increment: int,
        duration_hours: int,
        asset: str,
    ) -> int:
        """
        Open a new auction.

        Args:
            seller: Creating principal (must be the caller)
            asset_contract: Registry holding the auctioned asset
            asset_token_id: Token id within that registry
            starting_price: Opening highest_bid
            min_bid_increment: Minimum step for every bid
            duration_hours: Window length; end_time = now + hours * 3600
            asset: Settlement currency tag

        Returns:
            The new auction id
        """
        valid, err = validate_auction_params({
            "seller": seller,
            "asset_contract": asset_contract,
            "asset_token_id": asset_token_id,
            "starting_price": starting_price,
            "min_bid_increment": min_bid_increment,
            "duration_hours": duration_hours,
            "asset": asset,
        })
        if not valid:
            raise self._reject(InvalidInput(err))
        self.identity.require(seller)

        with self.storage.unit_of_work(self.clock) as uow:
            now = uow.timestamp
            state = uow.get_market_state()
            if state is None:
                raise self._reject(NotInitialized("marketplace not initialized"))
            self._check_asset_owner(seller, asset_contract, asset_token_id)

            auction_id, _ = uow.allocate_auction_id(state)
            auction = AuctionRecord(
                id=auction_id,
                asset_contract=asset_contract,
                asset_token_id=asset_token_id,
                seller=seller,
                highest_bidder=seller,
                highest_bid=starting_price,
                starting_price=starting_price,
                min_bid_increment=min_bid_increment,
                start_time=now,
                end_time=now + duration_hours * SECONDS_PER_HOUR,
                asset=asset,
                status=AuctionStatus.ACTIVE,
            )
            uow.put_auction(auction)
            uow.append_seller_auction(seller, auction_id)
            uow.emit(
                EventKind.CREATED,
                auction_id=auction_id,
                seller=seller,
                asset_contract=asset_contract,
                asset_token_id=asset_token_id,
            )

        logger.info(
            f"Auction {auction_id} created: seller={seller}, "
            f"asset={asset_contract}#{asset_token_id}, start={starting_price} {asset}, "
            f"ends={auction.end_time}"
        )
        return auction_id

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(self, bidder: str, auction_id: int, amount: int) -> AuctionRecord:
        """
        Admit a bid.

        Raises:
            NotFound, Expired, InvalidState, BidTooLow, BidBelowIncrement
        """
        self._check(
            validate_principal(bidder, "bidder"),
            validate_id(auction_id, "auction_id"),
            validate_amount(amount, "amount"),
        )
        self.identity.require(bidder)

        with self.storage.unit_of_work(self.clock) as uow:
            now = uow.timestamp
            auction = self._load(uow, auction_id)

            # Elapsed time wins over stored status, ended or not
            if auction.is_expired(now):
                raise self._reject(Expired(f"auction {auction_id} ended at {auction.end_time}"))

            if not auction.is_active:
                raise self._reject(InvalidState(f"auction {auction_id} is {auction.status.value}"))

            if amount <= auction.highest_bid:
                raise self._reject(
                    BidTooLow(f"bid {amount} must exceed highest bid {auction.highest_bid}")
                )

            if amount < auction.min_next_bid:
                raise self._reject(
                    BidBelowIncrement(f"bid {amount} below minimum {auction.min_next_bid}")
                )

            bid = Bid(bidder=bidder, amount=amount, timestamp=now)
            updated = auction.with_bid(bid)
            uow.put_auction(updated)
            uow.append_bid(auction_id, bid)
            uow.emit(EventKind.BID_PLACED, auction_id=auction_id, bidder=bidder, amount=amount)

        logger.debug(f"Bid on auction {auction_id}: bidder={bidder}, amount={amount}")
        return updated

    # =========================================================================
    # Resolution
    # =========================================================================

    def end_auction(self, auction_id: int) -> AuctionRecord:
        """
        Close an auction whose window has elapsed. Callable by anyone.

        The highest bidder and amount at this instant are the outcome.
        A second call fails with InvalidState.
        """
        self._check(validate_id(auction_id, "auction_id"))

        with self.storage.unit_of_work(self.clock) as uow:
            now = uow.timestamp
            auction = self._load(uow, auction_id)

            if auction.is_active and not auction.is_expired(now):
                raise self._reject(
                    StillActive(f"auction {auction_id} runs until {auction.end_time}")
                )

            if not auction.is_active:
                raise self._reject(InvalidState(f"auction {auction_id} is {auction.status.value}"))

            ended = auction.with_status(AuctionStatus.ENDED)
            uow.put_auction(ended)
            uow.emit(
                EventKind.ENDED,
                auction_id=auction_id,
                highest_bidder=ended.highest_bidder,
                highest_bid=ended.highest_bid,
            )

        logger.info(
            f"Auction {auction_id} ended: winner={ended.highest_bidder}, amount={ended.highest_bid}"
        )
        return ended

    def cancel_auction(self, seller: str, auction_id: int) -> AuctionRecord:
        """
        Cancel an auction nobody has bid on.

        Raises:
            NotFound, NotSeller, InvalidState, HasBids
        """
        self._check(validate_principal(seller, "seller"), validate_id(auction_id, "auction_id"))
        self.identity.require(seller)

        with self.storage.unit_of_work(self.clock) as uow:
            now = uow.timestamp
            auction = self._load(uow, auction_id)

            if auction.seller != seller:
                raise self._reject(NotSeller(f"{seller} is not the seller of auction {auction_id}"))

            if not auction.is_active:
                raise self._reject(InvalidState(f"auction {auction_id} is {auction.status.value}"))

            bids = uow.get_bids(auction_id)
            self._check_sentinel(auction, bids)
            if bids:
                raise self._reject(HasBids(f"auction {auction_id} has {len(bids)} bid(s)"))

            cancelled = auction.with_status(AuctionStatus.CANCELLED)
            uow.put_auction(cancelled)
            uow.emit(EventKind.CANCELLED, auction_id=auction_id)

        logger.info(f"Auction {auction_id} cancelled by seller")
        return cancelled

    # =========================================================================
    # Queries
    # =========================================================================

    def get_auction(self, auction_id: int) -> AuctionRecord:
        auction = self.storage.get_auction(auction_id)
        if auction is None:
            raise NotFound(f"auction {auction_id} does not exist")
        return auction

    def get_auction_bids(self, auction_id: int) -> List[Bid]:
        return self.storage.get_bids(auction_id)

    def get_seller_auctions(self, seller: str) -> List[int]:
        return self.storage.get_seller_auctions(seller)

    def get_active_auctions(self) -> List[int]:
        """
        Ids whose stored status is Active.

        Scans the whole id range [1, next_auction_id - 1]. An auction whose
        window elapsed but that nobody ended still reads Active here.
        """
        state = self.storage.get_market_state()
        if state is None:
            return []

        active = []
        for auction_id in range(1, state.next_auction_id):
            auction = self.storage.get_auction(auction_id)
            if auction is not None and auction.is_active:
                active.append(auction_id)
        return active

    def stats(self) -> dict:
        """Get marketplace statistics."""
        state = self.storage.get_market_state()
        total = state.total_auctions if state else 0
        return {
            "initialized": state is not None,
            "total_auctions": total,
            "active_auctions": len(self.get_active_auctions()),
            "events": self.storage.last_event_sequence(),
        }

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(self, uow, auction_id: int) -> AuctionRecord:
        auction = uow.get_auction(auction_id)
        if auction is None:
            raise self._reject(NotFound(f"auction {auction_id} does not exist"))
        return auction

    def _check(self, *checks) -> None:
        err = first_error(list(checks))
        if err:
            raise self._reject(InvalidInput(err))

    def _check_asset_owner(self, seller: str, asset_contract: str, token_id: int) -> None:
        """Registry ownership check, only when enabled in config."""
        if not self.config.verify_asset_ownership or self.registry is None:
            return
        if asset_contract != self.registry.contract_id:
            return

        try:
            owner = self.registry.owner_of(token_id)
        except NotFound:
            raise self._reject(
                NotAssetOwner(f"asset {asset_contract}#{token_id} does not exist")
            ) from None
        if owner != seller:
            raise self._reject(NotAssetOwner(f"{seller} does not own {asset_contract}#{token_id}"))

    @staticmethod
    def _check_sentinel(auction: AuctionRecord, bids: List[Bid]) -> None:
        """
        The record's leader must agree with the bid log.

        Empty log: leader is the seller at the starting price.
        Otherwise: leader is the last logged bid.
        """
        latest = last_bid(bids)
        if latest is None:
            consistent = (
                auction.highest_bidder == auction.seller
                and auction.highest_bid == auction.starting_price
            )
        else:
            consistent = (
                auction.highest_bidder == latest.bidder
                and auction.highest_bid == latest.amount
            )
        if not consistent:
            raise InvariantViolation(
                f"auction {auction.id}: leader {auction.highest_bidder}/{auction.highest_bid} "
                f"disagrees with {len(bids)} logged bid(s)"
            )

    @staticmethod
    def _reject(error: AuctionError) -> AuctionError:
        logger.debug(f"Rejected: {error}")
        return error
