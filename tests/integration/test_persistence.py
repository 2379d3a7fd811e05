import pytest

from ledgermarket.core.auction import AuctionStatus
from ledgermarket.core.clock import ManualClock
from ledgermarket.core.config import MarketConfig
from ledgermarket.core.errors import AlreadyInitialized, BidBelowIncrement
from ledgermarket.core.events import EventKind
from ledgermarket.core.identity import CallerIdentity
from ledgermarket.core.market import open_marketplace


@pytest.fixture
def config(tmp_path):
    """Config pointing at a temporary data directory."""
    return MarketConfig(data_dir=tmp_path / "market_data")


def test_marketplace_survives_restart(config):
    """Auction state, bid logs, indexes and events are preserved across restarts."""
    identity = CallerIdentity()
    clock = ManualClock(start=50_000)

    # 1. First process
    mp_a = open_marketplace(identity, config=config, clock=clock)
    with identity.acting_as("admin"):
        mp_a.auctions.initialize("admin")
        mp_a.registry.initialize("admin")
        token_id = mp_a.registry.mint("seller", "Leaf")
    with identity.acting_as("seller"):
        first = mp_a.auctions.create_auction("seller", "registry", token_id, 100, 10, 1, "XLM")
        second = mp_a.auctions.create_auction("seller", "registry", token_id, 10, 1, 2, "XLM")
    with identity.acting_as("bob"):
        mp_a.auctions.place_bid("bob", first, 110)
    with identity.acting_as("seller"):
        mp_a.auctions.cancel_auction("seller", second)

    events_before = mp_a.events.read()
    mp_a.close()

    assert config.db_path.exists()

    # 2. Second process on the same store
    mp_b = open_marketplace(identity, config=config, clock=clock)

    state = mp_b.auctions.get_state()
    assert state.admin == "admin"
    assert state.next_auction_id == 3

    record = mp_b.auctions.get_auction(first)
    assert record.highest_bidder == "bob"
    assert record.highest_bid == 110
    assert [b.amount for b in mp_b.auctions.get_auction_bids(first)] == [110]
    assert mp_b.auctions.get_auction(second).status == AuctionStatus.CANCELLED
    assert mp_b.auctions.get_seller_auctions("seller") == [first, second]
    assert mp_b.auctions.get_active_auctions() == [first]
    assert mp_b.registry.owner_of(token_id) == "seller"
    assert mp_b.events.read() == events_before

    # 3. Continue where the first process stopped
    with identity.acting_as("admin"):
        with pytest.raises(AlreadyInitialized):
            mp_b.auctions.initialize("admin")
    with identity.acting_as("carol"):
        with pytest.raises(BidBelowIncrement):
            mp_b.auctions.place_bid("carol", first, 115)
        mp_b.auctions.place_bid("carol", first, 120)
    with identity.acting_as("seller"):
        third = mp_b.auctions.create_auction("seller", "registry", token_id, 5, 1, 1, "XLM")
    assert third == 3

    clock.advance(hours=1)
    ended = mp_b.auctions.end_auction(first)
    assert ended.highest_bidder == "carol"
    mp_b.close()

    # 4. Third process sees the final outcome
    mp_c = open_marketplace(identity, config=config, clock=clock)
    assert mp_c.auctions.get_auction(first).status == AuctionStatus.ENDED
    assert mp_c.events.read()[-1].kind == EventKind.ENDED
    mp_c.close()


def test_failed_call_not_persisted(config):
    """A rejected call leaves nothing on disk."""
    identity = CallerIdentity()
    mp = open_marketplace(identity, config=config, clock=ManualClock(start=1))
    with identity.acting_as("admin"):
        mp.auctions.initialize("admin")
    with identity.acting_as("seller"):
        auction_id = mp.auctions.create_auction("seller", "x", 1, 100, 10, 1, "XLM")
    with identity.acting_as("bob"):
        with pytest.raises(BidBelowIncrement):
            mp.auctions.place_bid("bob", auction_id, 101)
    sequence = mp.events.last_sequence()
    mp.close()

    reopened = open_marketplace(identity, config=config)
    assert reopened.auctions.get_auction_bids(auction_id) == []
    assert reopened.auctions.get_auction(auction_id).highest_bid == 100
    assert reopened.events.last_sequence() == sequence == 2
    reopened.close()
