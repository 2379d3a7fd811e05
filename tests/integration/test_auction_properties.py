"""
Randomized auction histories.

Each seed drives a random sequence of create / bid / end / cancel calls
(valid and invalid) against one marketplace while a plain-dict model
tracks what the outcome of every call must be.
"""

import random

import pytest

from ledgermarket.core.auction import AuctionStatus
from ledgermarket.core.clock import ManualClock
from ledgermarket.core.errors import (
    AuctionError,
    BidBelowIncrement,
    BidTooLow,
    Expired,
    HasBids,
    InvalidState,
    NotSeller,
    StillActive,
)
from ledgermarket.core.identity import CallerIdentity
from ledgermarket.core.market import open_marketplace

PRINCIPALS = ["alice", "bob", "carol", "dave"]
STEPS = 150


@pytest.fixture
def market():
    identity = CallerIdentity()
    clock = ManualClock(start=1_000_000)
    mp = open_marketplace(identity, clock=clock, in_memory=True)
    with identity.acting_as("admin"):
        mp.auctions.initialize("admin")
    yield mp, identity, clock
    mp.close()


def expected_bid_error(model, now, amount):
    if now >= model["end_time"]:
        return Expired
    if model["status"] != AuctionStatus.ACTIVE:
        return InvalidState
    if amount <= model["highest_bid"]:
        return BidTooLow
    if amount < model["highest_bid"] + model["increment"]:
        return BidBelowIncrement
    return None


def expected_cancel_error(model, seller):
    if model["seller"] != seller:
        return NotSeller
    if model["status"] != AuctionStatus.ACTIVE:
        return InvalidState
    if model["bids"]:
        return HasBids
    return None


def expected_end_error(model, now):
    if model["status"] == AuctionStatus.ACTIVE and now < model["end_time"]:
        return StillActive
    if model["status"] != AuctionStatus.ACTIVE:
        return InvalidState
    return None


def call(identity, principal, fn, *args):
    with identity.acting_as(principal):
        return fn(*args)


@pytest.mark.parametrize("seed", [1, 7, 42, 1234, 9001])
def test_random_history(market, seed):
    mp, identity, clock = market
    engine = mp.auctions
    rng = random.Random(seed)
    model = {}

    for _ in range(STEPS):
        action = rng.choice(["create", "bid", "bid", "bid", "end", "cancel", "tick"])
        now = clock.now()

        if action == "create" or not model:
            seller = rng.choice(PRINCIPALS)
            price = rng.randint(0, 200)
            increment = rng.randint(0, 20)
            hours = rng.randint(0, 3)
            auction_id = call(
                identity, seller, engine.create_auction,
                seller, "registry", rng.randint(1, 5), price, increment, hours, "XLM",
            )
            assert auction_id == len(model) + 1
            model[auction_id] = {
                "seller": seller,
                "highest_bid": price,
                "highest_bidder": seller,
                "increment": increment,
                "end_time": now + hours * 3600,
                "status": AuctionStatus.ACTIVE,
                "bids": [],
            }

        elif action == "bid":
            auction_id = rng.choice(list(model))
            entry = model[auction_id]
            bidder = rng.choice(PRINCIPALS)
            amount = entry["highest_bid"] + rng.randint(-5, 2 * entry["increment"] + 5)
            expected = expected_bid_error(entry, now, amount)

            if expected is None:
                record = call(identity, bidder, engine.place_bid, bidder, auction_id, amount)
                assert record.highest_bid == amount
                entry["highest_bid"] = amount
                entry["highest_bidder"] = bidder
                entry["bids"].append(amount)
            else:
                with pytest.raises(expected):
                    call(identity, bidder, engine.place_bid, bidder, auction_id, amount)

        elif action == "end":
            auction_id = rng.choice(list(model))
            entry = model[auction_id]
            expected = expected_end_error(entry, now)
            if expected is None:
                ended = engine.end_auction(auction_id)
                assert ended.highest_bidder == entry["highest_bidder"]
                entry["status"] = AuctionStatus.ENDED
            else:
                with pytest.raises(expected):
                    engine.end_auction(auction_id)

        elif action == "cancel":
            auction_id = rng.choice(list(model))
            entry = model[auction_id]
            seller = entry["seller"] if rng.random() < 0.8 else rng.choice(PRINCIPALS)
            expected = expected_cancel_error(entry, seller)
            if expected is None:
                call(identity, seller, engine.cancel_auction, seller, auction_id)
                entry["status"] = AuctionStatus.CANCELLED
            else:
                with pytest.raises(expected):
                    call(identity, seller, engine.cancel_auction, seller, auction_id)

        else:
            clock.advance(seconds=rng.randint(0, 2 * 3600))

    # Active set matches the model exactly
    assert engine.get_active_auctions() == sorted(
        auction_id for auction_id, entry in model.items()
        if entry["status"] == AuctionStatus.ACTIVE
    )

    for auction_id, entry in model.items():
        record = engine.get_auction(auction_id)
        bids = engine.get_auction_bids(auction_id)

        assert record.status == entry["status"]
        assert record.highest_bid == entry["highest_bid"]
        assert record.highest_bidder == entry["highest_bidder"]
        assert [b.amount for b in bids] == entry["bids"]

        # Admitted bids strictly increase by at least the increment
        previous = record.starting_price
        for bid in bids:
            assert bid.amount > previous
            assert bid.amount >= previous + record.min_bid_increment
            previous = bid.amount

        # Bid timestamps are chronological and inside the window
        stamps = [b.timestamp for b in bids]
        assert stamps == sorted(stamps)
        assert all(record.start_time <= t < record.end_time for t in stamps)


def test_failed_calls_never_reach_the_log(market):
    mp, identity, clock = market
    rng = random.Random(3)
    with identity.acting_as("alice"):
        auction_id = mp.auctions.create_auction("alice", "registry", 1, 100, 10, 1, "XLM")
    start = mp.events.last_sequence()

    accepted = 0
    for _ in range(50):
        amount = rng.randint(90, 400)
        try:
            call(identity, "bob", mp.auctions.place_bid, "bob", auction_id, amount)
            accepted += 1
        except AuctionError:
            pass

    assert mp.events.last_sequence() == start + accepted
    assert len(mp.auctions.get_auction_bids(auction_id)) == accepted
