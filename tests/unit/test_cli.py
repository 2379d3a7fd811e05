"""
Tests for the ledgermarket command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from ledgermarket.cli.main import cli
from ledgermarket.utils.logger import LedgerMarketLogger


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI binds its log handler to the runner's stderr."""
    yield
    LedgerMarketLogger.reset()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def run(runner, tmp_path):
    def _run(*args):
        return runner.invoke(cli, ["--data-dir", str(tmp_path), *args])
    return _run


@pytest.fixture
def wallets(run, tmp_path):
    """Create admin, seller and bob wallets; return their addresses."""
    addresses = {}
    for name in ("admin", "seller", "bob"):
        result = run("wallet", "create", "--name", name)
        assert result.exit_code == 0, result.output
        data = json.loads((tmp_path / "wallets" / f"{name}.json").read_text())
        addresses[name] = data["address"]
    return addresses


@pytest.fixture
def market(run, wallets):
    """Initialized marketplace and registry with one asset minted to seller."""
    for args in (
        ("market", "init", "--as", "admin"),
        ("asset", "init", "--as", "admin"),
        ("asset", "mint", "--as", "admin", "--to", "seller", "--name", "Leaf", "--attr", "rarity=gold"),
    ):
        result = run(*args)
        assert result.exit_code == 0, result.output
    return wallets


class TestWallet:
    """Tests for wallet commands."""

    def test_create_and_list(self, run, wallets):
        result = run("wallet", "list")
        assert result.exit_code == 0
        for name, address in wallets.items():
            assert f"{name}: {address}" in result.output

    def test_duplicate(self, run, wallets):
        result = run("wallet", "create", "--name", "admin")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_missing_wallet(self, run):
        result = run("market", "init", "--as", "ghost")
        assert result.exit_code == 1
        assert "Wallet 'ghost' not found" in result.output

    def test_list_empty(self, run):
        result = run("wallet", "list")
        assert "No wallets found." in result.output


class TestMarket:
    """Tests for marketplace bootstrap commands."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert "0.1.0" in result.output

    def test_stats_before_init(self, run):
        result = run("market", "stats")
        assert result.exit_code == 0
        assert "initialized: False" in result.output

    def test_init_twice(self, run, market):
        result = run("market", "init", "--as", "admin")
        assert result.exit_code == 1
        assert "AlreadyInitialized" in result.output

    def test_stats(self, run, market):
        result = run("market", "stats")
        assert "initialized: True" in result.output
        assert "asset_supply: 1" in result.output


class TestAuctionCommands:
    """Tests for the auction lifecycle through the CLI."""

    def test_full_flow(self, run, market):
        seller, bob = market["seller"], market["bob"]

        result = run("auction", "create", "--as", "seller", "--token", "1",
                     "--price", "100", "--increment", "10", "--hours", "1")
        assert result.exit_code == 0, result.output
        assert "Auction created: #1" in result.output

        result = run("auction", "bid", "--as", "bob", "1", "105")
        assert result.exit_code == 1
        assert "BidBelowIncrement" in result.output

        result = run("auction", "bid", "--as", "bob", "1", "110")
        assert result.exit_code == 0, result.output
        assert "Next minimum: 120" in result.output

        result = run("auction", "show", "1")
        assert f"Highest bid: 110 XLM by {bob}" in result.output

        result = run("auction", "bids", "1")
        assert f"110 by {bob}" in result.output

        result = run("auction", "cancel", "--as", "seller", "1")
        assert result.exit_code == 1
        assert "HasBids" in result.output

        result = run("auction", "end", "1")
        assert result.exit_code == 1
        assert "StillActive" in result.output

        result = run("auction", "seller", "seller")
        assert f"Auctions by {seller}: 1" in result.output

        result = run("auction", "active")
        assert "Active auctions: 1" in result.output

    def test_zero_hour_auction_ends(self, run, market):
        run("auction", "create", "--as", "seller", "--token", "1", "--price", "50", "--hours", "0")

        result = run("auction", "end", "1")
        assert result.exit_code == 0, result.output
        assert f"Winner: {market['seller']} at 50 XLM" in result.output

        result = run("auction", "active")
        assert "Active auctions: none" in result.output

    def test_cancel(self, run, market):
        run("auction", "create", "--as", "seller", "--token", "1", "--price", "50")
        result = run("auction", "cancel", "--as", "seller", "1")
        assert result.exit_code == 0, result.output
        assert "Auction #1 cancelled" in result.output

        result = run("auction", "show", "1")
        assert "[Cancelled]" in result.output

    def test_cancel_by_other_wallet(self, run, market):
        run("auction", "create", "--as", "seller", "--token", "1", "--price", "50")
        result = run("auction", "cancel", "--as", "bob", "1")
        assert result.exit_code == 1
        assert "NotSeller" in result.output

    def test_show_unknown(self, run, market):
        result = run("auction", "show", "9")
        assert result.exit_code == 1
        assert "NotFound" in result.output

    def test_no_bids(self, run, market):
        run("auction", "create", "--as", "seller", "--token", "1", "--price", "50")
        assert "No bids." in run("auction", "bids", "1").output


class TestAssetCommands:
    """Tests for registry commands."""

    def test_show(self, run, market):
        result = run("asset", "show", "1")
        assert result.exit_code == 0, result.output
        assert "Asset #1: Leaf" in result.output
        assert f"Owner: {market['seller']}" in result.output
        assert "rarity: gold" in result.output

    def test_transfer_and_tokens(self, run, market):
        result = run("asset", "transfer", "--as", "seller", "--to", "bob", "1")
        assert result.exit_code == 0, result.output

        assert f"Owner of #1: {market['bob']}" in run("asset", "owner", "1").output
        assert f"Tokens of {market['bob']}: 1" in run("asset", "tokens", "bob").output
        assert "none" in run("asset", "tokens", "seller").output

    def test_transfer_not_owner(self, run, market):
        result = run("asset", "transfer", "--as", "bob", "--to", "bob", "1")
        assert result.exit_code == 1
        assert "NotOwner" in result.output

    def test_mint_requires_admin(self, run, market):
        result = run("asset", "mint", "--as", "bob", "--to", "bob", "--name", "Fake")
        assert result.exit_code == 1
        assert "Unauthorized" in result.output

    def test_bad_attribute(self, run, market):
        result = run("asset", "mint", "--as", "admin", "--to", "bob", "--name", "X", "--attr", "oops")
        assert result.exit_code == 1
        assert "trait=value" in result.output

    def test_supply(self, run, market):
        assert "Total supply: 1" in run("asset", "supply").output


class TestEventsCommand:
    """Tests for the event log command."""

    def test_list(self, run, market):
        result = run("events")
        assert result.exit_code == 0
        assert "#1 initialized" in result.output
        assert "#3 mint" in result.output

    def test_kind_filter(self, run, market):
        result = run("events", "--kind", "mint")
        assert "#3 mint" in result.output
        assert "#1 initialized" not in result.output

    def test_unknown_kind(self, run, market):
        result = run("events", "--kind", "bogus")
        assert result.exit_code == 1
        assert "Unknown event kind" in result.output


class TestDemo:
    """Tests for the in-memory walkthrough."""

    def test_demo(self, run):
        result = run("demo")
        assert result.exit_code == 0, result.output
        assert "bob bids 105: BidBelowIncrement" in result.output
        assert "✓ bob bids 110" in result.output
        assert "carol bids 115: BidBelowIncrement" in result.output
        assert "HasBids" in result.output
        assert "Winner: carol at 120 KALE" in result.output
        assert "Demo complete!" in result.output
