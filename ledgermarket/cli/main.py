"""
ledgermarket CLI - Command Line Interface for the marketplace

Main entry point for all CLI commands.
"""

import json
import click
from pathlib import Path
from typing import Optional

from ledgermarket.utils.logger import setup_logging, get_logger

logger = get_logger("cli")


# =============================================================================
# Helpers
# =============================================================================


def wallet_path(ctx, name: str) -> Path:
    return ctx.obj["config"].data_dir / "wallets" / f"{name}.json"


def load_wallet(ctx, name: str) -> dict:
    """Load a wallet file or abort with a hint."""
    path = wallet_path(ctx, name)
    if not path.exists():
        click.echo(f"❌ Wallet '{name}' not found")
        click.echo(f"   Create with: ledgermarket wallet create --name {name}")
        raise click.exceptions.Exit(1)
    return json.loads(path.read_text())


def resolve_principal(ctx, value: str) -> str:
    """A principal given as a wallet name resolves to the wallet address."""
    if wallet_path(ctx, value).exists():
        return load_wallet(ctx, value)["address"]
    return value


def open_market(ctx, as_wallet: Optional[str] = None):
    """
    Open the marketplace store for one command.

    With a wallet, calls are authorized by that wallet's key; without one
    the caller is anonymous and may only read or end auctions.
    """
    from ledgermarket.core.identity import CallerIdentity, SignerIdentity
    from ledgermarket.core.market import open_marketplace
    from ledgermarket.crypto import hex_to_bytes, keypair_from_private_key

    if as_wallet:
        data = load_wallet(ctx, as_wallet)
        keypair = keypair_from_private_key(hex_to_bytes(data["private_key"]))
        identity = SignerIdentity.from_private_key(keypair.private_key)
        principal = keypair.address
    else:
        identity = CallerIdentity(None)
        principal = None

    return open_marketplace(identity, config=ctx.obj["config"]), principal


def fail(err) -> None:
    click.echo(f"❌ {err}")
    raise click.exceptions.Exit(1)


def echo_auction(auction) -> None:
    click.echo(f"Auction #{auction.id} [{auction.status.value}]")
    click.echo(f"  Asset: {auction.asset_contract}#{auction.asset_token_id}")
    click.echo(f"  Seller: {auction.seller}")
    click.echo(f"  Highest bid: {auction.highest_bid} {auction.asset} by {auction.highest_bidder}")
    click.echo(f"  Starting price: {auction.starting_price}, increment: {auction.min_bid_increment}")
    click.echo(f"  Window: {auction.start_time} -> {auction.end_time}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help="Load settings from a .env file")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, env_file):
    """ledgermarket - Timed auctions and an asset registry on a local ledger"""
    import logging
    from ledgermarket.core.config import load_config

    overrides = {}
    if data_dir:
        overrides["data_dir"] = Path(data_dir).expanduser()
    if debug:
        overrides["log_level"] = logging.DEBUG
    config = load_config(env_file, **overrides)

    setup_logging(level=config.log_level, log_dir=str(config.log_dir), log_to_file=config.log_to_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    config.ensure_dirs()


# =============================================================================
# Wallet Commands
# =============================================================================


@cli.group()
def wallet():
    """Local development wallets (each wallet is a principal)"""
    pass


@wallet.command("create")
@click.option("--name", default="default", help="Wallet name")
@click.pass_context
def wallet_create(ctx, name):
    """Create a new wallet keypair"""
    from ledgermarket.crypto import generate_keypair

    path = wallet_path(ctx, name)
    if path.exists():
        fail(f"Wallet '{name}' already exists")

    kp = generate_keypair()
    path.parent.mkdir(parents=True, exist_ok=True)
    wallet_data = {
        "name": name,
        "address": kp.address,
        "private_key": kp.private_key_hex,
        "public_key": kp.public_key_hex,
    }
    path.write_text(json.dumps(wallet_data, indent=2))

    click.echo(f"✓ Wallet created: {name}")
    click.echo(f"  Address: {kp.address}")
    click.echo(f"  Saved to: {path}")
    click.echo("  ⚠️  Development wallet: the key is stored unencrypted")


@wallet.command("list")
@click.pass_context
def wallet_list(ctx):
    """List all wallets"""
    wallet_dir = ctx.obj["config"].data_dir / "wallets"
    if not wallet_dir.exists():
        click.echo("No wallets found.")
        return

    for wallet_file in sorted(wallet_dir.glob("*.json")):
        data = json.loads(wallet_file.read_text())
        click.echo(f"  {data['name']}: {data['address']}")


# =============================================================================
# Marketplace Commands
# =============================================================================


@cli.group()
def market():
    """Marketplace bootstrap and statistics"""
    pass


@market.command("init")
@click.option("--as", "as_wallet", required=True, help="Admin wallet")
@click.pass_context
def market_init(ctx, as_wallet):
    """Initialize the marketplace with an admin"""
    from ledgermarket.core.errors import AuctionError

    mp, principal = open_market(ctx, as_wallet)
    try:
        state = mp.auctions.initialize(principal)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()
    click.echo(f"✓ Marketplace initialized (admin {state.admin})")


@market.command("stats")
@click.pass_context
def market_stats(ctx):
    """Show marketplace statistics"""
    mp, _ = open_market(ctx)
    try:
        stats = mp.auctions.stats()
        supply = mp.registry.total_supply()
    finally:
        mp.close()

    click.echo("Marketplace Statistics")
    click.echo("-" * 40)
    for key, value in stats.items():
        click.echo(f"  {key}: {value}")
    click.echo(f"  asset_supply: {supply}")


# =============================================================================
# Auction Commands
# =============================================================================


@cli.group()
def auction():
    """Auction commands"""
    pass


@auction.command("create")
@click.option("--as", "as_wallet", required=True, help="Seller wallet")
@click.option("--contract", default=None, help="Asset contract (defaults to the local registry)")
@click.option("--token", "token_id", required=True, type=int, help="Asset token id")
@click.option("--price", required=True, type=int, help="Starting price")
@click.option("--increment", default=1, type=int, help="Minimum bid increment")
@click.option("--hours", default=24, type=int, help="Duration in hours")
@click.option("--asset", default=None, help="Settlement asset tag")
@click.pass_context
def auction_create(ctx, as_wallet, contract, token_id, price, increment, hours, asset):
    """Open a new auction"""
    from ledgermarket.core.errors import AuctionError

    config = ctx.obj["config"]
    mp, seller = open_market(ctx, as_wallet)
    try:
        auction_id = mp.auctions.create_auction(
            seller=seller,
            asset_contract=contract or config.registry_contract_id,
            asset_token_id=token_id,
            starting_price=price,
            min_bid_increment=increment,
            duration_hours=hours,
            asset=asset or config.default_asset,
        )
        record = mp.auctions.get_auction(auction_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    click.echo(f"✓ Auction created: #{auction_id}")
    echo_auction(record)


@auction.command("bid")
@click.option("--as", "as_wallet", required=True, help="Bidder wallet")
@click.argument("auction_id", type=int)
@click.argument("amount", type=int)
@click.pass_context
def auction_bid(ctx, as_wallet, auction_id, amount):
    """Place a bid"""
    from ledgermarket.core.errors import AuctionError

    mp, bidder = open_market(ctx, as_wallet)
    try:
        record = mp.auctions.place_bid(bidder, auction_id, amount)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    click.echo(f"✓ Bid accepted: {amount} {record.asset} on #{auction_id}")
    click.echo(f"  Next minimum: {record.min_next_bid}")


@auction.command("end")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_end(ctx, auction_id):
    """End an auction whose window has elapsed"""
    from ledgermarket.core.errors import AuctionError

    mp, _ = open_market(ctx)
    try:
        record = mp.auctions.end_auction(auction_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    click.echo(f"✓ Auction #{auction_id} ended")
    click.echo(f"  Winner: {record.highest_bidder} at {record.highest_bid} {record.asset}")


@auction.command("cancel")
@click.option("--as", "as_wallet", required=True, help="Seller wallet")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_cancel(ctx, as_wallet, auction_id):
    """Cancel an auction without bids"""
    from ledgermarket.core.errors import AuctionError

    mp, seller = open_market(ctx, as_wallet)
    try:
        mp.auctions.cancel_auction(seller, auction_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    click.echo(f"✓ Auction #{auction_id} cancelled")


@auction.command("show")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_show(ctx, auction_id):
    """Show one auction"""
    from ledgermarket.core.errors import AuctionError

    mp, _ = open_market(ctx)
    try:
        record = mp.auctions.get_auction(auction_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    echo_auction(record)


@auction.command("bids")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_bids(ctx, auction_id):
    """List the bid history of an auction"""
    mp, _ = open_market(ctx)
    try:
        bids = mp.auctions.get_auction_bids(auction_id)
    finally:
        mp.close()

    if not bids:
        click.echo("No bids.")
        return
    for i, bid in enumerate(bids):
        click.echo(f"  {i+1}. {bid.amount} by {bid.bidder} at {bid.timestamp}")


@auction.command("seller")
@click.argument("seller")
@click.pass_context
def auction_seller(ctx, seller):
    """List auctions created by a seller (address or wallet name)"""
    principal = resolve_principal(ctx, seller)
    mp, _ = open_market(ctx)
    try:
        ids = mp.auctions.get_seller_auctions(principal)
    finally:
        mp.close()

    click.echo(f"Auctions by {principal}: {', '.join(str(i) for i in ids) or 'none'}")


@auction.command("active")
@click.pass_context
def auction_active(ctx):
    """List active auctions"""
    mp, _ = open_market(ctx)
    try:
        ids = mp.auctions.get_active_auctions()
    finally:
        mp.close()

    click.echo(f"Active auctions: {', '.join(str(i) for i in ids) or 'none'}")


# =============================================================================
# Asset Commands
# =============================================================================


@cli.group()
def asset():
    """Asset registry commands"""
    pass


@asset.command("init")
@click.option("--as", "as_wallet", required=True, help="Registry admin wallet")
@click.pass_context
def asset_init(ctx, as_wallet):
    """Initialize the asset registry"""
    from ledgermarket.core.errors import AuctionError

    mp, principal = open_market(ctx, as_wallet)
    try:
        mp.registry.initialize(principal)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()
    click.echo(f"✓ Registry initialized (admin {principal})")


@asset.command("mint")
@click.option("--as", "as_wallet", required=True, help="Registry admin wallet")
@click.option("--to", "to", required=True, help="Recipient address or wallet name")
@click.option("--name", required=True, help="Asset name")
@click.option("--description", default="", help="Asset description")
@click.option("--image-url", default="", help="Image URL")
@click.option("--attr", "attrs", multiple=True, help="Attribute as trait=value (repeatable)")
@click.option("--royalty", default=0, type=int, help="Royalty percentage")
@click.pass_context
def asset_mint(ctx, as_wallet, to, name, description, image_url, attrs, royalty):
    """Mint a new asset"""
    from ledgermarket.core.errors import AuctionError
    from ledgermarket.core.registry import AssetAttribute

    attributes = []
    for attr in attrs:
        trait, sep, value = attr.partition("=")
        if not sep:
            fail(f"Attribute must look like trait=value, got '{attr}'")
        attributes.append(AssetAttribute(trait_type=trait, value=value))

    recipient = resolve_principal(ctx, to)
    mp, _ = open_market(ctx, as_wallet)
    try:
        token_id = mp.registry.mint(recipient, name, description, image_url, attributes, royalty)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()
    click.echo(f"✓ Minted asset #{token_id} to {recipient}")


@asset.command("transfer")
@click.option("--as", "as_wallet", required=True, help="Current owner wallet")
@click.option("--to", "to", required=True, help="Recipient address or wallet name")
@click.argument("token_id", type=int)
@click.pass_context
def asset_transfer(ctx, as_wallet, to, token_id):
    """Transfer an asset"""
    from ledgermarket.core.errors import AuctionError

    recipient = resolve_principal(ctx, to)
    mp, owner = open_market(ctx, as_wallet)
    try:
        mp.registry.transfer(owner, recipient, token_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()
    click.echo(f"✓ Asset #{token_id} transferred to {recipient}")


@asset.command("show")
@click.argument("token_id", type=int)
@click.pass_context
def asset_show(ctx, token_id):
    """Show an asset"""
    from ledgermarket.core.errors import AuctionError

    mp, _ = open_market(ctx)
    try:
        record = mp.registry.get_asset(token_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()

    click.echo(f"Asset #{record.id}: {record.metadata.name}")
    click.echo(f"  Owner: {record.owner}")
    click.echo(f"  Creator: {record.creator}")
    click.echo(f"  Royalty: {record.royalty_percentage}%")
    for attr in record.metadata.attributes:
        click.echo(f"  {attr.trait_type}: {attr.value}")


@asset.command("owner")
@click.argument("token_id", type=int)
@click.pass_context
def asset_owner(ctx, token_id):
    """Show the current owner of an asset"""
    from ledgermarket.core.errors import AuctionError

    mp, _ = open_market(ctx)
    try:
        owner = mp.registry.owner_of(token_id)
    except AuctionError as err:
        fail(err)
    finally:
        mp.close()
    click.echo(f"Owner of #{token_id}: {owner}")


@asset.command("tokens")
@click.argument("owner")
@click.pass_context
def asset_tokens(ctx, owner):
    """List tokens held by an owner (address or wallet name)"""
    principal = resolve_principal(ctx, owner)
    mp, _ = open_market(ctx)
    try:
        tokens = mp.registry.get_owner_tokens(principal)
    finally:
        mp.close()
    click.echo(f"Tokens of {principal}: {', '.join(str(t) for t in tokens) or 'none'}")


@asset.command("supply")
@click.pass_context
def asset_supply(ctx):
    """Show total minted supply"""
    mp, _ = open_market(ctx)
    try:
        supply = mp.registry.total_supply()
    finally:
        mp.close()
    click.echo(f"Total supply: {supply}")


# =============================================================================
# Event Log
# =============================================================================


@cli.command("events")
@click.option("--since", default=0, type=int, help="Only events after this sequence")
@click.option("--kind", default=None, help="Filter by event kind")
@click.option("--limit", default=50, type=int, help="Max events to show")
@click.pass_context
def events(ctx, since, kind, limit):
    """Show the event log"""
    from ledgermarket.core.events import EventKind

    try:
        kind_filter = EventKind(kind) if kind else None
    except ValueError:
        fail(f"Unknown event kind '{kind}'")

    mp, _ = open_market(ctx)
    try:
        rows = mp.events.read(since=since, kind=kind_filter, limit=limit)
    finally:
        mp.close()

    for event in rows:
        click.echo(f"  #{event.sequence} {event.kind.value} @{event.timestamp} {json.dumps(event.payload, sort_keys=True)}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run an in-memory walkthrough of an auction"""
    from ledgermarket.core.clock import ManualClock
    from ledgermarket.core.errors import AuctionError
    from ledgermarket.core.events import RecordingSink
    from ledgermarket.core.identity import CallerIdentity
    from ledgermarket.core.market import open_marketplace

    click.echo("=" * 60)
    click.echo("  LEDGERMARKET - DEMO")
    click.echo("=" * 60)
    click.echo()

    identity = CallerIdentity()
    clock = ManualClock(start=1_700_000_000)
    mp = open_marketplace(identity, clock=clock, in_memory=True)
    sink = RecordingSink()
    mp.storage.dispatcher.attach(sink)

    click.echo("📦 Bootstrapping marketplace and registry...")
    with identity.acting_as("admin"):
        mp.auctions.initialize("admin")
        mp.registry.initialize("admin")
        token_id = mp.registry.mint("seller", "Kale Leaf #1", royalty_percentage=5)
    click.echo(f"  ✓ Minted asset #{token_id} to seller")
    click.echo()

    click.echo("🔨 Seller opens an auction: start=100, increment=10, 1h...")
    with identity.acting_as("seller"):
        auction_id = mp.auctions.create_auction("seller", "registry", token_id, 100, 10, 1, "KALE")
    click.echo(f"  ✓ Auction #{auction_id} active")
    click.echo()

    click.echo("💸 Bidding...")
    for bidder, amount in [("bob", 105), ("bob", 110), ("carol", 115), ("carol", 120)]:
        clock.advance(seconds=60)
        with identity.acting_as(bidder):
            try:
                mp.auctions.place_bid(bidder, auction_id, amount)
                click.echo(f"  ✓ {bidder} bids {amount}")
            except AuctionError as err:
                click.echo(f"  ✗ {bidder} bids {amount}: {err}")
    click.echo()

    click.echo("🚫 Seller tries to cancel...")
    with identity.acting_as("seller"):
        try:
            mp.auctions.cancel_auction("seller", auction_id)
        except AuctionError as err:
            click.echo(f"  ✗ {err}")
    click.echo()

    click.echo("⏱️  One hour later, anyone ends the auction...")
    clock.advance(hours=1)
    record = mp.auctions.end_auction(auction_id)
    click.echo(f"  ✓ Winner: {record.highest_bidder} at {record.highest_bid} {record.asset}")
    click.echo()

    click.echo("📊 Events:")
    for event in sink.events:
        click.echo(f"  #{event.sequence} {event.kind.value} {event.payload}")
    click.echo()
    click.echo("✅ Demo complete!")
    mp.close()


if __name__ == "__main__":
    cli()
