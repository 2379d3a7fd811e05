"""
Record layout of the marketplace store.

Composite keys are "/"-joined: an entity kind plus identifier, or an
identifier plus a sub-collection tag.

    auction/<id>                 AuctionRecord
    auction/<id>/bids            list of Bid (append-only)
    seller/<principal>/auctions  list of auction ids (append-only)
    asset/<id>                   AssetRecord
    owner/<principal>/tokens     list of token ids

Scalars live in the market_meta table under dotted names.
"""

from typing import List, Optional

from pydantic import TypeAdapter

from ledgermarket.core.auction.models import AuctionRecord, Bid, MarketplaceState
from ledgermarket.core.registry.models import AssetRecord, RegistryState


# Buckets
BUCKET_AUCTIONS = "auctions"
BUCKET_BIDS = "bids"
BUCKET_SELLERS = "sellers"
BUCKET_ASSETS = "assets"
BUCKET_OWNERS = "owners"

# Meta scalars
META_MARKET_ADMIN = "market.admin"
META_NEXT_AUCTION_ID = "market.next_auction_id"
META_REGISTRY_ADMIN = "registry.admin"
META_NEXT_TOKEN_ID = "registry.next_token_id"

_BIDS = TypeAdapter(List[Bid])
_IDS = TypeAdapter(List[int])


def auction_key(auction_id: int) -> str:
    return f"auction/{auction_id}"


def bids_key(auction_id: int) -> str:
    return f"auction/{auction_id}/bids"


def seller_key(seller: str) -> str:
    return f"seller/{seller}/auctions"


def asset_key(token_id: int) -> str:
    return f"asset/{token_id}"


def owner_key(owner: str) -> str:
    return f"owner/{owner}/tokens"


def encode_bids(bids: List[Bid]) -> bytes:
    return _BIDS.dump_json(bids)


def decode_bids(data: Optional[bytes]) -> List[Bid]:
    return _BIDS.validate_json(data) if data else []


def encode_ids(ids: List[int]) -> bytes:
    return _IDS.dump_json(ids)


def decode_ids(data: Optional[bytes]) -> List[int]:
    return _IDS.validate_json(data) if data else []


class RecordReader:
    """
    Typed reads over the raw store.

    Subclasses supply `_get(key)` and `_get_meta(name)`; both the committed
    view (StorageManager) and the in-flight view (UnitOfWork) share these.
    """

    def _get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def _get_meta(self, name: str) -> Optional[str]:
        raise NotImplementedError

    # -- marketplace ----------------------------------------------------------

    def get_market_state(self) -> Optional[MarketplaceState]:
        admin = self._get_meta(META_MARKET_ADMIN)
        if admin is None:
            return None
        next_id = self._get_meta(META_NEXT_AUCTION_ID)
        return MarketplaceState(admin=admin, next_auction_id=int(next_id) if next_id else 1)

    def get_auction(self, auction_id: int) -> Optional[AuctionRecord]:
        data = self._get(auction_key(auction_id))
        return AuctionRecord.model_validate_json(data) if data else None

    def get_bids(self, auction_id: int) -> List[Bid]:
        return decode_bids(self._get(bids_key(auction_id)))

    def get_seller_auctions(self, seller: str) -> List[int]:
        return decode_ids(self._get(seller_key(seller)))

    # -- registry -------------------------------------------------------------

    def get_registry_state(self) -> Optional[RegistryState]:
        admin = self._get_meta(META_REGISTRY_ADMIN)
        if admin is None:
            return None
        next_id = self._get_meta(META_NEXT_TOKEN_ID)
        return RegistryState(admin=admin, next_token_id=int(next_id) if next_id else 1)

    def get_asset(self, token_id: int) -> Optional[AssetRecord]:
        data = self._get(asset_key(token_id))
        return AssetRecord.model_validate_json(data) if data else None

    def get_owner_tokens(self, owner: str) -> List[int]:
        return decode_ids(self._get(owner_key(owner)))
