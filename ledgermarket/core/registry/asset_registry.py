"""
Asset Registry - non-fungible assets offered at auction.

This module provides:
- Registry bootstrap (single admin)
- Minting by the admin
- Owner-to-owner transfer
- Ownership and supply lookups

The auction engine only consumes `owner_of`, and only when ownership
verification is enabled in MarketConfig.
"""

from typing import List, Optional

from ledgermarket.core.clock import Clock, SystemClock
from ledgermarket.core.errors import (
    AlreadyInitialized,
    InvalidInput,
    NotFound,
    NotInitialized,
    NotOwner,
)
from ledgermarket.core.events import EventKind
from ledgermarket.core.identity import IdentityAssertion
from ledgermarket.core.registry.models import (
    AssetAttribute,
    AssetMetadata,
    AssetRecord,
    RegistryState,
)
from ledgermarket.utils.logger import get_logger
from ledgermarket.utils.validation import (
    first_error,
    validate_array,
    validate_id,
    validate_principal,
    validate_string,
    validate_u32,
)

logger = get_logger("registry")


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CONTRACT_ID = "registry"

# Royalty is expressed in whole percent
MAX_ROYALTY_PERCENTAGE = 100


# =============================================================================
# Asset Registry
# =============================================================================


class AssetRegistry:
    """
    Registry of minted assets.

    Shares the marketplace StorageManager, under its own keys and counters.
    """

    def __init__(
        self,
        storage,
        identity: IdentityAssertion,
        clock: Optional[Clock] = None,
        contract_id: str = DEFAULT_CONTRACT_ID,
    ):
        """
        Initialize the registry.

        Args:
            storage: StorageManager shared with the auction engine
            identity: Capability confirming the acting principal
            clock: Time source for mint timestamps
            contract_id: Name auctions use to reference this registry
        """
        self.storage = storage
        self.identity = identity
        self.clock = clock or SystemClock()
        self.contract_id = contract_id

    # =========================================================================
    # Bootstrap
    # =========================================================================

    def initialize(self, admin: str) -> RegistryState:
        """Set the registry admin and start token ids at 1. Runs once."""
        self._check(validate_principal(admin, "admin"))
        self.identity.require(admin)

        with self.storage.unit_of_work(self.clock) as uow:
            if uow.get_registry_state() is not None:
                raise AlreadyInitialized("registry already initialized")

            state = RegistryState(admin=admin, next_token_id=1)
            uow.put_registry_state(state)
            uow.emit(EventKind.REGISTRY_INITIALIZED, admin=admin)

        logger.info(f"Registry {self.contract_id} initialized, admin={admin}")
        return state

    def _require_state(self, uow) -> RegistryState:
        state = uow.get_registry_state()
        if state is None:
            raise NotInitialized("registry not initialized")
        return state

    # =========================================================================
    # Minting
    # =========================================================================

    def mint(
        self,
        to: str,
        name: str,
        description: str = "",
        image_url: str = "",
        attributes: Optional[List[AssetAttribute]] = None,
        royalty_percentage: int = 0,
    ) -> int:
        """
        Mint a new asset to `to`. Admin only.

        Returns:
            The new token id
        """
        attributes = list(attributes or [])
        self._check(
            validate_principal(to, "to"),
            validate_string(name, "name", allow_empty=False),
            validate_string(description, "description"),
            validate_string(image_url, "image_url"),
            validate_array(attributes, "attributes"),
            validate_u32(royalty_percentage, "royalty_percentage"),
        )
        if royalty_percentage > MAX_ROYALTY_PERCENTAGE:
            raise InvalidInput(f"royalty_percentage must be <= {MAX_ROYALTY_PERCENTAGE}")

        with self.storage.unit_of_work(self.clock) as uow:
            now = uow.timestamp
            state = self._require_state(uow)
            self.identity.require(state.admin)

            token_id, _ = uow.allocate_token_id(state)
            asset = AssetRecord(
                id=token_id,
                owner=to,
                creator=state.admin,
                metadata=AssetMetadata(
                    name=name,
                    description=description,
                    image_url=image_url,
                    attributes=attributes,
                ),
                royalty_percentage=royalty_percentage,
                minted_at=now,
            )
            uow.put_asset(asset)
            uow.put_owner_tokens(to, uow.get_owner_tokens(to) + [token_id])
            uow.emit(EventKind.MINT, token_id=token_id, to=to)

        logger.info(f"Minted asset {token_id} '{name}' to {to}")
        return token_id

    # =========================================================================
    # Transfer
    # =========================================================================

    def transfer(self, from_: str, to: str, token_id: int) -> AssetRecord:
        """
        Move an asset between owners.

        Raises:
            NotFound: unknown token
            NotOwner: `from_` does not own it
        """
        self._check(
            validate_principal(from_, "from"),
            validate_principal(to, "to"),
            validate_id(token_id, "token_id"),
        )
        self.identity.require(from_)

        with self.storage.unit_of_work(self.clock) as uow:
            asset = uow.get_asset(token_id)
            if asset is None:
                raise NotFound(f"asset {token_id} does not exist")
            if asset.owner != from_:
                raise NotOwner(f"{from_} does not own asset {token_id}")

            moved = asset.with_owner(to)
            uow.put_asset(moved)

            from_tokens = [t for t in uow.get_owner_tokens(from_) if t != token_id]
            uow.put_owner_tokens(from_, from_tokens)
            uow.put_owner_tokens(to, uow.get_owner_tokens(to) + [token_id])
            uow.emit(EventKind.TRANSFER, token_id=token_id, **{"from": from_, "to": to})

        logger.info(f"Asset {token_id} transferred {from_} -> {to}")
        return moved

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_asset(self, token_id: int) -> AssetRecord:
        asset = self.storage.get_asset(token_id)
        if asset is None:
            raise NotFound(f"asset {token_id} does not exist")
        return asset

    def owner_of(self, token_id: int) -> str:
        """Current owner of a token."""
        return self.get_asset(token_id).owner

    def get_owner_tokens(self, owner: str) -> List[int]:
        return self.storage.get_owner_tokens(owner)

    def total_supply(self) -> int:
        state = self.storage.get_registry_state()
        return state.total_supply if state else 0

    def _check(self, *checks) -> None:
        err = first_error(list(checks))
        if err:
            raise InvalidInput(err)


__all__ = [
    "AssetRegistry",
    "DEFAULT_CONTRACT_ID",
    "MAX_ROYALTY_PERCENTAGE",
]
