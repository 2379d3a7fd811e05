"""
Asset Registry Module.

Mints and tracks ownership of the non-fungible assets offered at auction.
"""

from ledgermarket.core.registry.models import (
    AssetAttribute,
    AssetMetadata,
    AssetRecord,
    RegistryState,
)
from ledgermarket.core.registry.asset_registry import (
    AssetRegistry,
    DEFAULT_CONTRACT_ID,
    MAX_ROYALTY_PERCENTAGE,
)

__all__ = [
    "AssetAttribute",
    "AssetMetadata",
    "AssetRecord",
    "RegistryState",
    "AssetRegistry",
    "DEFAULT_CONTRACT_ID",
    "MAX_ROYALTY_PERCENTAGE",
]
