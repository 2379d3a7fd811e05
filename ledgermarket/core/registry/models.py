"""Asset registry records."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class AssetAttribute(BaseModel):
    """A single trait of an asset ("Rarity": "Legendary")."""
    model_config = ConfigDict(frozen=True)

    trait_type: str
    value: str


class AssetMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    image_url: str = ""
    attributes: List[AssetAttribute] = Field(default_factory=list)


class AssetRecord(BaseModel):
    """
    A minted non-fungible asset.

    Attributes:
        id: Token id, assigned once from the registry counter
        owner: Current owning principal
        creator: Registry admin that minted it
        metadata: Display metadata
        royalty_percentage: Creator royalty, informational only
        minted_at: Clock value at mint
    """
    model_config = ConfigDict(frozen=True)

    id: int
    owner: str
    creator: str
    metadata: AssetMetadata
    royalty_percentage: int = 0
    minted_at: int = 0

    def with_owner(self, owner: str) -> "AssetRecord":
        return self.model_copy(update={"owner": owner})


class RegistryState(BaseModel):
    """Registry scalars, created once by AssetRegistry.initialize()."""
    model_config = ConfigDict(frozen=True)

    admin: str
    next_token_id: int = 1

    @property
    def total_supply(self) -> int:
        return self.next_token_id - 1
