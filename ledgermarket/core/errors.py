"""
Error taxonomy for marketplace calls.

Every rejected call raises an AuctionError subclass before anything is
written, so a failed call leaves the store exactly as it was. Callers
can catch AuctionError and branch on `.kind`, or catch a subclass.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Why a marketplace call was rejected."""
    UNAUTHORIZED = "Unauthorized"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    EXPIRED = "Expired"
    STILL_ACTIVE = "StillActive"
    BID_TOO_LOW = "BidTooLow"
    BID_BELOW_INCREMENT = "BidBelowIncrement"
    NOT_SELLER = "NotSeller"
    HAS_BIDS = "HasBids"
    NOT_INITIALIZED = "NotInitialized"
    ALREADY_INITIALIZED = "AlreadyInitialized"
    INVALID_INPUT = "InvalidInput"
    NOT_OWNER = "NotOwner"
    NOT_ASSET_OWNER = "NotAssetOwner"


class AuctionError(Exception):
    """A marketplace call failed a precondition. Never retried internally."""

    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class Unauthorized(AuctionError):
    kind = ErrorKind.UNAUTHORIZED


class NotFound(AuctionError):
    kind = ErrorKind.NOT_FOUND


class InvalidState(AuctionError):
    kind = ErrorKind.INVALID_STATE


class Expired(AuctionError):
    kind = ErrorKind.EXPIRED


class StillActive(AuctionError):
    kind = ErrorKind.STILL_ACTIVE


class BidTooLow(AuctionError):
    kind = ErrorKind.BID_TOO_LOW


class BidBelowIncrement(AuctionError):
    kind = ErrorKind.BID_BELOW_INCREMENT


class NotSeller(AuctionError):
    kind = ErrorKind.NOT_SELLER


class HasBids(AuctionError):
    kind = ErrorKind.HAS_BIDS


class NotInitialized(AuctionError):
    kind = ErrorKind.NOT_INITIALIZED


class AlreadyInitialized(AuctionError):
    kind = ErrorKind.ALREADY_INITIALIZED


class InvalidInput(AuctionError):
    kind = ErrorKind.INVALID_INPUT


class NotOwner(AuctionError):
    kind = ErrorKind.NOT_OWNER


class NotAssetOwner(AuctionError):
    kind = ErrorKind.NOT_ASSET_OWNER


class InvariantViolation(RuntimeError):
    """Stored records contradict each other. Indicates corruption, not bad input."""


__all__ = [
    "ErrorKind",
    "AuctionError",
    "Unauthorized",
    "NotFound",
    "InvalidState",
    "Expired",
    "StillActive",
    "BidTooLow",
    "BidBelowIncrement",
    "NotSeller",
    "HasBids",
    "NotInitialized",
    "AlreadyInitialized",
    "InvalidInput",
    "NotOwner",
    "NotAssetOwner",
    "InvariantViolation",
]
