"""
Identity assertion - "the caller is authorized to act as principal X".

The marketplace never decides who a caller is. The embedding environment
supplies an IdentityAssertion, and every mutating call asks it to confirm
the acting principal before touching the store. A failed assertion raises
Unauthorized, so the call aborts with nothing written.

Two implementations are provided:
- CallerIdentity: the host already authenticated the caller; compare names.
- SignerIdentity: the principal is a secp256k1 address and each assertion
  checks the caller's signature over a fresh challenge.
"""

import secrets
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Protocol

from ledgermarket.core.errors import Unauthorized
from ledgermarket.crypto import is_valid_address, sha256, sign, verify
from ledgermarket.utils.logger import get_logger

logger = get_logger("identity")


class IdentityAssertion(Protocol):
    def require(self, principal: str) -> None:
        """Raise Unauthorized unless the caller may act as `principal`."""
        ...


class CallerIdentity:
    """
    Identity asserted by the host.

    `caller` is whoever the host authenticated for the current call;
    None means an anonymous caller, which can only run unauthenticated
    operations (reads, end_auction).
    """

    def __init__(self, caller: Optional[str] = None):
        self.caller = caller

    def require(self, principal: str) -> None:
        if self.caller is None or self.caller != principal:
            logger.debug(f"Identity mismatch: caller={self.caller} principal={principal}")
            raise Unauthorized(f"caller {self.caller!r} cannot act as {principal!r}")

    @contextmanager
    def acting_as(self, principal: Optional[str]) -> Iterator["CallerIdentity"]:
        """Temporarily switch the authenticated caller."""
        previous = self.caller
        self.caller = principal
        try:
            yield self
        finally:
            self.caller = previous


class SignerIdentity:
    """
    Identity proven by a secp256k1 signature.

    The principal is an address: "0x" + keccak256(public_key)[-20:]. For
    each assertion the identity issues a fresh challenge bound to the
    principal, hands it to the caller's `signer`, and accepts only if the
    returned signature recovers to that address. The identity never holds
    the key itself.
    """

    def __init__(self, signer: Callable[[bytes], bytes]):
        self.signer = signer

    @classmethod
    def from_private_key(cls, private_key: bytes) -> "SignerIdentity":
        """Identity whose caller signs with a local wallet key."""
        return cls(lambda digest: sign(digest, private_key))

    def challenge(self, principal: str) -> bytes:
        return sha256(b"ledgermarket/assert:" + principal.encode() + secrets.token_bytes(16))

    def require(self, principal: str) -> None:
        if not isinstance(principal, str) or not is_valid_address(principal):
            raise Unauthorized(f"{principal!r} is not a signing address")

        digest = self.challenge(principal)
        signature = self.signer(digest)
        if not verify(digest, signature, principal):
            logger.debug(f"Signature for {principal} did not verify")
            raise Unauthorized(f"signature does not prove control of {principal!r}")
