"""
Cryptographic primitives for ledgermarket.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Wallet key generation (secp256k1)
- ECDSA signatures used to prove control of a principal address

Principals that act through local wallets are addressed Ethereum-style:
the last 20 bytes of keccak256(public_key), hex encoded with a 0x prefix.
"""

import hashlib
import secrets
from dataclasses import dataclass
from typing import List, Optional

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# =============================================================================
# Hashing
# =============================================================================


def sha256(data: bytes) -> bytes:
    """Compute SHA-256 hash (signing digests, challenge hashing)."""
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """Compute Keccak-256 hash (address derivation)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Keys and Addresses
# =============================================================================


def address_from_public_key(public_key: bytes) -> str:
    """
    Derive a principal address from a 64-byte public key.

    address = "0x" + hex(keccak256(public_key)[-20:])
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return "0x" + keccak256(public_key)[-20:].hex()


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key
        public_key: 64-byte uncompressed public key (x || y)
    """
    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> str:
        """Principal address controlled by this keypair."""
        return address_from_public_key(self.public_key)

    @property
    def private_key_hex(self) -> str:
        return self.private_key.hex()

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, byteorder="big") + y.to_bytes(32, byteorder="big")


def generate_keypair() -> KeyPair:
    """Generate a new random keypair."""
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def keypair_from_private_key(private_key: bytes) -> KeyPair:
    """Rebuild a keypair from a stored private key."""
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


# =============================================================================
# Digital Signatures (ECDSA)
# =============================================================================


def sign(message_hash: bytes, private_key: bytes) -> bytes:
    """
    Sign a message hash using ECDSA on secp256k1.

    Args:
        message_hash: 32-byte hash of the message to sign
        private_key: 32-byte private key

    Returns:
        64-byte signature (r || s)
    """
    if len(message_hash) != 32:
        raise ValueError("Message hash must be 32 bytes")
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    _v, r, s = secp256k1.ecdsa_raw_sign(message_hash, private_key)

    # Low-s normalization (EIP-2)
    if s > SECP256K1_ORDER // 2:
        s = SECP256K1_ORDER - s

    return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")


def recover_public_keys(message_hash: bytes, signature: bytes) -> List[bytes]:
    """
    Candidate public keys of an ECDSA signature.

    The signature carries no recovery id, so both candidates are recovered.
    Malformed input yields no candidates.
    """
    if len(message_hash) != 32 or len(signature) != 64:
        return []

    r = int.from_bytes(signature[:32], byteorder="big")
    s = int.from_bytes(signature[32:], byteorder="big")
    if not (1 <= r < SECP256K1_ORDER and 1 <= s < SECP256K1_ORDER):
        return []

    keys = []
    for v in (27, 28):
        point = recover_point(message_hash, v, r, s)
        if point is not None:
            x, y = point
            keys.append(x.to_bytes(32, byteorder="big") + y.to_bytes(32, byteorder="big"))
    return keys


def verify(message_hash: bytes, signature: bytes, address: str) -> bool:
    """Check that `signature` over `message_hash` was made by the key behind `address`."""
    if not isinstance(address, str):
        return False
    return any(
        address_from_public_key(public_key) == address.lower()
        for public_key in recover_public_keys(message_hash, signature)
    )


def recover_point(message_hash: bytes, v: int, r: int, s: int) -> Optional[tuple]:
    """Recover the signer's curve point, or None if the values do not recover."""
    try:
        return secp256k1.ecdsa_raw_recover(message_hash, (v, r, s))
    except (ValueError, ZeroDivisionError, TypeError):
        return None


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid wallet address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


__all__ = [
    "sha256",
    "keccak256",
    "address_from_public_key",
    "KeyPair",
    "generate_keypair",
    "keypair_from_private_key",
    "private_key_to_public_key",
    "sign",
    "verify",
    "recover_public_keys",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "SECP256K1_ORDER",
]
