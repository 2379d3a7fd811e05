"""
Input Validation - type and width checks for marketplace call inputs.

The auction engine performs no domain-range validation (a starting price
or duration is trusted as given). These checks only keep values inside
the integer widths of the ledger records they end up in:

- amounts (prices, increments, bids): signed 128-bit
- auction and token ids: unsigned 64-bit
- durations in hours, royalty percentages: unsigned 32-bit
"""

import re
from typing import Any, Dict, List, Optional, Tuple

# =============================================================================
# Constants
# =============================================================================

I128_MIN = -(2**127)
I128_MAX = 2**127 - 1
U64_MAX = 2**64 - 1
U32_MAX = 2**32 - 1

MAX_PRINCIPAL_LENGTH = 256
MAX_SYMBOL_LENGTH = 32
MAX_STRING_LENGTH = 1024
MAX_ARRAY_LENGTH = 256

SYMBOL_PATTERN = r"^[A-Za-z0-9_]+$"


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int,
    max_val: int,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass but never a meaningful amount
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_amount(value: Any, name: str = "amount") -> Tuple[bool, str]:
    """Validate a declared amount (i128)."""
    return validate_integer(value, name, I128_MIN, I128_MAX)


def validate_id(value: Any, name: str = "id") -> Tuple[bool, str]:
    """Validate an auction or token id (u64)."""
    return validate_integer(value, name, 0, U64_MAX)


def validate_u32(value: Any, name: str) -> Tuple[bool, str]:
    """Validate a small unsigned quantity such as a duration in hours."""
    return validate_integer(value, name, 0, U32_MAX)


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_STRING_LENGTH,
    pattern: Optional[str] = None,
    allow_empty: bool = True,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern
        allow_empty: Whether "" is accepted

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if not allow_empty and not value:
        return False, f"{name} must not be empty"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_principal(value: Any, name: str = "principal") -> Tuple[bool, str]:
    """Validate a principal identifier."""
    return validate_string(value, name, MAX_PRINCIPAL_LENGTH, allow_empty=False)


def validate_symbol(value: Any, name: str = "asset") -> Tuple[bool, str]:
    """Validate a short symbol tag such as a settlement asset ("XLM", "KALE")."""
    return validate_string(value, name, MAX_SYMBOL_LENGTH, SYMBOL_PATTERN, allow_empty=False)


def validate_array(
    data: Any,
    name: str,
    max_length: int = MAX_ARRAY_LENGTH,
) -> Tuple[bool, str]:
    """
    Validate array/list input.

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, (list, tuple)):
        return False, f"{name} must be list/tuple, got {type(data).__name__}"

    if len(data) > max_length:
        return False, f"{name} exceeds max length {max_length}, got {len(data)}"

    return True, ""


# =============================================================================
# Composite Validators
# =============================================================================


def first_error(checks: List[Tuple[bool, str]]) -> str:
    """Return the first failing message of a batch of checks, or ""."""
    for valid, err in checks:
        if not valid:
            return err
    return ""


def validate_auction_params(params: Dict[str, Any]) -> Tuple[bool, str]:
    """Validate the inputs of an auction creation call."""
    err = first_error([
        validate_principal(params.get("seller"), "seller"),
        validate_principal(params.get("asset_contract"), "asset_contract"),
        validate_id(params.get("asset_token_id"), "asset_token_id"),
        validate_amount(params.get("starting_price"), "starting_price"),
        validate_amount(params.get("min_bid_increment"), "min_bid_increment"),
        validate_u32(params.get("duration_hours"), "duration_hours"),
        validate_symbol(params.get("asset"), "asset"),
    ])
    return (not err), err


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_amount",
    "validate_id",
    "validate_u32",
    "validate_string",
    "validate_principal",
    "validate_symbol",
    "validate_array",
    "validate_auction_params",
    "first_error",
    "I128_MIN",
    "I128_MAX",
    "U64_MAX",
    "U32_MAX",
]
