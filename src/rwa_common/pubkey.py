"""Base58 pubkey checks for query parameters."""

import base58

from src.rwa_common.errors import InvalidQueryError


def is_valid_pubkey(value: str) -> bool:
    if not 32 <= len(value) <= 44:
        return False
    try:
        return len(base58.b58decode(value)) == 32
    except ValueError:
        return False


def require_pubkey(value: str, field: str) -> str:
    """Return `value` unchanged, or raise InvalidQueryError naming `field`."""
    if not is_valid_pubkey(value):
        raise InvalidQueryError(f"{field} is not a valid public key")
    return value
