"""Security helpers: password hashing and signed subject tokens."""

from gora.security.passwords import check_password, hash_password, needs_rehash
from gora.security.tokens import TokenIssuer, Tokener

__all__ = [
    "TokenIssuer",
    "Tokener",
    "check_password",
    "hash_password",
    "needs_rehash",
]
