"""Password hashing with argon2id.

Hashes are PHC-format strings (``$argon2id$...``) safe for database
storage; parameters travel inside the hash, so stored hashes keep
verifying when the defaults change.

Usage::

    from gora.security.passwords import check_password, hash_password

    hashed = hash_password("my-password")
    ok = check_password("my-password", hashed)
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash *password* with argon2id.

    Raises:
        ValueError: If *password* is empty.
    """
    if not password:
        msg = "Password must not be empty."
        raise ValueError(msg)
    return _hasher.hash(password)


def check_password(password: str, hashed: str) -> bool:
    """Whether *password* matches *hashed*.

    Malformed hashes and empty passwords never match.
    """
    if not password or not hashed:
        return False
    try:
        return _hasher.verify(hashed, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hashed: str) -> bool:
    """Whether *hashed* was made with parameters older than the current ones."""
    return _hasher.check_needs_rehash(hashed)
