"""Signed, expiring tokens carrying a subject id.

Tokens are ``itsdangerous`` timed signatures over ``{"sub": id}``:
URL-safe, tamper-evident, and rejected once older than
``expires_after``. They are not encrypted; do not put secrets in them.

Usage::

    issuer = TokenIssuer(secret_key="...")
    token = issuer.create(user.id)
    user_id = issuer.verify(token)  # raises InvalidTokenError
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol, runtime_checkable

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from gora.errors import ConfigurationError, InvalidTokenError


@runtime_checkable
class Tokener(Protocol):
    """Anything that issues and verifies subject tokens."""

    def create(self, subject_id: int) -> str: ...

    def verify(self, token: str) -> int: ...


class TokenIssuer:
    """Issue and verify tokens signed with *secret_key*."""

    __slots__ = ("_serializer", "expires_after")

    def __init__(
        self,
        secret_key: str,
        *,
        expires_after: timedelta = timedelta(hours=72),
        salt: str = "gora.auth",
    ) -> None:
        if not secret_key:
            msg = "TokenIssuer requires a non-empty secret_key."
            raise ConfigurationError(msg)
        self.expires_after = expires_after
        self._serializer = URLSafeTimedSerializer(secret_key, salt=salt)

    def __repr__(self) -> str:
        return f"<TokenIssuer expires_after={self.expires_after}>"

    def create(self, subject_id: int) -> str:
        return self._serializer.dumps({"sub": subject_id})

    def verify(self, token: str) -> int:
        """Subject id carried by *token*.

        Raises:
            InvalidTokenError: If the token is expired, forged, or malformed.
        """
        try:
            payload = self._serializer.loads(
                token, max_age=int(self.expires_after.total_seconds())
            )
        except SignatureExpired as exc:
            msg = "token has expired"
            raise InvalidTokenError(msg) from exc
        except BadSignature as exc:
            msg = "token signature is invalid"
            raise InvalidTokenError(msg) from exc

        subject = payload.get("sub") if isinstance(payload, dict) else None
        if not isinstance(subject, int) or isinstance(subject, bool):
            msg = "token payload has no subject"
            raise InvalidTokenError(msg)
        return subject
