"""Gora exception hierarchy.

Shared across the pattern compiler, router, context, and hub so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class GoraError(Exception):
    """Base for all gora-specific errors."""


class ConfigurationError(GoraError):
    """Raised when router or application configuration is invalid.

    Registration-time errors are fatal: they surface while the route
    table is being built, before any request is served.
    """


class InvalidPatternError(ConfigurationError):
    """A path template could not be compiled into a regular expression."""


class InvalidParamError(GoraError, ValueError):
    """A path or query parameter is missing or fails type conversion."""

    def __init__(self, name: str, value: str | None, expected: str) -> None:
        self.name = name
        self.value = value
        self.expected = expected
        if value is None:
            detail = f"missing parameter {name!r}"
        else:
            detail = f"parameter {name!r}: {value!r} is not a valid {expected}"
        super().__init__(detail)


class MissingContextValue(GoraError, KeyError):  # noqa: N818
    """``Context.must_get`` was asked for a key that was never set."""

    def __str__(self) -> str:
        return f"key {self.args[0]!r} does not exist in the request context"


class BindError(GoraError, ValueError):
    """The request body could not be decoded into the requested type."""


class InvalidTokenError(GoraError):
    """An access token is malformed, forged, or expired."""


class HubClosedError(GoraError):
    """The WebSocket hub has stopped and no longer accepts commands."""


class WebSocketDisconnect(GoraError):  # noqa: N818
    """The peer closed the WebSocket connection."""

    def __init__(self, code: int = 1000, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"websocket closed with code {code}")


@dataclass(frozen=True, slots=True)
class HTTPError(GoraError):
    """An error that maps directly to an HTTP status code.

    Handlers may raise these; ``recovery`` turns them into a plain-text
    response with the given status instead of a generic 500.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)
