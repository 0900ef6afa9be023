"""Built-in validation rules.

Each rule is a callable with the signature::

    def rule(value: Any) -> str | None:
        '''Return an error message, or None if valid.'''

Parameterized rules are factory functions that return a rule::

    def max_length(n: int) -> Rule:
        def check(value: Any) -> str | None:
            if len(value) > n:
                return f"Must be at most {n} characters"
            return None
        return check

Values come either from form/query strings or from decoded JSON, so rules
accept any value and stringify where a text format is being checked.
"""

import re
from collections.abc import Callable, Sized
from email.utils import parseaddr
from typing import Any

# Type alias for a validation rule
type Rule = Callable[[Any], str | None]


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def is_blank(value: Any) -> bool:
    """True for ``None``, empty strings, and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def required(value: Any) -> str | None:
    """Field must be present and non-empty."""
    if is_blank(value):
        return "This field is required"
    return None


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


def max_length(n: int) -> Rule:
    """Value must hold at most *n* characters (or items)."""

    def check(value: Any) -> str | None:
        if len(value) > n:
            return f"Must be at most {n} characters"
        return None

    return check


def min_length(n: int) -> Rule:
    """Value must hold at least *n* characters (or items)."""

    def check(value: Any) -> str | None:
        if len(value) < n:
            return f"Must be at least {n} characters"
        return None

    return check


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------


def min_value(n: float) -> Rule:
    """Numeric value must be at least *n*."""

    def check(value: Any) -> str | None:
        try:
            if float(value) < n:
                return f"Must be at least {n}"
        except (TypeError, ValueError):
            return "Must be a number"
        return None

    return check


def max_value(n: float) -> Rule:
    """Numeric value must be at most *n*."""

    def check(value: Any) -> str | None:
        try:
            if float(value) > n:
                return f"Must be at most {n}"
        except (TypeError, ValueError):
            return "Must be a number"
        return None

    return check


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def is_valid_email(address: str) -> bool:
    """True if *address* parses as a single bare email address."""
    _, parsed = parseaddr(address)
    return bool(parsed) and parsed == address.strip() and bool(_EMAIL_RE.match(parsed))


def email(value: Any) -> str | None:
    """Value must be a valid email address (format check only)."""
    if not is_valid_email(str(value)):
        return "Must be a valid email address"
    return None


_URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def url(value: Any) -> str | None:
    """Value must be an http(s) URL."""
    if not _URL_RE.match(str(value)):
        return "Must be a valid URL"
    return None


def matches(pattern: str, message: str | None = None) -> Rule:
    """Value must match the given regex pattern."""
    compiled = re.compile(pattern)

    def check(value: Any) -> str | None:
        if not compiled.match(str(value)):
            return message or f"Must match pattern: {pattern}"
        return None

    return check


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(*choices: Any) -> Rule:
    """Value must be one of the given choices."""
    allowed = frozenset(choices)

    def check(value: Any) -> str | None:
        if value not in allowed:
            options = ", ".join(sorted(str(c) for c in allowed))
            return f"Must be one of: {options}"
        return None

    return check


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------


def integer(value: Any) -> str | None:
    """Value must be a whole number (or a string holding one)."""
    if isinstance(value, bool):
        return "Must be a whole number"
    try:
        int(value)
    except (TypeError, ValueError):
        return "Must be a whole number"
    return None


def number(value: Any) -> str | None:
    """Value must be a number (or a string holding one)."""
    if isinstance(value, bool):
        return "Must be a number"
    try:
        float(value)
    except (TypeError, ValueError):
        return "Must be a number"
    return None
