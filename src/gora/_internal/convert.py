"""String-to-value conversions shared by path params, query params, and .env config."""

import re
from datetime import date, datetime

_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _require_ascii(value: str, kind: str) -> None:
    if not value.isascii():
        msg = f"invalid {kind} literal: {value!r}"
        raise ValueError(msg)


def parse_int(value: str) -> int:
    """Strict integer parsing: optional sign and ASCII digits only."""
    if not _INT_RE.fullmatch(value):
        msg = f"invalid integer literal: {value!r}"
        raise ValueError(msg)
    return int(value)


def parse_uint(value: str) -> int:
    number = parse_int(value)
    if number < 0:
        msg = f"negative value for unsigned integer: {value!r}"
        raise ValueError(msg)
    return number


def parse_float(value: str) -> float:
    if not value.isascii() or value != value.strip():
        msg = f"invalid float literal: {value!r}"
        raise ValueError(msg)
    return float(value)


def parse_bool(value: str) -> bool:
    """Accepts 1/t/T/TRUE/true/True and 0/f/F/FALSE/false/False."""
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    msg = f"invalid boolean literal: {value!r}"
    raise ValueError(msg)


def parse_date(value: str) -> date:
    _require_ascii(value, "date")
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_datetime(value: str) -> datetime:
    _require_ascii(value, "datetime")
    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S")
