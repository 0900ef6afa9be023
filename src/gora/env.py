"""``.env`` files: process environment loading and typed config objects.

One ``KEY=VALUE`` pair per line. Lines starting with ``#`` and lines
without ``=`` are skipped; keys and values are trimmed; values wrapped
in double quotes are unquoted with string escapes (``"a\\tb"``).

``load_env`` exports the pairs into ``os.environ``. ``load_config``
builds a dataclass from them, each field declaring its key::

    @dataclass(frozen=True)
    class Settings:
        secret: str = env_field("SECRET_KEY", required=True)
        port: int = env_field("PORT", default=8000)
        debug: bool = env_field("DEBUG", default=False)

    settings = load_config(".env", Settings)

Supported field types are ``str``, ``int``, ``float`` and ``bool``
(``1/t/true/TRUE`` ... ``0/f/false/FALSE``).
"""

from __future__ import annotations

import ast
import dataclasses
import functools
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, get_type_hints

from gora._internal import convert
from gora.errors import ConfigurationError

_METADATA_KEY = "gora.env"

_PARSERS: dict[type, Callable[[str], Any]] = {
    str: str,
    int: convert.parse_int,
    float: convert.parse_float,
    bool: convert.parse_bool,
}


@dataclass(frozen=True, slots=True)
class KeyValuePair:
    key: str
    value: str


def _unquote(value: str) -> str:
    try:
        result = ast.literal_eval(value)
    except (SyntaxError, ValueError) as exc:
        msg = f"invalid quoted value: {value}"
        raise ConfigurationError(msg) from exc
    if not isinstance(result, str):
        msg = f"invalid quoted value: {value}"
        raise ConfigurationError(msg)
    return result


def parse_env(lines: Iterable[str]) -> list[KeyValuePair]:
    """Parse ``.env`` lines (an open file or any iterable of strings).

    Raises:
        ConfigurationError: If a double-quoted value is malformed.
    """
    pairs: list[KeyValuePair] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key, value = key.strip(), value.strip()
        if len(value) > 1 and value[0] == '"' and value[-1] == '"':
            value = _unquote(value)
        pairs.append(KeyValuePair(key, value))
    return pairs


def read_env(filename: str | Path) -> list[KeyValuePair]:
    """Parse the ``.env`` file at *filename*.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(filename, encoding="utf-8") as f:
        return parse_env(f)


def load_env(filename: str | Path) -> None:
    """Export the pairs in *filename* into ``os.environ``, overwriting."""
    for pair in read_env(filename):
        os.environ[pair.key] = pair.value


# -- Typed config --


@dataclass(frozen=True, slots=True)
class _EnvKey:
    name: str
    required: bool


@dataclass(frozen=True, slots=True)
class _ConfigField:
    attr: str
    key: str
    required: bool
    parse: Callable[[str], Any]


def env_field(
    name: str,
    *,
    required: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """A ``dataclasses.field`` read from the ``.env`` key *name*.

    Optional fields without a default are ``None`` when the key is absent.
    """
    if not required and default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        default = None
    metadata = {_METADATA_KEY: _EnvKey(name, required)}
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


def _parser_for(hint: Any) -> Callable[[str], Any] | None:
    # X | None
    args = getattr(hint, "__args__", None)
    if args and type(None) in args:
        remaining = [a for a in args if a is not type(None)]
        if len(remaining) == 1:
            hint = remaining[0]
    return _PARSERS.get(hint)


@functools.cache
def _config_fields(cls: type) -> tuple[_ConfigField, ...]:
    if not dataclasses.is_dataclass(cls):
        msg = f"{cls!r} is not a dataclass"
        raise ConfigurationError(msg)
    hints = get_type_hints(cls)
    fields: list[_ConfigField] = []
    for f in dataclasses.fields(cls):
        spec = f.metadata.get(_METADATA_KEY)
        if spec is None:
            continue
        parse = _parser_for(hints.get(f.name))
        if parse is None:
            msg = f"unsupported type for field {f.name}"
            raise ConfigurationError(msg)
        fields.append(_ConfigField(f.name, spec.name, spec.required, parse))
    return tuple(fields)


def config_from_pairs[T](pairs: Iterable[KeyValuePair], cls: type[T]) -> T:
    """Build *cls* from already parsed pairs. Later duplicates win."""
    fields = _config_fields(cls)
    values = {pair.key: pair.value for pair in pairs}
    kwargs: dict[str, Any] = {}
    for spec in fields:
        if spec.key not in values:
            if spec.required:
                msg = f"missing required field {spec.key}"
                raise ConfigurationError(msg)
            continue
        raw = values[spec.key]
        try:
            kwargs[spec.attr] = spec.parse(raw)
        except ValueError as exc:
            msg = f"invalid value for {spec.key}: {exc}"
            raise ConfigurationError(msg) from exc
    return cls(**kwargs)


def load_config[T](filename: str | Path, cls: type[T]) -> T:
    """Build an instance of the dataclass *cls* from the ``.env`` file.

    Raises:
        OSError: If the file cannot be read.
        ConfigurationError: On unsupported field types, unparsable
            values, or missing required keys.
    """
    return config_from_pairs(read_env(filename), cls)
