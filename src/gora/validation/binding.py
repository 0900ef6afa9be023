"""Binding decoded JSON into dataclasses.

Unknown keys are ignored. Missing keys fall back to the field default,
or ``None`` when the field has none, so incomplete bodies still bind
and the validator reports what is missing instead of the constructor.
Type mismatches are left for the validator as well: binding never
coerces.
"""

import dataclasses
import functools
import types
from typing import Any, get_args, get_origin, get_type_hints

from gora.errors import BindError


def bind(target: Any, data: Any) -> Any:
    """Build a *target* value from decoded JSON *data*.

    *target* may be a dataclass, ``list[SomeDataclass]``, or ``None``
    (return *data* unchanged).

    Raises:
        BindError: If the JSON shape does not fit *target* (an object
            where a list is expected or the other way around).
    """
    if target is None or target is Any:
        return data

    origin = get_origin(target)
    if origin in (list, tuple):
        if not isinstance(data, list):
            msg = f"expected a JSON array for {target!r}, got {type(data).__name__}"
            raise BindError(msg)
        (item_type, *_) = get_args(target) or (None,)
        items = [bind(item_type, item) for item in data]
        return items if origin is list else tuple(items)

    if isinstance(target, type) and dataclasses.is_dataclass(target):
        if not isinstance(data, dict):
            msg = f"expected a JSON object for {target.__name__}, got {type(data).__name__}"
            raise BindError(msg)
        return _bind_dataclass(target, data)

    return data


def _bind_dataclass(cls: type, data: dict[str, Any]) -> Any:
    values: dict[str, Any] = {}
    hints = _hints(cls)
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        if f.name in data:
            values[f.name] = _bind_nested(hints.get(f.name), data[f.name])
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            values[f.name] = None
    try:
        return cls(**values)
    except (TypeError, ValueError) as exc:
        raise BindError(f"cannot bind {cls.__name__}: {exc}") from exc


def _bind_nested(hint: Any, value: Any) -> Any:
    if isinstance(hint, types.UnionType):
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            hint = args[0]
    if isinstance(hint, type) and dataclasses.is_dataclass(hint) and isinstance(value, dict):
        return _bind_dataclass(hint, value)
    if get_origin(hint) is list and isinstance(value, list):
        return bind(hint, value)
    return value


@functools.cache
def _hints(cls: type) -> dict[str, Any]:
    return get_type_hints(cls)
