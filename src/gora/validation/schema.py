"""Declarative schemas for validating bound request bodies.

A ``Schema`` is an explicit list of ``Field`` checks. Dataclasses can
carry their checks in field metadata and have a schema derived once,
then cached per type::

    @dataclass
    class SignUp:
        name: str = checked(required=True, rules=(max_length(50),))
        email: str = checked(required=True, rules=(email,))
        age: int | None = checked(rules=(min_value(13),))

    errors = Validator().validate(signup)
    # {"email": "Must be a valid email address"} or None

Sequences are validated element by element; the first failing element's
errors are returned.
"""

from __future__ import annotations

import dataclasses
import functools
import threading
import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, get_type_hints

from gora.validation.rules import Rule, is_blank

_METADATA_KEY = "gora.validation"
_MISSING = object()


@dataclass(frozen=True, slots=True)
class Field:
    """Checks applied to a single attribute or mapping key.

    ``type`` (when set) is checked with ``isinstance`` before the rules
    run. ``bool`` never satisfies ``int`` or ``float``.
    """

    name: str
    type: type | tuple[type, ...] | None = None
    required: bool = False
    rules: tuple[Rule, ...] = ()

    def check(self, value: Any) -> str | None:
        """Return the first error message for *value*, or ``None``."""
        if value is _MISSING or is_blank(value):
            if self.required:
                return "This field is required"
            if value is _MISSING or value is None:
                return None
        if self.type is not None and not _is_instance(value, self.type):
            return f"Must be of type {_type_name(self.type)}"
        for rule in self.rules:
            error = rule(value)
            if error is not None:
                return error
        return None


@dataclass(frozen=True, slots=True)
class Schema:
    """An ordered collection of ``Field`` checks."""

    fields: tuple[Field, ...]

    def check(self, obj: Any) -> dict[str, str] | None:
        """Validate one object (dataclass instance, plain object, or mapping)."""
        errors: dict[str, str] = {}
        for spec in self.fields:
            if isinstance(obj, Mapping):
                value = obj.get(spec.name, _MISSING)
            else:
                value = getattr(obj, spec.name, _MISSING)
            error = spec.check(value)
            if error is not None:
                errors[spec.name] = error
        return errors or None

    @classmethod
    def from_dataclass(cls, datacls: type) -> Schema:
        """Derive (and cache) a schema from a dataclass's field metadata."""
        return _schema_for_dataclass(datacls)


def checked(
    *,
    required: bool = False,
    rules: Sequence[Rule] = (),
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """A ``dataclasses.field`` carrying validation metadata.

    Fields declared with ``checked`` and no explicit default get ``None``
    so a body missing the key still binds and is reported by validation.
    """
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        default = None
    metadata = {_METADATA_KEY: (required, tuple(rules))}
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(default_factory=default_factory, metadata=metadata)
    return dataclasses.field(default=default, metadata=metadata)


@functools.cache
def _schema_for_dataclass(datacls: type) -> Schema:
    if not dataclasses.is_dataclass(datacls):
        msg = f"{datacls!r} is not a dataclass"
        raise TypeError(msg)
    hints = get_type_hints(datacls)
    fields: list[Field] = []
    for f in dataclasses.fields(datacls):
        required, rules = f.metadata.get(_METADATA_KEY, (False, ()))
        fields.append(
            Field(
                name=f.name,
                type=_runtime_type(hints.get(f.name)),
                required=required,
                rules=rules,
            )
        )
    return Schema(tuple(fields))


def _runtime_type(hint: Any) -> type | tuple[type, ...] | None:
    """Reduce an annotation to something ``isinstance`` accepts.

    ``X | None`` becomes ``X``; generics become their origin; anything
    else that is not a class (``Any``, type variables) is unchecked.
    """
    if isinstance(hint, types.UnionType):
        args = tuple(a for a in hint.__args__ if a is not type(None))
        resolved = tuple(t for t in (_runtime_type(a) for a in args) if isinstance(t, type))
        if len(resolved) != len(args):
            return None
        return resolved[0] if len(resolved) == 1 else resolved
    origin = getattr(hint, "__origin__", None)
    if isinstance(origin, type):
        return origin
    if isinstance(hint, type):
        return hint
    return None


def _is_instance(value: Any, expected: type | tuple[type, ...]) -> bool:
    wanted = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in wanted:
        return False
    if isinstance(value, int) and float in wanted:
        return True
    return isinstance(value, wanted)


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


class Validator:
    """Validates objects against registered or derived schemas.

    One validator is shared by every request of a router; registration
    happens during setup, lookups are lock-free reads of a dict.
    """

    __slots__ = ("_lock", "_schemas")

    def __init__(self) -> None:
        self._schemas: dict[type, Schema] = {}
        self._lock = threading.Lock()

    def register(self, cls: type, schema: Schema) -> None:
        """Use *schema* for instances of *cls* instead of a derived one."""
        with self._lock:
            self._schemas = {**self._schemas, cls: schema}

    def schema_for(self, cls: type) -> Schema:
        schema = self._schemas.get(cls)
        if schema is not None:
            return schema
        return Schema.from_dataclass(cls)

    def validate(self, obj: Any, schema: Schema | None = None) -> dict[str, str] | None:
        """Validate an object, a mapping, or a list/tuple of them.

        Returns a field-to-message dict, or ``None`` when valid.

        Raises:
            TypeError: If *obj* has no schema (not a dataclass instance,
                not registered, and no *schema* given).
        """
        if isinstance(obj, (list, tuple)):
            for item in obj:
                errors = self.validate(item, schema)
                if errors:
                    return errors
            return None

        if schema is None:
            cls = type(obj)
            if cls not in self._schemas and not dataclasses.is_dataclass(obj):
                msg = (
                    "object must be a dataclass instance, a registered type, "
                    f"or a list/tuple of them; got {cls.__name__}"
                )
                raise TypeError(msg)
            schema = self.schema_for(cls)
        return schema.check(obj)
