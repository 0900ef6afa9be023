"""Validation: composable rules, declarative schemas, clean results.

Mapping validation (form or query data)::

    from gora.validation import validate, required, max_length, email

    result = validate(await ctx.form(), {
        "title": [required, max_length(200)],
        "email": [required, email],
    })
    if not result:
        ctx.validation_error(result.first_errors())
        return

Bound bodies (dataclasses) are validated through ``Validator`` and
``Context.validate`` / ``Context.must_bind_json``.
"""

from collections.abc import Mapping
from typing import Any

from gora.validation.binding import bind
from gora.validation.result import ValidationResult
from gora.validation.rules import (
    Rule,
    email,
    integer,
    is_valid_email,
    matches,
    max_length,
    max_value,
    min_length,
    min_value,
    number,
    one_of,
    required,
    url,
)
from gora.validation.schema import Field, Schema, Validator, checked

__all__ = [
    "Field",
    "Rule",
    "Schema",
    "ValidationResult",
    "Validator",
    "bind",
    "checked",
    "email",
    "integer",
    "is_valid_email",
    "matches",
    "max_length",
    "max_value",
    "min_length",
    "min_value",
    "number",
    "one_of",
    "required",
    "url",
    "validate",
]


def validate(
    data: Mapping[str, Any],
    rules: dict[str, list[Rule]],
) -> ValidationResult:
    """Validate a mapping against per-field rule lists.

    Every rule of a field runs and contributes its message, except that
    a failing ``required`` stops the field early.

    Returns:
        A ``ValidationResult`` with ``.data`` (values of fields that
        passed) and ``.errors`` (field -> list of messages).
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, str] = {}

    for field_name, field_rules in rules.items():
        value = data.get(field_name) or ""

        field_errors: list[str] = []
        for rule in field_rules:
            error = rule(value)
            if error is not None:
                field_errors.append(error)
                if rule is required:
                    break

        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
