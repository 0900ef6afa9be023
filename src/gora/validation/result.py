"""Validation result: immutable container for validated data or errors."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of validating a mapping against a set of rules.

    The result is falsy when invalid, so you can write::

        result = validate(form, rules)
        if not result:
            ctx.json({"errors": result.errors}, status=400)
            return

    ``errors`` maps field names to lists of error messages::

        {"title": ["This field is required"],
         "email": ["Must be a valid email address"]}
    """

    data: dict[str, str]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    def first_errors(self) -> dict[str, str]:
        """One message per field, the shape ``Context.validation_error`` sends."""
        return {name: messages[0] for name, messages in self.errors.items() if messages}
