"""Tests for gora.validation: rules, mapping validation, schemas, binding."""

from dataclasses import dataclass

import pytest

from gora.errors import BindError
from gora.validation import (
    Field,
    Schema,
    ValidationResult,
    Validator,
    bind,
    checked,
    email,
    integer,
    matches,
    max_length,
    max_value,
    min_length,
    min_value,
    number,
    one_of,
    required,
    url,
    validate,
)


@dataclass
class Address:
    city: str = checked(required=True)


@dataclass
class SignUp:
    name: str = checked(required=True, rules=(max_length(10),))
    email: str = checked(required=True, rules=(email,))
    age: int | None = checked(rules=(min_value(13),))


@dataclass
class Order:
    id: int
    address: Address | None = None
    tags: list[str] | None = None


class TestRules:
    def test_required(self) -> None:
        assert required("x") is None
        assert required("   ") == "This field is required"
        assert required(None) == "This field is required"
        assert required([]) == "This field is required"

    def test_lengths(self) -> None:
        assert max_length(3)("abcd") == "Must be at most 3 characters"
        assert max_length(3)("abc") is None
        assert min_length(2)("a") == "Must be at least 2 characters"

    def test_ranges(self) -> None:
        assert min_value(10)("9") == "Must be at least 10"
        assert max_value(10)(11) == "Must be at most 10"
        assert min_value(1)("abc") == "Must be a number"

    def test_formats(self) -> None:
        assert email("a@example.com") is None
        assert email("nope") == "Must be a valid email address"
        assert url("https://example.com/x") is None
        assert url("ftp://example.com") == "Must be a valid URL"
        assert matches(r"\d+$", "digits only")("12a") == "digits only"

    def test_one_of(self) -> None:
        rule = one_of("a", "b")
        assert rule("a") is None
        assert rule("c") == "Must be one of: a, b"

    def test_numbers(self) -> None:
        assert integer("42") is None
        assert integer("4.2") == "Must be a whole number"
        assert integer(True) == "Must be a whole number"
        assert number("4.2") is None
        assert number("x") == "Must be a number"


class TestValidate:
    def test_valid(self) -> None:
        result = validate({"title": "Hi"}, {"title": [required, max_length(5)]})
        assert result
        assert result.data == {"title": "Hi"}

    def test_required_stops_field(self) -> None:
        result = validate({}, {"title": [required, min_length(3)]})
        assert not result
        assert result.errors == {"title": ["This field is required"]}

    def test_collects_all_messages(self) -> None:
        result = validate({"code": "x"}, {"code": [min_length(2), matches(r"\d")]})
        assert len(result.errors["code"]) == 2

    def test_first_errors(self) -> None:
        result = ValidationResult(data={}, errors={"a": ["one", "two"], "b": []})
        assert result.first_errors() == {"a": "one"}


class TestSchema:
    def test_explicit_schema_on_mapping(self) -> None:
        schema = Schema((Field("name", type=str, required=True), Field("age", type=int)))
        assert schema.check({"name": "ann", "age": 3}) is None
        assert schema.check({"age": "3"}) == {
            "name": "This field is required",
            "age": "Must be of type int",
        }

    def test_bool_is_not_an_int(self) -> None:
        assert Field("n", type=int).check(True) == "Must be of type int"

    def test_int_satisfies_float(self) -> None:
        assert Field("n", type=float).check(3) is None

    def test_optional_missing_passes(self) -> None:
        assert Field("n", type=int, rules=(min_value(1),)).check(None) is None


class TestValidator:
    def test_derived_from_dataclass(self) -> None:
        validator = Validator()
        assert validator.validate(SignUp(name="ann", email="a@example.com", age=20)) is None
        assert validator.validate(SignUp(name="ann", email="bad", age=None)) == {
            "email": "Must be a valid email address"
        }

    def test_missing_required(self) -> None:
        errors = Validator().validate(SignUp(name=None, email=None, age=10))
        assert errors == {
            "name": "This field is required",
            "email": "This field is required",
            "age": "Must be at least 13",
        }

    def test_lists_report_first_failure(self) -> None:
        good = SignUp(name="a", email="a@example.com", age=None)
        bad = SignUp(name="b" * 11, email="b@example.com", age=None)
        assert Validator().validate([good, bad]) == {"name": "Must be at most 10 characters"}
        assert Validator().validate([good, good]) is None

    def test_registered_schema(self) -> None:
        class Point:
            def __init__(self, x: object) -> None:
                self.x = x

        validator = Validator()
        validator.register(Point, Schema((Field("x", type=int),)))
        assert validator.validate(Point(1)) is None
        assert validator.validate(Point("1")) == {"x": "Must be of type int"}

    def test_unsupported_object(self) -> None:
        with pytest.raises(TypeError):
            Validator().validate({"name": "x"})


class TestBind:
    def test_dataclass(self) -> None:
        order = bind(Order, {"id": 1, "address": {"city": "Oslo"}, "extra": True})
        assert order == Order(id=1, address=Address(city="Oslo"))

    def test_missing_keys_become_none(self) -> None:
        assert bind(Order, {}) == Order(id=None)

    def test_list_of_dataclasses(self) -> None:
        assert bind(list[Address], [{"city": "a"}, {"city": "b"}]) == [Address("a"), Address("b")]

    def test_shape_mismatch(self) -> None:
        with pytest.raises(BindError):
            bind(Order, [1, 2])
        with pytest.raises(BindError):
            bind(list[Order], {"id": 1})

    def test_passthrough(self) -> None:
        assert bind(None, {"a": 1}) == {"a": 1}
