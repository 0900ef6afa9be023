"""Tests for gora.context: store, params, response and body helpers."""

import threading
from dataclasses import dataclass
from datetime import date, datetime

import pytest

from gora.context import Context, context_var, get_context
from gora.errors import BindError, InvalidParamError, MissingContextValue
from gora.http.request import Request
from gora.validation import checked, max_length, required
from gora.validation.schema import Field, Schema


def _request(
    path: str = "/",
    *,
    method: str = "GET",
    query: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
    body: bytes = b"",
) -> Request:
    sent = False

    async def receive() -> dict:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query,
        "headers": headers or [],
    }
    return Request.from_asgi(scope, receive)


def _ctx(params: dict[str, str] | None = None, **kwargs) -> Context:
    return Context(_request(**kwargs), params=params)


@dataclass
class SignUp:
    name: str = checked(required=True, rules=(max_length(5),))
    age: int | None = None


class TestStore:
    def test_set_and_get(self) -> None:
        ctx = _ctx()
        ctx.set("user", "alice")
        assert ctx.get("user") == "alice"
        assert "user" in ctx

    def test_get_default(self) -> None:
        assert _ctx().get("missing", 3) == 3

    def test_lookup(self) -> None:
        ctx = _ctx()
        assert ctx.lookup("user") == (None, False)
        ctx.set("user", None)
        assert ctx.lookup("user") == (None, True)

    def test_must_get_missing(self) -> None:
        with pytest.raises(MissingContextValue, match="does not exist"):
            _ctx().must_get("user")

    def test_must_get_is_key_error(self) -> None:
        with pytest.raises(KeyError):
            _ctx().must_get("user")

    def test_concurrent_writers(self) -> None:
        ctx = _ctx()

        def writer(n: int) -> None:
            for i in range(200):
                ctx.set(f"k{n}-{i}", i)
                ctx.get(f"k{n}-{i}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert ctx.get("k3-199") == 199


class TestParams:
    def test_param_raw(self) -> None:
        assert _ctx({"slug": "hello"}).param("slug") == "hello"

    def test_param_missing_is_empty(self) -> None:
        assert _ctx().param("slug") == ""

    def test_int_param(self) -> None:
        assert _ctx({"id": "42"}).int_param("id") == 42

    def test_int_param_invalid(self) -> None:
        with pytest.raises(InvalidParamError) as exc_info:
            _ctx({"id": "abc"}).int_param("id")
        assert exc_info.value.name == "id"
        assert exc_info.value.value == "abc"

    def test_int_param_rejects_non_ascii_digits(self) -> None:
        with pytest.raises(InvalidParamError):
            _ctx({"id": "\u0664\u0662"}).int_param("id")

    def test_float_and_date_reject_non_ascii_digits(self) -> None:
        ctx = _ctx({"p": "\u0664.\u0665", "d": "\u0662\u0660\u0662\u0664-01-01"})
        with pytest.raises(InvalidParamError):
            ctx.float_param("p")
        with pytest.raises(InvalidParamError):
            ctx.date_param("d")

    def test_int_param_missing(self) -> None:
        with pytest.raises(InvalidParamError, match="missing parameter"):
            _ctx().int_param("id")

    def test_uint_param_rejects_negative(self) -> None:
        with pytest.raises(InvalidParamError):
            _ctx({"id": "-1"}).uint_param("id")

    def test_float_param(self) -> None:
        assert _ctx({"p": "9.5"}).float_param("p") == 9.5

    def test_bool_param(self) -> None:
        ctx = _ctx({"a": "true", "b": "0"})
        assert ctx.bool_param("a") is True
        assert ctx.bool_param("b") is False

    def test_bool_param_invalid(self) -> None:
        with pytest.raises(InvalidParamError):
            _ctx({"a": "yes"}).bool_param("a")

    def test_date_param(self) -> None:
        assert _ctx({"d": "2024-02-29"}).date_param("d") == date(2024, 2, 29)

    def test_datetime_param(self) -> None:
        value = _ctx({"t": "2024-02-29 10:30:00"}).datetime_param("t")
        assert value == datetime(2024, 2, 29, 10, 30)

    def test_query(self) -> None:
        ctx = _ctx(query=b"page=2&tag=a&tag=b")
        assert ctx.query("page") == "2"
        assert ctx.query("missing") == ""
        assert ctx.int_query("page") == 2

    def test_int_query_missing_is_invalid(self) -> None:
        with pytest.raises(InvalidParamError):
            _ctx().int_query("page")

    def test_uint_query(self) -> None:
        assert _ctx(query=b"n=5").uint_query("n") == 5


class TestResponseHelpers:
    def test_json(self) -> None:
        ctx = _ctx()
        ctx.json({"a": 1, "when": date(2024, 1, 2)}, status=201)
        assert ctx.response.status_code == 201
        assert ctx.response.body == b'{"a":1,"when":"2024-01-02"}'
        assert ctx.response.headers.get("content-type") == "application/json"

    def test_json_dataclass(self) -> None:
        ctx = _ctx()
        ctx.json(SignUp(name="bob", age=3))
        assert ctx.response.body == b'{"name":"bob","age":3}'

    def test_json_unserializable(self) -> None:
        with pytest.raises(TypeError):
            _ctx().json({"x": object()})

    def test_text_and_html(self) -> None:
        ctx = _ctx()
        ctx.html("<p>hi</p>")
        assert ctx.response.headers.get("content-type") == "text/html; charset=utf-8"

    def test_binary(self) -> None:
        ctx = _ctx()
        ctx.binary(b"\x00\x01")
        assert ctx.response.body == b"\x00\x01"
        assert ctx.response.headers.get("content-type") == "application/octet-stream"

    def test_status_chainable(self) -> None:
        ctx = _ctx()
        ctx.status(201).header("X-Id", "7").write("made")
        assert ctx.response.status_code == 201
        assert ctx.response.headers.get("x-id") == "7"
        assert ctx.response.body == b"made"

    def test_first_status_wins(self) -> None:
        ctx = _ctx()
        ctx.status(202)
        ctx.text("late", status=500)
        assert ctx.response.status_code == 202

    def test_no_content(self) -> None:
        ctx = _ctx()
        ctx.no_content()
        assert ctx.response.status_code == 204

    def test_redirect_default_permanent(self) -> None:
        ctx = _ctx()
        ctx.redirect("/login")
        assert ctx.response.status_code == 301
        assert ctx.response.headers.get("location") == "/login"

    def test_abort(self) -> None:
        ctx = _ctx()
        ctx.abort(403, "Forbidden")
        assert ctx.aborted is True
        assert ctx.response.status_code == 403
        assert ctx.response.body == b"Forbidden"

    def test_abort_with_error(self) -> None:
        ctx = _ctx()
        ctx.abort_with_error(400, ValueError("bad input"))
        assert ctx.response.body == b"bad input"

    def test_validation_error(self) -> None:
        ctx = _ctx()
        ctx.validation_error({"name": "This field is required"})
        assert ctx.response.status_code == 400
        assert ctx.response.body == b'{"name":"This field is required"}'

    async def test_file(self, tmp_path) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("hello")
        ctx = _ctx()
        assert await ctx.file(target) is True
        assert ctx.response.body == b"hello"
        assert ctx.response.headers.get("content-type") == "text/plain"

    async def test_file_missing(self, tmp_path) -> None:
        ctx = _ctx()
        assert await ctx.file(tmp_path / "nope.txt") is False
        assert ctx.response.status_code == 404


class TestRequestHelpers:
    def test_bearer_token(self) -> None:
        ctx = _ctx(headers=[(b"authorization", b"Bearer abc.def")])
        assert ctx.bearer_token() == "abc.def"

    @pytest.mark.parametrize("value", [b"", b"Basic abc", b"Bearer", b"bearer abc"])
    def test_bearer_token_absent(self, value: bytes) -> None:
        ctx = _ctx(headers=[(b"authorization", value)])
        assert ctx.bearer_token() == ""

    async def test_bind_json_plain(self) -> None:
        ctx = _ctx(body=b'{"a": [1, 2]}')
        assert await ctx.bind_json() == {"a": [1, 2]}

    async def test_bind_json_dataclass(self) -> None:
        ctx = _ctx(body=b'{"name": "ann", "age": 30, "extra": true}')
        signup = await ctx.bind_json(SignUp)
        assert signup == SignUp(name="ann", age=30)

    async def test_bind_json_list(self) -> None:
        ctx = _ctx(body=b'[{"name": "a"}, {"name": "b"}]')
        items = await ctx.bind_json(list[SignUp])
        assert [i.name for i in items] == ["a", "b"]

    async def test_bind_json_invalid(self) -> None:
        with pytest.raises(BindError):
            await _ctx(body=b"{not json").bind_json()

    async def test_must_bind_json_reports_errors(self) -> None:
        ctx = _ctx(body=b'{"name": "toolong"}')
        signup, errors = await ctx.must_bind_json(SignUp)
        assert signup.name == "toolong"
        assert errors == {"name": "Must be at most 5 characters"}

    async def test_must_bind_json_valid(self) -> None:
        ctx = _ctx(body=b'{"name": "ok"}')
        _, errors = await ctx.must_bind_json(SignUp)
        assert errors is None

    async def test_validate_with_explicit_schema(self) -> None:
        schema = Schema((Field("title", required=True, rules=(required,)),))
        assert _ctx().validate({"title": ""}, schema) == {"title": "This field is required"}

    async def test_transform_json(self) -> None:
        ctx = _ctx(body=b'{"email": "  A@B.COM ", "n": 1}')
        data = await ctx.transform_json({"email": lambda v: v.strip().lower(), "missing": str})
        assert data == {"email": "a@b.com", "n": 1}
        assert await ctx.bind_json() == {"email": "a@b.com", "n": 1}

    async def test_transform_json_requires_object(self) -> None:
        with pytest.raises(BindError):
            await _ctx(body=b"[1]").transform_json({})


class TestContextVar:
    def test_get_context(self) -> None:
        ctx = _ctx()
        token = context_var.set(ctx)
        try:
            assert get_context() is ctx
        finally:
            context_var.reset(token)
