"""Per-request context.

A ``Context`` is created by the router for every request and handed to
each middleware and the handler. It bundles:

- the immutable ``Request`` and the ``ResponseWriter`` sink,
- path parameters captured by the matched route,
- a key/value store for values middleware passes down the chain
  (``ctx.set("user", user)``), guarded by a reader/writer lock so a
  handler may fan work out to other tasks or threads,
- response helpers (``json``, ``text``, ``abort``, ...) and body
  binding helpers (``bind_json``, ``validate``, multipart uploads).

The current context is also published through ``context_var`` while the
chain runs, for code that has no ``ctx`` argument at hand.
"""

from __future__ import annotations

import json as json_module
import logging
import mimetypes
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio

from gora._internal import convert
from gora._internal.rwlock import RWLock
from gora.errors import BindError, InvalidParamError, MissingContextValue
from gora.http.forms import FormData, UploadFile
from gora.http.request import Request
from gora.http.response import ResponseWriter
from gora.validation.binding import bind
from gora.validation.schema import Schema, Validator

if TYPE_CHECKING:
    from gora.config import RouterConfig
    from gora.ws.connection import WebSocket

type TransformRule = Callable[[Any], Any]

_MISSING = object()

context_var: ContextVar[Context] = ContextVar("gora_context")
"""The context of the request being handled. Set by the router before dispatch."""


def get_context() -> Context:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


class Context:
    """Request/response operations for one request.

    Attributes:
        request: The incoming request.
        response: Sink recording status, headers and body.
        params: Path parameters captured by the matched route.
        validator: Shared schema validator of the router.
        logger: Logger of the router.
        config: Router configuration.
        websocket: The connection for websocket requests, else ``None``.
    """

    __slots__ = (
        "_aborted",
        "_data",
        "_lock",
        "config",
        "logger",
        "params",
        "request",
        "response",
        "validator",
        "websocket",
    )

    def __init__(
        self,
        request: Request,
        response: ResponseWriter | None = None,
        params: Mapping[str, str] | None = None,
        *,
        validator: Validator | None = None,
        logger: logging.Logger | None = None,
        config: RouterConfig | None = None,
        websocket: WebSocket | None = None,
    ) -> None:
        self.request = request
        self.response = response if response is not None else ResponseWriter()
        self.params: dict[str, str] = dict(params or {})
        self.validator = validator if validator is not None else Validator()
        self.logger = logger if logger is not None else logging.getLogger("gora.router")
        self.config = config
        self.websocket = websocket
        self._data: dict[str, Any] = {}
        self._lock = RWLock()
        self._aborted = False

    def __repr__(self) -> str:
        return f"<Context {self.request.method} {self.request.path} params={self.params!r}>"

    # -- Key/value store --

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* for the rest of the chain."""
        with self._lock.write():
            self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock.read():
            return self._data.get(key, default)

    def lookup(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, True)`` if *key* was set, else ``(None, False)``."""
        with self._lock.read():
            value = self._data.get(key, _MISSING)
        if value is _MISSING:
            return None, False
        return value, True

    def must_get(self, key: str) -> Any:
        """Return the value stored under *key*.

        Raises:
            MissingContextValue: If *key* was never set.
        """
        value, found = self.lookup(key)
        if not found:
            raise MissingContextValue(key)
        return value

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._data

    # -- Path and query parameters --

    def param(self, name: str) -> str:
        """Raw path parameter, or ``""`` if the route captured none by that name."""
        return self.params.get(name, "")

    def _convert_param(self, name: str, expected: str, parse: Callable[[str], Any]) -> Any:
        raw = self.params.get(name)
        if raw is None:
            raise InvalidParamError(name, None, expected)
        try:
            return parse(raw)
        except ValueError:
            raise InvalidParamError(name, raw, expected) from None

    def int_param(self, name: str) -> int:
        return self._convert_param(name, "integer", convert.parse_int)

    def uint_param(self, name: str) -> int:
        return self._convert_param(name, "unsigned integer", convert.parse_uint)

    def float_param(self, name: str) -> float:
        return self._convert_param(name, "float", convert.parse_float)

    def bool_param(self, name: str) -> bool:
        return self._convert_param(name, "boolean", convert.parse_bool)

    def date_param(self, name: str) -> date:
        return self._convert_param(name, "date", convert.parse_date)

    def datetime_param(self, name: str) -> datetime:
        return self._convert_param(name, "datetime", convert.parse_datetime)

    def query(self, key: str) -> str:
        """First query value for *key*, or ``""``."""
        return self.request.query.get(key) or ""

    def _convert_query(self, key: str, expected: str, parse: Callable[[str], Any]) -> Any:
        raw = self.query(key)
        try:
            return parse(raw)
        except ValueError:
            raise InvalidParamError(key, raw, expected) from None

    def int_query(self, key: str) -> int:
        return self._convert_query(key, "integer", convert.parse_int)

    def uint_query(self, key: str) -> int:
        return self._convert_query(key, "unsigned integer", convert.parse_uint)

    # -- Response helpers --

    @property
    def aborted(self) -> bool:
        """Whether ``abort``/``abort_with_error`` was called.

        Advisory: middleware placed after an aborting one still runs
        unless it checks this flag or the aborting middleware returns
        without calling ``next``.
        """
        return self._aborted

    def status(self, code: int) -> Context:
        """Write the status line. Chainable: ``ctx.status(201).json(...)``."""
        self.response.write_header(code)
        return self

    def header(self, name: str, value: str) -> Context:
        self.response.headers.set(name, value)
        return self

    def write(self, data: bytes | str) -> int:
        return self.response.write(data)

    def _send(self, status: int, content_type: str, body: bytes | str) -> None:
        if not self.response.written:
            self.response.headers.set("Content-Type", content_type)
        self.response.write_header(status)
        self.response.write(body)

    def json(self, data: Any, status: int = 200) -> None:
        """Send *data* encoded as JSON.

        Raises:
            TypeError: If *data* is not JSON-serializable.
        """
        body = json_module.dumps(data, separators=(",", ":"), default=_json_default)
        self._send(status, "application/json", body)

    def text(self, text: str, status: int = 200) -> None:
        self._send(status, "text/plain; charset=utf-8", text)

    def html(self, html: str, status: int = 200) -> None:
        self._send(status, "text/html; charset=utf-8", html)

    def binary(self, data: bytes, status: int = 200) -> None:
        self._send(status, "application/octet-stream", data)

    def no_content(self) -> None:
        self.response.write_header(204)

    def redirect(self, url: str, status: int = 301) -> None:
        """Redirect the client to *url* (``301 Moved Permanently`` by default)."""
        self.response.headers.set("Location", url)
        self.response.write_header(status)

    async def file(self, path: str | Path, status: int = 200) -> bool:
        """Send the file at *path*; ``404`` if it does not exist.

        Returns ``True`` if the file was sent.
        """
        target = anyio.Path(path)
        if not await target.is_file():
            self.text("404 page not found", status=404)
            return False
        content_type, _ = mimetypes.guess_type(str(path))
        self._send(status, content_type or "application/octet-stream", await target.read_bytes())
        return True

    def abort(self, status: int, message: str) -> None:
        """Send *message* with *status* and mark the request as aborted."""
        self.text(message, status=status)
        self._aborted = True

    def abort_with_error(self, status: int, error: BaseException) -> None:
        """Like ``abort`` with the error's message as body."""
        self.abort(status, str(error))

    def validation_error(self, errors: Mapping[str, str]) -> None:
        """Send field errors as a ``400 Bad Request`` JSON object."""
        self.json(dict(errors), status=400)

    # -- Request helpers --

    def bearer_token(self) -> str:
        """Token from ``Authorization: Bearer <token>``, or ``""``."""
        authorization = self.request.headers.get("authorization") or ""
        scheme, _, token = authorization.partition(" ")
        if scheme != "Bearer" or not token:
            return ""
        return token.strip()

    async def body(self) -> bytes:
        return await self.request.body()

    async def form(self) -> FormData:
        return await self.request.form()

    async def bind_json(self, target: Any = None) -> Any:
        """Decode the JSON body, binding it into *target* when given.

        *target* may be a dataclass or ``list[SomeDataclass]``.

        Raises:
            BindError: If the body is not valid JSON or does not fit *target*.
        """
        raw = await self.request.body()
        try:
            data = json_module.loads(raw)
        except ValueError as exc:
            raise BindError(f"unable to bind JSON: {exc}") from exc
        return bind(target, data)

    def validate(self, obj: Any, schema: Schema | None = None) -> dict[str, str] | None:
        """Validate *obj* (or each item of a list) with the router's validator."""
        return self.validator.validate(obj, schema)

    async def must_bind_json(
        self, target: Any, schema: Schema | None = None
    ) -> tuple[Any, dict[str, str] | None]:
        """``bind_json`` followed by ``validate``. Returns ``(obj, errors)``.

        Binding failures propagate as ``BindError``.
        """
        obj = await self.bind_json(target)
        return obj, self.validate(obj, schema)

    async def transform_json(self, rules: Mapping[str, TransformRule]) -> dict[str, Any]:
        """Rewrite top-level keys of a JSON object body in place.

        Each rule receives the current value of its key (keys absent from
        the body are skipped) and returns the replacement. The rewritten
        body is what later ``body()``/``bind_json()`` calls see.

        Raises:
            BindError: If the body is not a JSON object.
        """
        data = await self.bind_json()
        if not isinstance(data, dict):
            msg = "unable to transform body: expected a JSON object"
            raise BindError(msg)
        for key, rule in rules.items():
            if key in data:
                data[key] = rule(data[key])
        self.request.replace_body(json_module.dumps(data).encode("utf-8"))
        return data

    # -- Multipart uploads --

    async def parse_multipart_form(self) -> tuple[dict[str, list[str]], dict[str, list[UploadFile]]]:
        """Return ``(values, files)`` of a ``multipart/form-data`` body."""
        form = await self.request.form()
        return form.to_dict(), {name: list(files) for name, files in form.files.items()}

    async def multipart_file(self, field: str) -> UploadFile:
        """First file uploaded under *field*.

        Raises:
            KeyError: If no file was uploaded under *field*.
        """
        form = await self.request.form()
        upload = form.file(field)
        if upload is None:
            msg = f"file with field name {field} not found"
            raise KeyError(msg)
        return upload

    async def save_multipart_file(self, upload: UploadFile, dest_dir: str | Path) -> Path:
        """Save *upload* into *dest_dir* under a collision-free name."""
        target = Path(dest_dir) / upload.unique_name()
        await anyio.Path(target).write_bytes(upload.content)
        return target

    async def save_multipart_files(
        self, files: Mapping[str, list[UploadFile]], dest_dir: str | Path
    ) -> list[Path]:
        """Save every upload in *files*; stops at the first I/O error."""
        saved: list[Path] = []
        for uploads in files.values():
            for upload in uploads:
                saved.append(await self.save_multipart_file(upload, dest_dir))
        return saved


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "__dataclass_fields__"):
        import dataclasses

        return dataclasses.asdict(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)
