"""Immutable HTTP request.

Frozen metadata with async body access. Built once per connection from
the ASGI scope; websocket handshakes produce a ``GET`` request so they
flow through the same route table as plain HTTP.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gora._internal.asgi import Receive, Scope
from gora.errors import HTTPError
from gora.http.headers import Headers
from gora.http.query import QueryParams

if TYPE_CHECKING:
    from gora.http.forms import FormData


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict."""
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep:
            cookies[key.strip()] = value.strip()
    return cookies


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``, ``.form()``
    and cached after the first read.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    http_version: str
    scheme: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: largest body accepted, None for unlimited
    _max_body: int | None = field(default=None, repr=False, compare=False)

    # Private: body and parsed form cache; the dict itself stays mutable
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "") or ""

    @property
    def client_ip(self) -> str:
        """Best-effort client address.

        Honours ``X-Forwarded-For`` (first hop) and ``X-Real-IP`` before
        falling back to the socket peer.
        """
        forwarded = self.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = self.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()
        if self.client:
            return self.client[0]
        return ""

    @property
    def url(self) -> str:
        """Request path plus query string."""
        if self.query.raw:
            return f"{self.path}?{self.query.raw.decode('latin-1')}"
        return self.path

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive is consumed once; later calls return the same bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    def replace_body(self, body: bytes) -> None:
        """Make later ``body()`` calls return *body* instead of the received bytes."""
        self._cache["_body"] = body

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks.

        Raises:
            HTTPError: 413 once more than ``max_body_bytes`` arrived.
        """
        if self._receive is None:
            return
        received = 0
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                received += len(chunk)
                if self._max_body is not None and received > self._max_body:
                    raise HTTPError(413, "Request Entity Too Large")
                yield chunk
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Raises:
            ValueError: If Content-Type is not a form encoding.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from gora.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        result = parse_form_data(await self.body(), ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive | None = None,
        *,
        max_body: int | None = None,
    ) -> Request:
        """Create a Request from an ASGI ``http`` or ``websocket`` scope."""
        headers = Headers(scope.get("headers", ()))
        server = scope.get("server")
        client = scope.get("client")
        is_websocket = scope["type"] == "websocket"
        return cls(
            method="GET" if is_websocket else scope["method"].upper(),
            path=scope.get("path") or "/",
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", "ws" if is_websocket else "http"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "") or ""),
            _receive=None if is_websocket else receive,
            _max_body=max_body,
        )
