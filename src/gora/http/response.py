"""Response sink that records what a handler wrote.

Handlers and middleware write through the request ``Context`` into a
``ResponseWriter``. The writer only records: the router sends the
recorded status, headers, and body through ASGI once the middleware
chain returns.

Status semantics follow the usual writer contract: the first
``write_header`` wins, later calls are ignored, and a ``write`` with
no status recorded implies ``200 OK``.
"""

import logging

from gora.http.headers import ResponseHeaders

logger = logging.getLogger("gora.http")


class ResponseWriter:
    """Records status, headers, and body for a single response."""

    __slots__ = ("_body", "_status", "headers")

    def __init__(self) -> None:
        self.headers = ResponseHeaders()
        self._status: int | None = None
        self._body = bytearray()

    @property
    def written(self) -> bool:
        """True once a status line has been recorded."""
        return self._status is not None

    @property
    def status_code(self) -> int:
        """Status recorded so far (``200`` when nothing was written)."""
        return self._status if self._status is not None else 200

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def write_header(self, status: int) -> bool:
        """Record the status line. Returns ``False`` if one was already written."""
        if self._status is not None:
            logger.debug("superfluous write_header(%d): status %d already written", status, self._status)
            return False
        self._status = status
        return True

    def write(self, data: bytes | str) -> int:
        """Append *data* to the body, recording ``200`` if no status was written."""
        if self._status is None:
            self._status = 200
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body.extend(data)
        return len(data)

    def __repr__(self) -> str:
        return f"ResponseWriter(status={self._status!r}, {len(self._body)} bytes)"
