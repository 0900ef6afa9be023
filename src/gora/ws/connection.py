"""ASGI WebSocket connection.

Wraps the ``receive``/``send`` pair of a ``websocket`` scope. The
connection moves through three states: handshake, accepted, closed.
A peer disconnect, or a send failing because the peer is gone, moves it
to closed and surfaces as ``WebSocketDisconnect``.
"""

from __future__ import annotations

import contextlib
import json as json_module
from enum import Enum
from typing import Any, Protocol

from gora._internal.asgi import Receive, Send
from gora.errors import WebSocketDisconnect

NORMAL_CLOSURE = 1000
INTERNAL_ERROR = 1011


class Connection(Protocol):
    """What the hub needs from a client's transport."""

    async def receive(self) -> str | bytes: ...

    async def send(self, message: str | bytes) -> None: ...

    async def close(self, code: int = NORMAL_CLOSURE) -> None: ...


class _State(Enum):
    HANDSHAKE = "handshake"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class WebSocket:
    """A server-side WebSocket connection over ASGI."""

    __slots__ = ("_close_code", "_connected", "_receive", "_send", "_state")

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self._state = _State.HANDSHAKE
        self._connected = False
        self._close_code: int | None = None

    @property
    def accepted(self) -> bool:
        return self._state is _State.ACCEPTED

    @property
    def closed(self) -> bool:
        return self._state is _State.CLOSED

    @property
    def unaccepted(self) -> bool:
        return self._state is _State.HANDSHAKE

    @property
    def close_code(self) -> int | None:
        return self._close_code

    async def _await_connect(self) -> None:
        if self._connected:
            return
        message = await self._receive()
        if message["type"] == "websocket.disconnect":
            self._mark_closed(message.get("code", NORMAL_CLOSURE))
            raise WebSocketDisconnect(self._close_code or NORMAL_CLOSURE)
        self._connected = True

    async def accept(self, subprotocol: str | None = None) -> None:
        """Complete the handshake.

        Raises:
            RuntimeError: If the connection was already accepted or closed.
        """
        if self._state is not _State.HANDSHAKE:
            msg = f"cannot accept a websocket in state {self._state.value}"
            raise RuntimeError(msg)
        await self._await_connect()
        message: dict[str, Any] = {"type": "websocket.accept"}
        if subprotocol is not None:
            message["subprotocol"] = subprotocol
        await self._send(message)
        self._state = _State.ACCEPTED

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection. Closing twice is a no-op.

        Closing before ``accept`` rejects the handshake (HTTP 403).
        """
        if self._state is _State.CLOSED:
            return
        message: dict[str, Any] = {"type": "websocket.close", "code": code}
        if reason:
            message["reason"] = reason
        self._mark_closed(code)
        # The peer may already be gone; the connection is closed either way.
        with contextlib.suppress(OSError):
            await self._send(message)

    async def receive(self) -> str | bytes:
        """Next text or binary frame from the peer."""
        self._require_accepted()
        message = await self._receive()
        if message["type"] == "websocket.disconnect":
            self._mark_closed(message.get("code", NORMAL_CLOSURE))
            raise WebSocketDisconnect(self._close_code or NORMAL_CLOSURE, message.get("reason", ""))
        text = message.get("text")
        if text is not None:
            return text
        return message.get("bytes") or b""

    async def receive_text(self) -> str:
        data = await self.receive()
        if isinstance(data, bytes):
            msg = "expected a text frame, got binary"
            raise TypeError(msg)
        return data

    async def receive_bytes(self) -> bytes:
        data = await self.receive()
        if isinstance(data, str):
            msg = "expected a binary frame, got text"
            raise TypeError(msg)
        return data

    async def receive_json(self) -> Any:
        return json_module.loads(await self.receive())

    async def send(self, message: str | bytes) -> None:
        """Send a text (``str``) or binary (``bytes``) frame."""
        self._require_accepted()
        if isinstance(message, str):
            event: dict[str, Any] = {"type": "websocket.send", "text": message}
        else:
            event = {"type": "websocket.send", "bytes": bytes(message)}
        try:
            await self._send(event)
        except OSError as exc:
            self._mark_closed(INTERNAL_ERROR)
            raise WebSocketDisconnect(INTERNAL_ERROR, str(exc)) from exc

    async def send_text(self, text: str) -> None:
        await self.send(text)

    async def send_bytes(self, data: bytes) -> None:
        await self.send(data)

    async def send_json(self, data: Any) -> None:
        await self.send(json_module.dumps(data))

    def _mark_closed(self, code: int) -> None:
        self._state = _State.CLOSED
        self._close_code = code

    def _require_accepted(self) -> None:
        if self._state is _State.HANDSHAKE:
            msg = "websocket connection has not been accepted"
            raise RuntimeError(msg)
        if self._state is _State.CLOSED:
            raise WebSocketDisconnect(self._close_code or NORMAL_CLOSURE)
