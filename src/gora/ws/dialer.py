"""Client side: push one JSON message to a websocket endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any

from websockets.asyncio.client import connect

logger = logging.getLogger("gora.ws")


class Dialer:
    """Connects to *addr* (``ws://`` or ``wss://``) once per ``send``.

    Usage::

        dialer = Dialer("ws://localhost:8000/ws")
        await dialer.send({"event": "deploy", "version": 3})
    """

    __slots__ = ("_addr",)

    def __init__(self, addr: str) -> None:
        self._addr = addr

    def __repr__(self) -> str:
        return f"<Dialer {self._addr!r}>"

    @property
    def addr(self) -> str:
        return self._addr

    async def send(self, data: Any) -> None:
        """Encode *data* as JSON and send it as a single text frame.

        Raises:
            TypeError: If *data* is not JSON-serializable.
            OSError: If the endpoint cannot be reached.
            websockets.exceptions.WebSocketException: On handshake or
                protocol failures.
        """
        payload = json.dumps(data)
        async with connect(self._addr) as websocket:
            await websocket.send(payload)
        logger.debug("sent %d bytes to %s", len(payload), self._addr)
