"""WebSocket broadcast hub.

A ``Hub`` keeps the set of connected clients and fans messages out to
them. All state lives in a single coordinating loop (``Hub.run``); the
rest of the world talks to it through one command channel, so the
client set needs no lock and every client is added or removed by the
loop alone.

Backpressure is drop-the-slow-client: each client has a bounded outbound
queue and a broadcast never waits. A client whose queue is full (or
already closed) is removed on the spot, which closes its queue and
lets its write pump finish.

Usage::

    hub = Hub(on_message=lambda msg: log.info("chat: %s", msg))
    hub.mount(router, "/ws")  # route + background loop + shutdown hook

    # elsewhere, from the event loop
    hub.broadcast("server restarting")
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from gora._internal.invoke import invoke
from gora.errors import HubClosedError, WebSocketDisconnect
from gora.ws.connection import NORMAL_CLOSURE, Connection

if TYPE_CHECKING:
    from gora.context import Context
    from gora.middleware.protocol import Middleware
    from gora.routing.router import Router

type Message = str | bytes
type MessageCallback = Callable[[Message], Any]

DEFAULT_QUEUE_SIZE = 256

logger = logging.getLogger("gora.ws")


# -- Commands accepted by the hub loop --


@dataclass(frozen=True, slots=True)
class _Register:
    client: Client


@dataclass(frozen=True, slots=True)
class _Unregister:
    client: Client


@dataclass(frozen=True, slots=True)
class _Broadcast:
    message: Message
    fan_out: bool = True


@dataclass(frozen=True, slots=True)
class _Barrier:
    reached: anyio.Event = field(compare=False)


@dataclass(frozen=True, slots=True)
class _Shutdown:
    pass


type _Command = _Register | _Unregister | _Broadcast | _Barrier | _Shutdown


class Client:
    """One connected peer: a transport plus a bounded outbound queue.

    ``serve`` runs two pumps. The read pump forwards inbound frames to
    the hub; the write pump drains the outbound queue into the
    transport. Whichever stops first cancels the other, the client asks
    the hub to unregister it (once), and the transport is closed.
    """

    __slots__ = (
        "_closed",
        "_outbound",
        "_queue",
        "_queue_closed",
        "_unregister_lock",
        "_unregister_requested",
        "connection",
        "hub",
    )

    def __init__(self, hub: Hub, connection: Connection, *, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.hub = hub
        self.connection = connection
        self._outbound: MemoryObjectSendStream[Message]
        self._queue: MemoryObjectReceiveStream[Message]
        self._outbound, self._queue = anyio.create_memory_object_stream[Message](queue_size)
        self._unregister_lock = threading.Lock()
        self._unregister_requested = False
        self._queue_closed = False
        self._closed = False

    def __repr__(self) -> str:
        return f"<Client {id(self):#x} queued={self._queue.statistics().current_buffer_used}>"

    @property
    def queue_closed(self) -> bool:
        """True once the hub removed this client."""
        return self._queue_closed

    def offer(self, message: Message) -> bool:
        """Queue *message* without waiting. ``False`` if full or closed."""
        try:
            self._outbound.send_nowait(message)
        except (anyio.WouldBlock, anyio.BrokenResourceError, anyio.ClosedResourceError):
            return False
        return True

    def close_queue(self) -> None:
        """Close the outbound queue. Only the hub loop calls this."""
        self._queue_closed = True
        self._outbound.close()

    def request_unregister(self) -> None:
        """Ask the hub to drop this client. Repeated calls are no-ops."""
        with self._unregister_lock:
            if self._unregister_requested:
                return
            self._unregister_requested = True
        self.hub.unregister(self)

    async def serve(self) -> None:
        """Run both pumps until either side finishes."""
        try:
            async with anyio.create_task_group() as tg:
                tg.start_soon(self._read_pump, tg.cancel_scope)
                tg.start_soon(self._write_pump, tg.cancel_scope)
        finally:
            self.request_unregister()
            with anyio.CancelScope(shield=True):
                await self._close_connection()

    async def _read_pump(self, scope: anyio.CancelScope) -> None:
        try:
            while True:
                message = await self.connection.receive()
                if not self.hub.inbound(message):
                    break
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("websocket read failed")
        finally:
            scope.cancel()

    async def _write_pump(self, scope: anyio.CancelScope) -> None:
        try:
            async with self._queue:
                async for message in self._queue:
                    await self.connection.send(message)
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("websocket write failed")
        finally:
            scope.cancel()

    async def _close_connection(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.connection.close(NORMAL_CLOSURE)


class Hub:
    """Registry of connected clients with a single coordinating loop.

    Args:
        queue_size: Outbound queue capacity per client.
        on_message: Called (sync or async) with every message the loop
            broadcasts, after fan-out. Errors are logged, never fatal.
        relay: Re-broadcast frames received from clients to every client.
    """

    def __init__(
        self,
        *,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        on_message: MessageCallback | None = None,
        relay: bool = True,
    ) -> None:
        if queue_size < 1:
            msg = "queue_size must be at least 1"
            raise ValueError(msg)
        self.queue_size = queue_size
        self.on_message = on_message
        self.relay = relay
        self._commands_in, self._commands_out = anyio.create_memory_object_stream[_Command](math.inf)
        self._clients: dict[Client, None] = {}
        self._shutdown_lock = threading.Lock()
        self._shutdown_requested = False
        self._started = False
        self._stopped = False
        self._stopped_event: anyio.Event | None = None

    def __repr__(self) -> str:
        return f"<Hub clients={len(self._clients)} stopped={self._stopped}>"

    # -- Introspection (loop-owned state, read-only snapshots) --

    @property
    def clients(self) -> tuple[Client, ...]:
        return tuple(self._clients)

    @property
    def stopped(self) -> bool:
        return self._stopped

    # -- Commands --

    def _submit(self, command: _Command) -> bool:
        try:
            self._commands_in.send_nowait(command)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            return False
        return True

    def register(self, client: Client) -> bool:
        """Queue *client* for registration. ``False`` once the hub stopped."""
        if self._shutdown_requested:
            return False
        return self._submit(_Register(client))

    def unregister(self, client: Client) -> bool:
        """Queue *client* for removal. Unknown clients are ignored by the loop."""
        return self._submit(_Unregister(client))

    def broadcast(self, message: Message) -> bool:
        """Queue *message* for every client. Never waits on a client."""
        if self._shutdown_requested:
            return False
        return self._submit(_Broadcast(message))

    def inbound(self, message: Message) -> bool:
        """A frame received from a client."""
        if self._shutdown_requested:
            return False
        return self._submit(_Broadcast(message, fan_out=self.relay))

    def shutdown(self) -> None:
        """Ask the loop to drop every client and exit. Safe to call repeatedly."""
        with self._shutdown_lock:
            if self._shutdown_requested:
                return
            self._shutdown_requested = True
        self._submit(_Shutdown())

    async def drain(self) -> None:
        """Wait until every command queued before this call was applied."""
        reached = anyio.Event()
        if not self._submit(_Barrier(reached)):
            return
        await reached.wait()

    async def wait_stopped(self) -> None:
        """Wait for the loop to exit."""
        if self._stopped:
            return
        await self._get_stopped_event().wait()

    def _get_stopped_event(self) -> anyio.Event:
        if self._stopped_event is None:
            self._stopped_event = anyio.Event()
        return self._stopped_event

    # -- The loop --

    async def run(self) -> None:
        """Apply commands until ``shutdown``. Runs once per hub.

        Raises:
            HubClosedError: If the loop already ran.
        """
        if self._started:
            msg = "hub loop already started"
            raise HubClosedError(msg)
        self._started = True
        stopped = self._get_stopped_event()
        try:
            async for command in self._commands_out:
                if isinstance(command, _Shutdown):
                    break
                await self._apply(command)
        finally:
            self._commands_in.close()
            self._discard_pending()
            for client in tuple(self._clients):
                self._remove(client)
            self._commands_out.close()
            self._stopped = True
            stopped.set()
            logger.info("websocket hub stopped")

    async def _apply(self, command: _Command) -> None:
        match command:
            case _Register(client):
                self._clients[client] = None
                logger.debug("client registered: %r (%d connected)", client, len(self._clients))
            case _Unregister(client):
                if client in self._clients:
                    self._remove(client)
            case _Broadcast(message, fan_out):
                if fan_out:
                    self._fan_out(message)
                if self.on_message is not None:
                    try:
                        await invoke(self.on_message, message)
                    except Exception:
                        logger.exception("websocket on_message callback failed")
            case _Barrier(reached):
                reached.set()

    def _fan_out(self, message: Message) -> None:
        for client in tuple(self._clients):
            if not client.offer(message):
                logger.warning("dropping slow websocket client %r", client)
                self._remove(client)

    def _remove(self, client: Client) -> None:
        del self._clients[client]
        client.close_queue()

    def _discard_pending(self) -> None:
        """Settle commands that arrived after shutdown."""
        while True:
            try:
                command = self._commands_out.receive_nowait()
            except (anyio.WouldBlock, anyio.EndOfStream):
                return
            match command:
                case _Register(client):
                    client.close_queue()
                case _Barrier(reached):
                    reached.set()

    # -- Router integration --

    async def handle(self, ctx: Context) -> None:
        """Route handler: accept the websocket and serve it as a hub client."""
        websocket = ctx.websocket
        if websocket is None:
            ctx.abort(400, "Bad Request: websocket upgrade required")
            return
        if self._shutdown_requested:
            await websocket.close(1001)
            return
        await websocket.accept()
        client = Client(self, websocket, queue_size=self.queue_size)
        if not self.register(client):
            await websocket.close(1001)
            return
        await client.serve()

    def mount(self, router: Router, pattern: str, *middleware: Middleware) -> None:
        """Register ``handle`` on *pattern* and tie the loop to the router's lifespan."""
        router.get(pattern, self.handle, *middleware)
        router.background(self.run)
        router.on_shutdown(self.shutdown)
