"""Tests for websocket routing, gora.ws.connection and Hub.mount."""

import pytest

from gora.context import Context
from gora.errors import WebSocketDisconnect
from gora.middleware.recovery import recovery
from gora.routing.router import Router
from gora.testing import TestClient
from gora.ws.hub import Hub


class TestWebSocketRoute:
    async def test_echo(self) -> None:
        router = Router()

        async def echo(ctx: Context) -> None:
            ws = ctx.websocket
            await ws.accept()
            while True:
                try:
                    message = await ws.receive_text()
                except WebSocketDisconnect:
                    return
                await ws.send_text(f"echo: {message}")

        router.get("/ws", echo)
        async with TestClient(router) as client:
            async with client.websocket("/ws") as ws:
                await ws.send_text("hi")
                assert await ws.receive_text() == "echo: hi"
                await ws.send_text("again")
                assert await ws.receive_text() == "echo: again"

    async def test_json_and_bytes(self) -> None:
        router = Router()

        async def handler(ctx: Context) -> None:
            ws = ctx.websocket
            await ws.accept()
            data = await ws.receive_json()
            await ws.send_json({"got": data})
            raw = await ws.receive_bytes()
            await ws.send_bytes(raw[::-1])
            await ws.close()

        router.get("/ws", handler)
        async with TestClient(router) as client:
            async with client.websocket("/ws") as ws:
                await ws.send_json({"n": 1})
                assert await ws.receive_json() == {"got": {"n": 1}}
                await ws.send_bytes(b"abc")
                assert await ws.receive_bytes() == b"cba"
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    await ws.receive()
                assert exc_info.value.code == 1000

    async def test_params_available(self) -> None:
        router = Router()

        async def room(ctx: Context) -> None:
            await ctx.websocket.accept()
            await ctx.websocket.send_text(ctx.param("name"))

        router.get("/rooms/{name}", room)
        async with TestClient(router) as client:
            async with client.websocket("/rooms/lobby") as ws:
                assert await ws.receive_text() == "lobby"

    async def test_unmatched_path_rejects_handshake(self) -> None:
        router = Router()
        async with TestClient(router) as client:
            with pytest.raises(WebSocketDisconnect):
                async with client.websocket("/nowhere"):
                    pass

    async def test_handler_error_closes_with_internal_error(self) -> None:
        router = Router()
        router.use(recovery)

        async def broken(ctx: Context) -> None:
            await ctx.websocket.accept()
            raise RuntimeError("boom")

        router.get("/ws", broken)
        async with TestClient(router) as client:
            async with client.websocket("/ws") as ws:
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    await ws.receive()
                assert exc_info.value.code == 1011

    async def test_plain_http_to_hub_route_is_400(self) -> None:
        router = Router()
        Hub().mount(router, "/ws")
        async with TestClient(router) as client:
            response = await client.get("/ws")
        assert response.status == 400


class TestHubMount:
    async def test_broadcast_between_clients(self) -> None:
        router = Router()
        hub = Hub()
        hub.mount(router, "/ws")

        async with TestClient(router) as client:
            async with client.websocket("/ws") as alice, client.websocket("/ws") as bob:
                await hub.drain()
                await alice.send_text("hello")
                assert await alice.receive_text() == "hello"
                assert await bob.receive_text() == "hello"

                hub.broadcast("server says hi")
                assert await alice.receive_text() == "server says hi"
                assert await bob.receive_text() == "server says hi"

    async def test_shutdown_disconnects_clients(self) -> None:
        router = Router()
        hub = Hub()
        hub.mount(router, "/ws")

        async with TestClient(router) as client:
            async with client.websocket("/ws") as ws:
                await hub.drain()
                hub.shutdown()
                with pytest.raises(WebSocketDisconnect) as exc_info:
                    await ws.receive()
                assert exc_info.value.code == 1000

    async def test_lifespan_stops_hub(self) -> None:
        router = Router()
        hub = Hub()
        hub.mount(router, "/ws")
        async with TestClient(router):
            assert hub.stopped is False
        assert hub.stopped is True

    async def test_connect_after_shutdown_rejected(self) -> None:
        router = Router()
        hub = Hub()
        hub.mount(router, "/ws")
        async with TestClient(router) as client:
            hub.shutdown()
            await hub.wait_stopped()
            with pytest.raises(WebSocketDisconnect) as exc_info:
                async with client.websocket("/ws"):
                    pass
            assert exc_info.value.code == 1001
