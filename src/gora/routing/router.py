"""Regex router: first-match route table with onion middleware.

Routes are compiled from path templates as they are registered and
kept in registration order. A request is served by the first route
whose method matches and whose expression matches the path; named
groups become path parameters.

Registration happens during setup. The table freezes on the first
request (or lifespan startup) and is read without locks afterwards.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import anyio

from gora._internal.asgi import Receive, Scope, Send
from gora._internal.invoke import invoke
from gora.config import RouterConfig
from gora.context import Context, context_var
from gora.http.request import Request
from gora.http.response import ResponseWriter
from gora.middleware.protocol import Handler, Middleware, compose
from gora.routing.pattern import compile_pattern
from gora.routing.route import Route, RouteMatch
from gora.server.sender import send_response
from gora.validation.schema import Validator

if TYPE_CHECKING:
    from gora.middleware.static import StaticSPA
    from gora.routing.group import RouterGroup

logger = logging.getLogger("gora.router")


async def _default_not_found(ctx: Context) -> None:
    ctx.text("404 page not found", status=404)


class Router:
    """Route table, middleware stack, and ASGI entry point.

    Usage::

        router = Router.default()

        async def show_user(ctx: Context) -> None:
            ctx.json({"id": ctx.int_param("id")})

        router.get("/users/{id:int}", show_user)
        api = router.group("/api", require_token)
        api.post("/items", create_item)

        router.run()
    """

    __slots__ = (
        "_background",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_not_found",
        "_routes",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "logger",
        "validator",
    )

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        validator: Validator | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config: RouterConfig = config or RouterConfig()
        self.validator: Validator = validator or Validator()
        self.logger: logging.Logger = logger or logging.getLogger("gora.router")
        self._routes: list[Route] = []
        self._middleware: list[Middleware] = []
        self._not_found: Handler | None = None
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._background: list[Callable[[], Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    @classmethod
    def default(cls, config: RouterConfig | None = None, **kwargs: Any) -> Router:
        """A router with ``recovery`` and ``request_logger`` installed.

        Use the plain constructor for a router without them.
        """
        from gora.middleware.access import request_logger
        from gora.middleware.recovery import recovery

        router = cls(config, **kwargs)
        router.use(recovery, request_logger)
        return router

    def __repr__(self) -> str:
        return f"<Router routes={len(self._routes)} middleware={len(self._middleware)}>"

    # -- Registration --

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def use(self, *middleware: Middleware) -> None:
        """Append global middleware, applied to every route in registration order.

        Global middleware registered after ``not_found`` does not wrap the
        not-found handler.
        """
        if not middleware:
            msg = "use() requires at least one middleware"
            raise ValueError(msg)
        self._check_not_frozen()
        self._middleware.extend(middleware)

    def add_route(
        self,
        pattern: str,
        method: str,
        handler: Callable[..., Any],
        *middleware: Middleware,
    ) -> Route:
        """Compile *pattern* and append a route.

        Raises:
            InvalidPatternError: If the template cannot be compiled; the
                route is not registered.
        """
        self._check_not_frozen()
        regex = compile_pattern(pattern, strict_slash=self.config.strict_slash)
        route = Route(
            template=pattern,
            regex=regex,
            method=method.upper(),
            handler=handler,
            middleware=tuple(middleware),
        )
        self._routes.append(route)
        return route

    def _add_compiled(self, route: Route) -> Route:
        self._check_not_frozen()
        self._routes.append(route)
        return route

    def get(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "GET", handler, *middleware)

    def post(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "POST", handler, *middleware)

    def put(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "PUT", handler, *middleware)

    def patch(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "PATCH", handler, *middleware)

    def delete(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "DELETE", handler, *middleware)

    def options(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "OPTIONS", handler, *middleware)

    def connect(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "CONNECT", handler, *middleware)

    def trace(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "TRACE", handler, *middleware)

    def head(self, pattern: str, handler: Callable[..., Any], *middleware: Middleware) -> Route:
        return self.add_route(pattern, "HEAD", handler, *middleware)

    def route(
        self,
        pattern: str,
        *,
        methods: Iterable[str] = ("GET",),
        middleware: Iterable[Middleware] = (),
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a handler via decorator, once per method::

            @router.route("/items/{id:int}", methods=("GET", "HEAD"))
            async def item(ctx: Context) -> None: ...
        """
        chain = tuple(middleware)

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            for method in methods:
                self.add_route(pattern, method, func, *chain)
            return func

        return decorator

    def group(self, prefix: str, *middleware: Middleware) -> RouterGroup:
        """A registration view sharing *prefix* and *middleware*."""
        from gora.routing.group import RouterGroup

        return RouterGroup(self, prefix, tuple(middleware))

    def not_found(self, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Handle requests no route matches.

        The handler is wrapped in the global middleware registered so far.
        Usable as a decorator.
        """
        self._check_not_frozen()
        self._not_found = compose(self._middleware, handler)
        return handler

    def static(
        self,
        prefix: str,
        directory: str | Path,
        *,
        strip_prefix: str | None = None,
        cache_control: str | None = None,
    ) -> Route:
        """Serve files from *directory* for GET requests under *prefix*.

        ``strip_prefix`` (default: *prefix*) is removed from the request
        path before it is resolved against *directory*.
        """
        from gora.middleware.static import StaticFiles

        files = StaticFiles(
            directory,
            strip_prefix=prefix if strip_prefix is None else strip_prefix,
            cache_control=cache_control,
        )
        base = prefix.rstrip("/")
        regex = re.compile(f"^{re.escape(base)}(?:/.*)?$", re.ASCII)
        return self._add_compiled(Route(template=prefix, regex=regex, method="GET", handler=files))

    def static_spa(self, spa: StaticSPA) -> None:
        """Serve a single-page application build.

        Registers ``spa.route`` as a GET route and the SPA handler as the
        not-found fallback, so unknown extension-less paths render the
        index document for the client-side router.
        """
        self.add_route(spa.route, "GET", spa)
        self.not_found(spa)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a sync or async startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a sync or async shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    def background(self, func: Callable[[], Any]) -> Callable[[], Any]:
        """Run an async callable for the lifetime of the server.

        Started after the startup hooks. At shutdown, after the shutdown
        hooks, background tasks get ``config.shutdown_timeout`` seconds
        to return before they are cancelled.
        """
        self._check_not_frozen()
        self._background.append(func)
        return func

    # -- Dispatch --

    def _match_path(self, path: str) -> str:
        if self.config.strict_slash and not path.endswith("/"):
            return path + "/"
        return path

    def match(self, method: str, path: str) -> RouteMatch | None:
        """First route matching *method* and *path*, with its parameters."""
        candidate = self._match_path(path)
        method = method.upper()
        for route in self._routes:
            params = route.match(method, candidate)
            if params is not None:
                return RouteMatch(route, params)
        return None

    def _handler_for(self, method: str, path: str) -> tuple[Handler, dict[str, str]]:
        found = self.match(method, path)
        if found is not None:
            route = found.route
            chain = (*self._middleware, *route.middleware)
            return compose(chain, route.handler), found.params
        if self._not_found is not None:
            return self._not_found, {}
        return compose((), _default_not_found), {}

    async def dispatch(self, ctx: Context) -> None:
        """Resolve and run the handler chain for *ctx*.

        Exceptions raised by the chain propagate; install ``recovery``
        to turn them into 500 responses.
        """
        handler, params = self._handler_for(ctx.request.method, ctx.request.path)
        ctx.params = params
        token = context_var.set(ctx)
        try:
            await handler(ctx)
        finally:
            context_var.reset(token)

    def new_context(self, request: Request, **kwargs: Any) -> Context:
        return Context(
            request,
            ResponseWriter(),
            validator=self.validator,
            logger=self.logger,
            config=self.config,
            **kwargs,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point for ``http``, ``websocket`` and ``lifespan`` scopes."""
        scope_type = scope["type"]
        if scope_type == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        if scope_type == "http":
            await self._handle_http(scope, receive, send)
        elif scope_type == "websocket":
            await self._handle_websocket(scope, receive, send)
        else:
            msg = f"unsupported ASGI scope type: {scope_type!r}"
            raise ValueError(msg)

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request.from_asgi(scope, receive, max_body=self.config.max_body_bytes)
        ctx = self.new_context(request)
        await self.dispatch(ctx)
        await send_response(ctx.response, send, head=request.method == "HEAD")

    async def _handle_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        from gora.ws.connection import INTERNAL_ERROR, NORMAL_CLOSURE, WebSocket

        websocket = WebSocket(receive, send)
        ctx = self.new_context(Request.from_asgi(scope), websocket=websocket)
        failed = True
        try:
            await self.dispatch(ctx)
            failed = False
        finally:
            # Closing a connection the chain never accepted rejects the handshake (403).
            if not websocket.closed:
                await websocket.close(INTERNAL_ERROR if failed else NORMAL_CLOSURE)

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the route table, runs startup hooks, keeps background
        tasks alive until shutdown, then runs shutdown hooks.
        """
        self._ensure_frozen()

        async with anyio.create_task_group() as tg:
            while True:
                message = await receive()
                msg_type = message["type"]

                if msg_type == "lifespan.startup":
                    try:
                        for hook in self._startup_hooks:
                            await invoke(hook)
                    except Exception as exc:
                        self.logger.exception("startup hook failed")
                        await send({"type": "lifespan.startup.failed", "message": str(exc)})
                        tg.cancel_scope.cancel()
                        return
                    for task in self._background:
                        tg.start_soon(task)
                    await send({"type": "lifespan.startup.complete"})

                elif msg_type == "lifespan.shutdown":
                    try:
                        for hook in self._shutdown_hooks:
                            await invoke(hook)
                    except Exception:
                        self.logger.exception("shutdown hook failed")
                    # Stragglers are cancelled once the grace period is over.
                    tg.cancel_scope.deadline = anyio.current_time() + self.config.shutdown_timeout
                    break

        await send({"type": "lifespan.shutdown.complete"})

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve until interrupted (SIGINT/SIGTERM), then shut down gracefully."""
        from gora.server.run import run_server

        self._ensure_frozen()
        run_server(self, host=host or self.config.host, port=port or self.config.port)

    def run_tls(
        self,
        certfile: str,
        keyfile: str,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """Like ``run`` over TLS with the given certificate and key files."""
        from gora.server.run import run_server

        self._ensure_frozen()
        run_server(
            self,
            host=host or self.config.host,
            port=port or self.config.port,
            ssl_certfile=certfile,
            ssl_keyfile=keyfile,
        )

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Freeze registration with double-check locking.

        Several server workers may receive their first request at once;
        exactly one performs the transition.
        """
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            for route in self._routes:
                logger.debug("route %s", route)
            self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the router after it has started serving requests. "
                "Register routes, middleware, and hooks before calling router.run()."
            )
            raise RuntimeError(msg)
