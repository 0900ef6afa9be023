"""Gora: a small regex router for ASGI with onion middleware.

Path templates compile to anchored regular expressions; the first
route whose method and expression match serves the request.

Basic usage::

    from gora import Context, Router

    router = Router.default()

    async def hello(ctx: Context) -> None:
        ctx.json({"hello": ctx.param("name")})

    router.get("/hello/{name}", hello)
    router.run()

WebSocket broadcast::

    from gora.ws import Hub

    hub = Hub()
    hub.mount(router, "/ws")
"""

__version__ = "0.1.0"
__all__ = [
    "BindError",
    "ConfigurationError",
    "Context",
    "GoraError",
    "HTTPError",
    "Handler",
    "InvalidParamError",
    "InvalidPatternError",
    "Middleware",
    "Request",
    "Route",
    "Router",
    "RouterConfig",
    "RouterGroup",
    "get_context",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import gora`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from gora.routing.router import Router

        return Router

    if name == "RouterGroup":
        from gora.routing.group import RouterGroup

        return RouterGroup

    if name == "Route":
        from gora.routing.route import Route

        return Route

    if name == "RouterConfig":
        from gora.config import RouterConfig

        return RouterConfig

    if name == "Request":
        from gora.http.request import Request

        return Request

    if name in ("Context", "get_context"):
        from gora import context as _ctx

        return getattr(_ctx, name)

    if name in ("Handler", "Middleware"):
        from gora.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in (
        "BindError",
        "ConfigurationError",
        "GoraError",
        "HTTPError",
        "InvalidParamError",
        "InvalidPatternError",
    ):
        from gora import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
