"""Route groups: a shared prefix and middleware over a parent router."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gora.middleware.protocol import Middleware
    from gora.routing.route import Route
    from gora.routing.router import Router


class RouterGroup:
    """A registration view over a ``Router``.

    Owns no routes: every registration writes through to the parent
    router with the group prefix prepended (plain concatenation, no
    slash normalisation) and the group middleware placed ahead of the
    per-call middleware.

    Usage::

        api = router.group("/api", require_token)
        api.get("/users/{id:int}", show_user)  # GET /api/users/{id:int}

        admin = api.group("/admin", require_admin)
        admin.delete("/users/{id:int}", delete_user)
    """

    __slots__ = ("middleware", "prefix", "router")

    def __init__(
        self,
        router: Router,
        prefix: str,
        middleware: tuple[Middleware, ...] = (),
    ) -> None:
        self.router = router
        self.prefix = prefix
        self.middleware = middleware

    def __repr__(self) -> str:
        return f"<RouterGroup prefix={self.prefix!r} middleware={len(self.middleware)}>"

    def use(self, *middleware: Middleware) -> None:
        """Append middleware for routes registered on this group from now on."""
        self.middleware = (*self.middleware, *middleware)

    def group(self, prefix: str, *middleware: Middleware) -> RouterGroup:
        """A nested group: prefixes and middleware lists concatenate."""
        return RouterGroup(self.router, self.prefix + prefix, (*self.middleware, *middleware))

    def add_route(
        self,
        pattern: str,
        method: str,
        handler: Callable[..., Any],
        *middleware: Middleware,
    ) -> Route:
        return self.router.add_route(
            self.prefix + pattern, method, handler, *self.middleware, *middleware
        )

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
