"""Built-in middleware: CORS.

Requests without an ``Origin`` header, or from an origin that is not
allowed, are rejected with ``403 Forbidden``. Allowed requests get the
configured ``Access-Control-*`` headers; preflight ``OPTIONS``
requests are answered with ``200`` without reaching the handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gora.context import Context
    from gora.middleware.protocol import Handler, Middleware


@dataclass(frozen=True, slots=True)
class CORSConfig:
    """CORS middleware configuration.

    Values are sent as configured, joined with ``,``. Nothing is
    allowed by default; ``allow_origins=("*",)`` allows every origin::

        CORSConfig(
            allow_origins=("https://example.com",),
            allow_methods=("GET", "POST"),
        )
    """

    allow_origins: tuple[str, ...] = ()
    allow_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
    allow_headers: tuple[str, ...] = ()
    expose_headers: tuple[str, ...] = ()
    allow_credentials: bool = False
    max_age: int = 600  # seconds

    def is_origin_allowed(self, origin: str) -> bool:
        return any(allowed in ("*", origin) for allowed in self.allow_origins)


def cors(config: CORSConfig) -> Middleware:
    """Build a CORS middleware from *config*."""

    def middleware(next: Handler) -> Handler:
        async def handler(ctx: Context) -> None:
            origin = ctx.request.headers.get("origin") or ""
            if not origin or not config.is_origin_allowed(origin):
                ctx.abort(403, "Forbidden")
                return

            ctx.header("Access-Control-Allow-Origin", origin)
            ctx.header("Vary", "Origin")
            ctx.header("Access-Control-Allow-Methods", ",".join(config.allow_methods))
            ctx.header("Access-Control-Allow-Headers", ",".join(config.allow_headers))
            ctx.header("Access-Control-Expose-Headers", ",".join(config.expose_headers))
            ctx.header("Access-Control-Max-Age", str(config.max_age))
            if config.allow_credentials:
                ctx.header("Access-Control-Allow-Credentials", "true")

            if ctx.request.method == "OPTIONS":
                ctx.status(200)
                return

            await next(ctx)

        return handler

    return middleware
