"""Request logging middleware.

Logs one record per request on the ``gora.access`` logger once the
inner chain returns. Request attributes are attached as ``extra`` fields
so structured formatters (see ``gora.log``) can render them as keys.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gora.context import Context
    from gora.middleware.protocol import Handler

access_logger = logging.getLogger("gora.access")


def client_address(ctx: Context) -> str:
    """Client address for logs; the IPv6 loopback is shown as ``localhost``."""
    ip = ctx.request.client_ip
    if ip in ("::1", "[::1]"):
        return "localhost"
    return ip


def request_logger(next: Handler) -> Handler:
    async def handler(ctx: Context) -> None:
        start = time.perf_counter()
        try:
            await next(ctx)
        finally:
            latency_ms = (time.perf_counter() - start) * 1000
            status = ctx.response.status_code
            access_logger.info(
                "%s %s %d %.2fms",
                ctx.request.method,
                ctx.request.path,
                status,
                latency_ms,
                extra={
                    "method": ctx.request.method,
                    "path": ctx.request.path,
                    "status": status,
                    "ip": client_address(ctx),
                    "user_agent": ctx.request.user_agent,
                    "latency_ms": round(latency_ms, 3),
                },
            )

    return handler
