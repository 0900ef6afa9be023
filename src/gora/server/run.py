"""Serve a router with uvicorn.

uvicorn binds the socket, runs the ASGI lifespan, serves until SIGINT
or SIGTERM, then gives in-flight requests ``shutdown_timeout`` seconds
before forcing termination.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gora.routing.router import Router


def run_server(
    app: Router,
    host: str,
    port: int,
    *,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> None:
    """Start a single-process uvicorn server for *app*.

    Timeouts and limits come from ``app.config``. uvicorn's own logging
    setup is skipped; configure ``gora`` loggers with
    ``gora.log.configure_logging``.
    """
    import uvicorn

    config = app.config
    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        lifespan="on",
        log_config=None,
        log_level=config.log_level,
        access_log=False,
        timeout_keep_alive=math.ceil(config.keep_alive_timeout),
        timeout_graceful_shutdown=math.ceil(config.shutdown_timeout),
        h11_max_incomplete_event_size=config.max_header_bytes,
        ssl_certfile=ssl_certfile or config.ssl_certfile,
        ssl_keyfile=ssl_keyfile or config.ssl_keyfile,
    )
    uvicorn.Server(server_config).run()
