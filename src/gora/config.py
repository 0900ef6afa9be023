"""Router configuration.

RouterConfig is a frozen dataclass: immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router and server configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = RouterConfig(port=3000, strict_slash=True)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    production: bool = False
    log_level: str = "info"

    # Routing
    strict_slash: bool = False

    # Timeouts (seconds)
    read_timeout: float = 15.0
    keep_alive_timeout: float = 15.0
    shutdown_timeout: float = 5.0

    # Limits
    max_header_bytes: int = 1 << 20  # 1 MiB
    max_body_bytes: int = 32 << 20  # 32 MiB, multipart uploads included

    # TLS
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None

    # WebSocket hub
    ws_queue_size: int = 256
