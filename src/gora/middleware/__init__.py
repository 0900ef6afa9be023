"""Middleware: plain functions wrapping a handler, no base class required.

A middleware is any callable matching::

    def mw(next: Handler) -> Handler

Built-in middleware:
    cors -- Cross-Origin Resource Sharing, rejects unknown origins
    login_required -- Bearer-token authentication
    recovery -- Turn handler exceptions into error responses
    request_logger -- One access log record per request

Handlers:
    StaticFiles -- Serve a directory under a prefix
    StaticSPA -- Serve a single-page application build
"""

from gora.middleware.access import request_logger
from gora.middleware.auth import login_required
from gora.middleware.builtin import CORSConfig, cors
from gora.middleware.protocol import Handler, Middleware, compose
from gora.middleware.recovery import recovery
from gora.middleware.static import StaticFiles, StaticSPA

__all__ = [
    "CORSConfig",
    "Handler",
    "Middleware",
    "StaticFiles",
    "StaticSPA",
    "compose",
    "cors",
    "login_required",
    "recovery",
    "request_logger",
]
