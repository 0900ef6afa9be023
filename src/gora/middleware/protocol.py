"""Handler and middleware shapes, and the onion composer.

A handler is any callable taking the request ``Context``::

    async def show_user(ctx: Context) -> None: ...

A middleware wraps a handler and returns a new handler::

    def timing(next: Handler) -> Handler:
        async def handler(ctx: Context) -> None:
            start = time.monotonic()
            await next(ctx)
            ctx.header("X-Time", f"{time.monotonic() - start:.3f}")

        return handler

No base class required. A middleware that never calls ``next``
short-circuits the chain.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from gora._internal.invoke import ensure_async

if TYPE_CHECKING:
    from gora.context import Context

# The terminal request handler (sync handlers are adapted on compose)
type Handler = Callable[[Context], Awaitable[None]]

# A handler transformer
type Middleware = Callable[[Handler], Handler]


def compose(middleware: Iterable[Middleware], handler: Callable[..., Any]) -> Handler:
    """Wrap *handler* so the first middleware is the outermost layer.

    ``compose([a, b], h)`` is ``a(b(h))``: ``a`` runs its pre-logic
    first and its post-logic last.
    """
    wrapped: Handler = ensure_async(handler)
    for mw in reversed(tuple(middleware)):
        wrapped = ensure_async(mw(wrapped))
    return wrapped
