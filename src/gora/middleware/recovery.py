"""Recovery middleware: turn handler exceptions into error responses.

Full exception detail goes to the log only; the client sees a generic
message. Errors that describe a bad request rather than a server fault
keep their meaning:

- ``HTTPError`` -> its status and detail
- ``BindError`` / ``InvalidParamError`` -> ``400`` with the message
- anything else -> ``500 Internal Server Error``

Nothing is written if the handler already wrote a status line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gora.errors import BindError, HTTPError, InvalidParamError
from gora.ws.connection import INTERNAL_ERROR

if TYPE_CHECKING:
    from gora.context import Context
    from gora.middleware.protocol import Handler


def recovery(next: Handler) -> Handler:
    async def handler(ctx: Context) -> None:
        try:
            await next(ctx)
        except HTTPError as exc:
            _respond(ctx, exc.status, exc.detail or str(exc.status))
        except (BindError, InvalidParamError) as exc:
            ctx.logger.info("bad request: %s", exc)
            _respond(ctx, 400, str(exc))
        except Exception:
            ctx.logger.exception(
                "internal server error",
                extra={"method": ctx.request.method, "path": ctx.request.path},
            )
            if ctx.websocket is not None:
                await ctx.websocket.close(INTERNAL_ERROR)
                return
            _respond(ctx, 500, "Internal Server Error")

    return handler


def _respond(ctx: Context, status: int, message: str) -> None:
    if ctx.response.written:
        return
    ctx.text(message, status=status)
