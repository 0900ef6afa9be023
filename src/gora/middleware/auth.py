"""Bearer-token authentication middleware.

``login_required`` reads ``Authorization: Bearer <token>``, verifies it
with a ``Tokener`` and loads the user the token names. The user is
stored on the context under ``"user"`` for the rest of the chain::

    issuer = TokenIssuer(secret_key=settings.secret)

    async def load_user(user_id: int) -> User | None:
        return await db.users.get(user_id)

    api = router.group("/api", login_required(issuer, load_user))

    async def profile(ctx: Context) -> None:
        ctx.json(ctx.must_get("user"))

Failures end the request without calling the handler:

- no token -> ``401 Unauthorized``
- token rejected -> ``401 Unauthorized: <reason>``
- loader fails or finds nobody -> ``403 Forbidden: User not found!``
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from gora._internal.invoke import invoke
from gora.errors import InvalidTokenError

if TYPE_CHECKING:
    from gora.context import Context
    from gora.middleware.protocol import Handler, Middleware
    from gora.security.tokens import Tokener

type UserLoader = Callable[[int], Any] | Callable[[int], Awaitable[Any]]

USER_KEY = "user"


def login_required(tokens: Tokener, load_user: UserLoader) -> Middleware:
    """Build a middleware that requires a valid bearer token.

    *load_user* may be sync or async.
    """

    def middleware(next: Handler) -> Handler:
        async def handler(ctx: Context) -> None:
            token = ctx.bearer_token()
            if not token:
                ctx.abort(401, "Unauthorized")
                return

            try:
                subject_id = tokens.verify(token)
            except InvalidTokenError as exc:
                ctx.abort(401, f"Unauthorized: {exc}")
                return

            try:
                user = await invoke(load_user, subject_id)
            except Exception:
                ctx.logger.warning("user loader failed", exc_info=True)
                user = None
            if user is None:
                ctx.abort(403, "Forbidden: User not found!")
                return

            ctx.set(USER_KEY, user)
            await next(ctx)

        return handler

    return middleware
