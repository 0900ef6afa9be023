"""Invoke helpers: call sync or async callables uniformly.

Handlers, middleware-wrapped handlers, lifecycle hooks and hub callbacks
can be ``def`` or ``async def``. This module keeps the sync/async check
in exactly one place.

Usage::

    from gora._internal.invoke import invoke

    result = await invoke(handler, ctx)
"""

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def ensure_async(func: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
    """Return a coroutine function equivalent to *func*.

    Coroutine functions are returned unchanged.
    """
    if inspect.iscoroutinefunction(func):
        return func

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        return await invoke(func, *args, **kwargs)

    return wrapper
