"""Route and RouteMatch frozen dataclasses."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gora.middleware.protocol import Handler, Middleware


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route.

    Created during setup and never mutated: the route table only ever
    grows by appending new ``Route`` values.
    """

    template: str
    regex: re.Pattern[str]
    method: str
    handler: Handler
    middleware: tuple[Middleware, ...] = ()

    def match(self, method: str, path: str) -> dict[str, str] | None:
        """Return the captured parameters if *method* and *path* match.

        The expression must cover the whole path, trailing newline included.
        """
        if method != self.method:
            return None
        found = self.regex.fullmatch(path)
        if found is None:
            return None
        return {name: value for name, value in found.groupdict().items() if value is not None}

    def __str__(self) -> str:
        return f"{self.method} {self.regex.pattern}"


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route lookup."""

    route: Route
    params: dict[str, str]
