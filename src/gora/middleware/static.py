"""Static file handlers.

``StaticFiles`` serves a directory under a URL prefix. ``StaticSPA``
serves a single-page application build, from disk or from package
resources, and falls back to the index document so the client-side
router can resolve unknown paths.

Both are plain handlers (``await handler(ctx)``), registered through
``Router.static`` and ``Router.static_spa``.
"""

from __future__ import annotations

import mimetypes
import posixpath
from dataclasses import dataclass
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import TYPE_CHECKING

import anyio

if TYPE_CHECKING:
    from gora.context import Context


def _content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"


class StaticFiles:
    """Handler serving files below *directory*.

    The request path, minus *strip_prefix*, is resolved against the
    directory. Symlinks are resolved and the result must stay inside
    the directory; anything else is a ``404``. Directories are served
    through their ``index.html``.

    Usage::

        router.static("/assets", "./public")
        # GET /assets/app.css -> ./public/app.css
    """

    __slots__ = ("_cache_control", "_directory", "_index", "_strip_prefix")

    def __init__(
        self,
        directory: str | Path,
        *,
        strip_prefix: str = "",
        cache_control: str | None = None,
        index: str = "index.html",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._strip_prefix = strip_prefix
        self._cache_control = cache_control
        self._index = index

    def __repr__(self) -> str:
        return f"<StaticFiles directory={str(self._directory)!r}>"

    def resolve(self, path: str) -> Path | None:
        """File that serves request *path*, or ``None``."""
        if self._strip_prefix and path.startswith(self._strip_prefix):
            path = path[len(self._strip_prefix) :]
        relative = path.lstrip("/")
        candidate = (self._directory / relative).resolve() if relative else self._directory
        if not candidate.is_relative_to(self._directory):
            return None
        if candidate.is_dir():
            candidate = candidate / self._index
        return candidate if candidate.is_file() else None

    async def __call__(self, ctx: Context) -> None:
        target = await anyio.to_thread.run_sync(self.resolve, ctx.request.path)
        if target is None:
            ctx.text("404 page not found", status=404)
            return
        if self._cache_control:
            ctx.header("Cache-Control", self._cache_control)
        await ctx.file(target)


@dataclass(frozen=True, slots=True)
class StaticSPA:
    """A single-page application build.

    ``root`` is a directory or a package resource
    (``importlib.resources.files("myapp")``); files are served from its
    ``dirname`` subdirectory. Resolution for a request path:

    - contains any of ``ignore_patterns`` -> ``404 Not Found``
    - names an existing file -> that file
    - has a file extension -> ``404 Not Found``
    - otherwise -> ``index_file`` as HTML

    Usage::

        router.static_spa(StaticSPA(files("myapp"), ignore_patterns=("/api",)))
    """

    root: str | Path | Traversable
    route: str = "/"
    dirname: str = "build"
    index_file: str = "index.html"
    ignore_patterns: tuple[str, ...] = ()

    @property
    def base(self) -> Traversable:
        root = Path(self.root) if isinstance(self.root, str) else self.root
        return root.joinpath(self.dirname) if self.dirname else root

    def _lookup(self, relative: str) -> Traversable | None:
        parts = [part for part in relative.split("/") if part]
        if any(part == ".." for part in parts):
            return None
        node = self.base
        for part in parts:
            node = node.joinpath(part)
        return node if node.is_file() else None

    def _read(self, relative: str) -> tuple[str, bytes] | None:
        node = self._lookup(relative)
        if node is None:
            return None
        return node.name, node.read_bytes()

    async def __call__(self, ctx: Context) -> None:
        path = ctx.request.path
        if any(pattern in path for pattern in self.ignore_patterns):
            ctx.abort(404, "Not Found")
            return

        relative = posixpath.normpath(path).lstrip("/")
        if relative in ("", "."):
            relative = self.index_file

        found = await anyio.to_thread.run_sync(self._read, relative)
        if found is not None:
            name, data = found
            ctx.response.headers.set("Content-Type", _content_type(name))
            ctx.status(200).write(data)
            return

        if posixpath.splitext(relative)[1]:
            ctx.abort(404, "Not Found")
            return

        index = await anyio.to_thread.run_sync(self._read, self.index_file)
        if index is None:
            ctx.abort(404, "Not Found")
            return
        ctx.html(index[1].decode("utf-8"))
