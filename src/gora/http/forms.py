"""Form data parsing: URL-encoded and multipart.

URL-encoded bodies use stdlib ``urllib.parse``; multipart bodies are
parsed with ``python-multipart``. Uploaded files are kept in memory and
grouped per field, so a field carrying several files keeps them all.
"""

import secrets
import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

from python_multipart.multipart import MultipartParser, parse_options_header


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission."""

    filename: str
    content_type: str
    size: int
    content: bytes

    def read(self) -> bytes:
        return self.content

    def save(self, path: str | Path) -> Path:
        """Write the content to *path*. Parent directories must exist."""
        target = Path(path)
        target.write_bytes(self.content)
        return target

    def unique_name(self) -> str:
        """``<stem>-<nanoseconds>-<random><suffix>`` for collision-free storage."""
        original = Path(self.filename).name or "upload"
        stem, suffix = Path(original).stem, Path(original).suffix
        return f"{stem}-{time.time_ns()}-{secrets.randbelow(1 << 31)}{suffix}"

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key (string fields only).
    ``get_list`` returns all values for a key.
    ``files`` maps field names to the files uploaded under them.

    Usage::

        form = await request.form()
        username = form["username"]
        avatars = form.files.get("avatar", [])
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, list[UploadFile]] | None = None,
    ) -> None:
        self._data = data
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, list[UploadFile]]:
        return self._files

    def file(self, field: str) -> UploadFile | None:
        """First file uploaded under *field*, if any."""
        uploads = self._files.get(field)
        return uploads[0] if uploads else None

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in self._data.items()}


def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into ``FormData``.

    Raises:
        ValueError: If the content type is not a form encoding, or a
            multipart body has no boundary.
    """
    ct_lower = content_type.lower().split(";")[0].strip()

    if ct_lower == "application/x-www-form-urlencoded":
        return FormData(parse_qs(body.decode("utf-8"), keep_blank_values=True))

    if ct_lower == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    data: dict[str, list[str]] = {}
    files: dict[str, list[UploadFile]] = {}

    headers: dict[str, str] = {}
    pending_header = ""
    buffer = bytearray()

    def on_part_begin() -> None:
        nonlocal buffer
        headers.clear()
        buffer = bytearray()

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        buffer.extend(chunk[start:end])

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        nonlocal pending_header
        pending_header = chunk[start:end].decode("latin-1").lower()

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        headers[pending_header] = headers.get(pending_header, "") + chunk[start:end].decode(
            "latin-1"
        )

    def on_part_end() -> None:
        _, params = parse_options_header(headers.get("content-disposition", "").encode("latin-1"))
        name = params.get(b"name")
        if name is None:
            return
        field = name.decode("utf-8")
        filename = params.get(b"filename")
        if filename is None:
            data.setdefault(field, []).append(bytes(buffer).decode("utf-8", errors="replace"))
            return
        content = bytes(buffer)
        files.setdefault(field, []).append(
            UploadFile(
                filename=filename.decode("utf-8"),
                content_type=headers.get("content-type", "application/octet-stream"),
                size=len(content),
                content=content,
            )
        )

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()

    return FormData(data, files)
