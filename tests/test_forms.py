"""Tests for gora.http.forms: URL-encoded and multipart parsing."""

import re

import pytest

from gora.http.forms import FormData, UploadFile, parse_form_data

BOUNDARY = "----gora-boundary"


def _multipart(*parts: tuple[str, str | None, str | None, bytes]) -> bytes:
    lines: list[bytes] = []
    for name, filename, content_type, content in parts:
        disposition = f'form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        lines.append(f"--{BOUNDARY}".encode())
        lines.append(f"Content-Disposition: {disposition}".encode())
        if content_type is not None:
            lines.append(f"Content-Type: {content_type}".encode())
        lines.append(b"")
        lines.append(content)
    lines.append(f"--{BOUNDARY}--".encode())
    lines.append(b"")
    return b"\r\n".join(lines)


class TestUrlEncoded:
    def test_values(self) -> None:
        form = parse_form_data(b"name=ann&tag=a&tag=b", "application/x-www-form-urlencoded")
        assert form["name"] == "ann"
        assert form.get_list("tag") == ["a", "b"]
        assert form.files == {}

    def test_unsupported_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported"):
            parse_form_data(b"{}", "application/json")


class TestMultipart:
    def test_fields_and_files(self) -> None:
        body = _multipart(
            ("title", None, None, b"report"),
            ("docs", "a.txt", "text/plain", b"alpha"),
            ("docs", "b.txt", "text/plain", b"beta"),
        )
        form = parse_form_data(body, f"multipart/form-data; boundary={BOUNDARY}")
        assert form["title"] == "report"
        uploads = form.files["docs"]
        assert [u.filename for u in uploads] == ["a.txt", "b.txt"]
        assert uploads[0].content == b"alpha"
        assert uploads[0].size == 5
        assert uploads[0].content_type == "text/plain"
        assert form.file("docs") is uploads[0]
        assert form.file("missing") is None

    def test_missing_boundary(self) -> None:
        with pytest.raises(ValueError, match="boundary"):
            parse_form_data(b"", "multipart/form-data")


class TestUploadFile:
    def test_unique_name_keeps_suffix(self) -> None:
        upload = UploadFile("photo.png", "image/png", 3, b"abc")
        name = upload.unique_name()
        assert re.fullmatch(r"photo-\d+-\d+\.png", name)
        assert upload.unique_name() != name

    def test_unique_name_strips_directories(self) -> None:
        upload = UploadFile("../../etc/passwd", "text/plain", 0, b"")
        assert upload.unique_name().startswith("passwd-")

    def test_save(self, tmp_path) -> None:
        upload = UploadFile("a.txt", "text/plain", 2, b"hi")
        target = upload.save(tmp_path / "out.txt")
        assert target.read_bytes() == b"hi"


class TestFormData:
    def test_to_dict_copies(self) -> None:
        form = FormData({"a": ["1"]})
        copy = form.to_dict()
        copy["a"].append("2")
        assert form.get_list("a") == ["1"]
