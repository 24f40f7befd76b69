"""Tests for upload MIME resolution and filename checks."""

import pytest

from backend.app.extraction import mime


@pytest.mark.parametrize(
    ("declared", "filename", "expected"),
    [
        ("application/pdf", "report.pdf", mime.PDF),
        ("text/plain; charset=utf-8", "notes.txt", mime.PLAIN),
        ("APPLICATION/PDF", "report.pdf", mime.PDF),
        # Browsers often send octet-stream; the extension decides
        ("application/octet-stream", "report.docx", mime.DOCX),
        (None, "readme.md", mime.MARKDOWN),
        ("", "data.csv", mime.CSV),
    ],
)
def test_resolve_mime_type_accepts_declared_or_extension(
    declared: str | None, filename: str, expected: str
) -> None:
    assert mime.resolve_mime_type(declared, filename) == expected


def test_resolve_mime_type_rejects_unknown_type_and_extension() -> None:
    assert mime.resolve_mime_type("image/png", "photo.png") is None
    assert mime.resolve_mime_type(None, "archive") is None


@pytest.mark.parametrize("filename", ["notes.txt", "Quarterly Report (final).pdf", "a.b.c.md"])
def test_safe_filenames(filename: str) -> None:
    assert mime.is_safe_filename(filename)


@pytest.mark.parametrize(
    "filename",
    ["", ".", "..", "../etc/passwd", "dir/file.txt", "..\\secret.txt", "C:\\temp\\a.txt", "/abs.txt"],
)
def test_unsafe_filenames(filename: str) -> None:
    assert not mime.is_safe_filename(filename)


def test_text_detection_uses_mime_type_and_extension() -> None:
    assert mime.is_text_mime_type("text/html")
    assert mime.is_text_mime_type(mime.JSON)
    assert not mime.is_text_mime_type(mime.PDF)
    assert mime.is_text_file("server.LOG")
    assert not mime.is_text_file("image.png")


def test_mime_category() -> None:
    assert mime.mime_category(mime.PDF) == "pdf"
    assert mime.mime_category("text/plain") == "plain"
    assert mime.mime_category("garbage") == "unknown"
