"""Tests for the individual text extraction strategies."""

import asyncio
import os
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.app.extraction.commands import (
    command_available,
    run_command_on_bytes,
    split_command,
)
from backend.app.extraction.extractors import (
    BinaryScanExtractor,
    DocxExtractor,
    EncodingProbeExtractor,
    ExternalToolExtractor,
    LegacyDocExtractor,
    PdfExtractor,
    PlainTextExtractor,
    is_mostly_printable,
    scan_printable_bytes,
    scan_text_runs,
    strip_control_characters,
)

# Start of an OLE compound file header as written by Word 97-2003
OLE_HEADER = (
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
    + b"\x00" * 16
    + b"\x3e\x00\x03\x00\xfe\xff\x09\x00\x06\x00"
    + b"\x00" * 10
)


@pytest.mark.asyncio
async def test_pdf_extractor_reads_page_text(make_pdf: Callable[[str], bytes]) -> None:
    result = await PdfExtractor().extract(make_pdf("Quarterly report for the finance team"), "q.pdf")

    assert result.success
    assert result.method_used == "pdf"
    assert "Quarterly report" in result.text


@pytest.mark.asyncio
async def test_pdf_extractor_reports_corrupt_file() -> None:
    result = await PdfExtractor().extract(b"%PDF-1.4 this is not really a pdf", "broken.pdf")

    assert not result.success
    assert result.method_used == "pdf"
    assert result.error is not None


@pytest.mark.asyncio
async def test_docx_extractor_reads_paragraphs_and_tables(make_docx: Callable[..., bytes]) -> None:
    data = make_docx(
        ["Project charter", "", "Scope covers the new billing system."],
        table=[["Owner", "Budget"], ["Finance", "120k"]],
    )

    result = await DocxExtractor().extract(data, "charter.docx")

    assert result.success
    lines = result.text.split("\n")
    assert lines[0] == "Project charter"
    assert "Scope covers the new billing system." in lines
    assert "Owner | Budget" in lines
    assert "Finance | 120k" in lines


@pytest.mark.asyncio
async def test_docx_extractor_reports_invalid_archive() -> None:
    result = await DocxExtractor().extract(b"PK\x03\x04 truncated", "bad.docx")

    assert not result.success
    assert result.method_used == "docx"


@pytest.mark.asyncio
async def test_plain_text_extractor_strips_bom() -> None:
    result = await PlainTextExtractor().extract("\ufeffhello world".encode("utf-8"), "a.txt")

    assert result.success
    assert result.text == "hello world"
    assert result.method_used == "utf-8"


@pytest.mark.asyncio
async def test_plain_text_extractor_rejects_invalid_utf8() -> None:
    result = await PlainTextExtractor().extract(b"caf\xe9 au lait", "a.txt")

    assert not result.success
    assert "byte 3" in (result.error or "")


@pytest.mark.asyncio
async def test_encoding_probe_falls_back_to_latin1() -> None:
    data = "Caf\u00e9 menu for the staff party on Friday".encode("latin-1")

    result = await EncodingProbeExtractor().extract(data, "menu.txt")

    assert result.success
    assert result.method_used == "encoding-latin-1"
    assert result.text.startswith("Caf\u00e9 menu")


@pytest.mark.asyncio
async def test_encoding_probe_fails_on_unreadable_bytes() -> None:
    result = await EncodingProbeExtractor().extract(bytes(range(128, 256)) * 4, "blob.bin")

    assert not result.success
    assert result.method_used == "encoding"


def test_is_mostly_printable_requires_more_than_ten_chars() -> None:
    assert not is_mostly_printable("")
    assert not is_mostly_printable("short text")
    assert is_mostly_printable("this is long enough")
    assert not is_mostly_printable("\x01\x02\x03\x04\x05\x06\x07\x08\x0b\x0c\x0e\x0fabcdefghijk")


def test_scan_printable_bytes_stops_at_nul_after_text() -> None:
    data = b"\x00\x01\x02Hello\x07   binary\tworld\x00ignored tail"

    assert scan_printable_bytes(data) == "Hello binary world"


def test_scan_printable_bytes_without_text() -> None:
    assert scan_printable_bytes(b"\x00\x01\x02\xff") == ""


@pytest.mark.asyncio
async def test_binary_scan_requires_more_than_fifty_chars() -> None:
    readable = b"\x01\x02" + b"Meeting minutes for the annual general assembly of members" + b"\x00"
    short = b"\x01\x02" + b"too short" + b"\x00"

    ok = await BinaryScanExtractor().extract(readable, "x.bin")
    failed = await BinaryScanExtractor().extract(short, "x.bin")

    assert ok.success
    assert ok.method_used == "binary-extraction"
    assert ok.text.startswith("Meeting minutes")
    assert not failed.success


@pytest.mark.asyncio
async def test_legacy_doc_extractor_scans_bytes_without_antiword() -> None:
    extractor = LegacyDocExtractor(command="knowledge-chat-missing-antiword")
    data = b"\xd0\xcf\x11\xe0" + b"Board resolution approving the revised expense policy for staff" + b"\x00"

    result = await extractor.extract(data, "policy.doc")

    assert result.success
    assert result.method_used == "doc"
    assert "expense policy" in result.text


def test_external_tool_unavailable_when_command_missing() -> None:
    extractor = ExternalToolExtractor("knowledge-chat-missing-extractor --flag", timeout_s=1)

    assert not extractor.is_available()
    assert not command_available("")
    assert split_command("pdftotext -layout") == ["pdftotext", "-layout"]


@pytest.mark.asyncio
async def test_legacy_doc_extractor_reads_text_after_ole_header() -> None:
    extractor = LegacyDocExtractor(command="knowledge-chat-missing-antiword")
    body = b"Quarterly budget review for the finance team, saved by Word 97."
    data = OLE_HEADER + b"\x00" * 64 + body + b"\x00" * 64 + b"\x01\x02Normal\x00"

    result = await extractor.extract(data, "report.doc")

    assert result.success
    assert result.method_used == "doc"
    assert result.text == body.decode()


@pytest.mark.asyncio
async def test_legacy_doc_extractor_reads_utf16_text() -> None:
    extractor = LegacyDocExtractor(command="knowledge-chat-missing-antiword")
    body = "Volunteer handbook, second edition"
    data = OLE_HEADER + b"\x00" * 32 + body.encode("utf-16-le") + b"\x00" * 32

    result = await extractor.extract(data, "handbook.doc")

    assert result.success
    assert result.text == body


@pytest.mark.asyncio
async def test_legacy_doc_extractor_fails_without_text_runs() -> None:
    extractor = LegacyDocExtractor(command="knowledge-chat-missing-antiword")

    result = await extractor.extract(OLE_HEADER + b"\x00" * 512, "empty.doc")

    assert not result.success
    assert result.method_used == "doc"


def test_scan_text_runs_keeps_file_order_and_drops_noise() -> None:
    data = (
        b"\x00\x00First paragraph here\x00\x05"
        + "Second one in UTF-16".encode("utf-16-le")
        + b"\x00\x00!!!!????....\x00Third plain paragraph"
    )

    assert scan_text_runs(data) == "First paragraph here\nSecond one in UTF-16\nThird plain paragraph"


def test_strip_control_characters_keeps_whitespace() -> None:
    assert strip_control_characters("a\x00\x00b\tc\r\nd\x1ae\x85f") == "a\nb\tc\r\nd\ne\nf"


@pytest.mark.asyncio
async def test_cancelled_command_is_killed_and_temp_file_removed() -> None:
    process = MagicMock(returncode=None)
    process.communicate = AsyncMock(side_effect=asyncio.CancelledError)
    process.wait = AsyncMock(return_value=-9)

    with patch(
        "backend.app.extraction.commands.asyncio.create_subprocess_exec",
        AsyncMock(return_value=process),
    ) as spawn:
        with pytest.raises(asyncio.CancelledError):
            await run_command_on_bytes("pandoc", b"data", suffix=".rtf", timeout_s=5)

    process.kill.assert_called_once()
    process.wait.assert_awaited_once()
    temp_path = spawn.call_args.args[1]
    assert temp_path.endswith(".rtf")
    assert not os.path.exists(temp_path)
