"""Concrete text extraction strategies.

Each strategy reports failure through ExtractionResult; the engine decides
what to try next.
"""

import asyncio
import re
from io import BytesIO

from docx import Document as DocxDocument
from pypdf import PdfReader

from backend.app.extraction.base import ExtractionResult
from backend.app.extraction.commands import (
    CommandFailedError,
    command_available,
    run_command_on_bytes,
)
from backend.app.extraction.mime import file_extension

FALLBACK_ENCODINGS: tuple[str, ...] = ("utf-8", "latin-1", "ascii", "utf-16-le")

_PRINTABLE_CHAR = re.compile(r"[\x20-\x7E\n\r\t]")
_FIRST_PRINTABLE_BYTE = re.compile(rb"[\t\n\r\x20-\x7E]")
_NON_PRINTABLE_BYTES = re.compile(rb"[^\t\n\r\x20-\x7E]")
_WHITESPACE = re.compile(r"\s+")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]+")

MIN_ENCODED_TEXT_CHARS = 10
MIN_BINARY_TEXT_CHARS = 50

# Word documents keep body text as runs of 8-bit or UTF-16LE characters
_TEXT_RUN_8BIT = re.compile(rb"[\t\n\r\x20-\x7E]{8,}")
_TEXT_RUN_UTF16 = re.compile(rb"(?:[\t\n\r\x20-\x7E]\x00){8,}")
_TWO_LETTERS = re.compile(r"[A-Za-z]{2}")
MIN_DOC_TEXT_CHARS = 20


def strip_control_characters(text: str) -> str:
    """Replace NUL and other non-whitespace control characters with line breaks."""
    return _CONTROL_CHARS.sub("\n", text)


def is_mostly_printable(text: str) -> bool:
    """More than half printable ASCII and more than 10 non-blank characters."""
    if not text:
        return False
    printable = len(_PRINTABLE_CHAR.findall(text))
    return printable / len(text) > 0.5 and len(text.strip()) > MIN_ENCODED_TEXT_CHARS


def scan_printable_bytes(data: bytes) -> str:
    """Keep printable ASCII bytes, stopping at the first NUL after text starts.

    Non-printable bytes before or between text are skipped. Whitespace runs
    are collapsed to single spaces.
    """
    first = _FIRST_PRINTABLE_BYTE.search(data)
    if first is None:
        return ""
    end = data.find(b"\x00", first.start())
    segment = data if end == -1 else data[:end]
    kept = _NON_PRINTABLE_BYTES.sub(b"", segment).decode("ascii")
    return _WHITESPACE.sub(" ", kept).strip()


def scan_text_runs(data: bytes) -> str:
    """Collect printable runs of 8+ characters from the whole file, in file order.

    Both single-byte and UTF-16LE runs are kept; runs without two adjacent
    letters are dropped as structural noise.
    """
    runs: list[tuple[int, str]] = [
        (m.start(), m.group().decode("ascii")) for m in _TEXT_RUN_8BIT.finditer(data)
    ]
    runs.extend(
        (m.start(), m.group().decode("utf-16-le")) for m in _TEXT_RUN_UTF16.finditer(data)
    )
    runs.sort()
    kept = [_WHITESPACE.sub(" ", text).strip() for _, text in runs if _TWO_LETTERS.search(text)]
    return "\n".join(k for k in kept if k)


def _read_pdf(data: bytes) -> str:
    reader = PdfReader(BytesIO(data))
    pages = []
    for page in reader.pages:
        page_text = (page.extract_text() or "").strip()
        if page_text:
            pages.append(page_text)
    return "\n\n".join(pages)


def _read_docx(data: bytes) -> str:
    document = DocxDocument(BytesIO(data))
    parts = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)


class PdfExtractor:
    name = "pdf"

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        try:
            text = await asyncio.to_thread(_read_pdf, data)
        except Exception as e:
            return ExtractionResult.failed(self.name, f"PDF parsing failed: {e}")
        return ExtractionResult.ok(text, self.name)


class DocxExtractor:
    name = "docx"

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        try:
            text = await asyncio.to_thread(_read_docx, data)
        except Exception as e:
            return ExtractionResult.failed(self.name, f"DOCX parsing failed: {e}")
        return ExtractionResult.ok(text, self.name)


class PlainTextExtractor:
    """Strict UTF-8 decode (a leading BOM is dropped)."""

    name = "utf-8"

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            return ExtractionResult.failed(self.name, f"Invalid UTF-8 at byte {e.start}")
        return ExtractionResult.ok(text, self.name)


class ExternalToolExtractor:
    """Generic document-to-text command run on a temp copy of the file."""

    name = "external-tool"

    def __init__(self, command: str, timeout_s: float) -> None:
        self.command = command
        self.timeout_s = timeout_s

    def is_available(self) -> bool:
        return command_available(self.command)

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        try:
            text = await run_command_on_bytes(
                self.command, data, suffix=file_extension(filename), timeout_s=self.timeout_s
            )
        except (CommandFailedError, OSError) as e:
            return ExtractionResult.failed(self.name, str(e))
        return ExtractionResult.ok(text, self.name)


class EncodingProbeExtractor:
    name = "encoding"

    def __init__(self, encodings: tuple[str, ...] = FALLBACK_ENCODINGS) -> None:
        self.encodings = encodings

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        for encoding in self.encodings:
            try:
                text = data.decode(encoding)
            except UnicodeDecodeError:
                continue
            if is_mostly_printable(text):
                return ExtractionResult.ok(text, f"encoding-{encoding}")
        return ExtractionResult.failed(self.name, "No encoding produced readable text")


class BinaryScanExtractor:
    name = "binary-extraction"

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        text = await asyncio.to_thread(scan_printable_bytes, data)
        if len(text) > MIN_BINARY_TEXT_CHARS:
            return ExtractionResult.ok(text, self.name)
        return ExtractionResult.failed(self.name, "Insufficient readable text found")


class LegacyDocExtractor:
    """Best-effort Word 97-2003 reader: antiword when installed, else text-run scan."""

    name = "doc"

    def __init__(self, command: str = "antiword", timeout_s: float = 20.0) -> None:
        self.command = command
        self.timeout_s = timeout_s

    def is_available(self) -> bool:
        return True

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        if command_available(self.command):
            try:
                text = await run_command_on_bytes(
                    self.command, data, suffix=".doc", timeout_s=self.timeout_s
                )
                return ExtractionResult.ok(text, self.name)
            except (CommandFailedError, OSError) as e:
                return ExtractionResult.failed(self.name, str(e))

        text = await asyncio.to_thread(scan_text_runs, data)
        if len(text) >= MIN_DOC_TEXT_CHARS:
            return ExtractionResult.ok(text, self.name)
        return ExtractionResult.failed(self.name, "No readable text runs found in DOC file")
