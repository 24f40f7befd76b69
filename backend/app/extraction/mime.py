"""Accepted upload formats and MIME resolution.

Browser-declared content types are unreliable, so the filename extension is
used as a second signal everywhere a type decision is made.
"""

from pathlib import PurePosixPath, PureWindowsPath

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
PLAIN = "text/plain"
HTML = "text/html"
MARKDOWN = "text/markdown"
CSV = "text/csv"
RTF = "application/rtf"
JSON = "application/json"

ACCEPTED_MIME_TYPES: tuple[str, ...] = (PDF, DOCX, DOC, PLAIN, HTML, MARKDOWN, CSV, RTF, JSON)

TEXT_MIME_TYPES = frozenset({PLAIN, HTML, MARKDOWN, CSV, RTF, JSON})

EXTENSION_MIME_TYPES: dict[str, str] = {
    ".pdf": PDF,
    ".docx": DOCX,
    ".doc": DOC,
    ".txt": PLAIN,
    ".html": HTML,
    ".md": MARKDOWN,
    ".csv": CSV,
    ".rtf": RTF,
    ".json": JSON,
}

# Extensions that are safe to decode as text even under an odd MIME type
TEXT_EXTENSIONS = frozenset(
    {".txt", ".md", ".csv", ".json", ".xml", ".html", ".htm", ".rtf", ".log"}
)


def normalize_mime_type(mime_type: str | None) -> str:
    """Lowercase and strip parameters ("text/plain; charset=utf-8" -> "text/plain")."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def file_extension(filename: str) -> str:
    return PurePosixPath(filename).suffix.lower()


def is_safe_filename(filename: str) -> bool:
    """True when the name has no directory component on either path flavour."""
    if not filename or filename in (".", ".."):
        return False
    return (
        PurePosixPath(filename).name == filename
        and PureWindowsPath(filename).name == filename
    )


def is_text_file(filename: str) -> bool:
    return file_extension(filename) in TEXT_EXTENSIONS


def resolve_mime_type(declared_mime_type: str | None, filename: str) -> str | None:
    """Resolve the effective MIME type for an upload.

    Returns the declared type when it is accepted, otherwise the type implied
    by the extension, otherwise None (unsupported).
    """
    declared = normalize_mime_type(declared_mime_type)
    if declared in ACCEPTED_MIME_TYPES:
        return declared
    return EXTENSION_MIME_TYPES.get(file_extension(filename))


def is_text_mime_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in TEXT_MIME_TYPES


def mime_category(mime_type: str) -> str:
    """Short type key used in statistics ("application/pdf" -> "pdf")."""
    parts = mime_type.split("/", 1)
    if len(parts) < 2 or not parts[1]:
        return "unknown"
    return parts[1]
