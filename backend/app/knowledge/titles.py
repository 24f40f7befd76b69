"""Title generation for uploaded knowledge items."""

import re
from pathlib import PurePosixPath

_DIGITS_ONLY = re.compile(r"^\d+$")
_HAS_LETTER = re.compile(r"[a-zA-Z]")
_WORD_START = re.compile(r"\b\w")
_CONTROL_CHAR = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def _is_title_like(line: str) -> bool:
    return (
        5 < len(line) < 100
        and not _DIGITS_ONLY.match(line)
        and _HAS_LETTER.search(line) is not None
        and _CONTROL_CHAR.search(line) is None
    )


def generate_title(filename: str, content: str) -> str:
    """Title from the first title-like line of content, else from the filename.

    A title-like line is one of the first five non-empty lines, 6 to 99
    characters long, containing a letter, not only digits and free of
    control characters.
    """
    lines = [line.strip() for line in content.split("\n") if line.strip()]
    for line in lines[:5]:
        if _is_title_like(line):
            return line

    stem = PurePosixPath(filename).stem
    cleaned = re.sub(r"[_-]", " ", stem)
    return _WORD_START.sub(lambda m: m.group().upper(), cleaned).strip() or filename
