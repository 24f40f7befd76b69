"""Extraction result type and the common extractor capability."""

from dataclasses import dataclass, field
from typing import Protocol

from backend.app.errors import ExtractionAttempt


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of converting raw file bytes to plain text.

    method_used names the strategy that produced the text (or the last one
    tried on failure); attempts lists every strategy tried, in order.
    """

    text: str
    success: bool
    method_used: str
    error: str | None = None
    attempts: tuple[ExtractionAttempt, ...] = field(default_factory=tuple)

    @classmethod
    def ok(cls, text: str, method: str) -> "ExtractionResult":
        return cls(text=text, success=True, method_used=method)

    @classmethod
    def failed(cls, method: str, error: str) -> "ExtractionResult":
        return cls(text="", success=False, method_used=method, error=error)

    @property
    def usable(self) -> bool:
        """Successful and not whitespace-only."""
        return self.success and bool(self.text.strip())


class TextExtractor(Protocol):
    """A single text extraction strategy."""

    name: str

    def is_available(self) -> bool:
        """Whether the strategy's library or tool is present in this process."""
        ...

    async def extract(self, data: bytes, filename: str) -> ExtractionResult:
        """Extract text from raw bytes.

        Implementations report failure through the result rather than raising.
        """
        ...
