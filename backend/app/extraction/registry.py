"""Extractor registry with explicit, once-only initialization."""

import logging
from functools import lru_cache

from backend.app.config import Settings, get_settings
from backend.app.extraction import mime
from backend.app.extraction.base import TextExtractor
from backend.app.extraction.extractors import (
    BinaryScanExtractor,
    DocxExtractor,
    EncodingProbeExtractor,
    ExternalToolExtractor,
    LegacyDocExtractor,
    PdfExtractor,
    PlainTextExtractor,
)

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """Maps MIME types to primary extractors and holds the fallback chain.

    Availability is probed once by initialize(); extractors that are not
    available are left out of every lookup afterwards.
    """

    def __init__(self) -> None:
        self._primary: dict[str, TextExtractor] = {}
        self._text_primary: TextExtractor | None = None
        self._fallbacks: list[TextExtractor] = []
        self._available: set[str] = set()
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def register_primary(self, mime_type: str, extractor: TextExtractor) -> None:
        self._primary[mime_type] = extractor
        self._ready = False

    def register_text_primary(self, extractor: TextExtractor) -> None:
        """Primary extractor for any text-like MIME type or text extension."""
        self._text_primary = extractor
        self._ready = False

    def register_fallback(self, extractor: TextExtractor) -> None:
        """Append to the fallback chain (order of registration is chain order)."""
        self._fallbacks.append(extractor)
        self._ready = False

    def initialize(self) -> None:
        """Probe availability of every registered extractor. Idempotent."""
        if self._ready:
            return

        candidates = list(self._primary.values()) + self._fallbacks
        if self._text_primary is not None:
            candidates.append(self._text_primary)

        self._available = {e.name for e in candidates if e.is_available()}
        missing = sorted({e.name for e in candidates} - self._available)
        if missing:
            logger.info(f"Extractors unavailable and skipped: {', '.join(missing)}")
        logger.info(f"Extractor registry ready: {', '.join(sorted(self._available))}")
        self._ready = True

    def is_available(self, extractor: TextExtractor) -> bool:
        self.initialize()
        return extractor.name in self._available

    def primary_for(self, mime_type: str, filename: str) -> TextExtractor | None:
        self.initialize()
        extractor = self._primary.get(mime_type)
        if extractor is None and (mime.is_text_mime_type(mime_type) or mime.is_text_file(filename)):
            extractor = self._text_primary
        if extractor is None or extractor.name not in self._available:
            return None
        return extractor

    def fallback_chain(self) -> list[TextExtractor]:
        self.initialize()
        return [e for e in self._fallbacks if e.name in self._available]


def build_registry(settings: Settings) -> ExtractorRegistry:
    registry = ExtractorRegistry()
    plain = PlainTextExtractor()

    registry.register_primary(mime.PDF, PdfExtractor())
    registry.register_primary(mime.DOCX, DocxExtractor())
    registry.register_primary(
        mime.DOC, LegacyDocExtractor(
            command=settings.legacy_doc_command, timeout_s=settings.extraction_tool_timeout_s
        )
    )
    registry.register_text_primary(plain)

    registry.register_fallback(plain)
    registry.register_fallback(
        ExternalToolExtractor(
            settings.external_extractor_command, settings.extraction_tool_timeout_s
        )
    )
    registry.register_fallback(EncodingProbeExtractor())
    registry.register_fallback(BinaryScanExtractor())
    return registry


@lru_cache
def get_extractor_registry() -> ExtractorRegistry:
    """Process-wide registry, built and initialized on first use."""
    registry = build_registry(get_settings())
    registry.initialize()
    return registry
