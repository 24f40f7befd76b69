"""Cascading text extraction: validate, primary strategy, then fallbacks."""

import logging
import time

from backend.app.errors import (
    EmptyFileError,
    ExtractionAttempt,
    FileTooLargeError,
    InvalidFilenameError,
    UnsupportedFileTypeError,
)
from backend.app.extraction import mime
from backend.app.extraction.base import ExtractionResult, TextExtractor
from backend.app.extraction.extractors import strip_control_characters
from backend.app.extraction.registry import ExtractorRegistry
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusPipelineMetrics, get_metrics

logger = logging.getLogger(__name__)


class ExtractionEngine:
    """Turns uploaded bytes into text using the registry's strategies.

    Validation problems raise ValidationError subclasses before any strategy
    runs. Exhausting every strategy does not raise; the result carries
    success=False and the list of attempts.
    """

    def __init__(
        self,
        registry: ExtractorRegistry,
        max_upload_bytes: int,
        structured_logger: StructuredPipelineLogger | None = None,
        metrics: PrometheusPipelineMetrics | None = None,
    ) -> None:
        self.registry = registry
        self.max_upload_bytes = max_upload_bytes
        self.structured_logger = structured_logger or StructuredPipelineLogger()
        self.metrics = metrics or get_metrics()

    def validate(self, data: bytes, declared_mime_type: str | None, filename: str) -> str:
        """Check size, name and type. Returns the effective MIME type.

        Raises:
            EmptyFileError: Zero-byte upload
            FileTooLargeError: Above max_upload_bytes
            InvalidFilenameError: Name carries a directory component
            UnsupportedFileTypeError: Neither MIME type nor extension accepted
        """
        if len(data) == 0:
            raise EmptyFileError(f"File {filename} is empty")
        if len(data) > self.max_upload_bytes:
            raise FileTooLargeError(len(data), self.max_upload_bytes)
        if not mime.is_safe_filename(filename):
            raise InvalidFilenameError(f"Invalid filename: {filename!r}")

        effective = mime.resolve_mime_type(declared_mime_type, filename)
        if effective is None:
            raise UnsupportedFileTypeError(
                f"Unsupported file type {declared_mime_type or 'unknown'} for {filename}"
            )
        return effective

    async def extract(
        self, data: bytes, declared_mime_type: str | None, filename: str
    ) -> ExtractionResult:
        mime_type = self.validate(data, declared_mime_type, filename)
        attempts: list[ExtractionAttempt] = []

        primary = self.registry.primary_for(mime_type, filename)
        if primary is not None:
            result = await self._attempt(primary, data, filename, attempts)
            if result.usable:
                return self._finish(result, attempts)
        else:
            attempts.append(ExtractionAttempt("primary", f"No extractor for {mime_type}"))

        logger.info(f"Primary extraction failed for {filename}, trying fallbacks")
        for extractor in self.registry.fallback_chain():
            if extractor is primary:
                continue
            result = await self._attempt(extractor, data, filename, attempts)
            if result.usable:
                return self._finish(result, attempts)

        logger.warning(f"All extraction methods failed for {filename}")
        failure = ExtractionResult.failed(
            "all_fallbacks",
            "; ".join(f"{a.method}: {a.error}" for a in attempts),
        )
        return self._finish(failure, attempts)

    async def _attempt(
        self,
        extractor: TextExtractor,
        data: bytes,
        filename: str,
        attempts: list[ExtractionAttempt],
    ) -> ExtractionResult:
        start = time.perf_counter()
        try:
            result = await extractor.extract(data, filename)
        except Exception as e:
            logger.exception(f"Extractor {extractor.name} raised on {filename}")
            result = ExtractionResult.failed(extractor.name, f"{type(e).__name__}: {e}")

        if result.success:
            result = ExtractionResult.ok(strip_control_characters(result.text), result.method_used)

        if result.success and not result.text.strip():
            result = ExtractionResult.failed(result.method_used, "Extracted text is empty")

        outcome = "success" if result.usable else "failure"
        latency_ms = (time.perf_counter() - start) * 1000
        self.structured_logger.log_extraction_attempt(
            filename=filename,
            method=result.method_used,
            outcome=outcome,
            latency_ms=latency_ms,
            chars=len(result.text),
            error_reason=result.error,
        )
        self.metrics.record_extraction(result.method_used, outcome)
        attempts.append(ExtractionAttempt(result.method_used, result.error))
        return result

    @staticmethod
    def _finish(result: ExtractionResult, attempts: list[ExtractionAttempt]) -> ExtractionResult:
        return ExtractionResult(
            text=result.text,
            success=result.success,
            method_used=result.method_used,
            error=result.error,
            attempts=tuple(attempts),
        )
