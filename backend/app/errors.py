"""Domain exception taxonomy shared by services and the HTTP layer."""

from dataclasses import dataclass


class KnowledgeServiceError(Exception):
    """Base class for all expected service errors."""

    code = "error"


# Validation errors - rejected immediately, never retried
class ValidationError(KnowledgeServiceError):
    """Input rejected before any work was attempted."""

    code = "validation_error"


class EmptyFileError(ValidationError):
    """Uploaded file has zero bytes."""

    code = "empty_file"


def format_byte_limit(max_bytes: int) -> str:
    """Human size for limit messages: 50MB, 1.5MB, 512KB or 300 bytes."""
    mib, kib = 1024 * 1024, 1024
    if max_bytes >= mib:
        if max_bytes % mib == 0:
            return f"{max_bytes // mib}MB"
        return f"{max_bytes / mib:.1f}MB"
    if max_bytes >= kib and max_bytes % kib == 0:
        return f"{max_bytes // kib}KB"
    return f"{max_bytes} bytes"


class FileTooLargeError(ValidationError):
    """Uploaded file exceeds the configured size ceiling."""

    code = "too_large"

    def __init__(self, size_bytes: int, max_bytes: int) -> None:
        super().__init__(
            f"File size {size_bytes} bytes exceeds the {format_byte_limit(max_bytes)} limit"
        )
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class UnsupportedFileTypeError(ValidationError):
    """Neither the declared MIME type nor the extension is accepted."""

    code = "unsupported_type"


class InvalidFilenameError(ValidationError):
    """Filename carries a path component."""

    code = "invalid_filename"


class EmptyContentError(ValidationError):
    """Knowledge content is empty or whitespace only."""

    code = "empty_content"


class PromptValidationError(ValidationError):
    """Prompt is empty or too long for the generation service."""

    code = "invalid_prompt"


class EmbeddingDimensionError(ValidationError):
    """Embedding vector does not match the store dimensionality."""

    code = "embedding_dimension"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding has {actual} dimensions, expected {expected}")
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class ExtractionAttempt:
    """One strategy tried by the extraction engine."""

    method: str
    error: str | None


class ExtractionFailure(KnowledgeServiceError):
    """All extraction strategies were exhausted without usable text."""

    code = "empty_extraction"

    def __init__(self, filename: str, attempts: list[ExtractionAttempt]) -> None:
        reasons = "; ".join(f"{a.method}: {a.error}" for a in attempts if a.error)
        message = f"No text content could be extracted from {filename}"
        if reasons:
            message = f"{message} ({reasons})"
        super().__init__(message)
        self.filename = filename
        self.attempts = attempts


# External services
class TransientServiceError(KnowledgeServiceError):
    """Network or timeout failure talking to an external service (retryable)."""

    code = "transient"


class ServiceUnavailableError(KnowledgeServiceError):
    """External service still failing after the retry budget was spent."""

    code = "service_unavailable"


class OperationCancelledError(KnowledgeServiceError):
    """Caller abandoned the operation."""

    code = "cancelled"


# Authorization / lookup
class NotFoundError(KnowledgeServiceError):
    """Entity does not exist or belongs to another owner.

    Both cases map to the same error so foreign ids are indistinguishable
    from missing ones.
    """

    code = "not_found"
