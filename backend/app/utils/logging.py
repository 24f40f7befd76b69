"""Structured logging for the extraction and embedding pipeline."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; an existing handler is reused.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)


class StructuredPipelineLogger:
    """Structured logger for pipeline events."""

    def log_extraction_attempt(
        self,
        filename: str,
        method: str,
        outcome: str,
        latency_ms: float,
        chars: int = 0,
        error_reason: str | None = None,
    ) -> None:
        """Log one extraction strategy attempt with structured data."""
        log_data: dict[str, Any] = {
            "filename": filename,
            "method": method,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
            "chars": chars,
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Extraction attempt: {method} on {filename} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.debug(log_msg, extra={"structured": log_data})

    def log_embedding_degraded(self, reason: str, text_chars: int) -> None:
        """Log a fallback substitution for the external embedding call."""
        logger.warning(
            f"Embedding service degraded ({reason}), using local fallback embedding",
            extra={"structured": {"reason": reason, "text_chars": text_chars}},
        )
