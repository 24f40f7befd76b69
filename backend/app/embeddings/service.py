"""Embedding providers: external OpenAI-compatible endpoint with local fallback.

Security: Reads API key from settings only, never hardcoded.
"""

import asyncio
import logging
from typing import Protocol

from openai import AsyncOpenAI

from backend.app.config import Settings, get_settings
from backend.app.embeddings.fallback import fallback_embedding
from backend.app.llm.client import build_openai_client
from backend.app.utils.logging import StructuredPipelineLogger
from backend.app.utils.metrics import PrometheusPipelineMetrics, get_metrics

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Protocol for embedding implementations."""

    dimensions: int

    async def embed(self, text: str) -> list[float]:
        """Return a vector of exactly `dimensions` floats. Never raises."""
        ...


class FallbackEmbeddingProvider:
    """Local deterministic provider (no API key required)."""

    def __init__(self, dimensions: int, metrics: PrometheusPipelineMetrics | None = None):
        self.dimensions = dimensions
        self._metrics = metrics or get_metrics()

    async def embed(self, text: str) -> list[float]:
        self._metrics.record_embedding("fallback")
        return fallback_embedding(text, self.dimensions)


class OpenAIEmbeddingProvider:
    """External embeddings with degradation to the local fallback.

    Timeouts, transport errors, empty input and wrong-length vectors all
    produce the fallback vector plus a degradation warning.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        dimensions: int,
        timeout_s: float = 30.0,
        input_chars: int = 2000,
        structured_logger: StructuredPipelineLogger | None = None,
        metrics: PrometheusPipelineMetrics | None = None,
    ):
        self.client = client
        self.model = model
        self.dimensions = dimensions
        self.timeout_s = timeout_s
        self.input_chars = input_chars
        self._log = structured_logger or StructuredPipelineLogger()
        self._metrics = metrics or get_metrics()

    async def embed(self, text: str) -> list[float]:
        prepared = " ".join(text.split())[: self.input_chars]
        if not prepared:
            return self._degraded("empty_text", text)

        try:
            response = await asyncio.wait_for(
                self.client.embeddings.create(
                    model=self.model, input=prepared, dimensions=self.dimensions
                ),
                timeout=self.timeout_s,
            )
            vector = [float(v) for v in response.data[0].embedding]
        except TimeoutError:
            return self._degraded("timeout", text)
        except Exception as e:
            logger.error(f"Embedding API call failed: {e}")
            return self._degraded(type(e).__name__, text)

        if len(vector) != self.dimensions:
            return self._degraded(f"dimension_mismatch:{len(vector)}", text)

        self._metrics.record_embedding("external")
        return vector

    def _degraded(self, reason: str, text: str) -> list[float]:
        self._log.log_embedding_degraded(reason, len(text))
        self._metrics.record_embedding("fallback")
        return fallback_embedding(text, self.dimensions)


def get_embedding_provider(settings: Settings | None = None) -> EmbeddingProvider:
    """Factory: external provider when an API key is configured, else fallback."""
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        return OpenAIEmbeddingProvider(
            client=build_openai_client(settings),
            model=settings.embedding_model,
            dimensions=settings.embedding_dim,
            timeout_s=settings.embedding_timeout_s,
            input_chars=settings.embedding_input_chars,
        )

    logger.warning("No OpenAI API key configured, using local fallback embeddings")
    return FallbackEmbeddingProvider(settings.embedding_dim)
