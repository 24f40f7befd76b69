"""LLM client for answer generation with OpenAI-compatible integration.

Security: Reads API key from settings only, never hardcoded.
Provides deterministic fallback when no key present for testing.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, BadRequestError, NotFoundError

from backend.app.config import Settings, get_settings
from backend.app.errors import (
    OperationCancelledError,
    PromptValidationError,
    ServiceUnavailableError,
)
from backend.app.llm.retry import CancelToken, RetryingCaller, RetryPolicy
from backend.app.models.chat import GenerationParams
from backend.app.utils.metrics import PrometheusPipelineMetrics, get_metrics

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    """Protocol for LLM client implementations."""

    async def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
        cancel_token: CancelToken | None = None,
    ) -> str:
        """Generate a completion for prompt.

        Raises:
            PromptValidationError: Empty or oversized prompt (not retried)
            ServiceUnavailableError: Retry budget exhausted
            OperationCancelledError: Caller cancelled
        """
        ...


def validate_prompt(prompt: str, max_chars: int) -> None:
    if not prompt or not prompt.strip():
        raise PromptValidationError("Cannot generate response: prompt is empty")
    if len(prompt) > max_chars:
        raise PromptValidationError(
            f"Prompt is too long ({len(prompt)} characters, limit {max_chars})"
        )


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    def __init__(self, max_prompt_chars: int = 50_000):
        self.max_prompt_chars = max_prompt_chars

    async def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
        cancel_token: CancelToken | None = None,
    ) -> str:
        validate_prompt(prompt, self.max_prompt_chars)
        if cancel_token is not None:
            cancel_token.throw_if_cancelled()
        return (
            "No language model is configured, so this is a placeholder answer. "
            f"The assembled context contained {len(prompt)} characters."
        )


class OpenAIClient:
    """OpenAI-backed client (also works against OpenAI-compatible servers)."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o-mini",
        policy: RetryPolicy | None = None,
        max_prompt_chars: int = 50_000,
        send_top_k: bool = False,
        default_params: GenerationParams | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        metrics: PrometheusPipelineMetrics | None = None,
    ):
        """Initialize OpenAI client.

        Args:
            client: Configured AsyncOpenAI instance (SDK retries disabled)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            policy: Timeout and retry budget
            max_prompt_chars: Prompts above this length are rejected
            send_top_k: Forward top_k; only OpenAI-compatible servers accept it
            default_params: Sampling used when a call passes no params
            sleep_fn: Injectable sleep for backoff (tests)
            metrics: Latency recorder
        """
        self.client = client
        self.model = model
        self.max_prompt_chars = max_prompt_chars
        self.send_top_k = send_top_k
        self.default_params = default_params or GenerationParams()
        self._caller = RetryingCaller(policy or RetryPolicy(), sleep_fn=sleep_fn)
        self._metrics = metrics or get_metrics()

    async def generate(
        self,
        prompt: str,
        params: GenerationParams | None = None,
        cancel_token: CancelToken | None = None,
    ) -> str:
        validate_prompt(prompt, self.max_prompt_chars)
        params = params or self.default_params

        request: dict[str, object] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
        }
        if self.send_top_k:
            request["extra_body"] = {"top_k": params.top_k}

        start = time.monotonic()
        try:
            response = await self._caller.call(
                lambda: self.client.chat.completions.create(**request),
                cancel_token,
                operation="generation",
            )
        except OperationCancelledError:
            self._metrics.record_llm_latency("cancelled", (time.monotonic() - start) * 1000)
            raise
        except Exception:
            self._metrics.record_llm_latency("error", (time.monotonic() - start) * 1000)
            raise

        content = response.choices[0].message.content or ""
        if not content.strip():
            self._metrics.record_llm_latency("empty", (time.monotonic() - start) * 1000)
            raise ServiceUnavailableError("Language model returned an empty response")

        self._metrics.record_llm_latency("success", (time.monotonic() - start) * 1000)
        return content


def describe_llm_error(exc: BaseException, model: str) -> str:
    """Turn a generation failure into a message suitable for the chat window."""
    cause = exc.__cause__ or exc

    if isinstance(exc, PromptValidationError):
        if "too long" in str(exc):
            return (
                "Your message and its context are too long for the language model. "
                "Please try with shorter content."
            )
        return "Please enter a question before sending."
    if isinstance(exc, OperationCancelledError):
        return "The request was cancelled."
    if isinstance(cause, APITimeoutError | TimeoutError):
        return (
            "The request timed out while generating a response. The language model "
            "may be overloaded. Please try again."
        )
    if isinstance(cause, APIConnectionError):
        return (
            "Cannot connect to the language model service. Please check that it is "
            "running and reachable, then try again."
        )
    if isinstance(cause, NotFoundError):
        return f'Model "{model}" is not available. Please check the model name.'
    if isinstance(cause, BadRequestError) and "context" in str(cause).lower():
        return "The prompt is too long for the model's context window."
    return (
        "Failed to generate a response. Please check the language model connection "
        f"and configuration. ({type(cause).__name__})"
    )


def build_openai_client(settings: Settings) -> AsyncOpenAI:
    """AsyncOpenAI with SDK retries off; RetryingCaller owns the retry budget."""
    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
    return AsyncOpenAI(
        api_key=api_key,
        base_url=settings.openai_base_url,
        timeout=settings.llm_timeout_s,
        max_retries=0,
    )


def get_llm_client(settings: Settings | None = None) -> LLMClient:
    """Factory function to get appropriate LLM client based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for generation")
        return OpenAIClient(
            client=build_openai_client(settings),
            model=settings.llm_model,
            policy=RetryPolicy(
                retries=settings.llm_retries,
                backoff_base_ms=settings.llm_backoff_base_ms,
                backoff_max_ms=settings.llm_backoff_max_ms,
                timeout_s=settings.llm_timeout_s,
            ),
            max_prompt_chars=settings.max_prompt_chars,
            send_top_k=settings.openai_base_url is not None,
            default_params=GenerationParams(
                temperature=settings.llm_temperature, max_tokens=settings.llm_max_tokens
            ),
        )

    logger.warning("No OpenAI API key configured, using deterministic stub client")
    return DeterministicStubClient(max_prompt_chars=settings.max_prompt_chars)
