"""Typed settings configuration - single source of truth."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str | None = None

    # Cache
    redis_url: str | None = None

    # Logging
    log_level: str = "INFO"

    # LLM (OpenAI-compatible endpoint; Ollama works via base_url)
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None
    llm_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    llm_timeout_s: float = 120.0
    llm_retries: int = 2
    llm_backoff_base_ms: int = 1000
    llm_backoff_max_ms: int = 5000
    llm_temperature: float = 0.7
    llm_max_tokens: int = 256
    max_prompt_chars: int = 50_000

    # Embeddings
    embedding_dim: int = 768
    embedding_timeout_s: float = 30.0
    embedding_input_chars: int = 2000

    # Extraction
    max_upload_bytes: int = 50 * 1024 * 1024
    external_extractor_command: str = "textract"
    legacy_doc_command: str = "antiword"
    extraction_tool_timeout_s: float = 20.0

    # Retrieval
    semantic_weight: float = 0.0
    word_cap_mode: Literal["per_word", "total"] = "per_word"

    # Context assembly
    assistant_name: str = "BPN AI Assistant"
    context_knowledge_limit: int = 5
    context_org_limit: int = 3
    context_preview_chars: int = 300
    context_history_turns: int = 6

    # Transient chat documents
    document_ttl_hours: int = 48
    cleanup_interval_minutes: int = 60
    document_processing_timeout_s: float = 30.0

    # Fire-and-forget work (embedding writes); covers the embedding call timeout
    background_task_timeout_s: float = 45.0

    # Organization knowledge scraping
    scrape_base_url: str = "https://www.bpn.rw"
    scrape_paths: list[str] = ["/about", "/services", "/contact", "/news", "/projects"]
    scrape_timeout_s: float = 60.0

    # Rate limiting (uploads per window)
    upload_rate_limit: int = 10
    upload_rate_window_seconds: int = 15 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
