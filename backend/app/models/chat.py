"""Chat message and generation models."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One prior turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str


class GenerationParams(BaseModel):
    """Sampling parameters for the generation endpoint."""

    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(256, ge=1, le=1000)
    top_p: float = Field(0.95, gt=0.0, le=1.0)
    top_k: int = Field(40, ge=1)


class ChatAnswer(BaseModel):
    """Assistant reply with the source it came from."""

    content: str
    source: Literal["llm", "stub", "error"]
    knowledge_item_ids: list[str] = Field(default_factory=list)
