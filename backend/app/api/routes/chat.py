"""Chat endpoint - POST /chat."""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from backend.app.api.auth import get_current_context
from backend.app.api.dependencies import get_chat_service
from backend.app.chat.service import ChatService
from backend.app.db.context import RequestContext
from backend.app.errors import OperationCancelledError
from backend.app.llm.retry import CancelToken
from backend.app.models.chat import ChatAnswer, ChatMessage, GenerationParams

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

DISCONNECT_POLL_S = 0.5


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    message: str = Field(..., min_length=1, max_length=50_000)
    history: list[ChatMessage] = Field(default_factory=list)
    params: GenerationParams | None = None


async def _cancel_on_disconnect(
    request: Request, generation: asyncio.Task[ChatAnswer], cancel_token: CancelToken
) -> None:
    while not generation.done():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling generation")
            cancel_token.cancel()
            generation.cancel()
            return
        await asyncio.sleep(DISCONNECT_POLL_S)


@router.post("/chat", response_model=ChatAnswer)
async def chat(
    body: ChatRequest,
    request: Request,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatAnswer:
    """Answer a chat message using the caller's knowledge and documents.

    Generation failures come back as a readable answer with source="error".
    A client disconnect cancels the in-flight generation.
    """
    cancel_token = CancelToken()
    generation = asyncio.create_task(
        service.respond(body.message, ctx, body.history, cancel_token, body.params)
    )
    watcher = asyncio.create_task(_cancel_on_disconnect(request, generation, cancel_token))
    try:
        return await generation
    except asyncio.CancelledError:
        if cancel_token.cancelled:
            raise OperationCancelledError("Client disconnected") from None
        raise
    finally:
        watcher.cancel()
