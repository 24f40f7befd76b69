"""Chat turn: assemble context, call the generation service."""

import logging

from backend.app.context.assembler import ContextAssembler
from backend.app.db.context import RequestContext
from backend.app.errors import OperationCancelledError
from backend.app.llm.client import DeterministicStubClient, LLMClient, describe_llm_error
from backend.app.llm.retry import CancelToken
from backend.app.models.chat import ChatAnswer, ChatMessage, GenerationParams

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, assembler: ContextAssembler, llm: LLMClient, model_name: str) -> None:
        self.assembler = assembler
        self.llm = llm
        self.model_name = model_name

    async def respond(
        self,
        query: str,
        ctx: RequestContext,
        history: list[ChatMessage] | None = None,
        cancel_token: CancelToken | None = None,
        params: GenerationParams | None = None,
    ) -> ChatAnswer:
        """Answer one user message.

        Generation failures become a readable error answer; cancellation
        propagates as OperationCancelledError.
        """
        assembled = await self.assembler.assemble(query, ctx, history)
        item_ids = [str(i) for i in assembled.knowledge_item_ids]

        try:
            content = await self.llm.generate(assembled.prompt, params, cancel_token)
        except OperationCancelledError:
            logger.info("Chat generation cancelled by client")
            raise
        except Exception as e:
            logger.error(f"Generation failed: {type(e).__name__}: {e}")
            return ChatAnswer(
                content=describe_llm_error(e, self.model_name),
                source="error",
                knowledge_item_ids=item_ids,
            )

        source = "stub" if isinstance(self.llm, DeterministicStubClient) else "llm"
        return ChatAnswer(content=content, source=source, knowledge_item_ids=item_ids)
