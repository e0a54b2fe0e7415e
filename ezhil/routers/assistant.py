"""API routes for the Ezhil AI assistant."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.database import get_db
from ezhil.schemas.assistant import ChatMessageOut, ChatReply, ChatRequest
from ezhil.services.assistant import AssistantService
from ezhil.services.gemini_client import GeminiClient

router = APIRouter(prefix="/assistant", tags=["assistant"])


def get_gemini_client() -> GeminiClient:
    """Dependency providing the Gemini client."""
    return GeminiClient()


@router.post("/chat", response_model=ChatReply)
async def chat(
    body: ChatRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    client: Annotated[GeminiClient, Depends(get_gemini_client)],
) -> ChatReply:
    """
    Ask the assistant a question.

    Rate limiting upstream is retried up to three times; if it persists the
    reply is a warning message rather than an HTTP error.
    """
    return await AssistantService(db, client).ask(body.user_id, body.message.strip())


@router.get("/history", response_model=list[ChatMessageOut])
async def chat_history(
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: str = Query(..., min_length=1),
) -> list[ChatMessageOut]:
    """A user's stored conversation, oldest first."""
    rows = await AssistantService(db).history(user_id)
    return [ChatMessageOut.model_validate(row) for row in rows]
