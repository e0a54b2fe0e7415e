"""Pydantic schemas for the civic assistant."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """A user message to the assistant."""

    user_id: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1, max_length=4000)


class ChatReply(BaseModel):
    """Assistant answer plus any rate-limit notices emitted while waiting."""

    reply: str
    failed: bool = False
    retry_notices: list[str] = []


class ChatMessageOut(BaseModel):
    """Stored conversation turn."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: Literal["user", "bot"]
    text: str
    created_at: datetime
