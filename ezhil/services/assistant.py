"""Ezhil AI: the civic assistant chat."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ezhil.config import get_settings
from ezhil.models import ChatMessage
from ezhil.schemas.assistant import ChatReply
from ezhil.services.gemini_client import GeminiClient, GeminiClientError, GeminiRateLimitError

logger = logging.getLogger(__name__)
settings = get_settings()

SYSTEM_PROMPT = (
    "You are Ezhil AI, a helpful civic-tech assistant. You specialise in waste "
    "management: garbage disposal, recycling, overflowing bins, and citizen "
    "reporting in Madurai, India. You can also answer general questions on "
    "science, math, health, coding, and more. Be friendly, clear, and concise."
)

WARNING_PREFIX = "⚠️"
FALLBACK_REPLY = "Sorry, I couldn't generate a response."


class AssistantService:
    """Answers user messages with conversation history kept in the database."""

    def __init__(self, db: AsyncSession, client: GeminiClient | None = None):
        self.db = db
        self.client = client or GeminiClient()

    async def history(self, user_id: str) -> list[ChatMessage]:
        """All stored turns for a user, oldest first."""
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        return list(result.scalars().all())

    async def _recent_turns(self, user_id: str) -> list[dict[str, str]]:
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(settings.assistant_history_limit)
        )
        rows = reversed(list(result.scalars().all()))
        return [
            {"role": "user" if row.role == "user" else "model", "text": row.text}
            for row in rows
            if row.text and not row.text.startswith(WARNING_PREFIX)
        ]

    async def _save(self, user_id: str, role: str, text: str) -> None:
        self.db.add(ChatMessage(user_id=user_id, role=role, text=text))
        await self.db.commit()

    async def ask(self, user_id: str, message: str) -> ChatReply:
        """
        Send a message and return the assistant's reply.

        Only the last few turns go to the model. Failures come back as a
        warning reply instead of an exception and are not stored.
        """
        history = await self._recent_turns(user_id)
        await self._save(user_id, "user", message)

        notices: list[str] = []

        def on_retry(wait_seconds: float, attempt: int) -> None:
            notices.append(
                f"Rate limited, retrying in {wait_seconds:g}s "
                f"(attempt {attempt}/{self.client.max_retries})"
            )

        try:
            text = await self.client.chat(SYSTEM_PROMPT, history, message, on_retry=on_retry)
        except GeminiRateLimitError:
            return ChatReply(
                reply=(
                    f"{WARNING_PREFIX} Still rate limited after {self.client.max_retries} "
                    "retries. Please wait ~1 minute and try again."
                ),
                failed=True,
                retry_notices=notices,
            )
        except GeminiClientError as e:
            logger.error(f"Assistant error for {user_id}: {e}")
            return ChatReply(
                reply=f"{WARNING_PREFIX} Error: {e}",
                failed=True,
                retry_notices=notices,
            )

        reply = text or FALLBACK_REPLY
        await self._save(user_id, "bot", reply)
        return ChatReply(reply=reply, retry_notices=notices)
