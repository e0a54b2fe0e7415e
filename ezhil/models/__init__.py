"""Database models."""

from ezhil.models.chat_message import ChatMessage
from ezhil.models.contributor import Contributor
from ezhil.models.report import Report

__all__ = [
    "ChatMessage",
    "Contributor",
    "Report",
]
