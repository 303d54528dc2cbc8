"""Conversation state backends."""

from .base import ConversationStateStore
from .memory import InMemoryConversationStateStore

__all__ = [
    "ConversationStateStore",
    "InMemoryConversationStateStore",
]
