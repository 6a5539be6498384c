"""Conversation memory module for streamchat.

Provides the conversation data model, the in-memory conversation store,
and durable key/value backends that persist them between runs.
"""

from .base import MemoryBackend
from .factory import create_memory_backend
from .models import Conversation, Message, now_ms
from .store import ConversationStore, RecencyGroups, group_by_recency

__all__ = [
    "Conversation",
    "ConversationStore",
    "MemoryBackend",
    "Message",
    "RecencyGroups",
    "create_memory_backend",
    "group_by_recency",
    "now_ms",
]
