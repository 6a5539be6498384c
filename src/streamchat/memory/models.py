"""Data models for conversation history.

These models define the structure of messages and conversations,
independent of the storage backend used. Field names on disk follow
the camelCase keys older clients wrote (`lastMessage`).
"""

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Characters of the first prompt kept as the conversation title
TITLE_LENGTH = 15

# Characters of the newest message kept as the sidebar preview
PREVIEW_LENGTH = 30


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class Message(BaseModel):
    """A single role-tagged message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")


class Conversation(BaseModel):
    """An ordered sequence of messages plus sidebar metadata.

    Instances are immutable; updates go through model_copy so the store
    always holds a consistent snapshot.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(description="Creation time in epoch milliseconds, as text")
    title: str = Field(description="Short label, initially derived from the first prompt")
    messages: list[Message] = Field(default_factory=list)
    timestamp: int = Field(default_factory=now_ms, description="Last update, epoch milliseconds")
    last_message: str = Field(default="", alias="lastMessage", description="Preview text")

    @classmethod
    def start(cls, conversation_id: str, prompt: str, timestamp: int) -> "Conversation":
        """Create the entry for a conversation whose first prompt is `prompt`."""
        return cls(
            id=conversation_id,
            title=prompt[:TITLE_LENGTH],
            last_message=prompt[:PREVIEW_LENGTH],
            timestamp=timestamp,
        )

    def with_messages(self, messages: list[Message], timestamp: int) -> "Conversation":
        """Copy with a new message list, refreshed preview and update time."""
        preview = messages[-1].content[:PREVIEW_LENGTH] if messages else ""
        return self.model_copy(update={
            "messages": list(messages),
            "last_message": preview,
            "timestamp": timestamp,
        })

    def renamed(self, title: str) -> "Conversation":
        """Copy with a new title; nothing else changes."""
        return self.model_copy(update={"title": title})
