"""
Streamchat: a terminal chat client for OpenAI-compatible completion endpoints.

Prompts are sent to `{base_url}/chat/completions` and answers are rendered
as they stream in. Conversations and model settings persist locally.
"""

__version__ = "0.1.0"

from .llm import ChatClientError, iter_sse_deltas
from .memory import Conversation, ConversationStore, Message
from .session import ChatSessionController, ChatState, StatePersistence
from .settings import ModelSettings

__all__ = [
    "ChatClientError",
    "ChatSessionController",
    "ChatState",
    "Conversation",
    "ConversationStore",
    "Message",
    "ModelSettings",
    "StatePersistence",
    "iter_sse_deltas",
]
