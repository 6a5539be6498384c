"""Process-wide chat state with an observed-change hook.

Hides where the active conversation, the conversation list, the model
settings and the transient request flags live. Every mutation goes
through an async method that notifies listeners with the kind of change,
so persistence and rendering react in one place instead of at each call
site.
"""

import inspect
from collections.abc import Awaitable, Callable
from enum import Enum

from ..llm.errors import ChatClientError
from ..memory.models import Conversation, Message
from ..memory.store import ConversationStore
from ..settings import ModelSettings


class StateChange(str, Enum):
    """What part of the state a notification is about."""

    CONVERSATIONS = "conversations"
    CONVERSATION_REMOVED = "conversation_removed"
    ACTIVE = "active"
    MESSAGES = "messages"
    SETTINGS = "settings"
    LOADING = "loading"
    ERROR = "error"


StateListener = Callable[[StateChange, "ChatState"], Awaitable[None] | None]


class ChatState:
    """Explicit state container read and mutated by the session controller.

    Invariant: at most one conversation is active; its message list here is
    the authoritative copy that gets mirrored into the store entry with the
    same id.
    """

    def __init__(
        self,
        conversations: ConversationStore | None = None,
        settings: ModelSettings | None = None,
    ) -> None:
        self.conversations = conversations if conversations is not None else ConversationStore()
        self._settings = settings or ModelSettings()
        self._active_id: str | None = None
        self._messages: list[Message] = []
        self._is_loading = False
        self._error: ChatClientError | None = None
        self._listeners: list[StateListener] = []

    @property
    def settings(self) -> ModelSettings:
        return self._settings

    @property
    def active_id(self) -> str | None:
        """Id of the active conversation, None in the "new conversation" state."""
        return self._active_id

    @property
    def active_conversation(self) -> Conversation | None:
        if self._active_id is None:
            return None
        return self.conversations.get(self._active_id)

    @property
    def messages(self) -> list[Message]:
        """Messages currently displayed (copy)."""
        return list(self._messages)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> ChatClientError | None:
        """Error shown in the banner, if any."""
        return self._error

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback(change, state); may be sync or async."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _emit(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            result = listener(change, self)
            if inspect.isawaitable(result):
                await result

    async def activate(self, conversation_id: str, messages: list[Message]) -> None:
        """Make a conversation active and display `messages`."""
        self._active_id = conversation_id
        self._messages = list(messages)
        await self._emit(StateChange.ACTIVE)

    async def clear_active(self) -> None:
        """Return to the "no conversation yet" state."""
        self._active_id = None
        self._messages = []
        await self._emit(StateChange.ACTIVE)

    async def set_messages(self, messages: list[Message]) -> None:
        self._messages = list(messages)
        await self._emit(StateChange.MESSAGES)

    async def put_conversation(self, conversation: Conversation) -> None:
        """Insert or replace a store entry."""
        self.conversations.upsert(conversation)
        await self._emit(StateChange.CONVERSATIONS)

    async def rename_conversation(self, conversation_id: str, title: str) -> bool:
        if not self.conversations.rename(conversation_id, title):
            return False
        await self._emit(StateChange.CONVERSATIONS)
        return True

    async def remove_conversation(self, conversation_id: str) -> bool:
        if not self.conversations.remove(conversation_id):
            return False
        await self._emit(StateChange.CONVERSATION_REMOVED)
        return True

    async def set_settings(self, settings: ModelSettings) -> None:
        self._settings = settings
        await self._emit(StateChange.SETTINGS)

    async def set_loading(self, is_loading: bool) -> None:
        self._is_loading = is_loading
        await self._emit(StateChange.LOADING)

    async def set_error(self, error: ChatClientError | None) -> None:
        if error is None and self._error is None:
            return
        self._error = error
        await self._emit(StateChange.ERROR)
