"""Synchronization of chat state with a durable memory backend.

Hides the storage keys, the serialized shapes, and the rules for when a
write is allowed:
- conversations are written whenever the store changes and is non-empty,
  and also when an explicit delete leaves it empty
- settings are written only when at least one field is non-empty, so an
  empty in-memory default never overwrites a saved configuration
"""

from typing import Any

from pydantic import ValidationError

from ..memory.base import MemoryBackend
from ..memory.store import ConversationStore
from ..settings import ModelSettings
from .state import ChatState, StateChange

CONVERSATIONS_KEY = "conversations"
SETTINGS_KEY = "modelSettings"


class StatePersistence:
    """Loads ChatState at startup and saves it from the change hook.

    Example:
        persistence = StatePersistence(create_memory_backend("sqlite", path=db))
        await persistence.connect()
        state = await persistence.load()
        state.add_listener(persistence)
    """

    def __init__(self, backend: MemoryBackend, default_api_key: str | None = None) -> None:
        self._backend = backend
        self._default_api_key = default_api_key
        self._debug_callback: Any | None = None

    @property
    def backend(self) -> MemoryBackend:
        return self._backend

    def set_debug_callback(self, callback: Any) -> None:
        """Set debug callback for logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "Memory", message)

    async def connect(self) -> None:
        await self._backend.connect()

    async def disconnect(self) -> None:
        await self._backend.disconnect()

    async def load(self) -> ChatState:
        """Build the startup state from storage.

        Starts in the "no conversation yet" state. Unreadable settings and
        legacy bundled defaults are discarded in favour of the empty
        configuration.
        """
        conversations = await self._load_conversations()
        settings = await self._load_settings()
        settings = settings.with_default_api_key(self._default_api_key)
        return ChatState(conversations=conversations, settings=settings)

    async def _load_conversations(self) -> ConversationStore:
        raw = await self._backend.get(CONVERSATIONS_KEY)
        if raw is None:
            return ConversationStore()
        try:
            store = ConversationStore.from_json(raw)
        except ValidationError as e:
            self._debug("error", f"Stored conversations are unreadable, starting empty: {e}")
            return ConversationStore()
        self._debug("info", f"Loaded {len(store)} conversation(s)")
        return store

    async def _load_settings(self) -> ModelSettings:
        raw = await self._backend.get(SETTINGS_KEY)
        if raw is None:
            self._debug("info", "No saved model settings, using empty settings")
            return ModelSettings()
        try:
            settings = ModelSettings.from_storage(raw)
        except ValidationError as e:
            self._debug("warning", f"Saved model settings are unreadable, discarding: {e}")
            await self._backend.delete(SETTINGS_KEY)
            return ModelSettings()
        if settings.is_legacy_default:
            self._debug("info", "Removing legacy default model settings")
            await self._backend.delete(SETTINGS_KEY)
            return ModelSettings()
        self._debug("info", f"Loaded model settings for '{settings.name}'")
        return settings

    async def __call__(self, change: StateChange, state: ChatState) -> None:
        """State listener: write whatever the change touched."""
        if change is StateChange.CONVERSATIONS and len(state.conversations):
            await self.save_conversations(state)
        elif change is StateChange.CONVERSATION_REMOVED:
            await self.save_conversations(state)
        elif change is StateChange.SETTINGS and not state.settings.is_empty:
            await self.save_settings(state)

    async def save_conversations(self, state: ChatState) -> None:
        await self._backend.set(CONVERSATIONS_KEY, state.conversations.to_json())
        self._debug("debug", f"Saved {len(state.conversations)} conversation(s)")

    async def save_settings(self, state: ChatState) -> None:
        await self._backend.set(SETTINGS_KEY, state.settings.to_storage())
        self._debug("info", f"Saved model settings for '{state.settings.name}'")
