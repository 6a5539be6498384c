"""Unit tests for loading and saving chat state."""
import json

import pytest

from streamchat.memory import Conversation, ConversationStore
from streamchat.memory.in_memory import InMemoryBackend
from streamchat.session import CONVERSATIONS_KEY, SETTINGS_KEY, StatePersistence
from streamchat.settings import ModelSettings


async def load(backend: InMemoryBackend, default_api_key: str | None = None):
    persistence = StatePersistence(backend, default_api_key=default_api_key)
    await persistence.connect()
    state = await persistence.load()
    state.add_listener(persistence)
    return state


class TestLoad:
    """Tests for building the startup state."""

    @pytest.mark.asyncio
    async def test_empty_storage(self, backend):
        state = await load(backend)
        assert len(state.conversations) == 0
        assert state.settings.is_empty
        assert state.active_id is None
        assert state.messages == []

    @pytest.mark.asyncio
    async def test_restores_conversations_and_settings(self, settings):
        stored = ConversationStore([Conversation.start("1", "hello", 5)])
        backend = InMemoryBackend({
            CONVERSATIONS_KEY: stored.to_json(),
            SETTINGS_KEY: settings.to_storage(),
        })

        state = await load(backend)

        assert state.conversations.get("1").title == "hello"
        assert state.settings == settings
        assert state.active_id is None

    @pytest.mark.asyncio
    async def test_unreadable_conversations_start_empty(self):
        state = await load(InMemoryBackend({CONVERSATIONS_KEY: "{broken"}))
        assert len(state.conversations) == 0

    @pytest.mark.asyncio
    async def test_unreadable_settings_are_deleted(self):
        backend = InMemoryBackend({SETTINGS_KEY: "[1, 2]"})
        state = await load(backend)
        assert state.settings.is_empty
        assert SETTINGS_KEY not in backend.values

    @pytest.mark.asyncio
    async def test_legacy_default_settings_are_purged(self):
        legacy = {"name": "智谱AI", "baseUrl": "https://open.bigmodel.cn/api/paas/v4", "apiKey": "bundled"}
        backend = InMemoryBackend({SETTINGS_KEY: json.dumps(legacy, ensure_ascii=False)})

        state = await load(backend)

        assert state.settings.is_empty
        assert SETTINGS_KEY not in backend.values

    @pytest.mark.asyncio
    async def test_default_api_key_is_not_written_back(self, backend):
        state = await load(backend, default_api_key="env-key")
        assert state.settings.api_key == "env-key"
        assert SETTINGS_KEY not in backend.values


class TestSaveOnChange:
    """Tests for the save rules applied by the change listener."""

    @pytest.mark.asyncio
    async def test_conversation_changes_are_saved(self, backend):
        state = await load(backend)
        await state.put_conversation(Conversation.start("1", "hello", 5))

        saved = ConversationStore.from_json(backend.values[CONVERSATIONS_KEY])
        assert saved.get("1").title == "hello"

    @pytest.mark.asyncio
    async def test_rename_is_saved(self, backend):
        state = await load(backend)
        await state.put_conversation(Conversation.start("1", "hello", 5))
        await state.rename_conversation("1", "Greeting")

        saved = ConversationStore.from_json(backend.values[CONVERSATIONS_KEY])
        assert saved.get("1").title == "Greeting"

    @pytest.mark.asyncio
    async def test_deleting_last_conversation_writes_empty_list(self, backend):
        state = await load(backend)
        await state.put_conversation(Conversation.start("1", "hello", 5))
        await state.remove_conversation("1")

        assert json.loads(backend.values[CONVERSATIONS_KEY]) == []

        reloaded = await load(backend)
        assert len(reloaded.conversations) == 0

    @pytest.mark.asyncio
    async def test_settings_are_saved_when_not_empty(self, backend, settings):
        state = await load(backend)
        await state.set_settings(settings)
        assert ModelSettings.from_storage(backend.values[SETTINGS_KEY]) == settings

    @pytest.mark.asyncio
    async def test_empty_settings_never_overwrite_saved_ones(self, settings):
        backend = InMemoryBackend({SETTINGS_KEY: settings.to_storage()})
        state = await load(backend)
        await state.set_settings(ModelSettings())
        assert ModelSettings.from_storage(backend.values[SETTINGS_KEY]) == settings

    @pytest.mark.asyncio
    async def test_transient_changes_are_not_saved(self, backend):
        state = await load(backend)
        await state.set_loading(True)
        await state.set_messages([])
        assert backend.values == {}

    @pytest.mark.asyncio
    async def test_debug_callback_reports_component(self, backend):
        logs = []
        persistence = StatePersistence(backend)
        persistence.set_debug_callback(lambda level, component, message: logs.append(component))
        await persistence.load()
        assert logs and set(logs) == {"Memory"}
