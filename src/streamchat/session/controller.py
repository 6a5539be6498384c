"""Chat session orchestration.

Hides the send flow: creating conversations lazily, building the request
history, driving the streamed deltas into the active message list, and
deciding what is kept when a request fails.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..llm import ChatMessage, LLMProvider, provider_from_settings
from ..llm.errors import ChatClientError, ConfigurationMissing, InvalidEndpoint
from ..memory.models import Conversation, Message, now_ms
from ..settings import ModelSettings, validate_base_url
from .state import ChatState

CONNECTION_TEST_PROMPT = "Hello, this is a connection test"
CONNECTION_TEST_MAX_TOKENS = 10

ProviderFactory = Callable[[ModelSettings], LLMProvider]


@dataclass
class ConnectionTestResult:
    """Outcome of a settings connection test."""

    success: bool
    message: str
    elapsed_ms: int | None = None


class ChatSessionController:
    """Drives a chat session against a ChatState.

    At most one completion request is in flight at a time; a send issued
    while another is running is ignored. There is no cancellation: a
    request runs until it completes or fails.

    Example:
        state = ChatState(settings=ModelSettings(name="glm-4-flash", ...))
        controller = ChatSessionController(state)
        await controller.send("hello")
        state.messages[-1].content  # the streamed answer
    """

    def __init__(
        self,
        state: ChatState,
        provider_factory: ProviderFactory | None = None,
        clock: Callable[[], int] = now_ms,
        on_scroll: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            state: State container to read and mutate
            provider_factory: Builds a provider from settings for each request
            clock: Returns the current time in epoch milliseconds
            on_scroll: Called whenever the view should scroll to the latest message
        """
        self._state = state
        self._provider_factory = provider_factory or provider_from_settings
        self._clock = clock
        self._on_scroll = on_scroll
        self._in_flight = False
        self._debug_callback: Any | None = None

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def is_sending(self) -> bool:
        """True while a completion request is in flight."""
        return self._in_flight

    def set_scroll_callback(self, callback: Callable[[], None] | None) -> None:
        self._on_scroll = callback

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for detailed execution logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
                      level: 'debug', 'info', 'warning', 'error'
                      component: Source component name
                      message: Log message

        The callback is propagated to every provider the controller creates.
        """
        self._debug_callback = callback

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "Session", message)

    def _request_scroll(self) -> None:
        if self._on_scroll is not None:
            self._on_scroll()

    def _create_provider(self, settings: ModelSettings) -> LLMProvider:
        provider = self._provider_factory(settings)
        if self._debug_callback:
            provider.set_debug_callback(self._debug_callback)
        return provider

    async def send(self, text: str) -> bool:
        """Send a user prompt and stream the answer into the active conversation.

        Whitespace-only input and sends while a request is in flight are
        no-ops. Missing or invalid settings set the state error without any
        network call.

        Args:
            text: Prompt as typed by the user

        Returns:
            True if the answer streamed to completion, False otherwise
        """
        prompt = text.strip()
        if not prompt:
            return False
        if self._in_flight:
            self._debug("warning", "Send ignored: a request is already in flight")
            return False

        settings = self._state.settings
        try:
            settings.require_complete()
            validate_base_url(settings.base_url)
        except (ConfigurationMissing, InvalidEndpoint) as e:
            self._debug("warning", str(e))
            await self._state.set_error(e)
            return False

        self._in_flight = True
        try:
            return await self._stream_answer(prompt, settings)
        finally:
            self._in_flight = False

    async def _stream_answer(self, prompt: str, settings: ModelSettings) -> bool:
        now = self._clock()
        conversation = self._state.active_conversation
        is_new = conversation is None
        if conversation is None:
            conversation = Conversation.start(
                self._state.conversations.new_id(now), prompt, now
            )
            self._debug("info", f"Created conversation {conversation.id}")
            base_messages: list[Message] = []
        else:
            base_messages = self._state.messages

        user_message = Message(role="user", content=prompt, timestamp=now)
        placeholder = Message(role="assistant", content="", timestamp=now)
        history = [*base_messages, user_message]
        conversation_id = conversation.id

        await self._state.set_error(None)
        await self._state.set_loading(True)
        if is_new:
            await self._state.activate(conversation_id, [*history, placeholder])
        else:
            await self._state.set_messages([*history, placeholder])
        await self._state.put_conversation(
            conversation.with_messages([*history, placeholder], now)
        )
        self._request_scroll()

        accumulated = ""
        try:
            request = [ChatMessage(role=msg.role, content=msg.content) for msg in history]
            async with self._create_provider(settings) as provider:
                stream = await provider.chat_completion_stream(request)
                async for delta in stream:
                    accumulated += delta
                    answer = placeholder.model_copy(update={"content": accumulated})
                    await self._apply(conversation_id, [*history, answer])
        except ChatClientError as e:
            self._debug("error", f"Send failed: {e}")
            await self._drop_placeholder(conversation_id, history, placeholder, accumulated)
            await self._state.set_error(e)
            return False
        except BaseException as e:
            self._debug("error", f"Send aborted: {e!r}")
            await self._drop_placeholder(conversation_id, history, placeholder, accumulated)
            raise
        finally:
            await self._state.set_loading(False)

        self._debug("info", f"Answer complete ({len(accumulated)} chars)")
        return True

    async def _drop_placeholder(
        self,
        conversation_id: str,
        history: list[Message],
        placeholder: Message,
        accumulated: str,
    ) -> None:
        """Keep the partial answer if any text arrived, otherwise remove the empty entry."""
        kept = list(history)
        if accumulated:
            kept.append(placeholder.model_copy(update={"content": accumulated}))
        await self._apply(conversation_id, kept)

    async def _apply(self, conversation_id: str, messages: list[Message]) -> None:
        """Mirror a message list into the display and the store entry.

        Display updates are dropped once the user has navigated to another
        conversation; a store entry deleted mid-request is not resurrected.
        """
        if self._state.active_id == conversation_id:
            await self._state.set_messages(messages)

        conversation = self._state.conversations.get(conversation_id)
        if conversation is not None:
            await self._state.put_conversation(
                conversation.with_messages(messages, self._clock())
            )
        self._request_scroll()

    async def select_conversation(self, conversation_id: str) -> bool:
        """Make a stored conversation active. Unknown ids are a no-op."""
        conversation = self._state.conversations.get(conversation_id)
        if conversation is None:
            return False
        await self._state.activate(conversation_id, list(conversation.messages))
        await self._state.set_error(None)
        return True

    async def create_new_conversation(self) -> None:
        """Reset to the "no conversation yet" state; the store is untouched."""
        await self._state.clear_active()
        await self._state.set_error(None)

    async def rename_conversation(self, conversation_id: str, new_title: str) -> bool:
        """Set a conversation's title. Empty or whitespace titles are rejected."""
        title = new_title.strip()
        if not title:
            return False
        return await self._state.rename_conversation(conversation_id, title)

    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation irreversibly.

        Deleting the active conversation also resets to the "no
        conversation yet" state.
        """
        was_active = self._state.active_id == conversation_id
        removed = await self._state.remove_conversation(conversation_id)
        if removed:
            self._debug("info", f"Deleted conversation {conversation_id}")
            if was_active:
                await self.create_new_conversation()
        return removed

    async def update_settings(self, settings: ModelSettings) -> None:
        await self._state.set_settings(settings)

    async def dismiss_error(self) -> None:
        await self._state.set_error(None)

    async def test_connection(self, settings: ModelSettings | None = None) -> ConnectionTestResult:
        """Check that settings reach a working endpoint.

        Sends one canned prompt without streaming and with a small token
        limit. Never raises; every failure is reported in the result.

        Args:
            settings: Settings to test (defaults to the current ones)

        Returns:
            ConnectionTestResult with a message suitable for display
        """
        settings = settings or self._state.settings
        missing = settings.missing_fields()
        if missing:
            return ConnectionTestResult(False, f"Please fill in: {', '.join(missing)}")

        try:
            validate_base_url(settings.base_url)
        except InvalidEndpoint as e:
            return ConnectionTestResult(False, str(e))

        self._debug("info", f"Testing connection to {settings.base_url}")
        started = time.monotonic()
        try:
            async with self._create_provider(settings) as provider:
                await provider.chat_completion(
                    [ChatMessage(role="user", content=CONNECTION_TEST_PROMPT)],
                    max_tokens=CONNECTION_TEST_MAX_TOKENS,
                )
        except ChatClientError as e:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            self._debug("warning", f"Connection test failed: {e}")
            return ConnectionTestResult(False, str(e), elapsed_ms)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        return ConnectionTestResult(
            True,
            f"Connection test succeeded! Model: {settings.name}, elapsed: {elapsed_ms} ms",
            elapsed_ms,
        )
