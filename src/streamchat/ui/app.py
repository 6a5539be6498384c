"""Main Textual TUI application.

Orchestrates the UI components and routes user interaction to the
ChatSessionController. Rendering is driven by ChatState change
notifications, so the widgets always reflect the state container.
"""

import asyncio
from typing import Any

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header

from ..session import ChatSessionController, ChatState, StateChange, StatePersistence
from ..session.controller import ProviderFactory
from ..settings import ModelSettings
from .config import NOTIFY_ERROR, NOTIFY_SHORT, LogLevel
from .screens import ConfirmationScreen, ModelSettingsScreen, RenameScreen
from .styles import APP_CSS
from .themes import CATPPUCCIN_MOCHA
from .widgets import (
    ChatHistoryWidget,
    ChatInputBar,
    ConversationSidebar,
    DebugPanel,
    ErrorBanner,
    copy_text,
)


class StreamChatApp(App):
    """Textual TUI for streaming chat against an OpenAI-compatible endpoint."""

    CSS = APP_CSS
    TITLE = "StreamChat"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+n", "new_conversation", "New"),
        Binding("ctrl+s", "open_settings", "Settings"),
        Binding("ctrl+e", "rename_conversation", "Rename"),
        Binding("ctrl+x", "delete_conversation", "Delete"),
        Binding("ctrl+r", "copy_last_response", "Copy Response"),
        Binding("ctrl+b", "toggle_sidebar", "Sidebar"),
        Binding("ctrl+d", "toggle_debug", "Debug"),
    ]

    def __init__(
        self,
        state: ChatState,
        persistence: StatePersistence | None = None,
        provider_factory: ProviderFactory | None = None,
        log_level: str | None = None,
        memory_backend: str = "sqlite",
    ) -> None:
        super().__init__()
        self._state = state
        self._persistence = persistence
        self._controller = ChatSessionController(state, provider_factory=provider_factory)
        self._log_level = log_level
        self._memory_backend = memory_backend
        self._sidebar_signature: tuple | None = None

    @property
    def controller(self) -> ChatSessionController:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        yield ConversationSidebar(id="sidebar")

        with Vertical(id="main"):
            yield ErrorBanner(id="error-banner")
            yield ChatHistoryWidget(id="chat-history")
            yield DebugPanel(id="debug-panel")
            yield ChatInputBar(id="chat-input-bar")

        yield Footer()

    def on_mount(self) -> None:
        """Called when app is mounted."""
        self.register_theme(CATPPUCCIN_MOCHA)
        self.theme = "catppuccin-mocha"

        log_panel = self.query_one("#debug-panel", DebugPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()
            log_panel.info("TUI", f"Log panel enabled with level: {self._log_level.upper()}")

        self._controller.set_debug_callback(self._debug_callback)
        if self._persistence is not None:
            self._persistence.set_debug_callback(self._debug_callback)

        chat = self.query_one("#chat-history", ChatHistoryWidget)
        self._controller.set_scroll_callback(lambda: chat.scroll_end(animate=False))
        self._state.add_listener(self._on_state_change)

        self._update_subtitle()
        self._render_sidebar()
        chat.show_messages(self._state.messages)
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

        if not self._state.settings.is_complete:
            self.notify("Configure the model settings to start chatting", timeout=NOTIFY_ERROR)
            self.action_open_settings()

    def on_unmount(self) -> None:
        self._state.remove_listener(self._on_state_change)
        if self._persistence is not None:
            self._persistence.set_debug_callback(None)

    def _debug_callback(self, level: str, component: str, message: str) -> None:
        """Route debug messages to the log panel."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        if level == "debug":
            log_panel.debug(component, message)
        elif level == "info":
            log_panel.info(component, message)
        elif level == "warning":
            log_panel.warning(component, message)
        elif level == "error":
            log_panel.error(component, message)

    def _on_state_change(self, change: StateChange, state: ChatState) -> None:
        """Re-render whatever part of the screen the change touched."""
        if change in (StateChange.ACTIVE, StateChange.MESSAGES):
            conversation = state.active_conversation
            self.query_one("#chat-history", ChatHistoryWidget).show_messages(
                state.messages, conversation.title if conversation else None
            )
        if change in (
            StateChange.ACTIVE,
            StateChange.CONVERSATIONS,
            StateChange.CONVERSATION_REMOVED,
        ):
            self._render_sidebar()
        elif change is StateChange.LOADING:
            input_bar = self.query_one("#chat-input-bar", ChatInputBar)
            if state.is_loading:
                input_bar.accept_submitted()
            input_bar.set_enabled(not state.is_loading)
            self.query_one("#chat-history", ChatHistoryWidget).set_streaming(state.is_loading)
        elif change is StateChange.ERROR:
            banner = self.query_one("#error-banner", ErrorBanner)
            if state.error is None:
                banner.clear()
            else:
                banner.show_error(str(state.error))
        elif change is StateChange.SETTINGS:
            self._update_subtitle()

    def _render_sidebar(self) -> None:
        groups = self._state.conversations.grouped()
        signature = (
            self._state.active_id,
            tuple(
                (label, tuple((c.id, c.title) for c in items))
                for label, items in groups.sections()
            ),
        )
        # Streaming deltas touch the store on every chunk; skip identical lists.
        if signature == self._sidebar_signature:
            return
        self._sidebar_signature = signature
        self.query_one("#sidebar", ConversationSidebar).show_conversations(
            groups, self._state.active_id
        )

    def _update_subtitle(self) -> None:
        settings = self._state.settings
        model = settings.name or "not configured"
        self.sub_title = f"{model} | {self._memory_backend}"

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        if self._controller.is_sending:
            self.notify("Wait for the current answer to finish", severity="warning", timeout=NOTIFY_SHORT)
            return
        self._send(event.value)

    @work(group="send")
    async def _send(self, text: str) -> None:
        """Stream the answer as a background async worker."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        log_panel.info("TUI", f"Sending: '{text[:50]}'")
        try:
            completed = await self._controller.send(text)
        except asyncio.CancelledError:
            self.notify("Cancelled", severity="warning", timeout=NOTIFY_SHORT)
            raise
        except Exception as e:
            log_panel.error("TUI", f"Exception: {e}")
            self.notify(f"Error: {str(e)[:50]}", severity="error", timeout=NOTIFY_ERROR)
            return
        if completed:
            log_panel.info("TUI", "Answer complete")

    def on_conversation_sidebar_selected(self, event: ConversationSidebar.Selected) -> None:
        self._run_controller(self._controller.select_conversation(event.conversation_id))
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def on_conversation_sidebar_new_requested(self, event: ConversationSidebar.NewRequested) -> None:
        self.action_new_conversation()

    def on_error_banner_dismissed(self, event: ErrorBanner.Dismissed) -> None:
        self._run_controller(self._controller.dismiss_error())

    @work(group="state")
    async def _run_controller(self, operation: Any) -> None:
        """Await a controller coroutine outside the message handler."""
        await operation

    def _target_conversation_id(self) -> str | None:
        """Highlighted sidebar entry when the sidebar has focus, else the active one."""
        highlighted = self.query_one("#sidebar", ConversationSidebar).highlighted_id()
        return highlighted or self._state.active_id

    def action_new_conversation(self) -> None:
        """Start a fresh conversation."""
        self._run_controller(self._controller.create_new_conversation())
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def action_open_settings(self) -> None:
        """Open the model settings dialog."""

        def apply(settings: ModelSettings | None) -> None:
            if settings is None:
                return
            self._run_controller(self._controller.update_settings(settings))
            self.notify("Settings saved", timeout=NOTIFY_SHORT)

        self.push_screen(
            ModelSettingsScreen(self._state.settings, self._controller.test_connection),
            apply,
        )

    def action_rename_conversation(self) -> None:
        """Rename the targeted conversation."""
        conversation_id = self._target_conversation_id()
        conversation = self._state.conversations.get(conversation_id) if conversation_id else None
        if conversation is None:
            self.notify("No conversation to rename", severity="warning", timeout=NOTIFY_SHORT)
            return

        def apply(title: str | None) -> None:
            if title:
                self._run_controller(self._controller.rename_conversation(conversation.id, title))

        self.push_screen(RenameScreen(conversation.title), apply)

    def action_delete_conversation(self) -> None:
        """Delete the targeted conversation after confirmation."""
        conversation_id = self._target_conversation_id()
        conversation = self._state.conversations.get(conversation_id) if conversation_id else None
        if conversation is None:
            self.notify("No conversation to delete", severity="warning", timeout=NOTIFY_SHORT)
            return

        def apply(confirmed: bool | None) -> None:
            if confirmed:
                self._run_controller(self._controller.delete_conversation(conversation.id))
                self.notify("Conversation deleted", timeout=NOTIFY_SHORT)

        self.push_screen(
            ConfirmationScreen(
                f"Delete \"{conversation.title}\"? This cannot be undone.",
                title="Delete conversation",
                confirm_label="Delete",
            ),
            apply,
        )

    def action_copy_last_response(self) -> None:
        """Copy last assistant response to clipboard."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        response = chat.get_last_response()
        if response:
            copy_text(self, response, "Response copied")
        else:
            self.notify("No response to copy", severity="warning", timeout=NOTIFY_SHORT)

    def action_toggle_sidebar(self) -> None:
        self.query_one("#sidebar", ConversationSidebar).toggle_class("-hidden")

    def action_toggle_debug(self) -> None:
        """Toggle the log panel visibility."""
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=NOTIFY_SHORT)


async def run_textual_tui(
    persistence: StatePersistence,
    log_level: str | None = None,
    memory_backend: str = "sqlite",
    provider_factory: ProviderFactory | None = None,
) -> None:
    """Run the Textual TUI.

    Loads the chat state from `persistence`, saves it on every change while
    the app runs and disconnects the backend on exit.

    Args:
        persistence: Storage synchronizer (not yet connected)
        log_level: Log level for panel (debug/info/warning/error), None to hide
        memory_backend: Backend name shown in the subtitle
        provider_factory: Override for building providers from settings
    """
    await persistence.connect()
    try:
        state = await persistence.load()
        state.add_listener(persistence)
        app = StreamChatApp(
            state=state,
            persistence=persistence,
            provider_factory=provider_factory,
            log_level=log_level,
            memory_backend=memory_backend,
        )
        try:
            await app.run_async()
        except (KeyboardInterrupt, asyncio.CancelledError):
            pass
    finally:
        await persistence.disconnect()
