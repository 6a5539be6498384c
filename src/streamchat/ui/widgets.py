"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Chat message rendering and in-place streaming updates
- Conversation sidebar grouping
- Input affordance and its disabled state
- Error banner and log panel rendering
"""

from datetime import datetime

import pyperclip
from rich.text import Text
from textual.app import App
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message as TextualMessage
from textual.widgets import Button, Markdown, OptionList, RichLog, Static, TextArea
from textual.widgets.option_list import Option, OptionDoesNotExist

from ..memory.models import Message
from ..memory.store import RecencyGroups
from .config import LOG_MAX_MESSAGE_LENGTH, LOG_TIMESTAMP_FORMAT, NOTIFY_SHORT, LogLevel
from .formatting import format_assistant_content, format_timestamp, sidebar_label

WELCOME_TEXT = (
    "Start a new conversation by typing below.\n\n"
    "Ctrl+J or Send submits, Ctrl+S opens model settings, Ctrl+N starts a new chat."
)


def copy_text(app: App, text: str, what: str = "Copied") -> None:
    """Copy to the system clipboard, falling back to the terminal (OSC 52)."""
    try:
        pyperclip.copy(text)
        app.notify(f"{what} to clipboard", timeout=NOTIFY_SHORT)
    except pyperclip.PyperclipException:
        app.copy_to_clipboard(text)
        app.notify(f"{what} (terminal)", timeout=NOTIFY_SHORT)


class MessageView(Vertical):
    """One chat message; clicking it copies the content.

    Assistant content is rendered as Markdown and can be replaced
    wholesale while an answer streams in.
    """

    def __init__(self, message: Message, *args, **kwargs) -> None:
        border_class = "user-message" if message.role == "user" else "assistant-message"
        super().__init__(*args, classes=f"chat-message {border_class}", **kwargs)
        self._message = message
        self._rendered = message.content

        if message.role == "user":
            header = f"> You [{format_timestamp(message.timestamp)}]"
            self._body: Static | Markdown = Static(
                Text(message.content), classes="message-content"
            )
        else:
            header = f"< Assistant [{format_timestamp(message.timestamp)}]"
            self._body = Markdown(
                format_assistant_content(message.content) or "…",
                classes="message-content",
            )
        self.compose_add_child(Static(header, classes="message-header"))
        self.compose_add_child(self._body)

    @property
    def message(self) -> Message:
        return self._message

    def on_mount(self) -> None:
        if self._rendered != self._message.content:
            self._render_body()

    def set_message(self, message: Message) -> None:
        """Replace the displayed content (streaming update)."""
        self._message = message
        if self.is_mounted:
            self._render_body()

    def _render_body(self) -> None:
        content = self._message.content
        if isinstance(self._body, Markdown):
            self._body.update(format_assistant_content(content) or "…")
        else:
            self._body.update(Text(content))
        self._rendered = content

    def on_click(self, event: Click) -> None:
        event.stop()
        text = self._message.content
        if self._message.role == "assistant":
            text = format_assistant_content(text)
        copy_text(self.app, text)


class ChatHistoryWidget(VerticalScroll):
    """Scrollable message list for the active conversation."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "New conversation"
    ALLOW_SELECT = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._messages: list[Message] = []
        self._views: list[MessageView] = []

    def show_messages(self, messages: list[Message], title: str | None = None) -> None:
        """Display `messages`, updating in place when only the tail changed."""
        self.border_subtitle = title or "New conversation"
        previous = self._messages
        self._messages = list(messages)

        if self._extends(previous, messages):
            shared = len(previous)
            if messages[shared - 1] != previous[shared - 1]:
                self._views[shared - 1].set_message(messages[shared - 1])
            for message in messages[shared:]:
                self._mount_message(message)
            return

        self.remove_children()
        self._views = []
        if not messages:
            self._show_empty_state()
            return
        for message in messages:
            self._mount_message(message)

    @staticmethod
    def _extends(previous: list[Message], messages: list[Message]) -> bool:
        """True if `messages` continues `previous`, allowing the last one to grow."""
        if not previous or len(messages) < len(previous):
            return False
        last = len(previous) - 1
        if messages[:last] != previous[:last]:
            return False
        return (
            messages[last].role == previous[last].role
            and messages[last].timestamp == previous[last].timestamp
        )

    def _mount_message(self, message: Message) -> None:
        view = MessageView(message)
        self._views.append(view)
        self.mount(view)

    def _show_empty_state(self) -> None:
        if not self._messages:
            self.mount(Static(WELCOME_TEXT, classes="empty-state"))

    def set_streaming(self, streaming: bool) -> None:
        self.set_class(streaming, "streaming")
        self.border_title = "Chat (streaming…)" if streaming else "Chat"

    def get_last_response(self) -> str | None:
        """Get the last assistant response, tidied for copying."""
        for message in reversed(self._messages):
            if message.role == "assistant" and message.content:
                return format_assistant_content(message.content)
        return None


class ConversationSidebar(Vertical):
    """Conversation list grouped into Today / Past 7 days / Older."""

    BORDER_TITLE = "Conversations"

    class Selected(TextualMessage):
        """Posted when the user picks a conversation."""

        def __init__(self, conversation_id: str) -> None:
            super().__init__()
            self.conversation_id = conversation_id

    class NewRequested(TextualMessage):
        """Posted when the user asks for a new conversation."""

    def compose(self):
        yield Button("+ New chat", id="new-chat-btn", variant="primary")
        yield OptionList(id="conversation-list")

    def show_conversations(self, groups: RecencyGroups, active_id: str | None) -> None:
        """Rebuild the list from freshly computed recency groups."""
        option_list = self.query_one("#conversation-list", OptionList)
        option_list.clear_options()

        options: list[Option] = []
        count = 0
        for label, conversations in groups.sections():
            options.append(Option(Text(label, style="bold dim"), disabled=True))
            for conversation in conversations:
                options.append(Option(sidebar_label(conversation.title), id=conversation.id))
                count += 1
        option_list.add_options(options)
        self.border_subtitle = f"{count}"

        if active_id is not None:
            try:
                option_list.highlighted = option_list.get_option_index(active_id)
            except OptionDoesNotExist:
                pass

    def highlighted_id(self) -> str | None:
        """Id of the highlighted conversation, if the list has focus."""
        option_list = self.query_one("#conversation-list", OptionList)
        if not option_list.has_focus or option_list.highlighted is None:
            return None
        return option_list.get_option_at_index(option_list.highlighted).id

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        if event.option.id is not None:
            self.post_message(self.Selected(event.option.id))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "new-chat-btn":
            event.stop()
            self.post_message(self.NewRequested())


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button.

    The bar does not clear itself on submit; the app clears it once a send
    has actually started, so rejected input stays editable.
    """

    class Submitted(TextualMessage):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Submit message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.highlight_cursor_line = False
        text_area.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            event.stop()
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals (terminal doesn't pass
        ctrl/shift modifiers with Enter). Use ctrl+j as the submit shortcut.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        if self.has_class("-disabled"):
            return
        value = self.query_one("#chat-input", TextArea).text.strip()
        if value:
            self.post_message(self.Submitted(value))

    def accept_submitted(self) -> None:
        """Record the current text in history and clear the input."""
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if value and (not self._history or self._history[-1] != value):
            self._history.append(value)
        self._history_index = -1
        text_area.text = ""

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable the input affordance (disabled while sending)."""
        self.set_class(not enabled, "-disabled")
        self.query_one("#send-btn", Button).disabled = not enabled
        self.query_one("#chat-input", TextArea).read_only = not enabled

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class ErrorBanner(Horizontal):
    """Dismissable banner showing the error of the last send."""

    class Dismissed(TextualMessage):
        """Posted when the user closes the banner."""

    def compose(self):
        yield Static("", id="error-text")
        yield Button("✕", id="dismiss-error")

    def show_error(self, message: str) -> None:
        self.query_one("#error-text", Static).update(Text(message))
        self.add_class("-visible")

    def clear(self) -> None:
        self.query_one("#error-text", Static).update("")
        self.remove_class("-visible")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "dismiss-error":
            event.stop()
            self.post_message(self.Dismissed())


class DebugPanel(RichLog):
    """Log panel for real-time tracing with level filtering.

    Shows timestamped log messages from all components.
    Supports standard log levels: DEBUG < INFO < WARNING < ERROR.
    Hidden by default, shown with --log-level flag or toggled with Ctrl+D.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Trace log"

    _LEVEL_COLORS = {
        LogLevel.DEBUG: "dim white",
        LogLevel.INFO: "cyan",
        LogLevel.WARNING: "yellow",
        LogLevel.ERROR: "red",
    }

    _COMPONENT_COLORS = {
        "TUI": "cyan",
        "Session": "green",
        "LLM": "magenta",
        "Memory": "bright_green",
    }

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        """Current log level threshold."""
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hide by default."""
        self.display = False

    def log(
        self,
        component: str,
        message: str,
        level: int = LogLevel.DEBUG
    ) -> None:
        """Add a log entry if it meets the current level threshold.

        Args:
            component: Component name (TUI, Session, LLM, Memory)
            message: Log message
            level: Log level (LogLevel.DEBUG, INFO, WARNING, ERROR)
        """
        if level < self._log_level:
            return

        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "…"

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_color = self._LEVEL_COLORS.get(level, "white")
        comp_color = self._COMPONENT_COLORS.get(component, "white")

        line = Text()
        line.append(f"{timestamp} ", style="dim")
        line.append(f"{LogLevel.name(level):<5} ", style=level_color)
        line.append(f"[{component}] ", style=comp_color)
        line.append(message)
        self.write(line)

    def debug(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.DEBUG)

    def info(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.INFO)

    def warning(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.WARNING)

    def error(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.ERROR)

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self.border_subtitle = "Hidden"

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True

    def get_plain_text(self) -> str:
        """Get plain text content of the log for copying."""
        return "\n".join(line.text for line in self.lines)

    def on_click(self, event: Click) -> None:
        """Copy log content to clipboard when clicked."""
        event.stop()
        text = self.get_plain_text()
        if not text.strip():
            self.app.notify("Log is empty", timeout=NOTIFY_SHORT)
            return
        copy_text(self.app, text, "Log copied")
