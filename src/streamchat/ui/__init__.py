"""Terminal UI module for streamchat.

Provides a Textual-based TUI for streaming chat.

Module structure (Parnas principle - each module hides a design decision):
- config.py: UI constants and log levels
- formatting.py: How answers, timestamps and sidebar labels are shown
- widgets.py: Custom widgets (messages, sidebar, input bar, error banner, log)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palettes and theme configuration
- screens.py: Modal dialogs (settings, rename, delete confirmation)
- app.py: Application orchestration (user interaction flow)
"""

from .app import StreamChatApp, run_textual_tui
from .config import LogLevel
from .widgets import (
    ChatHistoryWidget,
    ChatInputBar,
    ConversationSidebar,
    DebugPanel,
    ErrorBanner,
)

__all__ = [
    "ChatHistoryWidget",
    "ChatInputBar",
    "ConversationSidebar",
    "DebugPanel",
    "ErrorBanner",
    "LogLevel",
    "StreamChatApp",
    "run_textual_tui",
]
