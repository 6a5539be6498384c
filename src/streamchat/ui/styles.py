"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Uses Textual CSS features: nesting, pseudo-classes, variables.
"""

APP_CSS = """
/* ============================================
   Main Screen Layout - Sidebar + Chat Column
   ============================================ */
Screen {
    layout: horizontal;
    background: $background;
}

/* ============================================
   Conversation Sidebar
   ============================================ */
#sidebar {
    width: 32;
    height: 100%;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0;

    &:focus-within {
        border: round $primary;
    }

    &.-hidden {
        display: none;
    }
}

#new-chat-btn {
    width: 100%;
    margin: 0 0 1 0;
}

#conversation-list {
    height: 1fr;
    border: none;
    background: transparent;
    padding: 0;
}

/* ============================================
   Chat Column
   ============================================ */
#main {
    width: 1fr;
    height: 100%;
}

#chat-history {
    height: 1fr;
    background: $panel;
    border: round $secondary 60%;
    border-title-color: $secondary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $secondary;
    }

    &.streaming {
        border: round $warning;
        border-title-color: $warning;
    }
}

.empty-state {
    width: 100%;
    height: auto;
    padding: 2 4;
    color: $text-muted;
    text-align: center;
}

/* ============================================
   Error Banner - Dismissable
   ============================================ */
ErrorBanner {
    height: auto;
    display: none;
    background: $error 15%;
    border: round $error;
    padding: 0 1;

    &.-visible {
        display: block;
    }

    #error-text {
        width: 1fr;
        height: auto;
        color: $foreground;
    }

    #dismiss-error {
        width: 5;
        min-width: 5;
        height: 1;
        border: none;
        background: transparent;
        color: $error;
    }
}

/* ============================================
   Debug/Log Panel
   ============================================ */
#debug-panel {
    height: auto;
    min-height: 6;
    max-height: 12;
    background: $panel;
    border: round $warning 60%;
    border-title-color: $warning;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    overflow-y: scroll;
    scrollbar-gutter: stable;
}

/* ============================================
   Chat Input Bar - Text Entry + Send
   ============================================ */
ChatInputBar {
    height: 5;
    border: round $primary 60%;
    background: $panel;

    &:focus-within {
        border: round $primary;
    }

    &.-disabled {
        border: round $border;
        opacity: 70%;
    }
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: none;
    padding: 0 1;
    background: transparent;
}

#send-btn {
    width: 10;
    height: 100%;
    margin: 0 0 0 1;
    min-width: 8;
    border: tall $success;
    background: $success;
    color: $background;
    text-style: bold;

    &:hover {
        background: $success-lighten-1;
    }

    &:disabled {
        background: $surface;
        border: tall $border;
        color: $text-muted;
    }
}

/* ============================================
   Chat Messages
   ============================================ */
.chat-message {
    width: 100%;
    height: auto;
    margin: 0 0 1 0;
    padding: 1 2;
    background: transparent;
}

.user-message {
    border-left: tall $success;
    background: $success 8%;

    & .message-header {
        color: $success;
        text-style: bold;
    }
}

.assistant-message {
    border-left: tall $secondary;
    background: $secondary 8%;

    & .message-header {
        color: $secondary;
        text-style: bold;
    }
}

.message-header {
    height: auto;
}

.message-content {
    height: auto;
    margin: 0;
    padding: 0;
}

/* ============================================
   Header / Footer / Toasts
   ============================================ */
Header {
    background: $panel;
    color: $foreground;
    height: 1;
}

Footer {
    background: $panel;
}

Toast {
    background: $surface;
    border: tall $border;
    padding: 0 1;

    &.-error {
        border: tall $error;
        background: $error 12%;
    }
}

Markdown {
    margin: 0;
    padding: 0;
}

MarkdownFence {
    background: $panel;
    border: round $border;
    margin: 1 0;
}
"""
