"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Theme variables (borders, scrollbars, etc.)

To add a new theme, define it here and register in the app.
"""

from textual.theme import Theme

# Catppuccin Mocha palette
CATPPUCCIN_MOCHA = Theme(
    name="catppuccin-mocha",
    primary="#89b4fa",      # Blue - sidebar selection, input focus
    secondary="#cba6f7",    # Mauve - assistant messages
    accent="#f9e2af",       # Yellow - dialog titles
    foreground="#cdd6f4",
    background="#11111b",
    success="#a6e3a1",      # Green - user messages, send button
    warning="#fab387",      # Peach - streaming indicator, log panel
    error="#f38ba8",        # Red - error banner, delete confirmation
    surface="#1e1e2e",
    panel="#181825",
    dark=True,
    variables={
        "block-cursor-foreground": "#11111b",
        "block-cursor-background": "#f5e0dc",
        "block-cursor-text-style": "bold",
        "input-cursor-background": "#cdd6f4",
        "input-cursor-foreground": "#11111b",
        "input-selection-background": "#89b4fa 30%",
        "border": "#45475a",
        "border-blurred": "#313244",
        "scrollbar": "#45475a",
        "scrollbar-hover": "#585b70",
        "scrollbar-active": "#89b4fa",
        "footer-key-foreground": "#89b4fa",
        "footer-description-foreground": "#a6adc8",
    },
)
