"""Text formatting utilities for the TUI.

Hides the details of how assistant answers are tidied for display
and how timestamps are shown.
"""

import re
from datetime import datetime

from .config import MESSAGE_TIMESTAMP_FORMAT, SIDEBAR_TITLE_WIDTH

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def format_assistant_content(content: str) -> str:
    """Collapse runs of blank lines and trim surrounding whitespace.

    Three or more consecutive newlines become a single blank line.
    The stored message is untouched; this only affects display and copy.
    """
    if not content:
        return ""
    return _EXCESS_NEWLINES.sub("\n\n", content).strip()


def format_timestamp(timestamp_ms: int) -> str:
    """Render epoch milliseconds as local wall-clock time."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(MESSAGE_TIMESTAMP_FORMAT)


def sidebar_label(title: str, width: int = SIDEBAR_TITLE_WIDTH) -> str:
    """Single-line sidebar label, shortened with an ellipsis when too wide."""
    label = " ".join(title.split())
    if len(label) > width:
        return label[: width - 1] + "…"
    return label
