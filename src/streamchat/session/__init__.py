"""Chat session module for streamchat.

- state.py: the process-wide state container and its change hook
- persistence.py: loading state at startup and saving it on change
- controller.py: the send flow and conversation management operations
"""

from .controller import ChatSessionController, ConnectionTestResult
from .persistence import CONVERSATIONS_KEY, SETTINGS_KEY, StatePersistence
from .state import ChatState, StateChange

__all__ = [
    "CONVERSATIONS_KEY",
    "SETTINGS_KEY",
    "ChatSessionController",
    "ChatState",
    "ConnectionTestResult",
    "StateChange",
    "StatePersistence",
]
