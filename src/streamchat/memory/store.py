"""In-memory conversation collection.

Hides how conversations are indexed, ordered and (de)serialized. The
store is a mapping from id to Conversation; callers see it as a list
sorted by most recent update.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from pydantic import TypeAdapter

from .models import Conversation

_CONVERSATION_LIST = TypeAdapter(list[Conversation])


@dataclass
class RecencyGroups:
    """Conversations bucketed for the sidebar, each bucket newest first."""

    today: list[Conversation] = field(default_factory=list)
    past_week: list[Conversation] = field(default_factory=list)
    older: list[Conversation] = field(default_factory=list)

    def sections(self) -> list[tuple[str, list[Conversation]]]:
        """Non-empty buckets paired with their display labels."""
        labelled = [
            ("Today", self.today),
            ("Past 7 days", self.past_week),
            ("Older", self.older),
        ]
        return [(label, items) for label, items in labelled if items]


def group_by_recency(
    conversations: list[Conversation],
    now: datetime | None = None,
) -> RecencyGroups:
    """Bucket conversations by last update relative to the local day.

    "Today" starts at local midnight; "past week" covers the seven days
    before that; everything earlier is "older". Computed fresh on every
    call and never stored.

    Args:
        conversations: Conversations in display order
        now: Reference time (local, naive); defaults to the current time

    Returns:
        RecencyGroups preserving the input order within each bucket
    """
    now = now or datetime.now()
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    today_ms = int(start_of_today.timestamp() * 1000)
    week_ms = int((start_of_today - timedelta(days=7)).timestamp() * 1000)

    groups = RecencyGroups()
    for conversation in conversations:
        if conversation.timestamp >= today_ms:
            groups.today.append(conversation)
        elif conversation.timestamp >= week_ms:
            groups.past_week.append(conversation)
        else:
            groups.older.append(conversation)
    return groups


class ConversationStore:
    """Conversations keyed by id, listed by recency of last update.

    Example:
        store = ConversationStore()
        conversation = Conversation.start(store.new_id(now_ms()), "hello", now_ms())
        store.upsert(conversation)
        store.ordered()[0].title  # "hello"
    """

    def __init__(self, conversations: list[Conversation] | None = None) -> None:
        self._conversations: dict[str, Conversation] = {}
        for conversation in conversations or []:
            self._conversations[conversation.id] = conversation

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    def get(self, conversation_id: str) -> Conversation | None:
        """Look up a conversation; None if the id is unknown."""
        return self._conversations.get(conversation_id)

    def new_id(self, timestamp: int) -> str:
        """An unused id derived from a creation time in epoch milliseconds."""
        candidate = timestamp
        while str(candidate) in self._conversations:
            candidate += 1
        return str(candidate)

    def upsert(self, conversation: Conversation) -> None:
        """Insert a conversation or replace the entry with the same id."""
        self._conversations[conversation.id] = conversation

    def remove(self, conversation_id: str) -> bool:
        """Delete a conversation. Returns False if the id was unknown."""
        return self._conversations.pop(conversation_id, None) is not None

    def rename(self, conversation_id: str, title: str) -> bool:
        """Replace a conversation's title. Returns False if the id was unknown."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return False
        self._conversations[conversation_id] = conversation.renamed(title)
        return True

    def ordered(self) -> list[Conversation]:
        """All conversations, most recently updated first."""
        return sorted(
            self._conversations.values(),
            key=lambda conversation: conversation.timestamp,
            reverse=True,
        )

    def grouped(self, now: datetime | None = None) -> RecencyGroups:
        """Ordered conversations bucketed into today / past week / older."""
        return group_by_recency(self.ordered(), now=now)

    def to_json(self) -> str:
        """Serialize as a JSON array with the persisted field names."""
        return _CONVERSATION_LIST.dump_json(self.ordered(), by_alias=True).decode("utf-8")

    @classmethod
    def from_json(cls, raw: str) -> "ConversationStore":
        """Rebuild a store from a persisted JSON array.

        Raises:
            pydantic.ValidationError: If the data is not a conversation list
        """
        return cls(_CONVERSATION_LIST.validate_json(raw))
