# =============================================================================
# Thread Projection
# =============================================================================
# A thread is the set of messages sharing a thread_id, ordered by send time.
# It is a read-only projection built from the store's messages; nothing is
# stored on it.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime

from kestrel.core.message import Contact, Message


@dataclass
class Thread:
    """
    A conversation.

    Attributes:
        id: The shared thread_id.
        messages: Member messages, oldest first.
    """
    id: str
    messages: list[Message] = field(default_factory=list)

    @classmethod
    def from_messages(cls, thread_id: str, messages: list[Message]) -> "Thread":
        # Undated first; timestamps so naive and aware dates never meet
        ordered = sorted(
            messages,
            key=lambda m: (m.date is not None, m.date.timestamp() if m.date else 0.0),
        )
        return cls(id=thread_id, messages=ordered)

    @property
    def message_ids(self) -> list[str]:
        return [m.id for m in self.messages]

    @property
    def subject(self) -> str:
        return self.messages[0].subject if self.messages else ""

    @property
    def participants(self) -> list[Contact]:
        """Everyone on the thread, first-seen order, one entry per address."""
        seen: dict[str, Contact] = {}
        for message in self.messages:
            for contact in [message.sender, *message.to, *message.cc]:
                seen.setdefault(contact.email.lower(), contact)
        return list(seen.values())

    @property
    def first_date(self) -> datetime | None:
        return self.messages[0].date if self.messages else None

    @property
    def last_date(self) -> datetime | None:
        return self.messages[-1].date if self.messages else None

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self.messages if not m.is_read)

    @property
    def total_count(self) -> int:
        return len(self.messages)

    @property
    def has_attachments(self) -> bool:
        return any(m.has_attachments for m in self.messages)

    @property
    def is_starred(self) -> bool:
        return any(m.is_starred for m in self.messages)

    @property
    def is_important(self) -> bool:
        return any(m.is_important for m in self.messages)

    @property
    def preview(self) -> str:
        return self.messages[-1].preview if self.messages else ""
