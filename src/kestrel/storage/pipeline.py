# =============================================================================
# Filter / Sort Pipeline
# =============================================================================
# Pure transformation from (messages, folder, search, filter, sort) to the
# ordered visible list:
#
#   1. Folder selection   - virtual views select by flag, others by folder
#   2. Free-text search   - case-insensitive substring over subject, body,
#                           sender address and sender name
#   3. Structured filter  - every active predicate must hold (AND)
#   4. Stable sort        - ties keep their relative order from step 3
#
# Nothing here mutates its input, and running the pipeline over its own
# output with the same arguments returns the same list.
# =============================================================================

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable

from kestrel.core import FolderType, Message


class SortField(Enum):
    """Fields the visible list can be ordered by."""
    DATE = "date"
    SUBJECT = "subject"
    SENDER = "sender"
    SIZE = "size"
    IMPORTANCE = "importance"


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """
    How to order the visible list.

    Defaults to newest first.
    """
    by: SortField = SortField.DATE
    order: SortOrder = SortOrder.DESC

    @classmethod
    def parse(cls, field_name: str, order: str = "desc") -> "SortSpec":
        """Build a SortSpec from config strings ("date", "desc")."""
        return cls(SortField(field_name), SortOrder(order))


@dataclass(frozen=True)
class MessageFilter:
    """
    Structured filter. A None (or empty) field is inactive.

    Attributes:
        is_read: Keep only read (True) or unread (False) messages.
        is_starred: Keep only starred / unstarred messages.
        is_important: Keep only important / unimportant messages.
        is_flagged: Keep only flagged / unflagged messages.
        has_attachments: Keep only messages with / without attachments.
        date_from: Keep messages sent at or after this time.
        date_to: Keep messages sent at or before this time.
        size_min: Keep messages of at least this many bytes.
        size_max: Keep messages of at most this many bytes.
        labels: Keep messages holding at least one of these label ids.
    """
    is_read: bool | None = None
    is_starred: bool | None = None
    is_important: bool | None = None
    is_flagged: bool | None = None
    has_attachments: bool | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    size_min: int | None = None
    size_max: int | None = None
    labels: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.labels and all(
            getattr(self, f.name) is None for f in fields(self) if f.name != "labels"
        )

    def merge(self, **changes: Any) -> "MessageFilter":
        """
        Return a copy with `changes` applied on top of this filter.

        Raises:
            TypeError: If a change names an unknown field.
        """
        if "labels" in changes and changes["labels"] is not None:
            changes["labels"] = frozenset(changes["labels"])
        elif "labels" in changes:
            changes["labels"] = frozenset()
        return replace(self, **changes)

    def matches(self, message: Message) -> bool:
        """True if every active predicate holds for `message`."""
        checks: list[tuple[bool | None, bool]] = [
            (self.is_read, message.is_read),
            (self.is_starred, message.is_starred),
            (self.is_important, message.is_important),
            (self.is_flagged, message.is_flagged),
            (self.has_attachments, message.has_attachments),
        ]
        for wanted, actual in checks:
            if wanted is not None and wanted != actual:
                return False

        if self.date_from is not None or self.date_to is not None:
            if message.date is None:
                return False
            if self.date_from is not None and message.date < self.date_from:
                return False
            if self.date_to is not None and message.date > self.date_to:
                return False

        if self.size_min is not None and message.size < self.size_min:
            return False
        if self.size_max is not None and message.size > self.size_max:
            return False

        if self.labels and self.labels.isdisjoint(message.labels):
            return False

        return True


# =============================================================================
# Pipeline stages
# =============================================================================

def in_folder(message: Message, folder_id: str) -> bool:
    """
    Folder membership, with virtual views resolved by flag.

    "all" is every message that is not soft-deleted; "starred" and
    "important" exclude soft-deleted messages as well.
    """
    if folder_id == FolderType.ALL.value:
        return not message.is_deleted
    if folder_id == FolderType.STARRED.value:
        return message.is_starred and not message.is_deleted
    if folder_id == FolderType.IMPORTANT.value:
        return message.is_important and not message.is_deleted
    return message.folder == folder_id


def select_folder(messages: Iterable[Message], folder_id: str) -> list[Message]:
    return [m for m in messages if in_folder(m, folder_id)]


def matches_search(message: Message, term: str) -> bool:
    """Case-insensitive substring match over subject, body and sender."""
    needle = term.casefold()
    haystacks = (
        message.subject,
        message.body,
        message.sender.email,
        message.sender.name,
    )
    return any(needle in (text or "").casefold() for text in haystacks)


def search_messages(messages: Iterable[Message], term: str) -> list[Message]:
    term = term.strip()
    if not term:
        return list(messages)
    return [m for m in messages if matches_search(m, term)]


def filter_messages(messages: Iterable[Message], message_filter: MessageFilter) -> list[Message]:
    return [m for m in messages if message_filter.matches(m)]


def _sort_key(by: SortField) -> Callable[[Message], Any]:
    if by == SortField.DATE:
        return lambda m: m.date.timestamp() if m.date else float("-inf")
    if by == SortField.SUBJECT:
        return lambda m: m.subject.casefold()
    if by == SortField.SENDER:
        return lambda m: m.sender.display.casefold()
    if by == SortField.SIZE:
        return lambda m: m.size
    return lambda m: m.is_important


def sort_messages(messages: Iterable[Message], sort: SortSpec) -> list[Message]:
    """
    Stable sort. `sorted(reverse=True)` keeps equal keys in input order, so
    descending sorts are stable too.
    """
    return sorted(
        messages,
        key=_sort_key(sort.by),
        reverse=sort.order == SortOrder.DESC,
    )


def apply_pipeline(
    messages: Iterable[Message],
    folder_id: str,
    search: str = "",
    message_filter: MessageFilter | None = None,
    sort: SortSpec | None = None,
) -> list[Message]:
    """
    Derive the visible list.

    Args:
        messages: Every message of one account (or an already-visible list).
        folder_id: Folder or virtual view to show.
        search: Free-text search term ("" = no search).
        message_filter: Structured filter (None = no filter).
        sort: Sort specification (None = newest first).

    Returns:
        A new list; the input is left untouched.
    """
    result = select_folder(messages, folder_id)
    result = search_messages(result, search)
    if message_filter is not None and not message_filter.is_empty:
        result = filter_messages(result, message_filter)
    return sort_messages(result, sort or SortSpec())
