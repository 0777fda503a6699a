# =============================================================================
# Message Model
# =============================================================================
# Represents an email message as held by the MailStore.
#
# A message belongs to exactly one account and exactly one folder at a time.
# "Starred", "important" and "all" are views computed from flags; a message
# is never moved into them.
#
# Boolean state (read, starred, ...) is kept as a bitmask so that toggles are
# a single XOR and the whole state can be compared or copied at once.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntFlag


class MessageFlags(IntFlag):
    """
    Message state flags, stored as a bitmask.

    Usage:
        # Set flags
        msg.flags = MessageFlags.SEEN | MessageFlags.STARRED

        # Check flags
        if msg.flags & MessageFlags.SEEN:
            print("Message has been read")

        # Flip a flag
        msg.flags ^= MessageFlags.IMPORTANT
    """
    NONE = 0
    SEEN = 1 << 0       # Message has been read
    STARRED = 1 << 1    # User star
    FLAGGED = 1 << 2    # Follow-up flag
    IMPORTANT = 1 << 3  # Important marker
    DELETED = 1 << 4    # Soft-deleted (lives in trash)
    DRAFT = 1 << 5      # Is a draft


@dataclass(frozen=True)
class Contact:
    """
    An address with an optional display name.

    Frozen so contacts can be shared between messages and drafts.
    """
    email: str
    name: str = ""

    @property
    def display(self) -> str:
        """Display name if present, else the address."""
        return self.name or self.email

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email


@dataclass
class Attachment:
    """
    A file carried by a message or a compose draft.

    Attributes:
        filename: Original filename of the attachment.
        content_type: MIME type (e.g., "application/pdf", "image/png").
        size: Size in bytes.
        content_id: Content-ID of an inline part (cid: references in HTML).
        is_inline: True if embedded in the HTML body.
        data: The attachment bytes, if loaded.
        id: Opaque identifier.
    """
    filename: str
    content_type: str
    size: int

    content_id: str | None = None
    is_inline: bool = False

    data: bytes | None = None

    id: str = ""


@dataclass
class Message:
    """
    Represents an email message.

    Threading note:
        Messages are threaded using Message-ID, In-Reply-To and References.
        'message_id' is the RFC Message-ID (not the store id), and
        'in_reply_to' / 'references' link replies to their parents.
        'thread_id' groups a conversation directly.

    Attributes:
        id: Opaque store identifier, globally unique across accounts.
        message_id: RFC 5322 Message-ID header (e.g., "<abc123@example.com>").
        account_id: The owning Account.
        folder: Id of the folder the message lives in.

        sender: The "From" contact.
        to: "To" contacts (order-preserving).
        cc: "CC" contacts.
        bcc: "BCC" contacts.

        subject: Email subject line.
        body: Plain text body.
        body_html: Optional HTML body.

        date: When the message was sent.
        size: Size in bytes (used by size sort and size filters).
        flags: Message state flags.

        attachments: List of file attachments.
        labels: Ids of the labels attached to this message.

        thread_id: Conversation identifier.
        in_reply_to: Message-ID this replies to.
        references: Message-IDs of the earlier messages in the thread.
    """

    id: str
    account_id: str
    folder: str = "inbox"
    message_id: str = ""

    # Envelope information
    sender: Contact = field(default_factory=lambda: Contact(""))
    to: list[Contact] = field(default_factory=list)
    cc: list[Contact] = field(default_factory=list)
    bcc: list[Contact] = field(default_factory=list)

    subject: str = ""
    body: str = ""
    body_html: str = ""

    date: datetime | None = None
    size: int = 0

    flags: MessageFlags = MessageFlags.NONE

    attachments: list[Attachment] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    # Threading
    thread_id: str = ""
    in_reply_to: str = ""
    references: list[str] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Convenience properties for checking flags
    # -------------------------------------------------------------------------

    @property
    def is_read(self) -> bool:
        return bool(self.flags & MessageFlags.SEEN)

    @property
    def is_starred(self) -> bool:
        return bool(self.flags & MessageFlags.STARRED)

    @property
    def is_flagged(self) -> bool:
        return bool(self.flags & MessageFlags.FLAGGED)

    @property
    def is_important(self) -> bool:
        return bool(self.flags & MessageFlags.IMPORTANT)

    @property
    def is_deleted(self) -> bool:
        return bool(self.flags & MessageFlags.DELETED)

    @property
    def is_draft(self) -> bool:
        return bool(self.flags & MessageFlags.DRAFT)

    # -------------------------------------------------------------------------
    # Convenience methods
    # -------------------------------------------------------------------------

    @property
    def has_attachments(self) -> bool:
        return len(self.attachments) > 0

    @property
    def display_sender(self) -> str:
        return self.sender.display

    @property
    def preview(self) -> str:
        """Whitespace-collapsed start of the body, at most 100 chars."""
        text = " ".join((self.body or "").split())
        if len(text) > 100:
            return text[:97] + "..."
        return text

    def set_flag(self, flag: MessageFlags, value: bool) -> bool:
        """
        Set or clear a flag.

        Returns:
            True if the flag actually changed.
        """
        before = self.flags
        if value:
            self.flags |= flag
        else:
            self.flags &= ~flag
        return self.flags != before

    def toggle_flag(self, flag: MessageFlags) -> None:
        """Flip a flag."""
        self.flags ^= flag

    def __repr__(self) -> str:
        return (
            f"Message(id={self.id!r}, folder={self.folder!r}, "
            f"subject={self.subject!r}, flags={self.flags!r})"
        )
