# =============================================================================
# Compose Draft Model
# =============================================================================
# The working state of an email before it's sent.
#
# Lifecycle:
#
#     NEW ──edit──▶ EDITING ──send ok──▶ SENT        (draft removed)
#      │              │    └──discard──▶ DISCARDED   (draft removed)
#      │              └──save─────────▶ SAVED        (draft kept)
#      └────────────── send/save/discard allowed from any live state
#
# A failed send leaves the draft in EDITING with `error` set.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto

from kestrel.core.message import Attachment


class DraftState(Enum):
    """Lifecycle state of a compose draft."""
    NEW = auto()            # Just created, untouched
    EDITING = auto()        # Fields edited (or a send failed)
    SAVED = auto()          # Saved as draft
    SENT = auto()           # Transmitted (terminal)
    DISCARDED = auto()      # Thrown away (terminal)

    @property
    def is_terminal(self) -> bool:
        return self in (DraftState.SENT, DraftState.DISCARDED)


# Fields that DraftManager.update() may change
EDITABLE_FIELDS = frozenset({
    "to", "cc", "bcc", "subject", "body", "body_html",
    "attachments", "in_reply_to", "references", "priority",
})


@dataclass
class ComposeDraft:
    """
    Represents an email being composed.

    Attributes:
        id: Opaque identifier. Never changes, even across saves.
        account_id: The Account the draft will be sent from.
        to: List of recipient email addresses.
        cc: List of CC recipients.
        bcc: List of BCC recipients.
        subject: Email subject line.
        body: Plain text body.
        body_html: HTML body (optional).
        attachments: Files to send along.
        in_reply_to: Message-ID we're replying to (for threading).
        references: References header (for threading).
        is_draft: Always True while the draft is alive.
        priority: "low", "normal" or "high".
        state: Lifecycle state.
        error: Message of the last failed send, if any.
        saved_at: When the draft was last saved.
    """
    id: str
    account_id: str
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    subject: str = ""
    body: str = ""
    body_html: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    in_reply_to: str = ""
    references: list[str] = field(default_factory=list)
    is_draft: bool = True
    priority: str = "normal"

    state: DraftState = DraftState.NEW
    error: str | None = None
    saved_at: datetime | None = None

    @property
    def recipients(self) -> list[str]:
        """Every envelope recipient (to + cc + bcc)."""
        return self.to + self.cc + self.bcc

    @property
    def is_reply(self) -> bool:
        return bool(self.in_reply_to)
