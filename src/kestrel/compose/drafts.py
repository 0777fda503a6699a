# =============================================================================
# Draft Lifecycle Manager
# =============================================================================
# Creates, edits, saves, sends and discards compose drafts.
#
#   - compose / reply / reply_all / forward build a new draft bound to the
#     current account and make it the active draft
#   - update edits fields in place (state EDITING)
#   - save keeps the draft (state SAVED, same id)
#   - send hands the draft to the transport; only a confirmed send removes it
#   - discard removes it without sending
#
# Drafts are stored in the MailStore; this module owns the transitions.
# =============================================================================

import asyncio
import copy
import logging
import uuid
from datetime import datetime
from typing import Any

from kestrel.core import ComposeDraft, DraftState, Message
from kestrel.core.draft import EDITABLE_FIELDS
from kestrel.log import payload
from kestrel.smtp import LoopbackTransport, SMTPError, Transport
from kestrel.storage.store import MailStore


logger = logging.getLogger(__name__)


class DraftManager:
    """
    Lifecycle of compose drafts.

    Usage:
        >>> drafts = DraftManager(store, SMTPTransport())
        >>> draft = drafts.reply(message.id)
        >>> drafts.update(draft.id, body="Sounds good.")
        >>> await drafts.send(draft.id)
        True

    Attributes:
        store: Store holding the drafts and the messages replied to.
        transport: Where sends go. Defaults to a LoopbackTransport.
        date_format: strftime format for dates in quoted headers.
    """

    def __init__(
        self,
        store: MailStore,
        transport: Transport | None = None,
        *,
        date_format: str = "%Y-%m-%d %H:%M",
        save_delay: float = 0.0,
    ) -> None:
        self.store = store
        self.transport = transport if transport is not None else LoopbackTransport()
        self.date_format = date_format
        self.save_delay = save_delay
        self._sending: set[str] = set()   # draft ids handed to the transport

    def get(self, draft_id: str) -> ComposeDraft | None:
        return self.store.drafts.get(draft_id)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def compose(self, **fields: Any) -> ComposeDraft | None:
        """
        Start a new draft from the current account.

        Args:
            **fields: Initial values for any editable field.

        Returns:
            The new (active) draft, or None when no account is selected.
        """
        account_id = self.store.current_account_id
        if account_id is None:
            logger.warning("compose: no account selected")
            return None

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown draft fields: {', '.join(sorted(unknown))}")

        draft = ComposeDraft(id=str(uuid.uuid4()), account_id=account_id, **fields)
        self.store.add_draft(draft)
        self.store.set_active_draft(draft.id)
        logger.info("Created draft", extra=payload(account_id=account_id, draft_id=draft.id))
        return draft

    def _original(self, message_id: str) -> Message | None:
        message = self.store.get_message(message_id)
        if message is None:
            logger.warning(f"Unknown message {message_id}")
        return message

    def reply(self, message_id: str) -> ComposeDraft | None:
        """Draft a reply to the sender of a message."""
        original = self._original(message_id)
        if original is None:
            return None
        return self.compose(
            to=[original.sender.email],
            subject=_prefixed("Re:", original.subject),
            body=self._quote(original),
            in_reply_to=original.message_id,
            references=_references(original),
        )

    def reply_all(self, message_id: str) -> ComposeDraft | None:
        """
        Draft a reply to the sender and every to/cc recipient.

        Addresses are deduplicated case-insensitively in first-seen order,
        and the account's own address is left out.
        """
        original = self._original(message_id)
        if original is None:
            return None

        account = self.store.current_account
        own = account.email.lower() if account else ""

        recipients: list[str] = []
        seen: set[str] = set()
        for contact in [original.sender, *original.to, *original.cc]:
            key = contact.email.lower()
            if not key or key == own or key in seen:
                continue
            seen.add(key)
            recipients.append(contact.email)

        return self.compose(
            to=recipients,
            subject=_prefixed("Re:", original.subject),
            body=self._quote(original),
            in_reply_to=original.message_id,
            references=_references(original),
        )

    def forward(self, message_id: str) -> ComposeDraft | None:
        """Draft a forward of a message, attachments included."""
        original = self._original(message_id)
        if original is None:
            return None

        body = (
            "\n\n---------- Forwarded message ----------\n"
            f"From: {original.sender.name or original.sender.email}\n"
            f"Date: {self._format_date(original.date)}\n"
            f"Subject: {original.subject}\n"
            "\n"
            f"{original.body}"
        )
        return self.compose(
            subject=_prefixed("Fwd:", original.subject),
            body=body,
            attachments=copy.deepcopy(original.attachments),
        )

    def _format_date(self, date: datetime | None) -> str:
        return date.strftime(self.date_format) if date else "unknown date"

    def _quote(self, original: Message) -> str:
        quote_header = f"\n\nOn {self._format_date(original.date)}, {original.display_sender} wrote:\n"
        # Add > prefix to each line
        quoted_body = "".join(f"> {line}\n" for line in original.body.split("\n")) if original.body else ""
        return quote_header + quoted_body

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def update(self, draft_id: str, **fields: Any) -> ComposeDraft | None:
        """
        Edit draft fields in place.

        Raises:
            TypeError: If a field is not editable.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown draft fields: {', '.join(sorted(unknown))}")

        if draft_id not in self.store.drafts:
            logger.warning(f"update: unknown draft {draft_id}")
            return None
        return self.store.update_draft(draft_id, state=DraftState.EDITING, **fields)

    async def save(self, draft_id: str) -> bool:
        """
        Save a draft. Saving twice is the same as saving once.

        Returns:
            False if the draft is unknown.
        """
        if draft_id not in self.store.drafts:
            logger.warning(f"save: unknown draft {draft_id}")
            return False

        logger.info("Saving draft", extra=payload(draft_id=draft_id))
        if self.save_delay:
            await asyncio.sleep(self.save_delay)

        draft = self.store.drafts.get(draft_id)
        if draft is None:
            # Discarded while saving
            return False
        self.store.update_draft(draft_id, state=DraftState.SAVED, saved_at=datetime.now())
        return True

    async def send(self, draft_id: str) -> bool:
        """
        Transmit a draft.

        On success the draft is removed and ends in SENT. On failure it is
        kept in EDITING with `error` set.

        A draft already handed to the transport cannot be sent again until
        that send finishes.

        Returns:
            True if the transport confirmed the send.
        """
        draft = self.store.drafts.get(draft_id)
        if draft is None:
            logger.warning(f"send: unknown draft {draft_id}")
            return False

        if draft_id in self._sending:
            logger.warning(f"send: draft {draft_id} is already being sent")
            return False

        account = self.store.accounts.get(draft.account_id)
        if account is None:
            self.store.update_draft(draft_id, state=DraftState.EDITING, error="Account no longer exists")
            return False

        logger.info(
            "Sending email",
            extra=payload(account_id=account.id, draft_id=draft_id, recipients=len(draft.recipients)),
        )
        self._sending.add(draft_id)
        try:
            message_id = await self.transport.send(draft, account)
        except SMTPError as e:
            logger.error(f"Failed to send draft {draft_id}: {e}", extra=payload(account_id=account.id))
            self.store.update_draft(draft_id, state=DraftState.EDITING, error=str(e))
            return False
        finally:
            self._sending.discard(draft_id)

        removed = self.store.remove_draft(draft_id)
        if removed is not None:
            removed.state = DraftState.SENT
            removed.is_draft = False
            removed.error = None
        logger.info("Email sent", extra=payload(account_id=account.id, message_id=message_id))
        return True

    def discard(self, draft_id: str) -> bool:
        draft = self.store.remove_draft(draft_id)
        if draft is None:
            logger.warning(f"discard: unknown draft {draft_id}")
            return False
        draft.state = DraftState.DISCARDED
        logger.info("Discarded draft", extra=payload(draft_id=draft_id))
        return True


def _prefixed(prefix: str, subject: str) -> str:
    if subject.lower().startswith(prefix.lower()):
        return subject
    return f"{prefix} {subject}"


def _references(original: Message) -> list[str]:
    """References header for a reply: the original chain plus the original."""
    references = list(original.references)
    if original.message_id and original.message_id not in references:
        references.append(original.message_id)
    return references
