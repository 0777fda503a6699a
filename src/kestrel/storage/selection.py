# =============================================================================
# Selection Manager
# =============================================================================
# Tracks what the user is pointing at:
#   - the current message or thread (for the detail pane)
#   - the set of selected message ids (for bulk actions)
#
# Selection is scoped to the account+folder on screen. The store clears it on
# every folder or account switch and reconciles it after every mutation so it
# never references a message that no longer exists.
#
# Opening an unread message marks it read. That side effect lives in
# mark_opened() so it can be exercised on its own.
# =============================================================================

import logging
from typing import TYPE_CHECKING

from kestrel.core import Message, Thread

if TYPE_CHECKING:
    from kestrel.storage.store import MailStore


logger = logging.getLogger(__name__)


class SelectionManager:
    """
    Multi-select state for the message list.

    Usage:
        >>> selection = store.selection
        >>> selection.select_message(message_id)   # opens + marks read
        >>> selection.toggle(other_id)             # ctrl-click
        >>> store.delete_messages(selection.selected_ids)

    Attributes:
        selected_ids: Ids of the selected messages.
        current_message_id: Message shown in the detail pane, if any.
        current_thread_id: Thread shown in the detail pane, if any.
    """

    def __init__(self, store: "MailStore") -> None:
        self._store = store
        self.selected_ids: set[str] = set()
        self.current_message_id: str | None = None
        self.current_thread_id: str | None = None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def count(self) -> int:
        return len(self.selected_ids)

    @property
    def current_message(self) -> Message | None:
        if self.current_message_id is None:
            return None
        return self._store.get_message(self.current_message_id)

    @property
    def current_thread(self) -> Thread | None:
        if self.current_thread_id is None:
            return None
        return self._store.thread(self.current_thread_id)

    def is_selected(self, message_id: str) -> bool:
        return message_id in self.selected_ids

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def select_message(self, message_id: str) -> Message | None:
        """
        Make a message current and the only selected id, then open it.

        Unknown ids are ignored.

        Returns:
            The selected message, or None if the id is unknown.
        """
        message = self._store.get_message(message_id)
        if message is None:
            logger.debug(f"select_message: unknown id {message_id}")
            return None

        self.current_message_id = message_id
        self.current_thread_id = None
        self.selected_ids = {message_id}
        self._store.notify()

        self.mark_opened(message_id)
        return message

    def mark_opened(self, message_id: str) -> bool:
        """
        Mark a message read because it was opened.

        Only ever goes unread -> read; opening a read message does nothing.

        Returns:
            True if the read state changed.
        """
        message = self._store.get_message(message_id)
        if message is None or message.is_read:
            return False
        self._store.toggle_read([message_id])
        return True

    def select_thread(self, thread_id: str) -> Thread | None:
        """
        Make a thread current and select every message in it.

        Returns:
            The thread, or None if no message carries that thread id.
        """
        thread = self._store.thread(thread_id)
        if thread is None:
            logger.debug(f"select_thread: unknown thread {thread_id}")
            return None

        self.current_thread_id = thread_id
        self.current_message_id = None
        self.selected_ids = set(thread.message_ids)
        self._store.notify()
        return thread

    def toggle(self, message_id: str) -> bool:
        """
        Flip one id's membership in the selection.

        Returns:
            True if the id is selected afterwards.
        """
        if message_id in self.selected_ids:
            self.selected_ids.discard(message_id)
            selected = False
        elif self._store.get_message(message_id) is not None:
            self.selected_ids.add(message_id)
            selected = True
        else:
            return False
        self._store.notify()
        return selected

    def select_all(self) -> int:
        """
        Select every message visible (post-filter) in the current account.

        Returns:
            Number of selected messages.
        """
        account_id = self._store.current_account_id
        if account_id is None:
            logger.warning("select_all: no account selected")
            return 0

        self.selected_ids = {m.id for m in self._store.visible_messages(account_id)}
        self._store.notify()
        return len(self.selected_ids)

    def clear(self) -> None:
        """Drop the selection and the current message/thread."""
        self.selected_ids = set()
        self.current_message_id = None
        self.current_thread_id = None

    def reconcile(self) -> None:
        """
        Forget ids that no longer exist in the current account.

        Messages that only left the visible list (filtered out, moved) stay
        selected; permanently deleted ones and ones from another account
        are dropped.
        """
        account_id = self._store.current_account_id

        def alive(message_id: str) -> bool:
            message = self._store.get_message(message_id)
            return message is not None and message.account_id == account_id

        self.selected_ids = {i for i in self.selected_ids if alive(i)}
        if self.current_message_id is not None and not alive(self.current_message_id):
            self.current_message_id = None
        if self.current_thread_id is not None and self._store.thread(self.current_thread_id) is None:
            self.current_thread_id = None
