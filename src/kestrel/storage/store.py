# =============================================================================
# Mail Store
# =============================================================================
# The single owner of every entity: accounts, messages, folders, labels,
# drafts and sync statuses, plus the view state (current account/folder,
# search, filter, sort) and the derived caches built from it.
#
# Layout:
#   - Messages live in an arena keyed by id. A secondary index maps each
#     account id to the ordered set of message ids it owns.
#   - Folders are keyed per account (system folder ids repeat across
#     accounts: every account has an "inbox").
#   - The visible list of each account and every folder/account counter are
#     caches, recomputed from the arena in _commit() after each mutation.
#
# Every mutation is a named method that runs to completion without awaiting,
# so invariants hold whenever another task gets to run. Methods that talk to
# the data source are async and only suspend while awaiting it.
#
# Ingestion keeps local state authoritative: a fetch only inserts ids the
# store has never seen, and ids removed by permanently_delete() are never
# re-ingested.
# =============================================================================

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Iterable

from kestrel.config import VIEW_MODES
from kestrel.core import (
    Account,
    ComposeDraft,
    Folder,
    FolderType,
    Label,
    Message,
    MessageFlags,
    SyncStatus,
    Thread,
)
from kestrel.core.folder import SYSTEM_FOLDERS
from kestrel.log import payload
from kestrel.source.base import DataSource
from kestrel.storage.pipeline import MessageFilter, SortSpec, apply_pipeline, in_folder
from kestrel.storage.selection import SelectionManager


logger = logging.getLogger(__name__)

# Type alias for change listeners
Listener = Callable[["MailStore"], None]

# Account fields update_account() may change; the counters are derived
ACCOUNT_FIELDS = frozenset({
    "email", "name", "provider", "active", "default",
    "smtp_host", "smtp_port", "smtp_security", "signature", "color",
})


class MailStore:
    """
    In-memory state container for the whole mail client.

    Usage:
        >>> store = MailStore(SyntheticSource(seed=1))
        >>> await store.initialize()
        >>> store.visible_messages()[:5]
        >>> store.toggle_star([message.id])

    Attributes:
        source: Where accounts, messages and folder metadata come from.
        accounts: Registered accounts, in registration order.
        current_account_id: The account on screen, or None.
        folders: Folder table per account: {account_id: {folder_id: Folder}}.
        labels: Label table keyed by label id.
        drafts: Live compose drafts keyed by draft id.
        active_draft_id: Draft open in the compose pane, or None.
        sync_status: One SyncStatus per account.
        last_sync_time: When sync_all_accounts() last finished.
        current_folder_id: Folder or view on screen.
        search_term: Free-text search ("" = none).
        filter: Structured filter.
        sort: Sort specification.
        view_mode: "list", "conversation" or "compact".
        expanded_folders: Ids of folders expanded in the folder tree.
        error: Message of the last data-source failure, if any.
        selection: Selection state for the message list.
    """

    def __init__(self, source: DataSource, default_folder: str = "inbox") -> None:
        self.source = source
        self.default_folder = default_folder
        self._listeners: list[Listener] = []
        self.selection = SelectionManager(self)
        self._clear_state()

    def _clear_state(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.current_account_id: str | None = None

        # Message arena + per-account ordered id index (dict as ordered set)
        self._messages: dict[str, Message] = {}
        self._by_account: dict[str, dict[str, None]] = {}
        self._purged: set[str] = set()

        self.folders: dict[str, dict[str, Folder]] = {}
        self.labels: dict[str, Label] = {}
        self.drafts: dict[str, ComposeDraft] = {}
        self.active_draft_id: str | None = None

        self.sync_status: dict[str, SyncStatus] = {}
        self.last_sync_time: datetime | None = None

        self.current_folder_id: str = self.default_folder
        self.search_term: str = ""
        self.filter = MessageFilter()
        self.sort = SortSpec()
        self.view_mode: str = "list"
        self.expanded_folders: set[str] = set()

        self._visible: dict[str, list[Message]] = {}
        self._loading = 0
        self.error: str | None = None

        self.selection.clear()

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every completed mutation.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _commit(self) -> None:
        """Rebuild derived caches, repair the selection and notify listeners."""
        for account_id in self.accounts:
            self._recount(account_id)
            self._refilter(account_id)
        self.selection.reconcile()
        self.notify()

    def _recount(self, account_id: str) -> None:
        messages = self.messages_for(account_id)
        for folder in self.folders.get(account_id, {}).values():
            members = [m for m in messages if in_folder(m, folder.id)]
            folder.count = len(members)
            folder.unread_count = sum(1 for m in members if not m.is_read)

        account = self.accounts[account_id]
        live = [m for m in messages if not m.is_deleted]
        account.total_count = len(live)
        account.unread_count = sum(1 for m in live if not m.is_read)

    def _refilter(self, account_id: str) -> None:
        self._visible[account_id] = apply_pipeline(
            self.messages_for(account_id),
            self.current_folder_id,
            self.search_term,
            self.filter,
            self.sort,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_account(self) -> Account | None:
        if self.current_account_id is None:
            return None
        return self.accounts.get(self.current_account_id)

    @property
    def active_accounts(self) -> list[Account]:
        return [a for a in self.accounts.values() if a.active]

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def is_syncing(self) -> bool:
        """True while any account's sync machine is SYNCING."""
        return any(s.is_syncing for s in self.sync_status.values())

    @property
    def active_draft(self) -> ComposeDraft | None:
        if self.active_draft_id is None:
            return None
        return self.drafts.get(self.active_draft_id)

    def get_message(self, message_id: str) -> Message | None:
        return self._messages.get(message_id)

    def messages_for(self, account_id: str) -> list[Message]:
        """Every message owned by an account, in ingestion order."""
        return [self._messages[i] for i in self._by_account.get(account_id, {})]

    def visible_messages(self, account_id: str | None = None) -> list[Message]:
        """The filtered, sorted list for an account (default: current)."""
        account_id = account_id or self.current_account_id
        if account_id is None:
            return []
        return list(self._visible.get(account_id, []))

    def get_folder(self, account_id: str, folder_id: str) -> Folder | None:
        return self.folders.get(account_id, {}).get(folder_id)

    def _find_folder(self, folder_id: str) -> Folder | None:
        """Look a folder up in the current account first, then everywhere."""
        if self.current_account_id is not None:
            folder = self.get_folder(self.current_account_id, folder_id)
            if folder is not None:
                return folder
        for table in self.folders.values():
            if folder_id in table:
                return table[folder_id]
        return None

    def labels_for(self, account_id: str) -> list[Label]:
        return [label for label in self.labels.values() if label.account_id == account_id]

    def threads(self, account_id: str | None = None) -> list[Thread]:
        """
        Group the visible list of an account into threads.

        Threads are ordered by their newest message, newest first.
        """
        grouped: dict[str, list[Message]] = {}
        for message in self.visible_messages(account_id):
            grouped.setdefault(message.thread_id or message.id, []).append(message)

        threads = [Thread.from_messages(tid, msgs) for tid, msgs in grouped.items()]
        threads.sort(
            key=lambda t: t.last_date.timestamp() if t.last_date else float("-inf"),
            reverse=True,
        )
        return threads

    def thread(self, thread_id: str) -> Thread | None:
        """Every stored message carrying `thread_id`, as a Thread."""
        messages = [m for m in self._messages.values() if m.thread_id == thread_id]
        if not messages:
            return None
        return Thread.from_messages(thread_id, messages)

    def folder_tree(self, account_id: str | None = None) -> list[Folder]:
        """
        Build the folder hierarchy of an account from parent ids.

        Returns:
            Root folders in table order, each with `children` populated.
        """
        account_id = account_id or self.current_account_id
        if account_id is None:
            return []

        table = self.folders.get(account_id, {})
        for folder in table.values():
            folder.children = []

        roots = []
        for folder in table.values():
            parent = table.get(folder.parent_id) if folder.parent_id else None
            if parent is None:
                roots.append(folder)
            else:
                parent.children.append(folder)
        return roots

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self, default_account_id: str | None = None) -> None:
        """
        Load accounts and folders from the source, pick the current account
        and load its current folder.

        The current account is `default_account_id` if known, else the
        account flagged default, else the first one.
        """
        logger.info("Initializing store")
        self._loading += 1
        self.error = None
        try:
            accounts = await self.source.fetch_accounts()
        except Exception as e:
            self.error = str(e)
            logger.error(f"Failed to load accounts: {e}")
            return
        finally:
            self._loading -= 1

        for account in accounts:
            self._register_account(account)

        if default_account_id in self.accounts:
            self.current_account_id = default_account_id
        else:
            default = next((a for a in accounts if a.default), None)
            if default is None and accounts:
                default = accounts[0]
            self.current_account_id = default.id if default else None
        self._commit()

        for account_id in list(self.accounts):
            await self.refresh_folders(account_id)
        await self.load_messages()

        logger.info(
            "Store initialized",
            extra=payload(accounts=len(self.accounts), account_id=self.current_account_id),
        )

    def reset(self) -> None:
        """Return to the empty state. Listeners stay registered."""
        self._clear_state()
        logger.info("Store reset")
        self.notify()

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def _register_account(self, account: Account) -> None:
        self.accounts[account.id] = account
        self._by_account.setdefault(account.id, {})
        table = self.folders.setdefault(account.id, {})
        for folder_type, name in SYSTEM_FOLDERS:
            table.setdefault(folder_type.value, Folder.system(folder_type, account.id, name))
        self.sync_status.setdefault(account.id, SyncStatus(account_id=account.id))

    async def add_account(self, account: Account) -> None:
        """
        Register an account and load its folders and messages.

        It becomes current when no account is current or it is the default.
        """
        account.active = True
        self._register_account(account)
        if self.current_account_id is None or account.default:
            self.current_account_id = account.id
            self.selection.clear()
        self._commit()
        logger.info("Added account", extra=payload(account_id=account.id))

        await self.refresh_folders(account.id)
        await self.load_messages(account.id)

    def remove_account(self, account_id: str) -> None:
        """
        Drop an account and everything it owns.

        If it was current, the first remaining account becomes current.
        """
        if account_id not in self.accounts:
            logger.warning(f"remove_account: unknown account {account_id}")
            return

        del self.accounts[account_id]
        for message_id in self._by_account.pop(account_id, {}):
            self._messages.pop(message_id, None)
        folder_ids = set(self.folders.pop(account_id, {}))
        self.expanded_folders -= folder_ids - self._all_folder_ids()
        self.labels = {k: v for k, v in self.labels.items() if v.account_id != account_id}
        self.drafts = {k: v for k, v in self.drafts.items() if v.account_id != account_id}
        if self.active_draft_id not in self.drafts:
            self.active_draft_id = None
        self.sync_status.pop(account_id, None)
        self._visible.pop(account_id, None)

        if self.current_account_id == account_id:
            self.current_account_id = next(iter(self.accounts), None)
            self.selection.clear()

        self._commit()
        logger.info("Removed account", extra=payload(account_id=account_id))

    def _all_folder_ids(self) -> set[str]:
        return {folder_id for table in self.folders.values() for folder_id in table}

    def update_account(self, account_id: str, **changes: Any) -> Account | None:
        """
        Change account settings. Unknown or derived fields are ignored.

        Returns:
            The updated account, or None if the id is unknown.
        """
        account = self.accounts.get(account_id)
        if account is None:
            logger.warning(f"update_account: unknown account {account_id}")
            return None

        for name, value in changes.items():
            if name not in ACCOUNT_FIELDS:
                logger.warning(f"update_account: ignoring field {name!r}")
                continue
            setattr(account, name, value)

        self._commit()
        return account

    def set_current_account(self, account_id: str) -> bool:
        """
        Make an account current and clear the selection.

        Returns:
            False if the account is unknown.
        """
        if account_id not in self.accounts:
            logger.warning(f"set_current_account: unknown account {account_id}")
            return False

        self.current_account_id = account_id
        self.selection.clear()
        self._commit()
        return True

    async def switch_account(self, account_id: str) -> None:
        """Make an account current, then load its current folder."""
        if self.set_current_account(account_id):
            await self.load_messages(account_id)

    def toggle_account_active(self, account_id: str) -> bool | None:
        """
        Include or exclude an account from multi-account loads and syncs.

        Returns:
            The new active flag, or None if the account is unknown.
        """
        account = self.accounts.get(account_id)
        if account is None:
            logger.warning(f"toggle_account_active: unknown account {account_id}")
            return None
        account.active = not account.active
        self._commit()
        return account.active

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def ingest(self, account_id: str, messages: Iterable[Message]) -> int:
        """
        Insert messages the store has never seen into an account.

        Known ids, purged ids and messages of other accounts are skipped.

        Returns:
            Number of newly ingested messages.
        """
        if account_id not in self.accounts:
            # Removed while a fetch was in flight
            return 0
        owned = self._by_account.setdefault(account_id, {})
        count = 0
        for message in messages:
            if message.id in self._messages or message.id in self._purged:
                continue
            if message.account_id != account_id:
                logger.debug(f"Skipping message {message.id} of account {message.account_id}")
                continue
            # Trash and the deleted flag always agree inside the store
            message.set_flag(MessageFlags.DELETED, message.folder == FolderType.TRASH.value)
            self._messages[message.id] = message
            owned[message.id] = None
            count += 1
        self._commit()
        return count

    async def fetch_and_ingest(self, account_id: str, folder_id: str) -> int:
        """
        Fetch an account+folder from the source and ingest new messages.

        Raises whatever the source raises; callers decide how failures are
        recorded.

        Returns:
            Number of newly ingested messages.
        """
        messages = await self.source.fetch_messages(account_id, folder_id)
        return self.ingest(account_id, messages)

    async def load_messages(
        self,
        account_id: str | None = None,
        folder_id: str | None = None,
    ) -> None:
        """
        Load an account's folder (default: current account and folder).

        Source failures end up in `error`; nothing is raised.
        """
        account_id = account_id or self.current_account_id
        if account_id is None:
            logger.warning("load_messages: no account selected")
            return
        if account_id not in self.accounts:
            logger.warning(f"load_messages: unknown account {account_id}")
            return
        folder_id = folder_id or self.current_folder_id

        logger.info("Loading messages", extra=payload(account_id=account_id, folder=folder_id))
        self._loading += 1
        self.error = None
        self.notify()
        try:
            count = await self.fetch_and_ingest(account_id, folder_id)
        except Exception as e:
            self.error = str(e)
            logger.error(
                f"Failed to load messages: {e}",
                extra=payload(account_id=account_id, folder=folder_id),
            )
        else:
            logger.info(
                "Loaded messages",
                extra=payload(account_id=account_id, folder=folder_id, count=count),
            )
        finally:
            self._loading -= 1
            self._commit()

    async def load_messages_for_all_accounts(self) -> None:
        """Load the current folder of every active account concurrently."""
        await asyncio.gather(*(self.load_messages(a.id) for a in self.active_accounts))

    async def refresh_current_folder(self) -> None:
        """Reload the current folder: every active account if several are active."""
        if len(self.active_accounts) > 1:
            await self.load_messages_for_all_accounts()
        else:
            await self.load_messages()

    # -------------------------------------------------------------------------
    # Flags
    # -------------------------------------------------------------------------

    def _known(self, ids: Iterable[str]) -> list[Message]:
        messages = []
        for message_id in ids:
            message = self._messages.get(message_id)
            if message is None:
                logger.debug(f"Skipping unknown message {message_id}")
                continue
            messages.append(message)
        return messages

    def _toggle(self, ids: Iterable[str], flag: MessageFlags) -> int:
        messages = self._known(ids)
        for message in messages:
            message.toggle_flag(flag)
        self._commit()
        logger.info(f"Toggled {flag.name}", extra=payload(count=len(messages)))
        return len(messages)

    def toggle_read(self, ids: Iterable[str]) -> int:
        return self._toggle(ids, MessageFlags.SEEN)

    def toggle_star(self, ids: Iterable[str]) -> int:
        return self._toggle(ids, MessageFlags.STARRED)

    def toggle_flag(self, ids: Iterable[str]) -> int:
        return self._toggle(ids, MessageFlags.FLAGGED)

    def toggle_important(self, ids: Iterable[str]) -> int:
        return self._toggle(ids, MessageFlags.IMPORTANT)

    def _set_read(self, ids: Iterable[str], value: bool) -> int:
        changed = sum(1 for m in self._known(ids) if m.set_flag(MessageFlags.SEEN, value))
        self._commit()
        logger.info(
            "Marked read" if value else "Marked unread",
            extra=payload(count=changed),
        )
        return changed

    def mark_read(self, ids: Iterable[str]) -> int:
        """
        Mark messages read.

        Returns:
            Number of messages whose state actually changed.
        """
        return self._set_read(ids, True)

    def mark_unread(self, ids: Iterable[str]) -> int:
        return self._set_read(ids, False)

    # -------------------------------------------------------------------------
    # Moves and deletion
    # -------------------------------------------------------------------------

    def move_to_folder(self, ids: Iterable[str], folder_id: str) -> int:
        """
        Move messages into a folder of their own account.

        Moving into trash sets the deleted flag; moving anywhere else clears
        it. Virtual views and unknown folders are rejected.

        Returns:
            Number of messages moved.
        """
        target = self._find_folder(folder_id)
        if target is None:
            logger.warning(f"move_to_folder: unknown folder {folder_id}")
            return 0
        if target.is_virtual:
            logger.warning(f"move_to_folder: cannot move into view {folder_id}")
            return 0

        moved = 0
        for message in self._known(ids):
            if self.get_folder(message.account_id, folder_id) is None:
                logger.debug(f"Account {message.account_id} has no folder {folder_id}")
                continue
            message.folder = folder_id
            message.set_flag(MessageFlags.DELETED, folder_id == FolderType.TRASH.value)
            moved += 1

        self._commit()
        logger.info("Moved messages", extra=payload(count=moved, folder=folder_id))
        return moved

    def delete_messages(self, ids: Iterable[str]) -> int:
        """Soft delete: move to trash."""
        return self.move_to_folder(ids, FolderType.TRASH.value)

    def archive(self, ids: Iterable[str]) -> int:
        return self.move_to_folder(ids, FolderType.ARCHIVE.value)

    def mark_spam(self, ids: Iterable[str]) -> int:
        return self.move_to_folder(ids, FolderType.SPAM.value)

    def permanently_delete(self, ids: Iterable[str]) -> int:
        """
        Remove messages from the store for good.

        Later fetches will not bring them back.

        Returns:
            Number of messages removed.
        """
        removed = 0
        for message in self._known(ids):
            del self._messages[message.id]
            self._by_account.get(message.account_id, {}).pop(message.id, None)
            self._purged.add(message.id)
            removed += 1

        self._commit()
        logger.info("Permanently deleted messages", extra=payload(count=removed))
        return removed

    # -------------------------------------------------------------------------
    # Folders
    # -------------------------------------------------------------------------

    def create_folder(
        self,
        account_id: str,
        name: str,
        parent_id: str | None = None,
    ) -> Folder | None:
        """
        Create a custom folder, optionally nested under another one.

        Returns:
            The new folder, or None if the input was rejected.
        """
        table = self.folders.get(account_id)
        if table is None:
            logger.warning(f"create_folder: unknown account {account_id}")
            return None
        name = name.strip()
        if not name:
            logger.warning("create_folder: empty folder name")
            return None
        if parent_id is not None and parent_id not in table:
            logger.warning(f"create_folder: unknown parent folder {parent_id}")
            return None

        folder = Folder(
            id=str(uuid.uuid4()),
            name=name,
            account_id=account_id,
            parent_id=parent_id,
        )
        table[folder.id] = folder
        self._commit()
        logger.info("Created folder", extra=payload(account_id=account_id, folder=folder.id))
        return folder

    def rename_folder(self, folder_id: str, name: str) -> bool:
        folder = self._find_folder(folder_id)
        if folder is None:
            logger.warning(f"rename_folder: unknown folder {folder_id}")
            return False
        if folder.is_system:
            logger.warning(f"rename_folder: cannot rename system folder {folder_id}")
            return False
        name = name.strip()
        if not name:
            logger.warning("rename_folder: empty folder name")
            return False

        folder.name = name
        self._commit()
        return True

    def delete_folder(self, folder_id: str) -> bool:
        """
        Delete a custom folder and all of its subfolders.

        Messages in the deleted folders are soft-deleted into trash.
        """
        folder = self._find_folder(folder_id)
        if folder is None:
            logger.warning(f"delete_folder: unknown folder {folder_id}")
            return False
        if folder.is_system:
            logger.warning(f"delete_folder: cannot delete system folder {folder_id}")
            return False

        table = self.folders[folder.account_id]
        doomed = {folder.id}
        pending = [folder.id]
        while pending:
            parent = pending.pop()
            for child in table.values():
                if child.parent_id == parent and child.id not in doomed:
                    doomed.add(child.id)
                    pending.append(child.id)

        trashed = 0
        for message in self.messages_for(folder.account_id):
            if message.folder in doomed:
                message.folder = FolderType.TRASH.value
                message.set_flag(MessageFlags.DELETED, True)
                trashed += 1

        for doomed_id in doomed:
            del table[doomed_id]
            self.expanded_folders.discard(doomed_id)

        if self.current_folder_id in doomed:
            self.current_folder_id = FolderType.INBOX.value
            self.selection.clear()

        self._commit()
        logger.info(
            "Deleted folder",
            extra=payload(account_id=folder.account_id, folders=len(doomed), count=trashed),
        )
        return True

    async def select_folder(self, folder_id: str) -> None:
        """
        Show a folder or view, clear the selection and reload.

        With more than one active account every active account is
        reloaded, otherwise only the current one.
        """
        if self._find_folder(folder_id) is None:
            logger.warning(f"select_folder: unknown folder {folder_id}")
            return

        self.current_folder_id = folder_id
        self.selection.clear()
        self._commit()
        await self.refresh_current_folder()

    async def refresh_folders(self, account_id: str | None = None) -> None:
        """
        Merge folder metadata from the source into the folder table.

        Locally created folders are kept. Counts are recomputed from the
        arena rather than taken from the source.
        """
        account_id = account_id or self.current_account_id
        if account_id is None or account_id not in self.accounts:
            logger.warning(f"refresh_folders: unknown account {account_id}")
            return

        try:
            fetched = await self.source.fetch_folders(account_id)
        except Exception as e:
            self.error = str(e)
            logger.error(f"Failed to load folders: {e}", extra=payload(account_id=account_id))
            self.notify()
            return

        table = self.folders.get(account_id)
        if table is None:
            return
        for remote in fetched:
            local = table.get(remote.id)
            if local is None:
                remote.account_id = account_id
                remote.children = []
                table[remote.id] = remote
            else:
                local.name = remote.name

        self._commit()
        logger.debug(f"Refreshed {len(fetched)} folders", extra=payload(account_id=account_id))

    def toggle_folder_expanded(self, folder_id: str) -> bool:
        """
        Returns:
            True if the folder is expanded afterwards.
        """
        if folder_id in self.expanded_folders:
            self.expanded_folders.discard(folder_id)
        else:
            self.expanded_folders.add(folder_id)
        self.notify()
        return folder_id in self.expanded_folders

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------

    def create_label(self, account_id: str, name: str, color: str = "") -> Label | None:
        if account_id not in self.accounts:
            logger.warning(f"create_label: unknown account {account_id}")
            return None
        label = Label(id=str(uuid.uuid4()), name=name, color=color, account_id=account_id)
        self.labels[label.id] = label
        self._commit()
        return label

    def update_label(
        self,
        label_id: str,
        name: str | None = None,
        color: str | None = None,
    ) -> Label | None:
        label = self.labels.get(label_id)
        if label is None:
            logger.warning(f"update_label: unknown label {label_id}")
            return None
        if name is not None:
            label.name = name
        if color is not None:
            label.color = color
        self._commit()
        return label

    def delete_label(self, label_id: str) -> bool:
        """Delete a label and strip it from every message."""
        label = self.labels.pop(label_id, None)
        if label is None:
            logger.warning(f"delete_label: unknown label {label_id}")
            return False

        if label_id in self.filter.labels:
            self.filter = self.filter.merge(labels=self.filter.labels - {label_id})
        for message in self.messages_for(label.account_id):
            if label_id in message.labels:
                message.labels.remove(label_id)

        self._commit()
        logger.info("Deleted label", extra=payload(account_id=label.account_id, label=label_id))
        return True

    def _labelable(self, ids: Iterable[str], label_id: str) -> tuple[Label | None, list[Message]]:
        label = self.labels.get(label_id)
        if label is None:
            logger.warning(f"Unknown label {label_id}")
            return None, []
        messages = []
        for message in self._known(ids):
            if message.account_id != label.account_id:
                logger.debug(f"Label {label_id} does not belong to account {message.account_id}")
                continue
            messages.append(message)
        return label, messages

    def add_label(self, ids: Iterable[str], label_id: str) -> int:
        label, messages = self._labelable(ids, label_id)
        if label is None:
            return 0
        changed = 0
        for message in messages:
            if label_id not in message.labels:
                message.labels.append(label_id)
                changed += 1
        self._commit()
        return changed

    def remove_label(self, ids: Iterable[str], label_id: str) -> int:
        label, messages = self._labelable(ids, label_id)
        if label is None:
            return 0
        changed = 0
        for message in messages:
            if label_id in message.labels:
                message.labels.remove(label_id)
                changed += 1
        self._commit()
        return changed

    # -------------------------------------------------------------------------
    # Search / filter / sort / view
    # -------------------------------------------------------------------------

    def set_search_term(self, term: str) -> None:
        self.search_term = term
        self._commit()

    def set_filter(self, **changes: Any) -> MessageFilter:
        """
        Merge changes into the current filter, e.g. set_filter(is_read=False).

        Pass None to switch a predicate off.
        """
        self.filter = self.filter.merge(**changes)
        self._commit()
        return self.filter

    def set_sort(self, sort: SortSpec) -> None:
        self.sort = sort
        self._commit()

    def clear_filters(self) -> None:
        """Drop the search term and the structured filter. Sort is kept."""
        self.search_term = ""
        self.filter = MessageFilter()
        self._commit()

    def set_view_mode(self, mode: str) -> bool:
        if mode not in VIEW_MODES:
            logger.warning(f"set_view_mode: unknown mode {mode!r}")
            return False
        self.view_mode = mode
        self.notify()
        return True

    # -------------------------------------------------------------------------
    # Draft and sync status primitives
    # -------------------------------------------------------------------------
    # Called by DraftManager and SyncCoordinator, which own the lifecycle
    # rules. The store only keeps the records.

    def add_draft(self, draft: ComposeDraft) -> None:
        self.drafts[draft.id] = draft
        self.notify()

    def update_draft(self, draft_id: str, **changes: Any) -> ComposeDraft | None:
        draft = self.drafts.get(draft_id)
        if draft is None:
            return None
        for name, value in changes.items():
            setattr(draft, name, value)
        self.notify()
        return draft

    def remove_draft(self, draft_id: str) -> ComposeDraft | None:
        draft = self.drafts.pop(draft_id, None)
        if draft is not None and self.active_draft_id == draft_id:
            self.active_draft_id = None
        self.notify()
        return draft

    def set_active_draft(self, draft_id: str | None) -> None:
        if draft_id is not None and draft_id not in self.drafts:
            logger.warning(f"set_active_draft: unknown draft {draft_id}")
            return
        self.active_draft_id = draft_id
        self.notify()

    def set_sync_status(self, status: SyncStatus) -> None:
        if status.account_id not in self.accounts:
            return
        self.sync_status[status.account_id] = status
        self.notify()

    def set_last_sync_time(self, when: datetime) -> None:
        self.last_sync_time = when
        self.notify()

    def set_error(self, message: str | None) -> None:
        self.error = message
        self.notify()

    def __repr__(self) -> str:
        return (
            f"MailStore(accounts={len(self.accounts)}, messages={len(self._messages)}, "
            f"current={self.current_account_id!r}, folder={self.current_folder_id!r})"
        )
