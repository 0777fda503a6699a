# =============================================================================
# Folder Model
# =============================================================================
# Represents a mailbox folder. There are three kinds:
#   - Lifecycle folders: inbox, sent, drafts, trash, spam, archive. These are
#     mutually exclusive buckets; a message lives in exactly one of them (or
#     in a custom folder).
#   - Virtual views: starred, important, all. Nothing is ever moved into
#     them; they select messages across folders by flag.
#   - Custom folders: user-created buckets, possibly nested.
#
# The folder id doubles as the tag stored on Message.folder. System folders
# use their type value as id ("inbox", "trash", ...).
# =============================================================================

from dataclasses import dataclass, field
from enum import Enum


class FolderType(Enum):
    """
    Semantic folder types.

    The values are the tags used on messages and by the data source.
    """
    INBOX = "inbox"         # Primary incoming mail
    SENT = "sent"           # Sent messages
    DRAFTS = "drafts"       # Unsent drafts
    TRASH = "trash"         # Soft-deleted messages
    SPAM = "spam"           # Junk mail
    ARCHIVE = "archive"     # Archived messages
    STARRED = "starred"     # View: starred messages
    IMPORTANT = "important" # View: important messages
    ALL = "all"             # View: every non-deleted message
    CUSTOM = "custom"       # User-created folder

    @property
    def is_virtual(self) -> bool:
        """True for views that select by flag instead of membership."""
        return self in VIRTUAL_FOLDERS

    @property
    def is_lifecycle(self) -> bool:
        """True for the mutually exclusive system buckets."""
        return self in LIFECYCLE_FOLDERS


LIFECYCLE_FOLDERS = frozenset({
    FolderType.INBOX,
    FolderType.SENT,
    FolderType.DRAFTS,
    FolderType.TRASH,
    FolderType.SPAM,
    FolderType.ARCHIVE,
})

VIRTUAL_FOLDERS = frozenset({
    FolderType.STARRED,
    FolderType.IMPORTANT,
    FolderType.ALL,
})

# Display order and names of the folders every account starts with
SYSTEM_FOLDERS: tuple[tuple[FolderType, str], ...] = (
    (FolderType.INBOX, "Inbox"),
    (FolderType.SENT, "Sent"),
    (FolderType.DRAFTS, "Drafts"),
    (FolderType.STARRED, "Starred"),
    (FolderType.IMPORTANT, "Important"),
    (FolderType.SPAM, "Spam"),
    (FolderType.TRASH, "Trash"),
    (FolderType.ARCHIVE, "Archive"),
    (FolderType.ALL, "All Mail"),
)


@dataclass
class Folder:
    """
    Represents a mailbox folder in an email account.

    Attributes:
        id: Folder identifier, unique within the account. Equal to the
            FolderType value for system folders.
        name: Display name.
        account_id: The Account this folder belongs to.
        folder_type: Semantic type of this folder.
        parent_id: Id of the parent folder for nested custom folders.
        children: Child folders. Only populated on trees built by
                  MailStore.folder_tree(); the flat folder table leaves it
                  empty.

        count: Cached number of messages in the folder.
        unread_count: Cached number of unread messages in the folder.
                      Both counts are recomputed by the store after every
                      mutation that touches folder membership or read state.

        is_system: True for folders every account has (cannot be renamed
                   or deleted).
    """

    id: str
    name: str
    account_id: str
    folder_type: FolderType = FolderType.CUSTOM
    parent_id: str | None = None
    children: list["Folder"] = field(default_factory=list)

    # Cached counts (recomputed by the store)
    count: int = 0
    unread_count: int = 0

    is_system: bool = False

    @property
    def is_virtual(self) -> bool:
        return self.folder_type.is_virtual

    @classmethod
    def system(cls, folder_type: FolderType, account_id: str, name: str = "") -> "Folder":
        """Build the standard folder of the given type for an account."""
        if not name:
            name = dict(SYSTEM_FOLDERS).get(folder_type, folder_type.value.title())
        return cls(
            id=folder_type.value,
            name=name,
            account_id=account_id,
            folder_type=folder_type,
            is_system=True,
        )

    @classmethod
    def detect_type(cls, folder_name: str) -> FolderType:
        """
        Attempt to detect the folder type from its name.

        Handles the common naming conventions across providers so that
        folder metadata from any source maps onto the same types.

        Args:
            folder_name: The folder name or tag to classify.

        Returns:
            The detected FolderType, or CUSTOM if unrecognized.
        """
        name_lower = folder_name.lower()

        if name_lower == "inbox":
            return FolderType.INBOX
        elif name_lower in ("sent", "sent mail", "sent items", "[gmail]/sent mail"):
            return FolderType.SENT
        elif name_lower in ("drafts", "draft", "[gmail]/drafts"):
            return FolderType.DRAFTS
        elif name_lower in ("trash", "deleted", "deleted items", "[gmail]/trash"):
            return FolderType.TRASH
        elif name_lower in ("junk", "spam", "junk mail", "[gmail]/spam"):
            return FolderType.SPAM
        elif name_lower in ("archive", "archives"):
            return FolderType.ARCHIVE
        elif name_lower in ("starred", "[gmail]/starred"):
            return FolderType.STARRED
        elif name_lower in ("important", "[gmail]/important"):
            return FolderType.IMPORTANT
        elif name_lower in ("all", "all mail", "[gmail]/all mail"):
            return FolderType.ALL

        return FolderType.CUSTOM

    def __str__(self) -> str:
        unread_indicator = f" ({self.unread_count})" if self.unread_count > 0 else ""
        return f"{self.name}{unread_indicator}"

    def __repr__(self) -> str:
        return (
            f"Folder(id={self.id!r}, type={self.folder_type.name}, "
            f"messages={self.count}, unread={self.unread_count})"
        )
