# =============================================================================
# Kestrel Core Module
# =============================================================================
# This module contains the core domain models for Kestrel. These are pure
# Python dataclasses with no external dependencies, so they can be imported
# anywhere without causing circular dependency issues.
#
# The core models represent the fundamental concepts in an email client:
#   - Account: A configured mailbox identity
#   - Folder: A lifecycle bucket, custom folder or virtual view
#   - Message: An individual email message (plus Contact, Attachment)
#   - Label: A colored per-account tag
#   - ComposeDraft: An email being written
#   - Thread: A read-only conversation projection
#   - SyncStatus: Per-account sync machine state
# =============================================================================

from kestrel.core.account import Account
from kestrel.core.draft import ComposeDraft, DraftState
from kestrel.core.folder import Folder, FolderType
from kestrel.core.label import Label
from kestrel.core.message import Attachment, Contact, Message, MessageFlags
from kestrel.core.status import SyncState, SyncStatus
from kestrel.core.thread import Thread

__all__ = [
    "Account",
    "Attachment",
    "ComposeDraft",
    "Contact",
    "DraftState",
    "Folder",
    "FolderType",
    "Label",
    "Message",
    "MessageFlags",
    "SyncState",
    "SyncStatus",
    "Thread",
]
