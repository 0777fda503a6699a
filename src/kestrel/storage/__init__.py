# =============================================================================
# Storage Module
# =============================================================================
# In-memory state for the mail client.
#
# Provides:
#   - MailStore: owner of every entity and of the view state
#   - The filter/sort pipeline that derives the visible list
#   - SelectionManager: current message/thread and multi-select
#   - LayoutStore: pane layout persisted as JSON in the XDG state directory
# =============================================================================

from kestrel.storage.layout import LayoutStore
from kestrel.storage.pipeline import MessageFilter, SortField, SortOrder, SortSpec, apply_pipeline
from kestrel.storage.selection import SelectionManager
from kestrel.storage.store import MailStore

__all__ = [
    "LayoutStore",
    "MailStore",
    "MessageFilter",
    "SelectionManager",
    "SortField",
    "SortOrder",
    "SortSpec",
    "apply_pipeline",
]
