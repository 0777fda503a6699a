# =============================================================================
# Sync Status Model
# =============================================================================
# One record per account describing its sync machine:
#
#     IDLE ──sync──▶ SYNCING ──done──▶ IDLE
#                       └────fail───▶ ERROR
#
# The record is overwritten on every transition, never appended to. The
# store owns it; the SyncCoordinator is the only writer.
# =============================================================================

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto


class SyncState(Enum):
    """Current state of an account's sync machine."""
    IDLE = auto()           # Not syncing
    SYNCING = auto()        # Progress ticking or reloading
    ERROR = auto()          # Last sync failed


@dataclass
class SyncStatus:
    """
    Sync state of one account.

    Attributes:
        account_id: The account this status describes.
        state: Machine state.
        progress: Completion percentage, 0 - 100. Never decreases within a
                  run.
        folder: Folder being reloaded by the current or last run.
        last_sync: When the last successful run finished.
        error: Message of the last failure, if any.
        new_messages: Messages ingested by the last run.
        updated_messages: Messages changed by the last run.
        deleted_messages: Messages removed by the last run.
    """
    account_id: str
    state: SyncState = SyncState.IDLE
    progress: int = 0
    folder: str | None = None
    last_sync: datetime | None = None
    error: str | None = None
    new_messages: int = 0
    updated_messages: int = 0
    deleted_messages: int = 0

    @property
    def is_syncing(self) -> bool:
        return self.state == SyncState.SYNCING
