# =============================================================================
# Sync Module
# =============================================================================
# Per-account sync machines that tick progress, reload folders through the
# MailStore and record SyncStatus transitions.
# =============================================================================

from kestrel.sync.coordinator import SyncCoordinator, SyncResult

__all__ = ["SyncCoordinator", "SyncResult"]
