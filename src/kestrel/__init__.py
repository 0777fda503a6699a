# =============================================================================
# Kestrel: Multi-Account Mail Client State Engine
# =============================================================================
#
# Kestrel is the state layer of a multi-account email client: it owns the
# accounts, messages, folders and drafts, derives the visible message list,
# runs per-account sync machines and drives the compose lifecycle. A UI
# subscribes to the store and renders whatever it holds.
#
# Features:
#   - Multiple accounts with per-account folders, labels and counts
#   - Search, structured filters and stable sorting
#   - Simulated sync with progress and cooperative cancellation
#   - Reply, Reply All, Forward, send over SMTP
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "kestrel"

# Main entry point - this is what gets called by the 'kestrel' command
from kestrel.app import main

__all__ = ["main", "__version__", "__app_name__"]
