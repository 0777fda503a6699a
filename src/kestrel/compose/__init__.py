# =============================================================================
# Compose Module
# =============================================================================
# Draft lifecycle: compose, reply, reply-all, forward, edit, save, send and
# discard.
# =============================================================================

from kestrel.compose.drafts import DraftManager

__all__ = ["DraftManager"]
