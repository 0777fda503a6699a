# =============================================================================
# Data Source Module
# =============================================================================
# The boundary the store loads from. The core only consumes three query
# shapes: the account list, the messages of an account+folder, and the
# folder metadata of an account. Whether they are backed by a protocol
# client, a file, or synthetic data is invisible to the store.
#
# Provides:
#   - DataSource: the abstract boundary
#   - SyntheticSource: seeded random mailboxes for development and demos
# =============================================================================

from kestrel.source.base import DataSource, SourceError
from kestrel.source.synthetic import SyntheticSource

__all__ = ["DataSource", "SourceError", "SyntheticSource"]
