# =============================================================================
# Data Source Boundary
# =============================================================================
# Abstract interface for whatever supplies accounts, messages and folder
# metadata. All queries are async so that a network-backed source (IMAP,
# REST) can sit behind the same boundary as the synthetic one.
#
# Sources hand out fresh Message objects; the store decides what to ingest.
# =============================================================================

from abc import ABC, abstractmethod

from kestrel.core import Account, Folder, Message


class DataSource(ABC):
    """
    Supplies raw mailbox data to the MailStore.

    Implementations raise SourceError (or any exception) on failure; the
    store captures it into its error fields.
    """

    @abstractmethod
    async def fetch_accounts(self) -> list[Account]:
        """Return the accounts known to the source."""

    @abstractmethod
    async def fetch_messages(self, account_id: str, folder_id: str) -> list[Message]:
        """
        Return the ordered messages of an account+folder.

        Virtual views ("starred", "important", "all") select across folders.
        """

    @abstractmethod
    async def fetch_folders(self, account_id: str) -> list[Folder]:
        """Return folder metadata (name, type, count, unread count)."""


class SourceError(Exception):
    """Raised when a data source cannot answer a query."""
    pass
