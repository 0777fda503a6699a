# =============================================================================
# Transport Interface
# =============================================================================
# Anything that can transmit a ComposeDraft. DraftManager only depends on
# this protocol; SMTPTransport talks to a real server, LoopbackTransport
# simulates one.
#
# A transport either returns the Message-ID of the sent message or raises
# an SMTPError subclass. Nothing else counts as success.
# =============================================================================

from typing import Protocol

from kestrel.core import Account, ComposeDraft


class Transport(Protocol):
    """Sends drafts on behalf of an account."""

    async def send(self, draft: ComposeDraft, account: Account) -> str:
        """
        Transmit a draft.

        Returns:
            Message-ID of the sent message.

        Raises:
            SMTPError: If the message could not be sent.
        """
        ...


class SMTPError(Exception):
    """Base exception for SMTP operations."""
    pass


class SMTPConnectionError(SMTPError):
    """Raised when unable to connect to SMTP server."""
    pass


class SMTPAuthenticationError(SMTPError):
    """Raised when SMTP authentication fails."""
    pass


class SendError(SMTPError):
    """Raised when email sending fails."""
    pass
