# =============================================================================
# Loopback Transport
# =============================================================================
# A Transport that pretends to send. It waits for a simulated network delay
# and records what it "sent", which is enough for the demo CLI and for
# exercising the draft lifecycle without a server.
# =============================================================================

import asyncio
import logging
from email.utils import make_msgid

from kestrel.core import Account, ComposeDraft
from kestrel.smtp.transport import SendError

logger = logging.getLogger(__name__)


class LoopbackTransport:
    """
    In-process transport with a configurable delay and failure switch.

    Usage:
        >>> transport = LoopbackTransport(delay=0)
        >>> await transport.send(draft, account)
        '<...@example.com>'
        >>> transport.fail = True   # every following send raises SendError

    Attributes:
        delay: Simulated transmission time in seconds.
        fail: When True, sends raise SendError.
        sent: (draft, account, message_id) of every successful send.
    """

    def __init__(self, delay: float = 1.0, fail: bool = False) -> None:
        self.delay = delay
        self.fail = fail
        self.sent: list[tuple[ComposeDraft, Account, str]] = []

    async def send(self, draft: ComposeDraft, account: Account) -> str:
        if not draft.to:
            raise SendError("No recipients specified")

        await asyncio.sleep(self.delay)
        if self.fail:
            raise SendError("Simulated transmission failure")

        message_id = make_msgid(domain=account.domain)
        self.sent.append((draft, account, message_id))
        logger.debug(f"Loopback send of {draft.id} as {message_id}")
        return message_id
