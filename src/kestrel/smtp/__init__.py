# =============================================================================
# SMTP Module
# =============================================================================
# Handles transmitting compose drafts.
#
# Features:
#   - Transport protocol used by the draft manager
#   - SMTPTransport: SSL/STARTTLS with keyring credentials (aiosmtplib)
#   - LoopbackTransport: simulated sends for demos and tests
#   - MIME message building (text, HTML, attachments, threading headers)
# =============================================================================

from kestrel.smtp.client import SMTPTransport, build_mime_message
from kestrel.smtp.loopback import LoopbackTransport
from kestrel.smtp.transport import (
    SendError,
    SMTPAuthenticationError,
    SMTPConnectionError,
    SMTPError,
    Transport,
)

__all__ = [
    "LoopbackTransport",
    "SMTPTransport",
    "Transport",
    "build_mime_message",
    "SMTPError",
    "SMTPConnectionError",
    "SMTPAuthenticationError",
    "SendError",
]
