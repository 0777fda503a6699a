# =============================================================================
# SMTP Transport
# =============================================================================
# Sends compose drafts over SMTP.
#
# Each send opens its own connection:
#   1. Connect with SSL or STARTTLS (per account settings)
#   2. Log in with the password stored in the system keyring
#   3. Send the MIME message, then quit
#
# Every failure surfaces as an SMTPError subclass so the draft manager can
# keep the draft and show the error.
#
# aiosmtplib does the protocol work; keyring holds the passwords.
# =============================================================================

import logging
from email.encoders import encode_base64
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid

import aiosmtplib
import keyring
from keyring.errors import KeyringError

from kestrel.core import Account, ComposeDraft
from kestrel.log import payload
from kestrel.smtp.transport import SendError, SMTPAuthenticationError, SMTPConnectionError

logger = logging.getLogger(__name__)

# Header value identifying the sending client
MAILER = "Kestrel"

PRIORITY_HEADERS = {
    "high": "1 (Highest)",
    "low": "5 (Lowest)",
}


class SMTPTransport:
    """
    Transport that delivers drafts through the account's SMTP server.

    Usage:
        >>> transport = SMTPTransport()
        >>> message_id = await transport.send(draft, account)

    The password is looked up with keyring under
    (account.keyring_service, account.email).
    """

    # Seconds before a connect or command gives up
    TIMEOUT = 30

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout or self.TIMEOUT

    async def send(self, draft: ComposeDraft, account: Account) -> str:
        """
        Send a draft.

        Returns:
            Message-ID of the sent message.

        Raises:
            SMTPConnectionError: If the server cannot be reached.
            SMTPAuthenticationError: If login fails or no password is stored.
            SendError: If the message is rejected or has no recipients.
        """
        if not draft.to:
            raise SendError("No recipients specified")
        if not account.smtp_host:
            raise SendError(f"No SMTP server configured for {account.email}")

        message = build_mime_message(draft, account)
        client = await self._connect(account)
        try:
            logger.info(
                "Sending over SMTP",
                extra=payload(account_id=account.id, recipients=len(draft.recipients)),
            )
            await client.send_message(message, recipients=draft.recipients)
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send failed: {e}", extra=payload(account_id=account.id))
            raise SendError(f"Server rejected the message: {e}") from e
        finally:
            await self._disconnect(client)

        message_id = message["Message-ID"]
        logger.info("SMTP send complete", extra=payload(account_id=account.id, message_id=message_id))
        return message_id

    async def _connect(self, account: Account) -> aiosmtplib.SMTP:
        logger.info(f"Connecting to SMTP {account.smtp_host}:{account.smtp_port}")

        try:
            password = keyring.get_password(account.keyring_service, account.email)
        except KeyringError as e:
            raise SMTPAuthenticationError(f"Keyring lookup failed for {account.email}: {e}") from e
        if not password:
            raise SMTPAuthenticationError(
                f"No password found in keyring for {account.email}. "
                f"Set it with: keyring set {account.keyring_service} {account.email}"
            )

        client = aiosmtplib.SMTP(
            hostname=account.smtp_host,
            port=account.smtp_port,
            use_tls=account.smtp_security == "ssl",
            start_tls=account.smtp_security == "starttls",
            timeout=self.timeout,
        )

        try:
            await client.connect()
        except (aiosmtplib.SMTPException, OSError) as e:
            await self._disconnect(client)
            raise SMTPConnectionError(
                f"Failed to connect to SMTP {account.smtp_host}:{account.smtp_port}: {e}"
            ) from e

        try:
            await client.login(account.email, password)
        except aiosmtplib.SMTPAuthenticationError as e:
            await self._disconnect(client)
            raise SMTPAuthenticationError(
                f"SMTP authentication failed for {account.email}: {e}"
            ) from e
        except (aiosmtplib.SMTPException, OSError) as e:
            # Dropped or refused during AUTH
            await self._disconnect(client)
            raise SMTPConnectionError(
                f"SMTP session lost while logging in as {account.email}: {e}"
            ) from e

        logger.debug(f"SMTP session ready for {account.email}")
        return client

    async def _disconnect(self, client: aiosmtplib.SMTP) -> None:
        if not client.is_connected:
            return
        try:
            await client.quit()
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning(f"Error during SMTP disconnect: {e}")


def build_mime_message(draft: ComposeDraft, account: Account) -> MIMEMultipart:
    """
    Build a MIME message from a draft.

    Handles:
        - Plain text only
        - HTML with plain text alternative
        - Attachments (only those carrying data; metadata-only attachments
          cannot be transmitted and are left out)

    Returns:
        MIMEMultipart message ready to send.
    """
    attachments = [a for a in draft.attachments if a.data is not None]
    if len(attachments) < len(draft.attachments):
        logger.debug(f"Skipping {len(draft.attachments) - len(attachments)} attachments without data")

    if draft.body_html:
        body = MIMEMultipart("alternative")
        body.attach(MIMEText(draft.body, "plain", "utf-8"))
        body.attach(MIMEText(draft.body_html, "html", "utf-8"))
    else:
        body = MIMEText(draft.body, "plain", "utf-8")

    if attachments:
        # Mixed: body + attachments
        msg = MIMEMultipart("mixed")
        msg.attach(body)
        for attachment in attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            part = MIMEBase(maintype, subtype or "octet-stream")
            part.set_payload(attachment.data)
            encode_base64(part)
            part.add_header("Content-Disposition", "attachment", filename=attachment.filename)
            msg.attach(part)
    elif isinstance(body, MIMEMultipart):
        msg = body
    else:
        msg = MIMEMultipart()
        msg.attach(body)

    msg["From"] = formataddr((account.name, account.email))
    msg["To"] = ", ".join(draft.to)
    if draft.cc:
        msg["Cc"] = ", ".join(draft.cc)
    # BCC recipients only go on the envelope
    msg["Subject"] = draft.subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=account.domain)

    # Threading headers
    if draft.in_reply_to:
        msg["In-Reply-To"] = draft.in_reply_to
    if draft.references:
        msg["References"] = " ".join(draft.references)

    if draft.priority in PRIORITY_HEADERS:
        msg["X-Priority"] = PRIORITY_HEADERS[draft.priority]

    msg["X-Mailer"] = MAILER
    return msg
