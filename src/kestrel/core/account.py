# =============================================================================
# Account Model
# =============================================================================
# Represents one configured mailbox identity. Each account has its own
# message, folder and label space inside the MailStore.
#
# IMPORTANT: Passwords are NOT stored here. The SMTP transport retrieves them
# from the system keyring at send time using the 'keyring' library.
# =============================================================================

from dataclasses import dataclass


@dataclass
class Account:
    """
    Represents an email account.

    Attributes:
        id: Opaque unique identifier for this account.
        email: The email address associated with this account.
        name: The display name shown in the "From" field when sending.
              Defaults to the email address if not specified.
        provider: Provider tag ("gmail", "outlook", "yahoo", "custom", ...).

        active: Whether this account takes part in multi-account loads and
                sync. Inactive accounts are still listed.
        default: Whether this account should be current on startup.

        unread_count: Derived unread counter. Recomputed by the store,
                      never authoritative.
        total_count: Derived total counter. Same rules as unread_count.

        smtp_host: Hostname of the SMTP server used by SMTPTransport.
        smtp_port: SMTP port (587 for STARTTLS, 465 for SSL).
        smtp_security: "ssl" or "starttls".

        signature: Optional signature appended by the UI when composing.
        color: Optional UI accent color.

    Example:
        >>> account = Account(
        ...     id="acct-1",
        ...     email="user@example.com",
        ...     name="Jane Doe",
        ...     provider="custom",
        ... )
    """

    # Identification
    id: str
    email: str
    name: str = ""
    provider: str = "custom"

    # Lifecycle flags
    active: bool = True
    default: bool = False

    # Derived counters (recomputed by the store)
    unread_count: int = 0
    total_count: int = 0

    # SMTP configuration (for sending)
    smtp_host: str = ""
    smtp_port: int = 587                # Default to STARTTLS port
    smtp_security: str = "starttls"     # "ssl" or "starttls"

    # Cosmetic
    signature: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        """Sets name to email if not provided."""
        if not self.name:
            self.name = self.email

    @property
    def keyring_service(self) -> str:
        """
        Returns the service name used for keyring password storage.

            keyring get kestrel:acct-1 user@example.com
        """
        return f"kestrel:{self.id}"

    @property
    def domain(self) -> str:
        """Returns the domain part of the address, or "localhost"."""
        if "@" in self.email:
            return self.email.rsplit("@", 1)[1]
        return "localhost"

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id!r}, email={self.email!r}, "
            f"provider={self.provider!r}, active={self.active})"
        )
