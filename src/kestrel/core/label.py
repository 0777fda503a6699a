# =============================================================================
# Label Model
# =============================================================================
# Labels are per-account tags with a color. A message references labels by
# id (Message.labels); the relationship is many-to-many.
# =============================================================================

from dataclasses import dataclass


@dataclass
class Label:
    """
    A colored tag owned by one account.

    Attributes:
        id: Opaque unique identifier.
        name: Display name.
        color: Color string used by the UI (e.g., "#e74c3c").
        account_id: The owning Account.
        is_system: True for provider-defined labels.
    """
    id: str
    name: str
    color: str
    account_id: str
    is_system: bool = False

    def __str__(self) -> str:
        return self.name
