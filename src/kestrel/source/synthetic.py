# =============================================================================
# Synthetic Data Source
# =============================================================================
# Generates realistic-looking mailboxes for development, demos and tests.
#
# Per account:
#   - 30 inbox, 20 sent, 5 drafts, 10 trash, 5 spam messages
#   - Two reply chains inside the inbox (threading headers filled in)
#   - ~40% unread inbox mail, sent mail always read
#
# With `new_mail_per_fetch` > 0 every inbox fetch after the first delivers
# up to that many new messages, which is how a sync "finds" new mail.
#
# The generator is seeded so the same seed yields the same mailboxes.
# Messages are deep-copied on the way out; the store never shares objects
# with the source.
# =============================================================================

import copy
import logging
import random
from datetime import datetime, timedelta, timezone
from uuid import UUID

from kestrel.core import (
    Account,
    Attachment,
    Contact,
    Folder,
    FolderType,
    Message,
    MessageFlags,
)
from kestrel.core.folder import SYSTEM_FOLDERS
from kestrel.source.base import DataSource, SourceError


logger = logging.getLogger(__name__)


# Sample people for email conversations
CONTACTS = [
    Contact("alice.johnson@techcorp.com", "Alice Johnson"),
    Contact("bob.smith@startup.io", "Bob Smith"),
    Contact("carol.davis@design.co", "Carol Davis"),
    Contact("david.wilson@finance.net", "David Wilson"),
    Contact("eve.martinez@marketing.biz", "Eve Martinez"),
    Contact("frank.brown@engineering.dev", "Frank Brown"),
    Contact("grace.lee@hr.company.com", "Grace Lee"),
    Contact("henry.taylor@sales.org", "Henry Taylor"),
    Contact("iris.chen@research.edu", "Iris Chen"),
    Contact("jack.anderson@support.help", "Jack Anderson"),
    Contact("karen.white@legal.law", "Karen White"),
    Contact("leo.garcia@product.team", "Leo Garcia"),
]

ACCOUNT_TEMPLATES = [
    ("gmail", "Personal", "gmail.com"),
    ("outlook", "Work", "outlook.com"),
    ("yahoo", "Side Project", "yahoo.com"),
]

SUBJECTS = [
    "Q1 Project Planning Meeting",
    "Budget review for next quarter",
    "Critical Bug: Login Failure on Mobile",
    "Design mockups for the dashboard",
    "Team offsite logistics",
    "Contract renewal",
    "Weekly metrics report",
    "Interview schedule update",
    "Invoice #4821",
    "Lunch on Friday?",
    "Release notes draft",
    "Customer feedback summary",
    "Security audit findings",
    "Onboarding checklist",
    "Travel reimbursement",
]

WORDS = (
    "please review the attached document before our meeting we need to "
    "finalize the timeline and budget let me know if anything is unclear "
    "thanks for the quick turnaround I will follow up with the team the "
    "numbers look good overall but a few items need another pass"
).split()

ATTACHMENT_TYPES = [
    ("pdf", "application/pdf"),
    ("docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
    ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ("jpg", "image/jpeg"),
    ("png", "image/png"),
    ("zip", "application/zip"),
]

# How many messages each lifecycle folder starts with
FOLDER_SIZES = {
    FolderType.INBOX: 30,
    FolderType.SENT: 20,
    FolderType.DRAFTS: 5,
    FolderType.TRASH: 10,
    FolderType.SPAM: 5,
}


class SyntheticSource(DataSource):
    """
    A DataSource backed by generated mailboxes.

    Usage:
        >>> source = SyntheticSource(seed=42)
        >>> accounts = await source.fetch_accounts()
        >>> inbox = await source.fetch_messages(accounts[0].id, "inbox")

    Attributes:
        new_mail_per_fetch: Upper bound of new inbox messages delivered per
                            inbox fetch after the first one.
    """

    def __init__(
        self,
        seed: int | None = None,
        *,
        account_count: int | None = None,
        new_mail_per_fetch: int = 0,
    ) -> None:
        self._rng = random.Random(seed)
        self._now = datetime.now(timezone.utc)
        self.new_mail_per_fetch = new_mail_per_fetch

        self._accounts: list[Account] = []
        self._messages: dict[str, list[Message]] = {}   # account_id -> messages
        self._fetched_inbox: set[str] = set()

        count = account_count or self._rng.randint(2, 3)
        for index in range(min(count, len(ACCOUNT_TEMPLATES))):
            account = self._make_account(index)
            self._accounts.append(account)
            self._messages[account.id] = self._make_mailbox(account)

        logger.debug(f"Synthetic source ready with {len(self._accounts)} accounts")

    # -------------------------------------------------------------------------
    # DataSource interface
    # -------------------------------------------------------------------------

    async def fetch_accounts(self) -> list[Account]:
        return [copy.deepcopy(a) for a in self._accounts]

    async def fetch_messages(self, account_id: str, folder_id: str) -> list[Message]:
        if account_id not in self._messages:
            raise SourceError(f"Unknown account: {account_id}")

        if folder_id in (FolderType.INBOX.value, FolderType.ALL.value):
            if account_id in self._fetched_inbox and self.new_mail_per_fetch > 0:
                self.deliver(account_id, self._rng.randint(0, self.new_mail_per_fetch))
            self._fetched_inbox.add(account_id)

        selected = self._select(self._messages[account_id], folder_id)
        selected.sort(key=lambda m: m.date, reverse=True)
        return [copy.deepcopy(m) for m in selected]

    async def fetch_folders(self, account_id: str) -> list[Folder]:
        if account_id not in self._messages:
            raise SourceError(f"Unknown account: {account_id}")

        folders = []
        for folder_type, name in SYSTEM_FOLDERS:
            folder = Folder.system(folder_type, account_id, name)
            members = self._select(self._messages[account_id], folder.id)
            folder.count = len(members)
            folder.unread_count = sum(1 for m in members if not m.is_read)
            folders.append(folder)
        return folders

    # -------------------------------------------------------------------------
    # Simulation helpers
    # -------------------------------------------------------------------------

    def deliver(self, account_id: str, count: int) -> list[Message]:
        """
        Add `count` new unread inbox messages to an account.

        Returns:
            Copies of the delivered messages.
        """
        account = next(a for a in self._accounts if a.id == account_id)
        delivered = []
        for _ in range(count):
            message = self._make_message(account, FolderType.INBOX, hours_ago=0)
            message.flags &= ~MessageFlags.SEEN
            self._messages[account_id].append(message)
            delivered.append(copy.deepcopy(message))
        if delivered:
            logger.debug(f"Delivered {len(delivered)} new messages to {account_id}")
        return delivered

    @staticmethod
    def _select(messages: list[Message], folder_id: str) -> list[Message]:
        if folder_id == FolderType.ALL.value:
            return [m for m in messages if not m.is_deleted]
        if folder_id == FolderType.STARRED.value:
            return [m for m in messages if m.is_starred and not m.is_deleted]
        if folder_id == FolderType.IMPORTANT.value:
            return [m for m in messages if m.is_important and not m.is_deleted]
        return [m for m in messages if m.folder == folder_id]

    # -------------------------------------------------------------------------
    # Generators
    # -------------------------------------------------------------------------

    def _uuid(self) -> str:
        return str(UUID(int=self._rng.getrandbits(128), version=4))

    def _make_account(self, index: int) -> Account:
        provider, name, domain = ACCOUNT_TEMPLATES[index]
        local = name.lower().replace(" ", ".")
        return Account(
            id=self._uuid(),
            email=f"{local}@{domain}",
            name=name,
            provider=provider,
            active=True,
            default=index == 0,
        )

    def _make_mailbox(self, account: Account) -> list[Message]:
        messages = []
        for folder_type, size in FOLDER_SIZES.items():
            for _ in range(size):
                messages.append(self._make_message(account, folder_type))

        # Turn the first six inbox messages into two reply chains of three
        inbox = [m for m in messages if m.folder == FolderType.INBOX.value]
        for chain in (inbox[0:3], inbox[3:6]):
            self._link_thread(chain)

        return messages

    def _link_thread(self, chain: list[Message]) -> None:
        chain.sort(key=lambda m: m.date)
        thread_id = self._uuid()
        root_subject = chain[0].subject
        for index, message in enumerate(chain):
            message.thread_id = thread_id
            if index > 0:
                message.subject = f"Re: {root_subject}"
                message.in_reply_to = chain[index - 1].message_id
                message.references = [m.message_id for m in chain[:index]]

    def _make_message(
        self,
        account: Account,
        folder_type: FolderType,
        hours_ago: int | None = None,
    ) -> Message:
        rng = self._rng
        me = Contact(account.email, account.name)
        other = rng.choice(CONTACTS)

        if folder_type == FolderType.SENT:
            sender, to = me, [other]
        else:
            sender = other
            to = [me] + rng.sample(CONTACTS, rng.randint(0, 2))
        cc = rng.sample(CONTACTS, rng.randint(1, 2)) if rng.random() < 0.2 else []

        if hours_ago is None:
            hours_ago = rng.randint(1, 30 * 24)

        body = self._make_body()
        attachments = []
        if rng.random() < 0.3:
            for _ in range(rng.randint(1, 3)):
                ext, mime = rng.choice(ATTACHMENT_TYPES)
                attachments.append(Attachment(
                    filename=f"{rng.choice(WORDS)}_{rng.randint(1, 99)}.{ext}",
                    content_type=mime,
                    size=rng.randint(1024, 10 * 1024 * 1024),
                    id=self._uuid(),
                ))

        flags = MessageFlags.NONE
        if folder_type == FolderType.SENT or rng.random() < 0.6:
            flags |= MessageFlags.SEEN
        if rng.random() < 0.1:
            flags |= MessageFlags.STARRED
        if rng.random() < 0.15:
            flags |= MessageFlags.IMPORTANT
        if rng.random() < 0.05:
            flags |= MessageFlags.FLAGGED
        if folder_type == FolderType.DRAFTS:
            flags |= MessageFlags.DRAFT
        if folder_type == FolderType.TRASH:
            flags |= MessageFlags.DELETED

        message_uuid = self._uuid()
        return Message(
            id=message_uuid,
            account_id=account.id,
            folder=folder_type.value,
            message_id=f"<{message_uuid}@{sender.email.rsplit('@', 1)[1]}>",
            sender=sender,
            to=to,
            cc=cc,
            subject=rng.choice(SUBJECTS),
            body=body,
            body_html="<br/><br/>".join(f"<p>{p}</p>" for p in body.split("\n\n")),
            date=self._now - timedelta(hours=hours_ago, minutes=rng.randint(0, 59)),
            size=len(body) + sum(a.size for a in attachments),
            flags=flags,
            attachments=attachments,
            thread_id=self._uuid(),
        )

    def _make_body(self) -> str:
        paragraphs = []
        for _ in range(self._rng.randint(1, 4)):
            words = [self._rng.choice(WORDS) for _ in range(self._rng.randint(12, 40))]
            paragraphs.append(" ".join(words).capitalize() + ".")
        return "\n\n".join(paragraphs)
