# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the Kestrel test suite.
#
#   - FakeSource: an in-memory DataSource with a failure switch
#   - make_message: builds messages with sensible defaults
#   - store: a MailStore over two accounts, initialized on the inbox
# =============================================================================

import copy
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from kestrel.core import Account, Attachment, Contact, Folder, Message, MessageFlags
from kestrel.core.folder import SYSTEM_FOLDERS
from kestrel.smtp import LoopbackTransport
from kestrel.source.base import DataSource, SourceError
from kestrel.storage import MailStore
from kestrel.storage.pipeline import in_folder


BASE_DATE = datetime(2024, 1, 15, 10, 30, 0)


class FakeSource(DataSource):
    """In-memory DataSource. Set `fail` to make every query raise."""

    def __init__(self, accounts: list[Account], messages: list[Message]) -> None:
        self.accounts = accounts
        self.messages = messages
        self.fail = False
        self.fetches: list[tuple[str, str]] = []

    async def fetch_accounts(self) -> list[Account]:
        if self.fail:
            raise SourceError("source unavailable")
        return copy.deepcopy(self.accounts)

    async def fetch_messages(self, account_id: str, folder_id: str) -> list[Message]:
        self.fetches.append((account_id, folder_id))
        if self.fail:
            raise SourceError("source unavailable")
        return [
            copy.deepcopy(m) for m in self.messages
            if m.account_id == account_id and in_folder(m, folder_id)
        ]

    async def fetch_folders(self, account_id: str) -> list[Folder]:
        if self.fail:
            raise SourceError("source unavailable")
        return [Folder.system(t, account_id, name) for t, name in SYSTEM_FOLDERS]


def make_message(
    message_id: str,
    account_id: str = "acct-1",
    *,
    folder: str = "inbox",
    read: bool = True,
    starred: bool = False,
    important: bool = False,
    subject: str = "Hello",
    body: str = "Just checking in.",
    sender: Contact | None = None,
    hours_ago: int = 0,
    size: int = 1000,
    thread_id: str = "",
    attachments: list[Attachment] | None = None,
) -> Message:
    flags = MessageFlags.NONE
    if read:
        flags |= MessageFlags.SEEN
    if starred:
        flags |= MessageFlags.STARRED
    if important:
        flags |= MessageFlags.IMPORTANT
    if folder == "trash":
        flags |= MessageFlags.DELETED
    return Message(
        id=message_id,
        account_id=account_id,
        folder=folder,
        message_id=f"<{message_id}@example.com>",
        sender=sender or Contact("sender@example.com", "Test Sender"),
        to=[Contact("me@example.com", "Me")],
        subject=subject,
        body=body,
        date=BASE_DATE - timedelta(hours=hours_ago),
        size=size,
        flags=flags,
        attachments=attachments or [],
        thread_id=thread_id or message_id,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def xdg_home(temp_dir, monkeypatch):
    """Point every XDG directory into a temporary directory."""
    for var in ("XDG_CONFIG_HOME", "XDG_DATA_HOME", "XDG_CACHE_HOME", "XDG_STATE_HOME"):
        monkeypatch.setenv(var, str(temp_dir / var.lower()))
    return temp_dir


@pytest.fixture
def sample_account():
    """Create a sample Account for testing."""
    return Account(
        id="acct-1",
        email="me@example.com",
        name="Test User",
        provider="custom",
        default=True,
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_security="starttls",
    )


@pytest.fixture
def second_account():
    return Account(id="acct-2", email="work@example.org", name="Work")


@pytest.fixture
def sample_message():
    """Create a sample Message for testing."""
    return Message(
        id="msg-budget",
        account_id="acct-1",
        folder="inbox",
        message_id="<budget@x.com>",
        sender=Contact("alice@x.com", "Alice"),
        to=[Contact("me@example.com", "Test User"), Contact("bob@x.com", "Bob")],
        cc=[Contact("Carol@x.com", "Carol"), Contact("ALICE@x.com", "Alice")],
        subject="Budget",
        body="Numbers attached.\nPlease review.",
        date=BASE_DATE,
        flags=MessageFlags.NONE,
        attachments=[Attachment("budget.pdf", "application/pdf", 2048, data=b"%PDF")],
        references=["<kickoff@x.com>"],
    )


@pytest.fixture
def inbox_messages():
    """30 inbox messages for acct-1, the first 12 unread, newest first."""
    return [
        make_message(f"m{i:02d}", read=i >= 12, hours_ago=i)
        for i in range(30)
    ]


@pytest.fixture
def source(sample_account, second_account, inbox_messages):
    messages = inbox_messages + [
        make_message("w00", "acct-2", read=False),
        make_message("w01", "acct-2"),
        make_message("s00", folder="sent"),
    ]
    return FakeSource([sample_account, second_account], messages)


@pytest_asyncio.fixture
async def store(source):
    """A MailStore over `source`, initialized on acct-1's inbox."""
    store = MailStore(source)
    await store.initialize()
    return store


@pytest.fixture
def transport():
    """A loopback transport that records sends without waiting."""
    return LoopbackTransport(delay=0)
