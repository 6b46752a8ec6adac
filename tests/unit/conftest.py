"""Pytest fixtures for unit tests requiring the IMAP fake.

What:
  Make ``tests/unit`` importable and expose fixtures that wire
  :class:`~mcp_imap.imap.session.MailSession` and
  :class:`~mcp_imap.imap.adapter.ImapMailbox` to :class:`FakeImapBackend`.

Why:
  Session and adapter tests need to observe dials, logins, and fetches, and to
  inject failures, without any network access.

How:
  Monkeypatch ``mcp_imap.imap.session.IMAPClient`` with a factory that records
  each dial and returns the shared backend (or raises ``dial_error``).

Interfaces:
  :func:`backend`, :func:`dialer`, :func:`identity`, :func:`session`,
  :func:`mailbox`.

Invariants & Safety:
  - Each test receives a fresh backend instance to eliminate state leakage.
"""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

from mcp_imap.config.schema import ImapSettings, MailboxIdentity
from mcp_imap.imap.adapter import ImapMailbox
from mcp_imap.imap.session import MailSession

UNIT_DIR = Path(__file__).resolve().parent
if str(UNIT_DIR) not in sys.path:
    sys.path.insert(0, str(UNIT_DIR))

from fakes import FakeImapBackend


class Dialer:
    """Replacement for the ``IMAPClient`` constructor that records dials."""

    def __init__(self, backend: FakeImapBackend) -> None:
        self.backend = backend
        self.calls: List[dict] = []
        self.dial_error: Optional[BaseException] = None

    def __call__(self, host, port=993, ssl=True, timeout=None):
        self.calls.append({"host": host, "port": port, "ssl": ssl, "timeout": timeout})
        if self.dial_error is not None:
            raise self.dial_error
        return self.backend


@pytest.fixture
def backend() -> FakeImapBackend:
    return FakeImapBackend()


@pytest.fixture
def dialer(monkeypatch: pytest.MonkeyPatch, backend: FakeImapBackend) -> Dialer:
    factory = Dialer(backend)
    monkeypatch.setattr("mcp_imap.imap.session.IMAPClient", factory)
    return factory


@pytest.fixture
def identity() -> MailboxIdentity:
    return MailboxIdentity(mailbox="alice@example.com", host="imap.example.com", password="s3cret-pass")


@pytest.fixture
def session(dialer: Dialer, identity: MailboxIdentity) -> MailSession:
    return MailSession(identity, ImapSettings(timeout_s=5.0, fetch_batch=2))


@pytest.fixture
def mailbox(session: MailSession) -> ImapMailbox:
    return ImapMailbox(session)
