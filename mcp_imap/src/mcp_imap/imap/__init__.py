"""Facade for the IMAP integration layer.

What:
  Surface the session holder, the listing cursor, and the mailbox adapter.

Why:
  The resource layer and the CLI only need these three names; the module
  split stays an implementation detail.

Interfaces:
  ``MailSession``, ``EnvelopeCursor``, ``ImapMailbox``, ``parse_identifier``.

Invariants & Safety:
  - The mailbox is opened read-only; nothing in this package mutates mail.
  - All IMAP traffic goes through :class:`MailSession` and its lock.
"""

from .adapter import ImapMailbox, parse_identifier
from .cursor import EnvelopeCursor
from .session import MailSession

__all__ = ["MailSession", "EnvelopeCursor", "ImapMailbox", "parse_identifier"]
