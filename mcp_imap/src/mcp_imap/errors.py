"""Exception hierarchy shared by the session, adapter, and resource layers.

What:
  Define one typed exception per failure mode the resource pipeline can hit:
  transport, authentication, mailbox selection, identifier parsing, template
  matching, message decomposition, envelope decoding, and serialisation.

Why:
  The router applies different policies per failure class (abort the request,
  or aggregate and continue). Typed errors let it decide without string
  matching, and let the CLI distinguish configuration mistakes from outages.

How:
  Everything derives from :class:`McpImapError`. Session establishment errors
  share :class:`MailSessionError`; decomposition errors share
  :class:`DecompositionError`, which carries the parts extracted before the
  failure.

Interfaces:
  All classes below.

Invariants & Safety:
  - Messages name the mailbox and host but never the password.
  - Underlying causes are chained with ``raise ... from`` by the raisers.
"""
from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .models import EmailBody


class McpImapError(Exception):
    """Base class for every error raised by :mod:`mcp_imap`."""


class ConfigError(McpImapError):
    """Raised when the mailbox identity or settings cannot be loaded."""


class MailSessionError(McpImapError):
    """Base for failures while establishing or using the IMAP session."""


class MailConnectionError(MailSessionError):
    """The TLS dial (or a teardown) failed at the transport level."""


class AuthenticationError(MailSessionError):
    """The server rejected the PLAIN credential exchange."""

    def __init__(self, mailbox: str, host: str) -> None:
        super().__init__(f"authentication ({mailbox}@{host}) failed")
        self.mailbox = mailbox
        self.host = host


class MailboxSelectionError(MailSessionError):
    """The INBOX could not be selected read-only."""


class SearchError(MailSessionError):
    """The recency search command failed."""


class FetchError(MailSessionError):
    """A FETCH command failed before any payload could be read."""


class IdentifierFormatError(McpImapError, ValueError):
    """An email identifier is not a positive integer."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"invalid email id: {identifier!r}")
        self.identifier = identifier


class TemplateMismatchError(McpImapError, LookupError):
    """An incoming URI does not fit its resource template."""


class DecompositionError(McpImapError):
    """Base for failures while splitting a message into body parts.

    ``parts`` holds whatever was extracted before the failure, in order.
    """

    def __init__(self, message: str, parts: Optional[List["EmailBody"]] = None) -> None:
        super().__init__(message)
        self.parts: List["EmailBody"] = list(parts or [])


class ContentTypeError(DecompositionError):
    """An inline part declares a malformed ``Content-Type`` header."""


class BodyReadError(DecompositionError):
    """A part payload (or the message stream itself) could not be read."""


class EnvelopeError(McpImapError):
    """A single listing entry carried a missing or malformed envelope."""

    def __init__(self, message: str, sequence: Optional[int] = None) -> None:
        super().__init__(message)
        self.sequence = sequence


class SerializationError(McpImapError):
    """A resource payload could not be encoded."""


__all__ = [
    "McpImapError",
    "ConfigError",
    "MailSessionError",
    "MailConnectionError",
    "AuthenticationError",
    "MailboxSelectionError",
    "SearchError",
    "FetchError",
    "IdentifierFormatError",
    "TemplateMismatchError",
    "DecompositionError",
    "ContentTypeError",
    "BodyReadError",
    "EnvelopeError",
    "SerializationError",
]
