"""IMAP-backed implementation of the mailbox capabilities used by the router.

What:
  :class:`ImapMailbox` answers the four questions the resource layer asks:
  who is the account, which messages arrived recently, what is the head of a
  message, and what are its body parts.

Why:
  The router should not know about IMAP commands, numbering domains, or MIME
  parsing. This adapter is the only place where resource identifiers are
  turned back into protocol addresses.

How:
  Every operation starts with :meth:`MailSession.ensure_session` under the
  session lock. Listing searches in sequence-number mode and returns an
  :class:`~mcp_imap.imap.cursor.EnvelopeCursor`. Body retrieval fetches
  ``BODY.PEEK[]`` by UID and hands each literal to
  :func:`~mcp_imap.utils.mime.decompose_message`.

Interfaces:
  :class:`ImapMailbox`, :func:`parse_identifier`.

Invariants & Safety:
  - Listing identifiers are sequence numbers; retrieval identifiers are UIDs.
    The two domains are not disambiguated.
  - Body retrieval validates the identifier before any network call.
  - Decomposition failures discard partial results.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from imapclient.exceptions import IMAPClientError

from ..config.schema import ImapSettings, MailboxIdentity
from ..errors import DecompositionError, FetchError, IdentifierFormatError, SearchError
from ..models import EmailBodies, EmailHead
from ..utils.logging import get_logger
from ..utils.mime import decompose_message
from .cursor import EnvelopeCursor
from .session import MailSession

_IDENTIFIER = re.compile(r"^[0-9]+$")
_BODY_ITEM = "BODY.PEEK[]"
_BODY_KEY = b"BODY[]"


def parse_identifier(identifier: str) -> int:
    """Parse a resource email id as a positive integer.

    Raises:
      IdentifierFormatError: ``identifier`` is not a positive decimal number.
    """

    if not _IDENTIFIER.match(identifier or ""):
        raise IdentifierFormatError(identifier)
    value = int(identifier)
    if value <= 0:
        raise IdentifierFormatError(identifier)
    return value


class ImapMailbox:
    """Mailbox capabilities on top of a lazily established IMAP session."""

    def __init__(self, session: MailSession, window: Optional[timedelta] = None):
        self._session = session
        self._window = window or timedelta(hours=session.settings.window_hours)
        self._logger = get_logger("mcp_imap.imap.adapter")

    @classmethod
    def from_identity(
        cls, identity: MailboxIdentity, settings: Optional[ImapSettings] = None
    ) -> "ImapMailbox":
        return cls(MailSession(identity, settings))

    @property
    def session(self) -> MailSession:
        return self._session

    @property
    def mailbox(self) -> str:
        return self._session.mailbox

    @property
    def host(self) -> str:
        return self._session.host

    def close(self, timeout: Optional[float] = None) -> None:
        self._session.close(timeout)

    def list_emails(self) -> EnvelopeCursor:
        """Open a cursor over messages received within the recency window.

        What:
          Search ``SINCE`` now minus the window, then hand the matched
          sequence numbers to an :class:`EnvelopeCursor`.

        Why:
          Envelopes are fetched lazily by the cursor so the router can stream
          results and collect per-item failures.

        Returns:
          A cursor the caller must close (use it as a context manager).

        Raises:
          MailSessionError: Session establishment failed.
          SearchError: The search command failed.
        """

        with self._session.lock:
            client = self._session.ensure_session()
            since = (datetime.now(timezone.utc) - self._window).date()
            client.use_uid = False
            try:
                sequences = client.search(["SINCE", since])
            except (IMAPClientError, OSError) as exc:
                if isinstance(exc, OSError):
                    self._session.invalidate()
                raise SearchError(f"search failed: {exc}") from exc
            finally:
                client.use_uid = True
            self._logger.info("emails_listed", matched=len(sequences), since=since.isoformat())
            return EnvelopeCursor(self._session, sequences, self._session.settings.fetch_batch)

    def retrieve_email_head(self, identifier: str) -> EmailHead:
        """Validate ``identifier`` and return an empty head.

        Head retrieval is not implemented yet; only identifier validation and
        session establishment happen here.
        """

        with self._session.lock:
            parse_identifier(identifier)
            self._session.ensure_session()
            return EmailHead()

    def retrieve_email_body(self, identifier: str) -> EmailBodies:
        """Fetch a message by UID and split it into inline body parts.

        Args:
          identifier: Message UID as a decimal string.

        Returns:
          All inline parts across the returned body sections, in order.

        Raises:
          IdentifierFormatError: ``identifier`` is not a positive integer.
          MailSessionError: Session establishment failed.
          FetchError: The fetch command failed.
          DecompositionError: A body section could not be decomposed; its
            ``parts`` is emptied so no partial body set escapes.
        """

        uid = parse_identifier(identifier)
        with self._session.lock:
            client = self._session.ensure_session()
            try:
                response = client.fetch([uid], [_BODY_ITEM, "ENVELOPE"])
            except (IMAPClientError, OSError) as exc:
                if isinstance(exc, OSError):
                    self._session.invalidate()
                raise FetchError(f"fetch uid {uid} failed: {exc}") from exc

        output: EmailBodies = []
        for data in response.values():
            literal = data.get(_BODY_KEY)
            if literal is None:
                continue
            try:
                output.extend(decompose_message(literal))
            except DecompositionError as exc:
                self._logger.warning("email_body_undecodable", uid=uid, error=str(exc))
                exc.parts = []
                raise
        self._logger.info("email_body_retrieved", uid=uid, parts=len(output))
        return output
