"""Lazily established, lock-guarded IMAP session for a single mailbox.

What:
  Own the one ``imapclient.IMAPClient`` connection used by the mailbox
  adapter: dial TLS, authenticate with SASL PLAIN, and select the INBOX in
  read-only mode on first use, then hand the live connection to callers.

Why:
  Every resource read needs a selected mailbox, but an MCP host may start the
  server long before (or without ever) reading a resource. Deferring the dial
  keeps startup free of network I/O, and reusing the connection avoids a full
  handshake per request.

How:
  :meth:`MailSession.ensure_session` checks for a live connection under
  :attr:`MailSession.lock` and runs dial, authenticate, and select when none
  exists. Each step maps its failure to a dedicated error type. A failed step
  shuts the half-open socket down so the next call starts from scratch; there
  is no retry or backoff. :meth:`MailSession.close` logs out within a caller
  supplied timeout.

Interfaces:
  :class:`MailSession`.

Invariants & Safety:
  - All IMAP commands run while :attr:`MailSession.lock` is held; the lock is
    re-entrant so the adapter and its cursor can nest acquisitions.
  - The mailbox is always selected read-only; no command here mutates flags.
  - The password is only handed to ``plain_login`` and never logged.
"""
from __future__ import annotations

import threading
from typing import Optional

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError

from ..config.schema import ImapSettings, MailboxIdentity
from ..errors import (
    AuthenticationError,
    MailboxSelectionError,
    MailConnectionError,
    MailSessionError,
)
from ..utils.logging import get_logger


class MailSession:
    """Connection holder for one mailbox identity.

    What:
      Provide an authenticated, INBOX-selected ``IMAPClient`` on demand.

    Why:
      The adapter's operations all start by making sure a session exists;
      centralising the sequence keeps error mapping and locking in one place.

    How:
      Store the identity and settings, create the connection lazily in
      :meth:`ensure_session`, and drop it on :meth:`invalidate` or
      :meth:`close`.
    """

    def __init__(self, identity: MailboxIdentity, settings: Optional[ImapSettings] = None):
        self._identity = identity
        self._settings = settings or ImapSettings()
        self._client: Optional[IMAPClient] = None
        self.lock = threading.RLock()
        self._logger = get_logger("mcp_imap.imap.session")

    def __enter__(self) -> "MailSession":
        self.ensure_session()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def mailbox(self) -> str:
        return self._identity.mailbox

    @property
    def host(self) -> str:
        return self._identity.host

    @property
    def settings(self) -> ImapSettings:
        return self._settings

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> IMAPClient:
        """Return the live connection.

        Raises:
          MailSessionError: If :meth:`ensure_session` has not succeeded yet.
        """

        if self._client is None:
            raise MailSessionError("IMAP session not established")
        return self._client

    def ensure_session(self) -> IMAPClient:
        """Return a live, authenticated, INBOX-selected connection.

        What:
          Reuse the current connection or establish a new one.

        How:
          Under :attr:`lock`: dial ``host:port`` over TLS, call
          ``plain_login`` with the mailbox as both authentication and
          authorization identity, then ``select_folder`` read-only.

        Returns:
          The connected ``IMAPClient``.

        Raises:
          MailConnectionError: The TLS dial failed.
          AuthenticationError: The server rejected the credentials.
          MailboxSelectionError: The folder could not be selected.
        """

        with self.lock:
            if self._client is not None:
                return self._client
            host, port = self._identity.host, self._settings.port
            try:
                client = IMAPClient(host, port=port, ssl=True, timeout=self._settings.timeout_s)
            except (IMAPClientError, OSError) as exc:
                self._logger.error("imap_dial_failed", host=host, port=port, error=str(exc))
                raise MailConnectionError(f"dial {host}:{port} failed: {exc}") from exc

            mailbox = self._identity.mailbox
            try:
                client.plain_login(
                    mailbox,
                    self._identity.password.get_secret_value(),
                    authorization_identity=mailbox,
                )
            except (IMAPClientError, OSError) as exc:
                self._discard(client)
                self._logger.error("imap_auth_failed", mailbox=mailbox, host=host)
                raise AuthenticationError(mailbox, host) from exc

            folder = self._settings.folder
            try:
                client.select_folder(folder, readonly=True)
            except (IMAPClientError, OSError) as exc:
                self._discard(client)
                self._logger.error("imap_select_failed", folder=folder, error=str(exc))
                raise MailboxSelectionError(f"select {folder} failed: {exc}") from exc

            self._client = client
            self._logger.info("imap_session_established", mailbox=mailbox, host=host, folder=folder)
            return client

    def invalidate(self) -> None:
        """Drop the current connection after a transport failure."""

        with self.lock:
            client, self._client = self._client, None
            if client is not None:
                self._discard(client)
                self._logger.warning("imap_session_invalidated", host=self._identity.host)

    def close(self, timeout: Optional[float] = None) -> None:
        """Log out of the live connection, if any, within ``timeout`` seconds.

        What:
          Release the connection; a no-op when none exists.

        How:
          Wait at most ``timeout`` for :attr:`lock`, bound the socket with the
          same timeout, and issue ``LOGOUT``. A failed logout shuts the socket
          down and surfaces as :class:`MailConnectionError`.

        Args:
          timeout: Upper bound in seconds; ``None`` waits indefinitely.

        Raises:
          MailConnectionError: When logout fails.
        """

        acquired = self.lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            client, self._client = self._client, None
            if client is None:
                return
            try:
                if timeout is not None:
                    client.socket().settimeout(timeout)
                client.logout()
            except (IMAPClientError, OSError) as exc:
                self._discard(client)
                raise MailConnectionError(f"closing session: {exc}") from exc
            self._logger.info("imap_session_closed", host=self._identity.host)
        finally:
            if acquired:
                self.lock.release()

    def _discard(self, client: IMAPClient) -> None:
        try:
            client.shutdown()
        except (IMAPClientError, OSError) as exc:
            self._logger.debug("imap_shutdown_failed", error=str(exc))
