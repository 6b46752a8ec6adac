"""Lazy envelope cursor backing the email listing.

What:
  Iterate ``(EmailSummary, error)`` pairs for a list of message sequence
  numbers, fetching envelopes from the server in batches only as the consumer
  advances.

Why:
  A recency window can match many messages; fetching envelopes on demand keeps
  memory flat and lets a consumer stop early. The cursor shares the session
  connection with other requests, so it only holds :attr:`MailSession.lock`
  while a batch is on the wire. A cursor that is dropped without being closed
  therefore never blocks later requests.

How:
  Each batch is fetched under the session lock in sequence-number mode
  (``use_uid = False``). Per-message problems become ``(None, EnvelopeError)``
  pairs; a failed batch becomes one ``(None, FetchError)`` pair and iteration
  moves on. :meth:`EnvelopeCursor.close` drops the pending sequence numbers
  and runs on exhaustion, on leaving a ``with`` block, and on any error
  escaping iteration.

Interfaces:
  :class:`EnvelopeCursor`, :func:`summarize_envelope`.

Invariants & Safety:
  - Pairs come out in the order the server delivered them.
  - Exactly one element of each pair is ``None``.
  - The session lock is never held between two calls to ``next``.
  - A cursor belongs to one consumer; it is not safe to share.
"""
from __future__ import annotations

from collections import deque
from email.errors import MessageError
from typing import Any, Deque, Iterable, List, Mapping, Optional, Tuple

from imapclient.exceptions import IMAPClientError
from pydantic import ValidationError

from ..errors import EnvelopeError, FetchError, MailSessionError
from ..models import EmailSummary
from ..utils.logging import get_logger
from ..utils.mime import decode_header_value
from .session import MailSession

SummaryPair = Tuple[Optional[EmailSummary], Optional[Exception]]

_LOGGER = get_logger("mcp_imap.imap.cursor")


def summarize_envelope(sequence: int, data: Mapping[bytes, Any]) -> SummaryPair:
    """Convert one FETCH ENVELOPE response entry into a summary pair.

    Only the first sender's display name is kept. Undecodable encoded words
    fail the item, not the listing.
    """

    envelope = data.get(b"ENVELOPE")
    if envelope is None:
        return None, EnvelopeError(f"message {sequence}: no envelope in fetch response", sequence)
    senders = envelope.from_ or ()
    if not senders:
        return None, EnvelopeError(f"message {sequence}: envelope has no sender", sequence)
    try:
        summary = EmailSummary(
            id=str(sequence),
            subject=decode_header_value(envelope.subject),
            received=envelope.date,
            from_=[decode_header_value(senders[0].name)],
        )
    except (LookupError, ValueError, MessageError, ValidationError) as exc:
        return None, EnvelopeError(f"message {sequence}: malformed envelope: {exc}", sequence)
    return summary, None


class EnvelopeCursor:
    """Iterator of summary pairs fetched lazily from the session.

    Use as a context manager so an early ``break`` still discards the pending
    batches::

        with mailbox.list_emails() as cursor:
            for summary, problem in cursor:
                ...
    """

    def __init__(self, session: MailSession, sequences: Iterable[int], batch_size: int = 50):
        self._session = session
        self._pending: Deque[int] = deque(sequences)
        self._buffer: Deque[SummaryPair] = deque()
        self._batch_size = batch_size
        self._closed = False

    def __enter__(self) -> "EnvelopeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> "EnvelopeCursor":
        return self

    def __next__(self) -> SummaryPair:
        try:
            while not self._buffer:
                if self._closed or not self._pending:
                    raise StopIteration
                self._fill()
        except BaseException:
            self.close()
            raise
        return self._buffer.popleft()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop iteration and drop unfetched messages; safe to call twice."""

        self._closed = True
        self._pending.clear()
        self._buffer.clear()

    def _fill(self) -> None:
        batch: List[int] = []
        while self._pending and len(batch) < self._batch_size:
            batch.append(self._pending.popleft())
        with self._session.lock:
            try:
                client = self._session.client
            except MailSessionError as exc:
                self._pending.clear()
                self._buffer.append((None, exc))
                return
            client.use_uid = False
            try:
                response = client.fetch(batch, ["ENVELOPE"])
            except (IMAPClientError, OSError) as exc:
                _LOGGER.warning("envelope_fetch_failed", first=batch[0], count=len(batch), error=str(exc))
                if isinstance(exc, OSError):
                    self._session.invalidate()
                self._buffer.append((None, FetchError(f"fetch envelopes {batch[0]}..{batch[-1]}: {exc}")))
                return
            finally:
                client.use_uid = True
        for sequence, data in response.items():
            self._buffer.append(summarize_envelope(sequence, data))
