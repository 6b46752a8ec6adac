"""Split raw RFC 822 messages into typed inline body parts.

What:
  Turn the ``BODY[]`` literal of a message into an ordered list of
  :class:`~mcp_imap.models.EmailBody` entries, one per inline leaf part.

Why:
  Resource clients address each body separately (``text/plain`` and
  ``text/html`` alternatives, inline images) and need the declared MIME type
  next to the raw bytes. Attachments are out of scope and must not leak into
  the body list.

How:
  Feed the stream to :class:`email.feedparser.BytesFeedParser` in fixed-size
  chunks, then walk the MIME tree depth-first. Containers (``multipart/*``)
  are descended into; leaves are classified as inline when their disposition
  is ``inline``, or when they carry no ``attachment`` disposition and a
  ``text/*`` type. Inline leaves contribute their transfer-decoded payload.

Interfaces:
  :func:`decompose_message`, :func:`is_inline`, :func:`decode_header_value`.

Invariants & Safety:
  - Output order is document order.
  - On failure the raised :class:`~mcp_imap.errors.DecompositionError`
    carries the parts extracted so far in ``parts``.
"""
from __future__ import annotations

import io
from email import policy
from email.errors import HeaderDefect
from email.feedparser import BytesFeedParser
from email.header import decode_header, make_header
from email.message import Message
from typing import BinaryIO, Iterator, List, Optional, Union

from ..errors import BodyReadError, ContentTypeError
from ..models import EmailBody, EmailBodies


CHUNK_SIZE = 64 * 1024


def decode_header_value(value: Union[bytes, str, None]) -> str:
    """Decode a raw envelope header (RFC 2047 encoded words included) to text.

    Raises:
      LookupError: The value names an unknown charset.
      email.errors.HeaderParseError: An encoded word cannot be decoded.
    """

    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if "=?" not in value:
        return value
    return str(make_header(decode_header(value)))


def _declared_type(part: Message) -> Optional[str]:
    """Return the declared ``maintype/subtype`` or ``None`` if malformed."""

    header = part.get("Content-Type")
    if header is None:
        return part.get_content_type()
    defects = getattr(header, "defects", ())
    if any(isinstance(defect, HeaderDefect) for defect in defects):
        return None
    return part.get_content_type()


def is_inline(part: Message) -> bool:
    """Classify a leaf part as inline content rather than an attachment."""

    disposition = part.get_content_disposition()
    if disposition == "inline":
        return True
    if disposition == "attachment":
        return False
    declared = _declared_type(part)
    return declared is not None and declared.startswith("text/")


def _leaves(part: Message) -> Iterator[Message]:
    if part.get_content_maintype() == "multipart" and part.is_multipart():
        for child in part.get_payload():
            yield from _leaves(child)
    else:
        yield part


def _read_payload(part: Message, parts: List[EmailBody]) -> bytes:
    try:
        if part.is_multipart():
            # message/rfc822 and friends: keep the embedded message verbatim.
            return b"".join(inner.as_bytes(policy=policy.default) for inner in part.get_payload())
        payload = part.get_payload(decode=True)
    except (LookupError, ValueError, TypeError) as exc:
        raise BodyReadError(f"reading body: {exc}", parts) from exc
    if payload is None:
        raise BodyReadError("reading body: part has no payload", parts)
    return payload


def _parse(stream: BinaryIO) -> Message:
    parser = BytesFeedParser(policy=policy.default)
    try:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            parser.feed(chunk)
    except OSError as exc:
        raise BodyReadError(f"reading message: {exc}") from exc
    return parser.close()


def decompose_message(source: Union[bytes, bytearray, BinaryIO]) -> EmailBodies:
    """Extract the inline body parts of a message.

    What:
      Parse ``source`` and return one :class:`EmailBody` per inline leaf.

    Why:
      The body resource emits each part as its own content item with the
      declared MIME type, so the split must preserve both order and type.

    How:
      Chunked feed parsing via :func:`_parse`, a depth-first walk with
      :func:`_leaves`, inline classification with :func:`is_inline`, and
      payload decoding with :func:`_read_payload`.

    Args:
      source: Raw message bytes or a readable binary stream.

    Returns:
      Inline parts in document order (possibly empty).

    Raises:
      ContentTypeError: An inline part declares a malformed content type.
      BodyReadError: The stream or a part payload could not be read.
    """

    stream = io.BytesIO(bytes(source)) if isinstance(source, (bytes, bytearray)) else source
    message = _parse(stream)
    parts: List[EmailBody] = []
    for leaf in _leaves(message):
        if not is_inline(leaf):
            continue
        mime_type = _declared_type(leaf)
        if mime_type is None:
            raise ContentTypeError(
                f"extracting content header: malformed Content-Type {str(leaf.get('Content-Type'))!r}",
                parts,
            )
        parts.append(EmailBody(mime_type=mime_type, data=_read_payload(leaf, parts)))
    return parts
