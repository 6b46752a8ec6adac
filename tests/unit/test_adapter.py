"""Mailbox adapter tests against the in-memory IMAP backend.

What:
  Validate listing (recency window, sequence-number identifiers, per-item
  envelope failures, cursor lifetime), head validation, and body retrieval by
  UID including decomposition failures.

Why:
  The adapter is where resource identifiers become protocol addresses; a
  regression here silently addresses the wrong message or leaks the session
  lock.
"""

import gc
import threading
from datetime import datetime, timedelta, timezone

import pytest

from fakes import make_envelope, make_message
from mcp_imap.errors import (
    ContentTypeError,
    EnvelopeError,
    FetchError,
    IdentifierFormatError,
    MailConnectionError,
)
from mcp_imap.imap.adapter import parse_identifier
from mcp_imap.models import EmailHead
from mcp_imap.resources.router import ResourceRouter


def _lock_free(session) -> bool:
    """Return whether another thread can take the session lock."""

    outcome = {}

    def probe() -> None:
        acquired = session.lock.acquire(blocking=False)
        outcome["free"] = acquired
        if acquired:
            session.lock.release()

    worker = threading.Thread(target=probe)
    worker.start()
    worker.join()
    return outcome["free"]


@pytest.mark.parametrize("value, expected", [("1", 1), ("42", 42), ("007", 7)])
def test_parse_identifier_accepts_positive_integers(value, expected) -> None:
    assert parse_identifier(value) == expected


@pytest.mark.parametrize("value", ["abc", "", "0", "-3", "12abc", " 5"])
def test_parse_identifier_rejects_everything_else(value) -> None:
    with pytest.raises(IdentifierFormatError):
        parse_identifier(value)


def test_list_emails_uses_sequence_numbers_and_recency_window(mailbox, backend) -> None:
    backend.add(make_envelope("Old news"), age=timedelta(days=3))
    backend.add(make_envelope("First"))
    backend.add(make_envelope("=?utf-8?q?Caf=C3=A9?="))

    with mailbox.list_emails() as cursor:
        pairs = list(cursor)

    assert [problem for _, problem in pairs] == [None, None]
    summaries = [summary for summary, _ in pairs]
    assert [summary.id for summary in summaries] == ["2", "3"]
    assert [summary.subject for summary in summaries] == ["First", "Café"]
    assert summaries[0].from_ == ["Alice Example"]
    assert summaries[0].received.tzinfo is not None

    criteria, use_uid = backend.search_calls[0]
    assert criteria[0] == "SINCE"
    assert use_uid is False
    assert all(use_uid is False for _, _, use_uid in backend.fetch_calls)
    assert backend.use_uid is True


def test_list_emails_fetches_lazily_in_batches(mailbox, backend) -> None:
    for index in range(5):
        backend.add(make_envelope(f"Message {index}"))

    with mailbox.list_emails() as cursor:
        assert backend.fetch_calls == []
        next(cursor)
        assert len(backend.fetch_calls) == 1
        remaining = list(cursor)

    assert len(remaining) == 4
    assert [keys for keys, _, _ in backend.fetch_calls] == [[1, 2], [3, 4], [5]]


def test_list_emails_with_no_matches_is_empty(mailbox, session) -> None:
    with mailbox.list_emails() as cursor:
        assert list(cursor) == []
        assert cursor.closed

    assert _lock_free(session)


def test_malformed_envelope_fails_only_that_item(mailbox, backend) -> None:
    backend.add(make_envelope("One"))
    backend.add(make_envelope("Nobody", senders=()))
    backend.add(None)
    backend.add(make_envelope("Four"))

    with mailbox.list_emails() as cursor:
        pairs = list(cursor)

    assert len(pairs) == 4
    problems = [problem for _, problem in pairs if problem is not None]
    assert len(problems) == 2
    assert all(isinstance(problem, EnvelopeError) for problem in problems)
    assert [summary.id for summary, _ in pairs if summary is not None] == ["1", "4"]


def test_sender_without_display_name_yields_empty_name(mailbox, backend) -> None:
    backend.add(make_envelope("Anonymous", sender_name=None))

    with mailbox.list_emails() as cursor:
        [(summary, problem)] = list(cursor)

    assert problem is None
    assert summary.from_ == [""]


def test_early_break_closes_cursor_and_frees_session(mailbox, backend, session) -> None:
    for index in range(4):
        backend.add(make_envelope(f"Message {index}"))

    with mailbox.list_emails() as cursor:
        for _ in cursor:
            assert _lock_free(session)
            break

    assert cursor.closed
    assert list(cursor) == []
    assert _lock_free(session)


def test_dropped_cursor_does_not_hold_session(mailbox, backend, session) -> None:
    for index in range(3):
        backend.add(make_envelope(f"Message {index}"))

    cursor = mailbox.list_emails()
    next(cursor)
    del cursor
    gc.collect()

    assert _lock_free(session)
    with mailbox.list_emails() as cursor:
        assert len(list(cursor)) == 3


def test_undecodable_subject_fails_only_that_item(mailbox, backend) -> None:
    backend.add(make_envelope("Good"))
    backend.add(make_envelope("=?utf-8?b?a?="))
    backend.add(make_envelope("Also good"))

    with mailbox.list_emails() as cursor:
        pairs = list(cursor)

    assert [summary.subject for summary, _ in pairs if summary is not None] == ["Good", "Also good"]
    [problem] = [problem for _, problem in pairs if problem is not None]
    assert isinstance(problem, EnvelopeError)
    assert problem.sequence == 2


def test_failed_batch_becomes_single_item_error(mailbox, backend) -> None:
    backend.add(make_envelope("One"))
    cursor = mailbox.list_emails()
    backend.fail["fetch"] = OSError("connection reset")

    pairs = list(cursor)

    assert len(pairs) == 1
    assert isinstance(pairs[0][1], FetchError)
    assert cursor.closed


def test_list_emails_propagates_session_failure(mailbox, dialer) -> None:
    dialer.dial_error = OSError("unreachable")

    with pytest.raises(MailConnectionError):
        mailbox.list_emails()


def test_retrieve_email_head_validates_and_returns_empty(mailbox, dialer) -> None:
    with pytest.raises(IdentifierFormatError):
        mailbox.retrieve_email_head("abc")

    assert mailbox.retrieve_email_head("5") == EmailHead()
    assert len(dialer.calls) == 1


def test_retrieve_email_body_rejects_bad_id_before_network(mailbox, dialer) -> None:
    with pytest.raises(IdentifierFormatError):
        mailbox.retrieve_email_body("abc")

    assert dialer.calls == []


def test_retrieve_email_body_fetches_by_uid(mailbox, backend) -> None:
    backend.add(make_envelope("Ignored"))
    uid = backend.add(
        make_envelope("Report"),
        message_bytes=make_message("plain body", html="<p>html body</p>", attachment=True),
    )

    bodies = mailbox.retrieve_email_body(str(uid))

    assert [body.mime_type for body in bodies] == ["text/plain", "text/html"]
    assert bodies[0].data.strip() == b"plain body"
    keys, requested, use_uid = backend.fetch_calls[-1]
    assert keys == [uid]
    assert "BODY.PEEK[]" in requested
    assert use_uid is True


def test_retrieve_email_body_unknown_uid_is_empty(mailbox, backend) -> None:
    backend.add(make_envelope("Only"))

    assert mailbox.retrieve_email_body("1") == []


def test_retrieve_email_body_discards_partial_parts(mailbox, backend) -> None:
    raw = (
        b"MIME-Version: 1.0\r\n"
        b"Content-Type: multipart/mixed; boundary=XYZ\r\n\r\n"
        b"--XYZ\r\nContent-Type: text/plain\r\n\r\nfirst\r\n"
        b"--XYZ\r\nContent-Type: text\r\nContent-Disposition: inline\r\n\r\nsecond\r\n"
        b"--XYZ--\r\n"
    )
    uid = backend.add(make_envelope("Broken"), message_bytes=raw)

    with pytest.raises(ContentTypeError) as excinfo:
        mailbox.retrieve_email_body(str(uid))

    assert excinfo.value.parts == []


def test_retrieve_email_body_fetch_failure(mailbox, backend, dialer) -> None:
    uid = backend.add(make_envelope("Any"))
    mailbox.session.ensure_session()
    backend.fail["fetch"] = OSError("reset")

    with pytest.raises(FetchError):
        mailbox.retrieve_email_body(str(uid))

    assert not mailbox.session.connected


def test_listing_with_undecodable_subject_still_serves_the_rest(mailbox, backend) -> None:
    backend.add(make_envelope("Good"))
    backend.add(make_envelope("=?utf-8?b?a?="))
    backend.add(make_envelope("Also good"))

    result = ResourceRouter(mailbox).read("mcp-imap://alice@example.com@imap.example.com/")

    assert len(result.contents) == 2
    assert isinstance(result.problem, ExceptionGroup)
    assert len(result.problem.exceptions) == 1


def test_recency_window_is_computed_in_utc(mailbox, backend) -> None:
    before = (datetime.now(timezone.utc) - timedelta(hours=24)).date()
    with mailbox.list_emails() as cursor:
        list(cursor)
    after = (datetime.now(timezone.utc) - timedelta(hours=24)).date()

    criteria, _ = backend.search_calls[0]
    assert criteria[1] in (before, after)
