"""Structured logger tests: schema, redaction, and stderr routing."""

import io
import json

from mcp_imap.utils.logging import REDACTED, JsonLogger, get_logger


def test_entries_follow_schema_and_redact_nested_secrets() -> None:
    stream = io.StringIO()
    logger = JsonLogger(stream=stream, component="test")

    logger.warning("event", password="pw", context={"subject": "Hi", "uid": 3}, host="h")

    entry = json.loads(stream.getvalue())
    assert entry["lvl"] == "WARN"
    assert entry["msg"] == "event"
    assert entry["component"] == "test"
    assert entry["password"] == REDACTED
    assert entry["context"] == {"subject": REDACTED, "uid": 3}
    assert entry["host"] == "h"
    assert "ts" in entry


def test_default_logger_writes_to_stderr(capsys) -> None:
    get_logger("mcp_imap.test").info("hello", count=2)

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["count"] == 2
