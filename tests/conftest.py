"""Pytest configuration shared by every suite.

What:
  Put the in-repo source tree on ``sys.path`` and give every test a clean,
  deterministic mailbox identity in the environment.

Why:
  The CLI and configuration loader read ``MCP_*`` variables. Without explicit
  resets, a developer's shell (or a previous test) could leak credentials or
  config paths into assertions.

How:
  Compute the project root relative to the file, inject ``mcp_imap/src`` when
  present, and use :class:`pytest.MonkeyPatch` in an autouse fixture to set
  the identity variables and drop ``MCP_IMAP_CONFIG_PATH``.

Interfaces:
  :func:`mailbox_env` (autouse fixture), :data:`TEST_MAILBOX`,
  :data:`TEST_HOST`, :data:`TEST_PASSWORD`.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "mcp_imap" / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest

TEST_MAILBOX = "alice@example.com"
TEST_HOST = "imap.example.com"
TEST_PASSWORD = "s3cret-pass"


@pytest.fixture(autouse=True)
def mailbox_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Apply the canned mailbox identity for every test."""

    monkeypatch.setenv("MCP_MAILBOX", TEST_MAILBOX)
    monkeypatch.setenv("MCP_HOST", TEST_HOST)
    monkeypatch.setenv("MCP_PASSWORD", TEST_PASSWORD)
    monkeypatch.delenv("MCP_IMAP_CONFIG_PATH", raising=False)
