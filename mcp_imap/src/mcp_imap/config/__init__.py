"""Configuration surface for mcp-imap.

What:
  Re-export the loader and the pydantic models describing the mailbox
  identity and tunables.

Why:
  Callers (CLI, tests) should not depend on the module split between parsing
  and schema definitions.

Interfaces:
  - load_runtime_config: Environment plus optional YAML, validated.
  - RuntimeConfig / MailboxIdentity / ImapSettings / ServerSettings: models.
"""

from .loader import (
    ENV_CONFIG_PATH,
    ENV_HOST,
    ENV_MAILBOX,
    ENV_PASSWORD,
    load_runtime_config,
)
from .schema import ImapSettings, MailboxIdentity, RuntimeConfig, ServerSettings

__all__ = [
    "load_runtime_config",
    "ENV_CONFIG_PATH",
    "ENV_HOST",
    "ENV_MAILBOX",
    "ENV_PASSWORD",
    "RuntimeConfig",
    "MailboxIdentity",
    "ImapSettings",
    "ServerSettings",
]
