"""
Module: mcp_imap.__init__

What:
  Package root for the mcp-imap server, which exposes one IMAP mailbox as
  ``mcp-imap://`` resources (account, recent email list, email head, email
  bodies).

Why:
  Keeping the exported namespaces explicit lets the CLI and tests depend on
  stable entry points while the modules behind them evolve.

Interfaces:
  - config: Environment and YAML configuration with pydantic validation.
  - imap: Lazy IMAP session, listing cursor, and mailbox adapter.
  - resources: URI templates, the resource router, and the MCP binding.
  - utils: Structured logging and MIME decomposition.

Invariants:
  - The mailbox is only ever opened read-only.
  - Nothing in the package logs the mailbox password or message content.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "config",
    "imap",
    "resources",
    "utils",
]
