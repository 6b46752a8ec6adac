"""mcp-imap command-line interface.

What:
  Provide the Typer entry point that MCP hosts launch. ``serve`` runs the MCP
  server over stdio, ``discover`` prints the account discovery payload, and
  ``check`` verifies that the mailbox can be opened and searched.

Why:
  The resource layer should not care how the process starts or stops. The
  CLI owns configuration loading, logging setup, and the bounded session
  teardown on exit.

How:
  Load :class:`~mcp_imap.config.RuntimeConfig` from the environment, build an
  :class:`~mcp_imap.imap.ImapMailbox` and a
  :class:`~mcp_imap.resources.ResourceRouter`, then hand control to
  :func:`~mcp_imap.resources.serve_stdio`. Whatever ends the server (client
  disconnect, Ctrl-C, SIGTERM), the session is closed with the configured
  grace period.

Interfaces:
  ``app`` (Typer application), ``serve``, ``discover``, ``check``, ``main``.

Invariants & Safety:
  - Nothing is written to stdout while serving; stdout is the MCP channel.
  - Exit codes follow shell expectations (``0`` success, ``1`` failure).
  - Configuration errors are reported without echoing the password.
"""
from __future__ import annotations

import logging
import signal
import sys
from typing import Optional

import anyio
import typer

from .config import RuntimeConfig, load_runtime_config
from .errors import ConfigError, McpImapError
from .imap import ImapMailbox
from .resources import ResourceRouter, serve_stdio
from .utils.logging import get_logger


app = typer.Typer(help="Expose an IMAP mailbox as mcp-imap:// MCP resources")

LOGGER = get_logger("mcp_imap.cli")


def _load_config() -> RuntimeConfig:
    try:
        return load_runtime_config()
    except ConfigError as exc:
        LOGGER.error("config_load_failed", error=str(exc))
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _build(runtime: RuntimeConfig) -> ImapMailbox:
    return ImapMailbox.from_identity(runtime.identity, runtime.imap)


def _close(mailbox: ImapMailbox, grace: float) -> None:
    """Close the session within ``grace`` seconds, warning on failure."""

    try:
        mailbox.close(timeout=grace)
    except McpImapError as exc:
        LOGGER.warning("session_close_failed", error=str(exc), grace_s=grace)


def _terminate(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


@app.command()
def serve(
    log_level: str = typer.Option("WARNING", help="Log level for the MCP SDK's own loggers"),
) -> None:
    """Run the MCP server over stdio."""

    logging.basicConfig(stream=sys.stderr, level=log_level.upper())
    runtime = _load_config()
    mailbox = _build(runtime)
    router = ResourceRouter(mailbox)
    previous = signal.signal(signal.SIGTERM, _terminate)
    LOGGER.info("serve_starting", mailbox=mailbox.mailbox, host=mailbox.host)
    try:
        anyio.run(serve_stdio, router)
    except KeyboardInterrupt:
        LOGGER.info("serve_interrupted")
    finally:
        signal.signal(signal.SIGTERM, previous)
        _close(mailbox, runtime.server.shutdown_grace_s)


@app.command()
def discover() -> None:
    """Print the account discovery payload without contacting the server."""

    runtime = _load_config()
    router = ResourceRouter(_build(runtime))
    result = router.handle_discovery(router.resources()[0].uri)
    for content in result.contents:
        typer.echo(content.text)


@app.command()
def check(
    timeout: Optional[float] = typer.Option(None, help="Seconds to wait for logout"),
) -> None:
    """Open the mailbox and report how many recent messages it holds."""

    runtime = _load_config()
    mailbox = _build(runtime)
    listed = failed = 0
    try:
        with mailbox.list_emails() as cursor:
            for summary, problem in cursor:
                if problem is not None:
                    failed += 1
                    LOGGER.warning("check_item_failed", error=str(problem))
                else:
                    listed += 1
    except McpImapError as exc:
        LOGGER.error("check_failed", error=str(exc))
        typer.echo(f"check failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        _close(mailbox, timeout or runtime.server.shutdown_grace_s)
    typer.echo(f"{mailbox.mailbox}@{mailbox.host}: {listed} recent emails, {failed} unreadable")


def main() -> None:
    """Execute the Typer application entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
