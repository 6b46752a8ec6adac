"""Attach the resource router to an MCP low-level server.

What:
  Build an ``mcp`` server named ``mcp-imap`` that answers ``resources/list``,
  ``resources/templates/list`` and ``resources/read`` from a
  :class:`~mcp_imap.resources.router.ResourceRouter`, and run it over stdio.

Why:
  The router is synchronous and blocking; the MCP SDK is asynchronous. This
  module is the only place where the two meet.

How:
  List handlers translate :class:`ResourceEntry` records into SDK models.
  Reads run :meth:`ResourceRouter.read` in a worker thread via
  :func:`anyio.to_thread.run_sync` and convert each content item into a text
  or blob resource content with its own URI. Listing problems are logged and
  reported under the result's ``_meta`` while the partial contents are still
  returned.

Interfaces:
  :func:`build_server`, :func:`serve_stdio`, :data:`INSTRUCTIONS`.
"""
from __future__ import annotations

import base64
from typing import List
from urllib.parse import unquote

import anyio
import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .. import __version__
from ..utils.logging import get_logger
from .router import ReadResult, ResourceContent, ResourceRouter, SCHEME

INSTRUCTIONS = f"An IMAP client is attached via mcp with the protocol `{SCHEME}`."
PROBLEMS_META_KEY = f"{SCHEME}/problems"

_LOGGER = get_logger("mcp_imap.resources.server")


def _to_contents(content: ResourceContent) -> types.TextResourceContents | types.BlobResourceContents:
    if content.blob is not None:
        return types.BlobResourceContents(
            uri=content.uri,
            mimeType=content.mime_type,
            blob=base64.b64encode(content.blob).decode("ascii"),
        )
    return types.TextResourceContents(uri=content.uri, mimeType=content.mime_type, text=content.text or "")


def to_read_result(result: ReadResult) -> types.ReadResourceResult:
    """Convert a router result into the SDK model, surfacing listing problems."""

    contents = [_to_contents(item) for item in result.contents]
    if result.problem is None:
        return types.ReadResourceResult(contents=contents)
    problems: List[str] = [str(exc) for exc in result.problem.exceptions]
    return types.ReadResourceResult(contents=contents, _meta={PROBLEMS_META_KEY: problems})


def build_server(router: ResourceRouter) -> Server:
    """Create the MCP server exposing ``router``."""

    server: Server = Server(SCHEME, version=__version__, instructions=INSTRUCTIONS)

    @server.list_resources()
    async def list_resources() -> List[types.Resource]:
        return [
            types.Resource(
                uri=entry.uri,
                name=entry.name,
                description=entry.description,
                mimeType=entry.mime_type,
            )
            for entry in router.resources()
        ]

    @server.list_resource_templates()
    async def list_resource_templates() -> List[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=entry.uri,
                name=entry.name,
                description=entry.description,
                mimeType=entry.mime_type,
            )
            for entry in router.templates()
        ]

    async def read_resource(request: types.ReadResourceRequest) -> types.ServerResult:
        uri = unquote(str(request.params.uri))
        result = await anyio.to_thread.run_sync(router.read, uri)
        if result.problem is not None:
            _LOGGER.warning("read_partial", uri=uri, problems=len(result.problem.exceptions))
        return types.ServerResult(to_read_result(result))

    # Registered directly so each content item keeps its own URI.
    server.request_handlers[types.ReadResourceRequest] = read_resource
    return server


async def serve_stdio(router: ResourceRouter) -> None:
    """Serve ``router`` over stdin/stdout until the client disconnects."""

    server = build_server(router)
    async with stdio_server() as (read_stream, write_stream):
        _LOGGER.info("server_started", transport="stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())
    _LOGGER.info("server_stopped")
