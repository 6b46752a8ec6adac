"""Resource layer: URI templates, the router, and the MCP server binding.

Interfaces:
  ``ResourceRouter``, ``ReadResult``, ``ResourceContent``, ``UriTemplate``,
  the template constants, ``build_server`` and ``serve_stdio``.
"""

from .router import (
    BODIES_TEMPLATE,
    DISCOVERY_URI,
    HEAD_TEMPLATE,
    MIME_JSON,
    ROOT_TEMPLATE,
    ReadResult,
    ResourceContent,
    ResourceRouter,
    account_uri,
)
from .server import build_server, serve_stdio
from .templates import UriTemplate

__all__ = [
    "BODIES_TEMPLATE",
    "DISCOVERY_URI",
    "HEAD_TEMPLATE",
    "MIME_JSON",
    "ROOT_TEMPLATE",
    "ReadResult",
    "ResourceContent",
    "ResourceRouter",
    "UriTemplate",
    "account_uri",
    "build_server",
    "serve_stdio",
]
