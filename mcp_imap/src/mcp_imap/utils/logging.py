"""Structured JSON logging with redaction for mcp-imap.

What:
  Offer a tiny facade that emits one JSON object per line with a timestamp,
  severity, message, and component tag, plus caller supplied context.

Why:
  The server speaks MCP over stdio, so stdout belongs to the protocol. Logs go
  to stderr where MCP hosts collect them, and they must never contain the
  mailbox password or message content.

How:
  :class:`JsonLogger` resolves its stream lazily (``sys.stderr`` unless one is
  injected), redacts known sensitive keys recursively, and flushes after each
  line.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Every entry carries ``ts``, ``lvl``, ``msg`` and ``component``.
  - ``password``, ``subject``, ``body``, ``data`` and ``from`` values are
    replaced with ``[redacted]`` at any nesting depth.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "subject", "body", "data", "from"})


@dataclass
class JsonLogger:
    """Structured JSON logger writing redacted single-line entries.

    What:
      Serialise log events using the ``ts``/``lvl``/``msg``/``component``
      schema.

    How:
      :meth:`log` merges the canonical fields with a redacted copy of
      ``extra`` and writes the line to :attr:`stream`, or to the current
      ``sys.stderr`` when no stream was supplied.
    """

    stream: Any = None
    component: str = "mcp_imap"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Emit one structured log entry.

        Args:
          level: Severity label, upper-cased on output.
          message: Short event name.
          extra: Optional context, redacted recursively.
        """

        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        stream = self.stream if self.stream is not None else sys.stderr
        json.dump(payload, stream, separators=(",", ":"), default=str)
        stream.write("\n")
        stream.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log("DEBUG", message, extra=kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with sensitive keys masked."""

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str) -> JsonLogger:
    """Construct a :class:`JsonLogger` bound to ``component``."""

    return JsonLogger(component=component)
