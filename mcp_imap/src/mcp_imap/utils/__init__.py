"""Shared helpers: structured logging and MIME decomposition.

Interfaces:
  ``get_logger``, ``JsonLogger``, ``decompose_message``.
"""

from .logging import JsonLogger, get_logger
from .mime import decompose_message

__all__ = ["JsonLogger", "get_logger", "decompose_message"]
