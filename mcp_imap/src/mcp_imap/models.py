"""Payload models exchanged between the mailbox adapter and the resource router."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EmailSummary(BaseModel):
    """One listing entry; ``id`` is the sequence number within the session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    subject: str = ""
    received: Optional[datetime] = None
    from_: List[str] = Field(default_factory=list, alias="from")

    @field_validator("received")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Envelope dates without an offset are reported as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class EmailHead(EmailSummary):
    """Single-message metadata; currently returned empty."""

    id: str = ""


class Discovery(BaseModel):
    """Account discovery payload served at ``mcp-imap:///``."""

    mailbox: str
    host: str
    uri: str


@dataclass(frozen=True)
class EmailBody:
    """A single inline part: declared MIME type plus the decoded payload."""

    mime_type: str
    data: bytes


EmailBodies = List[EmailBody]


__all__ = ["EmailSummary", "EmailHead", "Discovery", "EmailBody", "EmailBodies"]
