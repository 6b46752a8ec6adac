"""Pydantic models describing the mcp-imap runtime configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class MailboxIdentity(BaseModel):
    """Credentials for the single mailbox served by the process."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mailbox: str = Field(min_length=1)
    host: str = Field(min_length=1)
    password: SecretStr

    @field_validator("mailbox", "host")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("password")
    @classmethod
    def _password_present(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("must not be empty")
        return value


class ImapSettings(BaseModel):
    """Connection and listing parameters for the IMAP session."""

    model_config = ConfigDict(extra="forbid")

    port: int = Field(default=993, gt=0, le=65535)
    timeout_s: float = Field(default=30.0, gt=0)
    folder: str = "INBOX"
    window_hours: int = Field(default=24, gt=0)
    fetch_batch: int = Field(default=50, gt=0)


class ServerSettings(BaseModel):
    """Process level settings for the MCP server."""

    model_config = ConfigDict(extra="forbid")

    shutdown_grace_s: float = Field(default=10.0, gt=0)


class RuntimeConfig(BaseModel):
    """Root configuration assembled from the environment and optional YAML."""

    model_config = ConfigDict(extra="forbid")

    identity: MailboxIdentity
    imap: ImapSettings = Field(default_factory=ImapSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
