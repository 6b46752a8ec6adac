"""Runtime configuration loader for the mcp-imap server.

What:
  Assemble a validated :class:`~mcp_imap.config.schema.RuntimeConfig` from the
  ``MCP_MAILBOX``/``MCP_HOST``/``MCP_PASSWORD`` environment variables and an
  optional YAML document named by ``MCP_IMAP_CONFIG_PATH``.

Why:
  The process is normally launched by an MCP host that only passes
  environment variables. Operators who need to tune ports, timeouts, or the
  recency window can do so in a file without touching the host configuration.

How:
  Parse the YAML file (when present) with :func:`yaml.safe_load`, overlay the
  identity values found in the environment, and validate the merged mapping
  with pydantic. Every failure is converted into :class:`ConfigError` with the
  offending source named.

Interfaces:
  :func:`load_runtime_config`, :data:`ENV_MAILBOX`, :data:`ENV_HOST`,
  :data:`ENV_PASSWORD`, :data:`ENV_CONFIG_PATH`.

Invariants & Safety:
  - Environment values always win over file values for the identity.
  - Error messages never include the password; pydantic input values are
    stripped from the rendered validation errors.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .schema import RuntimeConfig

ENV_MAILBOX = "MCP_MAILBOX"
ENV_HOST = "MCP_HOST"
ENV_PASSWORD = "MCP_PASSWORD"
ENV_CONFIG_PATH = "MCP_IMAP_CONFIG_PATH"

_IDENTITY_ENV = {
    "mailbox": ENV_MAILBOX,
    "host": ENV_HOST,
    "password": ENV_PASSWORD,
}


def _read_document(path: Path) -> Dict[str, Any]:
    """Load the optional YAML overrides file into a mapping.

    Args:
      path: Location of the YAML document.

    Returns:
      The parsed mapping (empty for an empty file).

    Raises:
      ConfigError: If the file is missing, unreadable, not YAML, or not a
        mapping at the top level.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"{path} must contain a mapping at the top-level")
    return payload


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors(include_input=False):
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def load_runtime_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RuntimeConfig:
    """Build the runtime configuration from the environment and YAML.

    What:
      Merge identity values from ``environ`` into the optional YAML payload and
      validate the result.

    Why:
      A single entry point keeps the CLI and tests on the same precedence
      rules.

    How:
      Resolve the file from ``path`` or ``MCP_IMAP_CONFIG_PATH``, read it via
      :func:`_read_document`, overlay the non-empty identity environment
      variables, then call :meth:`RuntimeConfig.model_validate`.

    Args:
      path: Explicit YAML file; ``None`` falls back to the environment.
      environ: Environment mapping, defaults to :data:`os.environ`.

    Returns:
      The validated :class:`RuntimeConfig`.

    Raises:
      ConfigError: When the file cannot be loaded or validation fails.
    """

    env = os.environ if environ is None else environ
    if path is None and env.get(ENV_CONFIG_PATH):
        path = Path(env[ENV_CONFIG_PATH]).expanduser()
    payload: Dict[str, Any] = _read_document(path) if path is not None else {}

    identity = payload.get("identity") or {}
    if not isinstance(identity, dict):
        raise ConfigError("identity must be a mapping")
    identity = dict(identity)
    for field_name, variable in _IDENTITY_ENV.items():
        value = env.get(variable)
        if value:
            identity[field_name] = value
    payload = {**payload, "identity": identity}

    try:
        return RuntimeConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {_describe(exc)}") from exc
