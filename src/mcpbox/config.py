"""Configuration — server settings and how a client launches a server."""

from __future__ import annotations

import logging
import os
import shlex
import sys
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from mcpbox.runtime.sandbox.io import DEFAULT_HTTP_TIMEOUT
from mcpbox.runtime.sandbox.resolver import SANDBOX_ROOT_ENV, get_sandbox_root

HTTP_TIMEOUT_ENV = "MCPBOX_HTTP_TIMEOUT"
LOG_LEVEL_ENV = "MCPBOX_LOG_LEVEL"


class ServerConfig(BaseModel):
    """Settings for one server instance, fixed at startup."""

    sandbox_root: Path = Field(..., description="Directory every file tool is confined to.")
    http_timeout: float = Field(
        default=DEFAULT_HTTP_TIMEOUT,
        gt=0,
        description="Per-request timeout for the HTTP tools, in seconds.",
    )
    log_level: str = Field(default="WARNING", description="stdlib logging level name.")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            msg = f"unknown log level {value!r}"
            raise ValueError(msg)
        return level

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> ServerConfig:
        """Build a config from ``MCPBOX_*`` environment variables."""
        source = os.environ if env is None else env
        values: dict[str, object] = {"sandbox_root": get_sandbox_root(dict(source))}
        timeout = source.get(HTTP_TIMEOUT_ENV, "").strip()
        if timeout:
            values["http_timeout"] = timeout
        level = source.get(LOG_LEVEL_ENV, "").strip()
        if level:
            values["log_level"] = level
        return cls.model_validate(values)


def default_server_command() -> list[str]:
    """Run the bundled server with the current interpreter."""
    return [sys.executable, "-m", "mcpbox", "serve"]


class MCPServerRef(BaseModel):
    """How to launch a stdio tool server as a child process."""

    name: str = "mcpbox"
    command: str | list[str] = Field(default_factory=default_server_command)
    env: dict[str, str] = Field(default_factory=dict)
    sandbox_root: Path | None = Field(
        default=None,
        description="Exported to the child as MCPBOX_SANDBOX_ROOT when set.",
    )

    def argv(self) -> list[str]:
        """Return the command as an argv list (strings are ``shlex``-split)."""
        if isinstance(self.command, str):
            return shlex.split(self.command)
        return list(self.command)

    def child_env(self) -> dict[str, str]:
        """Parent environment overlaid with ``env`` and the sandbox root."""
        merged = {**os.environ, **self.env}
        if self.sandbox_root is not None:
            merged[SANDBOX_ROOT_ENV] = str(self.sandbox_root)
        return merged
