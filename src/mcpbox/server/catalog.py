"""Tool catalog — the fixed set of sandboxed tools the server exposes.

Each tool pairs a JSON-schema descriptor (for discovery only) with a strict
pydantic argument model (the runtime source of truth) and an async handler.
Dispatch goes through the closed :class:`ToolName` enum; an unknown name is
the "not found" case rather than a missing attribute.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from mcpbox.protocols.errors import ToolNotFoundError
from mcpbox.runtime.sandbox.io import (
    DEFAULT_HTTP_TIMEOUT,
    http_get_bytes,
    http_get_json,
    read_file_direct,
    remove_file_direct,
    write_file_direct,
)
from mcpbox.runtime.sandbox.resolver import resolve_sandbox
from mcpbox.utils.telemetry import ATTR_TOOL_NAME, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class ToolName(str, Enum):
    """Every tool the server knows about."""

    WRITE_FILE = "write_file"
    READ_FILE = "read_file"
    REMOVE_FILE = "remove_file"
    HTTP_GET_JSON = "http_get_json"
    HTTP_GET_BLOB = "http_get_blob"


class ToolContext(BaseModel):
    """Per-server state handed to every handler; immutable after startup."""

    model_config = ConfigDict(frozen=True)

    sandbox_root: Path
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class _StrictArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class WriteFileArgs(_StrictArgs):
    path: str
    data: str


class PathArgs(_StrictArgs):
    path: str


class UrlArgs(BaseModel):
    # Lax so that a JSON string validates into HttpUrl; unknown keys still rejected.
    model_config = ConfigDict(extra="forbid")

    url: HttpUrl = Field(..., description="Absolute http(s) URL")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _write_file(args: WriteFileArgs, ctx: ToolContext) -> dict[str, Any]:
    path = resolve_sandbox(ctx.sandbox_root, args.path)
    written = await write_file_direct(path, args.data)
    return {"ok": True, "path": str(path), "bytes": written}


async def _read_file(args: PathArgs, ctx: ToolContext) -> dict[str, Any]:
    path = resolve_sandbox(ctx.sandbox_root, args.path)
    raw = await read_file_direct(path)
    return {"ok": True, "path": str(path), "data": raw.decode("utf-8", errors="replace")}


async def _remove_file(args: PathArgs, ctx: ToolContext) -> dict[str, Any]:
    path = resolve_sandbox(ctx.sandbox_root, args.path)
    await remove_file_direct(path)
    return {"ok": True, "path": str(path)}


async def _http_get_json(args: UrlArgs, ctx: ToolContext) -> dict[str, Any]:
    url = str(args.url)
    payload = await http_get_json(url, timeout=ctx.http_timeout)
    return {"ok": True, "url": url, "json": payload}


async def _http_get_blob(args: UrlArgs, ctx: ToolContext) -> dict[str, Any]:
    url = str(args.url)
    body = await http_get_bytes(url, timeout=ctx.http_timeout)
    return {"ok": True, "url": url, "bytes": len(body)}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

Handler = Callable[[Any, ToolContext], Awaitable[dict[str, Any]]]


class ToolSpec(BaseModel):
    """A catalog entry: descriptor, argument model and handler."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: ToolName
    description: str
    input_schema: dict[str, Any]
    args_model: type[BaseModel]
    handler: Handler

    def descriptor(self) -> dict[str, Any]:
        return {
            "name": self.name.value,
            "description": self.description,
            "input_schema": self.input_schema,
        }


def _path_schema(description: str, *, with_data: bool = False) -> dict[str, Any]:
    properties: dict[str, Any] = {"path": {"type": "string", "description": description}}
    required = ["path"]
    if with_data:
        properties["data"] = {"type": "string", "description": "UTF-8 file contents"}
        required.append("data")
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


_URL_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "url": {"type": "string", "format": "uri", "description": "Absolute http(s) URL"},
    },
    "required": ["url"],
    "additionalProperties": False,
}

TOOLS: dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name=ToolName.WRITE_FILE,
            description="Write a UTF-8 text file in the sandbox.",
            input_schema=_path_schema("Relative path under sandbox, e.g. 'note.txt'", with_data=True),
            args_model=WriteFileArgs,
            handler=_write_file,
        ),
        ToolSpec(
            name=ToolName.READ_FILE,
            description="Read a UTF-8 file from the sandbox.",
            input_schema=_path_schema("Relative path under sandbox"),
            args_model=PathArgs,
            handler=_read_file,
        ),
        ToolSpec(
            name=ToolName.REMOVE_FILE,
            description="Remove a file from the sandbox.",
            input_schema=_path_schema("Relative path under sandbox"),
            args_model=PathArgs,
            handler=_remove_file,
        ),
        ToolSpec(
            name=ToolName.HTTP_GET_JSON,
            description="HTTP GET expecting JSON.",
            input_schema=_URL_SCHEMA,
            args_model=UrlArgs,
            handler=_http_get_json,
        ),
        ToolSpec(
            name=ToolName.HTTP_GET_BLOB,
            description="HTTP GET returning binary size.",
            input_schema=_URL_SCHEMA,
            args_model=UrlArgs,
            handler=_http_get_blob,
        ),
    )
}


def list_tools() -> list[dict[str, Any]]:
    """Return the descriptor of every registered tool, in catalog order."""
    return [spec.descriptor() for spec in TOOLS.values()]


def is_tool_name(name: str) -> bool:
    try:
        ToolName(name)
    except ValueError:
        return False
    return True


def get_tool(name: str | ToolName) -> ToolSpec:
    """Look up a catalog entry.

    Raises
    ------
    ToolNotFoundError
        If *name* is not one of :class:`ToolName`.
    """
    try:
        return TOOLS[ToolName(name)]
    except ValueError:
        raise ToolNotFoundError(str(name)) from None


def validate(name: str | ToolName, arguments: Any) -> BaseModel:
    """Validate raw *arguments* for tool *name*.

    Raises ``pydantic.ValidationError`` on bad arguments and
    :class:`ToolNotFoundError` on an unknown tool.
    """
    return get_tool(name).args_model.model_validate(arguments)


async def execute_tool(name: str | ToolName, args: BaseModel, ctx: ToolContext) -> dict[str, Any]:
    """Run the handler for *name* with already-validated *args*."""
    spec = get_tool(name)
    with _tracer.start_as_current_span("mcpbox.tool.execute") as span:
        span.set_attribute(ATTR_TOOL_NAME, spec.name.value)
        logger.debug("executing %s", spec.name.value)
        return await spec.handler(args, ctx)
