"""MCP models — JSON-RPC 2.0 messages and tool descriptors.

Implements the envelope used on the stdio transport for tool discovery
(``tools/list``) and execution (``tools/call``).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

JSONRPC_VERSION = "2.0"

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000

JsonRpcId = str | int | float | None


def is_valid_id(value: Any) -> bool:
    """Return ``True`` for ids the protocol echoes back (string, number, null)."""
    if isinstance(value, bool):
        return False
    return value is None or isinstance(value, (str, int, float))


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    jsonrpc: str = JSONRPC_VERSION
    method: str
    id: JsonRpcId = None
    params: Any = None

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method}
        if self.params is not None:
            payload["params"] = self.params
        return payload


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message.

    Exactly one of ``result`` / ``error`` goes on the wire; ``id`` is always
    written, ``null`` included.
    """

    jsonrpc: str = JSONRPC_VERSION
    id: JsonRpcId = None
    result: Any = None
    error: JsonRpcError | None = None

    @classmethod
    def ok(cls, request_id: JsonRpcId, result: Any) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def fail(cls, request_id: JsonRpcId, code: int, message: str, data: Any = None) -> JsonRpcResponse:
        return cls(id=request_id, error=JsonRpcError(code=code, message=message, data=data))

    def to_wire(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result
        return payload


# ---------------------------------------------------------------------------
# Tool descriptors
# ---------------------------------------------------------------------------


class MCPToolDef(BaseModel):
    """A tool descriptor as returned by ``tools/list``."""

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("input_schema", "inputSchema"),
    )
