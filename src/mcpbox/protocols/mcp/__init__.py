"""MCP protocol — JSON-RPC over newline-delimited stdio."""

from mcpbox.protocols.mcp.client import ClientState, MCPClient, to_function_schemas
from mcpbox.protocols.mcp.framing import LineFramer, decode_line, encode_message
from mcpbox.protocols.mcp.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse, MCPToolDef
from mcpbox.protocols.mcp.transport import MCPTransport, StdioTransport

__all__ = [
    "ClientState",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "LineFramer",
    "MCPClient",
    "MCPToolDef",
    "MCPTransport",
    "StdioTransport",
    "decode_line",
    "encode_message",
    "to_function_schemas",
]
