"""Tool server — catalog and the stdio JSON-RPC loop."""

from mcpbox.server.catalog import ToolContext, ToolName, execute_tool, list_tools, validate
from mcpbox.server.loop import MCPServer

__all__ = [
    "MCPServer",
    "ToolContext",
    "ToolName",
    "execute_tool",
    "list_tools",
    "validate",
]
