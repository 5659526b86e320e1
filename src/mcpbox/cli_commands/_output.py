"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from mcpbox.protocols.mcp.models import MCPToolDef  # noqa: TC001

console = Console()
err_console = Console(stderr=True)


def print_tools_table(tools: list[MCPToolDef]) -> None:
    """Pretty-print the tool catalog as a table."""
    table = Table(title="Tool Catalog")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Arguments")

    for tool in tools:
        required = tool.input_schema.get("required", [])
        table.add_row(tool.name, _truncate(tool.description), ", ".join(required) or "-")

    console.print(table)


def print_result(result: Any) -> None:
    """Print a tool result as JSON."""
    console.print_json(json.dumps(result, default=str))


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
