"""``mcpbox tools`` — list and call tools through a spawned server."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from mcpbox.cli_commands._output import console, print_result, print_tools_table

if TYPE_CHECKING:
    from mcpbox.config import MCPServerRef


@click.group()
def tools() -> None:
    """Discover and invoke tools."""


_server_option = click.option(
    "--server",
    default=None,
    help="Command that starts a stdio tool server (default: this package's server).",
)
_sandbox_option = click.option(
    "--sandbox-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Sandbox root handed to the spawned server.",
)


def _server_ref(server: str | None, sandbox_root: Path | None) -> MCPServerRef:
    from mcpbox.config import MCPServerRef

    values: dict[str, Any] = {"name": "cli"}
    if server:
        values["command"] = server
    if sandbox_root is not None:
        values["sandbox_root"] = sandbox_root.resolve()
    return MCPServerRef(**values)


@tools.command("list")
@_server_option
@_sandbox_option
def list_cmd(server: str | None, sandbox_root: Path | None) -> None:
    """List the tools a server exposes."""
    from mcpbox.protocols.mcp.client import MCPClient

    ref = _server_ref(server, sandbox_root)

    async def _list() -> list[Any]:
        async with MCPClient(ref) as client:
            return await client.list_tools()

    try:
        tool_defs = asyncio.run(_list())
    except Exception as exc:
        console.print(f"[red]Discovery error:[/red] {exc}")
        raise SystemExit(1) from exc

    if not tool_defs:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    print_tools_table(tool_defs)


@tools.command("call")
@click.argument("name")
@click.option("--args", "raw_args", default="{}", help="Tool arguments as a JSON object.")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the response.")
@_server_option
@_sandbox_option
def call_cmd(
    name: str,
    raw_args: str,
    timeout: float | None,
    server: str | None,
    sandbox_root: Path | None,
) -> None:
    """Call tool NAME and print its JSON result."""
    from mcpbox.protocols.errors import RpcError
    from mcpbox.protocols.mcp.client import MCPClient

    try:
        arguments = json.loads(raw_args)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    ref = _server_ref(server, sandbox_root)

    async def _call() -> Any:
        async with MCPClient(ref) as client:
            return await client.call_tool(name, arguments, timeout=timeout)

    try:
        result = asyncio.run(_call())
    except RpcError as exc:
        console.print(f"[red]Tool error {exc.code}:[/red] {exc.message}")
        if exc.data is not None:
            print_result(exc.data)
        raise SystemExit(1) from exc
    except Exception as exc:
        console.print(f"[red]Call error:[/red] {exc}")
        raise SystemExit(1) from exc

    print_result(result)
