"""``mcpbox serve`` — run the tool server on stdin/stdout."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from mcpbox.cli_commands._output import err_console

_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.command()
@click.option(
    "--sandbox-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory file tools are confined to (overrides MCPBOX_SANDBOX_ROOT).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level for stderr diagnostics (overrides MCPBOX_LOG_LEVEL).",
)
@click.option("--trace", is_flag=True, default=False, help="Export OpenTelemetry spans to stderr.")
def serve(sandbox_root: Path | None, log_level: str | None, trace: bool) -> None:
    """Serve the tool catalog over line-delimited JSON-RPC on stdio.

    Runs until stdin closes or the process receives SIGINT/SIGTERM.
    """
    from pydantic import ValidationError

    from mcpbox.config import ServerConfig
    from mcpbox.server.stdio import run_stdio_server

    try:
        config = ServerConfig.from_env()
    except ValidationError as exc:
        problems = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
        raise click.UsageError(f"Invalid MCPBOX_* environment: {problems}") from exc
    updates: dict[str, object] = {}
    if sandbox_root is not None:
        updates["sandbox_root"] = sandbox_root.resolve()
    if log_level is not None:
        updates["log_level"] = log_level.upper()
    if updates:
        config = config.model_copy(update=updates)

    # stdout is the protocol channel; diagnostics go to stderr only.
    logging.basicConfig(
        stream=sys.stderr,
        level=config.log_level,
        format="[mcpbox] %(levelname)s %(name)s: %(message)s",
    )

    if trace:
        from mcpbox.utils.telemetry import configure_telemetry

        try:
            configure_telemetry()
        except ImportError as exc:
            err_console.print(f"[yellow]Tracing disabled:[/yellow] {exc}")

    try:
        asyncio.run(run_stdio_server(config))
    except OSError as exc:
        err_console.print(f"[red]Server error:[/red] {exc}")
        sys.exit(1)
