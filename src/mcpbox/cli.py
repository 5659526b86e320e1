"""mcpbox CLI entrypoint."""

from __future__ import annotations

import click

from mcpbox import __version__


@click.group()
@click.version_option(version=__version__, prog_name="mcpbox")
def main() -> None:
    """mcpbox — sandboxed tools over stdio JSON-RPC."""


# Register subcommands
from mcpbox.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
