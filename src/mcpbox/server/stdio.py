"""Run :class:`MCPServer` on the process's own stdin/stdout."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from mcpbox.config import ServerConfig
from mcpbox.server.loop import MCPServer

logger = logging.getLogger(__name__)


async def open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    w_transport, w_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(w_transport, w_protocol, reader, loop)
    return reader, writer


async def run_stdio_server(config: ServerConfig) -> None:
    """Serve until stdin closes or SIGINT/SIGTERM arrives."""
    server = MCPServer.from_config(config)
    reader, writer = await open_stdio()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unavailable on Windows event loops.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, lambda s=sig: _request_shutdown(server, s))

    server.start(reader, writer)
    logger.info("sandbox root: %s", server.sandbox_root)
    sys.stderr.write("ready\n")
    sys.stderr.flush()
    await server.wait_closed()
    logger.info("server closed")
    writer.close()


_shutdown_tasks: set[asyncio.Task[None]] = set()


def _request_shutdown(server: MCPServer, sig: signal.Signals) -> None:
    logger.info("shutting down (%s)", sig.name)
    task = asyncio.ensure_future(server.close())
    _shutdown_tasks.add(task)
    task.add_done_callback(_shutdown_tasks.discard)
