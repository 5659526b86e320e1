"""MCP transports — the stdio communication layer.

A transport satisfies the :class:`MCPTransport` protocol, providing
``connect``, ``send``, ``receive``, and ``close`` methods.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from typing import Any, Protocol, runtime_checkable

from mcpbox.protocols.errors import FrameDecodeError, TransportClosedError
from mcpbox.protocols.mcp.framing import LineFramer, decode_line, encode_message

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class MCPTransport(Protocol):
    """Abstract transport for MCP JSON-RPC communication."""

    async def connect(self) -> None: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def receive(self) -> Any: ...
    async def wait(self) -> int | None: ...
    async def close(self) -> None: ...


class StdioTransport:
    """Communicates with a tool server via subprocess stdin/stdout.

    Sends and receives newline-delimited JSON.  The child's stderr is
    inherited so server diagnostics reach the caller's terminal.
    """

    def __init__(self, argv: list[str], env: dict[str, str] | None = None) -> None:
        self._argv = argv
        self._env = env
        self._process: asyncio.subprocess.Process | None = None
        self._framer = LineFramer()
        self._lines: deque[str] = deque()
        self._closed = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    async def connect(self) -> None:
        """Launch the subprocess."""
        self._process = await asyncio.create_subprocess_exec(
            *self._argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=None,
            env=self._env,
        )
        logger.debug("spawned %s (pid=%s)", self._argv[0], self._process.pid)

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._closed:
            raise TransportClosedError("transport closed")
        if self._process is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        return self._process

    async def send(self, data: dict[str, Any]) -> None:
        """Write a JSON line to stdin."""
        process = self._require_process()
        if process.stdin is None or process.stdin.is_closing():
            raise TransportClosedError("server stdin closed")
        try:
            process.stdin.write(encode_message(data))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise TransportClosedError(str(exc)) from exc

    async def receive(self) -> Any:
        """Return the next decodable JSON message from stdout.

        Lines that are not valid JSON are logged and skipped.

        Raises
        ------
        TransportClosedError
            When stdout reaches end-of-file.
        """
        process = self._require_process()
        assert process.stdout is not None
        while True:
            while self._lines:
                line = self._lines.popleft()
                try:
                    return decode_line(line)
                except FrameDecodeError as exc:
                    logger.debug("ignoring undecodable line from server: %s", exc.detail)
            try:
                chunk = await process.stdout.read(_CHUNK_SIZE)
            except OSError as exc:
                raise TransportClosedError(str(exc)) from exc
            if not chunk:
                self._lines.extend(self._framer.flush())
                if not self._lines:
                    raise TransportClosedError("server closed stdout")
                continue
            self._lines.extend(self._framer.feed(chunk))

    async def wait(self) -> int | None:
        """Wait for the subprocess to exit and return its exit code."""
        if self._process is None:
            return None
        return await self._process.wait()

    def kill(self) -> None:
        """Forcefully kill the subprocess."""
        if self._process is not None and self._process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()

    async def close(self) -> None:
        """Close stdin, terminate the subprocess and wait for it to exit."""
        if self._closed:
            return
        self._closed = True
        process = self._process
        if process is None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
        await process.wait()
