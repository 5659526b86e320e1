"""Tests for the stdio transport with a mocked subprocess."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mcpbox.protocols.errors import TransportClosedError
from mcpbox.protocols.mcp.transport import MCPTransport, StdioTransport


def _mock_process(chunks: list[bytes] | None = None) -> MagicMock:
    proc = MagicMock()
    proc.pid = 4242
    proc.returncode = None
    proc.stdin = MagicMock()
    proc.stdin.is_closing = MagicMock(return_value=False)
    proc.stdin.drain = AsyncMock()
    proc.stdout = MagicMock()
    proc.stdout.read = AsyncMock(side_effect=chunks or [b""])
    proc.wait = AsyncMock(return_value=0)
    return proc


class TestMCPTransportProtocol:
    def test_stdio_satisfies_protocol(self) -> None:
        assert isinstance(StdioTransport(argv=["echo"]), MCPTransport)


class TestStdioTransport:
    async def test_connect_launches_subprocess_with_pipes(self) -> None:
        proc = _mock_process()
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as mock_exec:
            transport = StdioTransport(argv=["tool", "serve"], env={"A": "1"})
            await transport.connect()

        args, kwargs = mock_exec.call_args
        assert args == ("tool", "serve")
        assert kwargs["stdin"] == asyncio.subprocess.PIPE
        assert kwargs["stdout"] == asyncio.subprocess.PIPE
        assert kwargs["stderr"] is None
        assert kwargs["env"] == {"A": "1"}
        assert transport.pid == 4242

    async def test_send_writes_json_line(self) -> None:
        proc = _mock_process()
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        data = {"jsonrpc": "2.0", "id": "1", "method": "tools/list"}
        await transport.send(data)

        written = proc.stdin.write.call_args[0][0]
        assert written.endswith(b"\n")
        assert json.loads(written.decode()) == data
        proc.stdin.drain.assert_awaited_once()

    async def test_send_broken_pipe_raises_closed(self) -> None:
        proc = _mock_process()
        proc.stdin.drain = AsyncMock(side_effect=BrokenPipeError("gone"))
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        with pytest.raises(TransportClosedError):
            await transport.send({"x": 1})

    async def test_receive_splits_chunks_into_messages(self) -> None:
        proc = _mock_process([b'{"id":"1"}\n{"id"', b':"2"}\n', b""])
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        assert await transport.receive() == {"id": "1"}
        assert await transport.receive() == {"id": "2"}
        with pytest.raises(TransportClosedError):
            await transport.receive()

    async def test_receive_skips_undecodable_lines(self) -> None:
        proc = _mock_process([b"noise from server\n", b'{"id":"ok"}\n', b""])
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        assert await transport.receive() == {"id": "ok"}

    async def test_receive_returns_unterminated_tail_at_eof(self) -> None:
        proc = _mock_process([b'{"id":"tail"}', b""])
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        assert await transport.receive() == {"id": "tail"}

    async def test_receive_empty_raises(self) -> None:
        transport = StdioTransport(argv=["echo"])
        transport._process = _mock_process([b""])

        with pytest.raises(TransportClosedError, match="closed"):
            await transport.receive()

    async def test_send_without_connect_raises(self) -> None:
        transport = StdioTransport(argv=["echo"])
        with pytest.raises(RuntimeError, match="not connected"):
            await transport.send({"test": True})

    async def test_close_terminates_and_waits(self) -> None:
        proc = _mock_process()
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        await transport.close()

        proc.stdin.close.assert_called_once()
        proc.terminate.assert_called_once()
        proc.wait.assert_awaited()

    async def test_close_skips_terminate_when_already_exited(self) -> None:
        proc = _mock_process()
        proc.returncode = 0
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        await transport.close()
        proc.terminate.assert_not_called()

    async def test_send_after_close_raises_closed(self) -> None:
        transport = StdioTransport(argv=["echo"])
        transport._process = _mock_process()
        await transport.close()

        with pytest.raises(TransportClosedError):
            await transport.send({"x": 1})

    async def test_kill(self) -> None:
        proc = _mock_process()
        transport = StdioTransport(argv=["echo"])
        transport._process = proc

        transport.kill()
        proc.kill.assert_called_once()
