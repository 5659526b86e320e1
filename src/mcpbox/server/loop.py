"""MCPServer — the JSON-RPC dispatch loop behind the stdio transport.

A reader task turns incoming chunks into framed lines and queues them; one
worker task drains the queue, so request N+1 is not dispatched until the
response to request N has been written.  Responses therefore leave in
arrival order without any reordering logic.

Usage::

    server = MCPServer.from_config(ServerConfig.from_env())
    await server.serve(reader, writer)   # returns once input ends
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from mcpbox.config import ServerConfig
from mcpbox.protocols.errors import FrameDecodeError
from mcpbox.protocols.mcp.framing import LineFramer, decode_line, encode_message
from mcpbox.protocols.mcp.models import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    SERVER_ERROR,
    JsonRpcId,
    JsonRpcResponse,
    is_valid_id,
)
from mcpbox.runtime.errors import SandboxError, ToolInputError
from mcpbox.runtime.sandbox.resolver import ensure_sandbox_root
from mcpbox.server.catalog import ToolContext, execute_tool, is_tool_name, list_tools, validate
from mcpbox.utils.telemetry import (
    ATTR_RPC_ERROR_CODE,
    ATTR_RPC_ID,
    ATTR_RPC_METHOD,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_CHUNK_SIZE = 64 * 1024
_STOP = object()


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ByteWriter(Protocol):
    def write(self, data: bytes) -> None: ...
    async def drain(self) -> None: ...


class MCPServer:
    """Serves the tool catalog over one framed byte stream.

    Lifecycle: ``start()`` spawns the reader and worker tasks; the server is
    closed once input ends (or ``close()`` is called) and the request that was
    being dispatched at that moment has been answered.
    """

    def __init__(self, context: ToolContext) -> None:
        self._context = context
        self._framer = LineFramer()
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._writer: ByteWriter | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._worker_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(cls, config: ServerConfig) -> MCPServer:
        """Create the sandbox root if needed and build a server around it."""
        root = ensure_sandbox_root(config.sandbox_root)
        return cls(ToolContext(sandbox_root=root, http_timeout=config.http_timeout))

    @property
    def sandbox_root(self) -> Path:
        return self._context.sandbox_root

    @property
    def closed(self) -> bool:
        return self._worker_task is not None and self._worker_task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, reader: ByteReader, writer: ByteWriter) -> None:
        """Begin reading requests from *reader* and answering on *writer*."""
        if self._worker_task is not None:
            msg = "Server already started"
            raise RuntimeError(msg)
        self._writer = writer
        self._reader_task = asyncio.create_task(self._read_loop(reader), name="mcpbox-reader")
        self._worker_task = asyncio.create_task(self._work_loop(), name="mcpbox-worker")

    async def wait_closed(self) -> None:
        """Block until input has ended and queued work is answered."""
        tasks = [t for t in (self._reader_task, self._worker_task) if t is not None]
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for task, result in zip(tasks, results):
            if isinstance(result, Exception):
                logger.error("%s failed: %r", task.get_name(), result)

    async def close(self) -> None:
        """Stop accepting lines and wait for in-progress work to finish."""
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            # A reader cancelled before its first step never reaches its finally.
            self._queue.put_nowait(_STOP)
        await self.wait_closed()

    async def serve(self, reader: ByteReader, writer: ByteWriter) -> None:
        self.start(reader, writer)
        await self.wait_closed()

    async def _read_loop(self, reader: ByteReader) -> None:
        try:
            while True:
                chunk = await reader.read(_CHUNK_SIZE)
                if not chunk:
                    break
                for line in self._framer.feed(chunk):
                    self._queue.put_nowait(line)
            for line in self._framer.flush():
                self._queue.put_nowait(line)
        except OSError as exc:
            logger.warning("transport read failed: %s", exc)
        finally:
            self._queue.put_nowait(_STOP)

    async def _work_loop(self) -> None:
        try:
            while True:
                item = await self._queue.get()
                if item is _STOP:
                    break
                await self._send(await self._answer(item))
        except OSError as exc:
            logger.warning("transport write failed: %s", exc)
        finally:
            if self._reader_task is not None and not self._reader_task.done():
                self._reader_task.cancel()

    async def _answer(self, line: str) -> JsonRpcResponse:
        try:
            return await self.handle_line(line)
        except Exception:
            logger.exception("unhandled error while dispatching a line")
            return JsonRpcResponse.fail(None, SERVER_ERROR, "Internal error")

    async def _send(self, response: JsonRpcResponse) -> None:
        assert self._writer is not None
        if response.error is not None:
            log = logger.warning if response.error.code == SERVER_ERROR else logger.debug
            log("%s %s", response.error.code, response.error.message)
        self._writer.write(encode_message(response.to_wire()))
        await self._writer.drain()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle_line(self, line: str) -> JsonRpcResponse:
        """Decode one framed line and produce exactly one response."""
        try:
            message = decode_line(line)
        except FrameDecodeError as exc:
            logger.debug("parse error: %s", exc.detail)
            return JsonRpcResponse.fail(None, PARSE_ERROR, "Parse error")
        return await self.dispatch(message)

    async def dispatch(self, message: Any) -> JsonRpcResponse:
        """Route a decoded message to the matching method handler."""
        if not isinstance(message, dict):
            return JsonRpcResponse.fail(None, INVALID_REQUEST, "Invalid request")

        raw_id = message.get("id")
        request_id: JsonRpcId = raw_id if is_valid_id(raw_id) else None
        method = message.get("method")
        if message.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str):
            return JsonRpcResponse.fail(request_id, INVALID_REQUEST, "Invalid request")

        with _tracer.start_as_current_span("mcpbox.server.dispatch") as span:
            span.set_attribute(ATTR_RPC_METHOD, method)
            span.set_attribute(ATTR_RPC_ID, str(request_id))
            if method == "tools/list":
                response = JsonRpcResponse.ok(request_id, {"tools": list_tools()})
            elif method == "tools/call":
                response = await self._handle_tools_call(request_id, message.get("params"))
            else:
                response = JsonRpcResponse.fail(request_id, METHOD_NOT_FOUND, "Method not found")
            if response.error is not None:
                span.set_attribute(ATTR_RPC_ERROR_CODE, response.error.code)
            return response

    async def _handle_tools_call(self, request_id: JsonRpcId, params: Any) -> JsonRpcResponse:
        if not isinstance(params, dict):
            return JsonRpcResponse.fail(request_id, INVALID_PARAMS, "Invalid params")

        name = params.get("name")
        if not isinstance(name, str):
            return JsonRpcResponse.fail(
                request_id, INVALID_PARAMS, "Invalid params", {"reason": "name must be string"}
            )
        if not is_tool_name(name):
            return JsonRpcResponse.fail(request_id, METHOD_NOT_FOUND, "Method not found", {"name": name})

        raw_args = params.get("arguments")
        try:
            args = validate(name, {} if raw_args is None else raw_args)
        except ValidationError as exc:
            issues = json.loads(exc.json(include_url=False))
            return JsonRpcResponse.fail(request_id, INVALID_PARAMS, "Invalid params", {"issues": issues})

        try:
            result = await execute_tool(name, args, self._context)
        except (SandboxError, ToolInputError) as exc:
            return JsonRpcResponse.fail(request_id, INVALID_PARAMS, str(exc), {"name": name})
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            return JsonRpcResponse.fail(request_id, SERVER_ERROR, message, {"name": name})
        return JsonRpcResponse.ok(request_id, result)

