"""MCPClient — spawns a tool server and multiplexes calls over its stdio.

Every outgoing request gets a fresh id and a future in the in-flight table
*before* it is written.  A single reader task matches responses to futures
by ``str(id)``, so arrival order does not matter.  When the server's stdout
closes, every remaining future is failed with :class:`TransportClosedError`
and the client refuses further calls.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Any, cast
from uuid import uuid4

from pydantic import ValidationError

from mcpbox.config import MCPServerRef
from mcpbox.protocols.errors import (
    ConnectionError,
    RequestTimeoutError,
    RpcError,
    TransportClosedError,
    TransportError,
)
from mcpbox.protocols.mcp.models import JsonRpcRequest, JsonRpcResponse, MCPToolDef
from mcpbox.protocols.mcp.transport import MCPTransport, StdioTransport
from mcpbox.utils.telemetry import ATTR_RPC_METHOD, ATTR_TOOL_NAME, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

# How long to wait for the child's exit status once its stdout has closed.
_EXIT_GRACE = 5.0


class ClientState(str, Enum):
    OPEN = "open"
    ACTIVE = "active"
    DISPOSED = "disposed"


class MCPClient:
    """Async context manager that owns one tool-server child process.

    Usage::

        ref = MCPServerRef(sandbox_root=Path("/tmp/box"))
        async with MCPClient(ref) as client:
            tools = await client.list_tools()
            result = await client.call_tool("read_file", {"path": "note.txt"})
    """

    def __init__(self, server_ref: MCPServerRef | None = None) -> None:
        self._ref = server_ref or MCPServerRef()
        self._transport: MCPTransport | None = None
        self._inflight: dict[str, asyncio.Future[JsonRpcResponse]] = {}
        self._reader_task: asyncio.Task[None] | None = None
        self._closed_reason: str | None = None
        self._state = ClientState.OPEN
        self._tools: dict[str, MCPToolDef] = {}

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def pending(self) -> int:
        """Number of requests still waiting for a response."""
        return len(self._inflight)

    @property
    def tools(self) -> dict[str, MCPToolDef]:
        """Descriptors cached by the last :meth:`list_tools` call."""
        return dict(self._tools)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Spawn the server and start the response reader."""
        if self._state is not ClientState.OPEN:
            msg = f"Cannot connect a client in state {self._state.value!r}"
            raise RuntimeError(msg)
        self._transport = self._create_transport()
        try:
            await self._transport.connect()
        except Exception as exc:
            raise ConnectionError(str(exc)) from exc
        self._state = ClientState.ACTIVE
        self._reader_task = asyncio.create_task(self._read_loop(), name=f"mcpbox-client-{self._ref.name}")

    async def close(self) -> None:
        """Stop the server, wait for it to exit, and fail anything still pending."""
        if self._state is ClientState.DISPOSED:
            return
        self._state = ClientState.DISPOSED
        if self._transport is not None:
            await self._transport.close()
        if self._reader_task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._reader_task), timeout=_EXIT_GRACE)
            except TimeoutError:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
        self._fail_pending("client disposed")

    def _create_transport(self) -> MCPTransport:
        return StdioTransport(argv=self._ref.argv(), env=self._ref.child_env())

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        params: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        With *timeout*, the in-flight entry is abandoned when the deadline
        passes; a response arriving later is discarded.

        Raises
        ------
        RpcError
            The server answered with an error object.
        TransportClosedError
            The server is gone, or the client was disposed.
        RequestTimeoutError
            *timeout* elapsed first.
        """
        transport = self._require_transport()
        request_id = uuid4().hex
        request = JsonRpcRequest(method=method, id=request_id, params=params)
        future: asyncio.Future[JsonRpcResponse] = asyncio.get_running_loop().create_future()
        self._inflight[request_id] = future

        with _tracer.start_as_current_span("mcpbox.client.request") as span:
            span.set_attribute(ATTR_RPC_METHOD, method)
            try:
                await transport.send(request.to_wire())
                if timeout is None:
                    response = await future
                else:
                    response = await asyncio.wait_for(future, timeout)
            except TimeoutError:
                raise RequestTimeoutError(method, cast(float, timeout)) from None
            finally:
                self._inflight.pop(request_id, None)

        if response.error is not None:
            raise RpcError(response.error.code, response.error.message, response.error.data)
        return response.result

    async def list_tools(self) -> list[MCPToolDef]:
        """Send ``tools/list`` and return the catalog descriptors."""
        result = await self.request("tools/list")
        raw_tools = _raw_tools(result)
        self._tools = {}
        for raw in raw_tools:
            tool_def = MCPToolDef.model_validate(raw)
            self._tools[tool_def.name] = tool_def
        return list(self._tools.values())

    async def discover_tools(self) -> list[dict[str, Any]]:
        """Send ``tools/list`` and convert results to OpenAI function schemas."""
        result = await self.request("tools/list")
        return to_function_schemas(result)

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send ``tools/call`` for the named tool and return its result."""
        with _tracer.start_as_current_span("mcpbox.client.call_tool") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            return await self.request(
                "tools/call",
                {"name": name, "arguments": arguments or {}},
                timeout=timeout,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_transport(self) -> MCPTransport:
        if self._state is ClientState.DISPOSED:
            raise TransportClosedError("client disposed")
        if self._closed_reason is not None:
            raise TransportClosedError(self._closed_reason)
        if self._transport is None:
            msg = "Client not connected"
            raise RuntimeError(msg)
        return self._transport

    async def _read_loop(self) -> None:
        assert self._transport is not None
        transport = self._transport
        reason = "client disposed"
        try:
            while True:
                self._handle_message(await transport.receive())
        except TransportError:
            code: int | None = None
            with contextlib.suppress(TimeoutError):
                code = await asyncio.wait_for(transport.wait(), timeout=_EXIT_GRACE)
            reason = f"MCP server exited (code={code})"
            if self._state is ClientState.ACTIVE:
                logger.warning("%s with %d request(s) pending", reason, len(self._inflight))
        except Exception as exc:
            reason = f"reader failed: {exc!r}"
            logger.exception("MCP client reader for %s failed", self._ref.name)
        finally:
            self._fail_pending(reason)

    def _handle_message(self, message: Any) -> None:
        if not isinstance(message, dict):
            logger.debug("discarding non-object message: %r", message)
            return
        raw_id = message.get("id")
        future = self._inflight.pop(str(raw_id), None) if raw_id is not None else None
        if future is None:
            logger.debug("discarding response with unmatched id %r", raw_id)
            return
        if future.done():
            return
        try:
            future.set_result(JsonRpcResponse.model_validate(message))
        except ValidationError as exc:
            future.set_exception(TransportError(f"Malformed response: {exc}"))

    def _fail_pending(self, reason: str) -> None:
        if self._closed_reason is None:
            self._closed_reason = reason
        pending, self._inflight = self._inflight, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(TransportClosedError(reason))


def _raw_tools(result: Any) -> list[dict[str, Any]]:
    if not isinstance(result, dict):
        return []
    tools = cast("dict[str, Any]", result).get("tools")
    if not isinstance(tools, list):
        return []
    return [t for t in cast("list[Any]", tools) if isinstance(t, dict)]


def to_function_schemas(list_result: Any) -> list[dict[str, Any]]:
    """Map a ``tools/list`` result to OpenAI-compatible function schemas.

    Entries without a name are dropped; a missing ``input_schema`` becomes a
    permissive object schema.
    """
    schemas: list[dict[str, Any]] = []
    for raw in _raw_tools(list_result):
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        description = raw.get("description")
        parameters = raw.get("input_schema", raw.get("inputSchema"))
        if not isinstance(parameters, dict):
            parameters = {"type": "object", "properties": {}, "additionalProperties": True}
        function: dict[str, Any] = {"name": name, "parameters": parameters}
        if isinstance(description, str):
            function["description"] = description
        schemas.append({"type": "function", "function": function})
    return schemas
