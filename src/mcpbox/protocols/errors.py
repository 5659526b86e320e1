"""Shared error types for the protocol layer."""

from __future__ import annotations

from typing import Any


class ProtocolError(Exception):
    """Base error for all protocol-layer failures."""


class ConnectionError(ProtocolError):
    """Failed to launch or connect to the tool server."""


class TransportError(ProtocolError):
    """The byte stream between client and server failed."""


class TransportClosedError(TransportError):
    """The transport closed (or the server exited) before a response arrived."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Transport closed" + (f": {detail}" if detail else ""))


class FrameDecodeError(TransportError):
    """A framed line could not be decoded as JSON."""

    def __init__(self, line: str, detail: str = "") -> None:
        self.line = line
        self.detail = detail
        super().__init__("Parse error" + (f": {detail}" if detail else ""))


class RequestTimeoutError(ProtocolError):
    """The caller's deadline expired; the in-flight entry was abandoned."""

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request {method} timed out after {timeout}s")


class RpcError(ProtocolError):
    """The server answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{code} {message}")


class ToolNotFoundError(ProtocolError):
    """Requested tool does not exist in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")
