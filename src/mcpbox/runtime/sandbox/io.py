"""Filesystem and HTTP primitives used by the tool handlers.

These operate on already-resolved absolute paths and already-validated
URLs; confinement is the caller's job.  Blocking file calls are pushed to a
worker thread so the event loop keeps reading the transport.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import httpx

from mcpbox.runtime.errors import ToolExecutionError

DEFAULT_HTTP_TIMEOUT = 30.0


async def write_file_direct(path: Path, data: str) -> int:
    """Write *data* as UTF-8, creating or truncating the file.  Returns bytes written."""
    payload = data.encode("utf-8")
    await asyncio.to_thread(path.write_bytes, payload)
    return len(payload)


async def read_file_direct(path: Path) -> bytes:
    return await asyncio.to_thread(path.read_bytes)


async def remove_file_direct(path: Path) -> None:
    """Delete *path*; a missing file is not an error."""
    await asyncio.to_thread(path.unlink, missing_ok=True)


async def _get(url: str, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
        response = await client.get(url)
    if not response.is_success:
        raise ToolExecutionError("http_get", f"GET {url} -> {response.status_code}")
    return response


async def http_get_json(url: str, *, timeout: float = DEFAULT_HTTP_TIMEOUT) -> Any:
    """GET *url* and parse the body as JSON.

    Raises
    ------
    ToolExecutionError
        On a non-2xx status or a body that is not valid JSON.
    httpx.HTTPError
        On connection-level failures.
    """
    response = await _get(url, timeout)
    try:
        return response.json()
    except ValueError as exc:
        raise ToolExecutionError("http_get_json", f"GET {url} returned invalid JSON: {exc}") from exc


async def http_get_bytes(url: str, *, timeout: float = DEFAULT_HTTP_TIMEOUT) -> bytes:
    """GET *url* and return the raw body."""
    response = await _get(url, timeout)
    return response.content
