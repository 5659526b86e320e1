"""Shared fixtures: sandbox directories and a local HTTP endpoint."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import pytest

from mcpbox.server.catalog import ToolContext


class _EndpointHandler(BaseHTTPRequestHandler):
    """Serves the fixed routes the HTTP tool tests hit."""

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path == "/json":
            self._reply(200, json.dumps({"ok": True}).encode(), "application/json")
        elif parsed.path == "/blob":
            self._reply(200, bytes([1, 2, 3, 4]), "application/octet-stream")
        elif parsed.path == "/text":
            self._reply(200, b"definitely not json", "text/plain")
        elif parsed.path == "/slow":
            seconds = float(parse_qs(parsed.query).get("seconds", ["0.3"])[0])
            time.sleep(seconds)
            self._reply(200, json.dumps({"slow": True}).encode(), "application/json")
        else:
            self._reply(404, b"", "text/plain")

    def _reply(self, status: int, body: bytes, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass


@pytest.fixture
def http_base() -> Iterator[str]:
    """Base URL of a throwaway HTTP server on 127.0.0.1."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _EndpointHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def sandbox(tmp_path: Path) -> Path:
    root = tmp_path / "sandbox"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def ctx(sandbox: Path) -> ToolContext:
    return ToolContext(sandbox_root=sandbox)
