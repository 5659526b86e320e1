"""Newline-delimited JSON framing over a byte stream.

One JSON value per line, UTF-8, terminated by ``\\n``; a trailing ``\\r`` is
tolerated.  :class:`LineFramer` is fed arbitrary chunks and hands back only
complete lines, so a message split across reads, or several messages in one
read, both come out whole.
"""

from __future__ import annotations

import json
from typing import Any

from mcpbox.protocols.errors import FrameDecodeError


class LineFramer:
    """Accumulates bytes and yields complete, non-blank lines."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        """Append *chunk* and return every line it completed."""
        self._buffer.extend(chunk)
        lines: list[str] = []
        while True:
            idx = self._buffer.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._buffer[:idx])
            del self._buffer[: idx + 1]
            line = raw.decode("utf-8", errors="replace").rstrip("\r")
            if line.strip():
                lines.append(line)
        return lines

    def flush(self) -> list[str]:
        """Return any unterminated trailing line (used at end of stream)."""
        if not self._buffer:
            return []
        raw = bytes(self._buffer)
        self._buffer.clear()
        line = raw.decode("utf-8", errors="replace").rstrip("\r")
        return [line] if line.strip() else []


def decode_line(line: str) -> Any:
    """Parse one framed line.

    Raises
    ------
    FrameDecodeError
        If the line is not valid JSON.
    """
    try:
        return json.loads(line)
    except ValueError as exc:
        raise FrameDecodeError(line, str(exc)) from exc
    except RecursionError as exc:
        raise FrameDecodeError(line, "nesting too deep") from exc


def encode_message(message: Any) -> bytes:
    """Serialize *message* as a single framed line."""
    return (json.dumps(message, separators=(",", ":"), ensure_ascii=False) + "\n").encode("utf-8")
