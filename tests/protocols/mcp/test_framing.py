"""Tests for newline-delimited JSON framing."""

from __future__ import annotations

import json

import pytest

from mcpbox.protocols.errors import FrameDecodeError, TransportError
from mcpbox.protocols.mcp.framing import LineFramer, decode_line, encode_message


class TestLineFramer:
    def test_single_complete_line(self) -> None:
        framer = LineFramer()
        assert framer.feed(b'{"a":1}\n') == ['{"a":1}']
        assert framer.pending == 0

    def test_message_split_across_chunks(self) -> None:
        framer = LineFramer()
        assert framer.feed(b'{"jsonrpc":"2.0",') == []
        assert framer.pending > 0
        assert framer.feed(b'"id":"1"}') == []
        assert framer.feed(b"\n") == ['{"jsonrpc":"2.0","id":"1"}']

    def test_multiple_messages_in_one_chunk(self) -> None:
        framer = LineFramer()
        lines = framer.feed(b'{"a":1}\n{"b":2}\n{"c"')
        assert lines == ['{"a":1}', '{"b":2}']
        assert framer.feed(b":3}\n") == ['{"c":3}']

    def test_crlf_is_stripped(self) -> None:
        assert LineFramer().feed(b'{"a":1}\r\n') == ['{"a":1}']

    def test_blank_lines_are_dropped(self) -> None:
        assert LineFramer().feed(b"\n   \n\r\n\t\n") == []

    def test_multibyte_character_split_across_chunks(self) -> None:
        encoded = '{"data":"héllo"}\n'.encode()
        split = encoded.index("é".encode()) + 1
        framer = LineFramer()
        assert framer.feed(encoded[:split]) == []
        assert framer.feed(encoded[split:]) == ['{"data":"héllo"}']

    def test_flush_returns_unterminated_tail(self) -> None:
        framer = LineFramer()
        framer.feed(b'{"a":1}')
        assert framer.flush() == ['{"a":1}']
        assert framer.flush() == []

    def test_flush_drops_blank_tail(self) -> None:
        framer = LineFramer()
        framer.feed(b"   ")
        assert framer.flush() == []


class TestDecodeLine:
    def test_valid_json(self) -> None:
        assert decode_line('{"x": [1, 2]}') == {"x": [1, 2]}

    def test_invalid_json_raises_frame_error(self) -> None:
        with pytest.raises(FrameDecodeError) as exc_info:
            decode_line("{not json")
        assert exc_info.value.line == "{not json"
        assert isinstance(exc_info.value, TransportError)

    def test_deeply_nested_json_raises_frame_error(self) -> None:
        with pytest.raises(FrameDecodeError, match="nesting too deep"):
            decode_line("[" * 200_000)


class TestEncodeMessage:
    def test_single_terminated_line(self) -> None:
        encoded = encode_message({"text": "line one\nline two"})
        assert encoded.endswith(b"\n")
        assert encoded.count(b"\n") == 1
        assert json.loads(encoded) == {"text": "line one\nline two"}

    def test_feeds_back_through_framer(self) -> None:
        framer = LineFramer()
        lines = framer.feed(encode_message({"a": "ü"}) + encode_message([1, 2]))
        assert [decode_line(line) for line in lines] == [{"a": "ü"}, [1, 2]]
