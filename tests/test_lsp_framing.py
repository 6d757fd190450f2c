"""Tests for LSP message framing."""

from __future__ import annotations

import asyncio
import json

import pytest

from lspbridge.transport.framing import (
    LSPFramingError,
    encode_message,
    parse_header,
    read_message,
    write_message,
)


def _frame(body: bytes, extra_headers: str = "") -> bytes:
    return f"Content-Length: {len(body)}\r\n{extra_headers}\r\n".encode() + body


class _CaptureTransport(asyncio.Transport):
    """Transport that records everything written to it."""

    def __init__(self) -> None:
        super().__init__()
        self.data = bytearray()

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    def is_closing(self) -> bool:
        return False

    def close(self) -> None:
        pass


@pytest.fixture
def make_reader():
    """Create a StreamReader preloaded with test data."""

    def _make_reader(data: bytes) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    return _make_reader


@pytest.fixture
async def capture_writer():
    """A StreamWriter whose output lands in ``writer.transport.data``."""
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    transport = _CaptureTransport()
    return asyncio.StreamWriter(transport, protocol, reader, asyncio.get_running_loop())


class TestParseHeader:
    """Tests for parse_header function."""

    def test_basic_content_length(self) -> None:
        assert parse_header(b"Content-Length: 42") == {"Content-Length": "42"}

    def test_content_length_with_content_type(self) -> None:
        header = b"Content-Length: 100\r\nContent-Type: application/vscode-jsonrpc; charset=utf-8"
        assert parse_header(header) == {
            "Content-Length": "100",
            "Content-Type": "application/vscode-jsonrpc; charset=utf-8",
        }

    def test_header_names_are_case_insensitive(self) -> None:
        """Lowercase header names are normalized."""
        assert parse_header(b"content-length: 7") == {"Content-Length": "7"}

    def test_whitespace_handling(self) -> None:
        assert parse_header(b"Content-Length:   42  ")["Content-Length"] == "42"

    def test_missing_content_length_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="Missing required Content-Length"):
            parse_header(b"Content-Type: application/json")

    def test_empty_header_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="Empty header block"):
            parse_header(b"")

    def test_invalid_content_length_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="Invalid Content-Length"):
            parse_header(b"Content-Length: abc")

    def test_negative_content_length_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="Negative Content-Length"):
            parse_header(b"Content-Length: -5")

    def test_malformed_header_line_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="no colon"):
            parse_header(b"Content-Length 42")

    def test_non_utf8_charset_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="Unsupported charset"):
            parse_header(b"Content-Length: 1\r\nContent-Type: application/json; charset=latin-1")

    def test_utf8_charset_spelling_accepted(self) -> None:
        """The legacy 'utf8' spelling is tolerated."""
        headers = parse_header(b"Content-Length: 1\r\nContent-Type: a/b; charset=utf8")
        assert headers["Content-Length"] == "1"


class TestReadMessage:
    """Tests for read_message function."""

    async def test_read_simple_message(self, make_reader) -> None:
        reader = make_reader(_frame(b'{"jsonrpc":"2.0","id":1,"method":"test"}'))

        assert await read_message(reader) == {"jsonrpc": "2.0", "id": 1, "method": "test"}

    async def test_read_returns_none_on_eof(self, make_reader) -> None:
        """EOF at message boundary returns None."""
        assert await read_message(make_reader(b"")) is None

    async def test_read_multiple_messages(self, make_reader) -> None:
        reader = make_reader(
            _frame(b'{"jsonrpc":"2.0","id":1,"method":"foo"}')
            + _frame(b'{"jsonrpc":"2.0","id":2,"method":"bar"}')
        )

        first = await read_message(reader)
        second = await read_message(reader)

        assert first["method"] == "foo"
        assert second["method"] == "bar"
        assert await read_message(reader) is None

    async def test_read_with_content_type_header(self, make_reader) -> None:
        body = b'{"jsonrpc":"2.0","id":1}'
        reader = make_reader(
            _frame(body, "Content-Type: application/vscode-jsonrpc; charset=utf-8\r\n")
        )

        assert await read_message(reader) == {"jsonrpc": "2.0", "id": 1}

    async def test_read_unicode_content(self, make_reader) -> None:
        """Content-Length counts bytes, not characters."""
        body = '{"message":"Hello, 世界!"}'.encode("utf-8")
        reader = make_reader(_frame(body))

        assert await read_message(reader) == {"message": "Hello, 世界!"}

    async def test_eof_inside_headers_raises(self, make_reader) -> None:
        with pytest.raises(LSPFramingError, match="Unexpected EOF"):
            await read_message(make_reader(b"Content-Length: 10"))

    async def test_read_incomplete_body_raises(self, make_reader) -> None:
        reader = make_reader(b'Content-Length: 100\r\n\r\n{"partial":')

        with pytest.raises(LSPFramingError, match="Incomplete message body"):
            await read_message(reader)

    async def test_read_invalid_json_raises(self, make_reader) -> None:
        with pytest.raises(LSPFramingError, match="Invalid JSON"):
            await read_message(make_reader(_frame(b"not valid json")))

    async def test_read_non_object_json_raises(self, make_reader) -> None:
        with pytest.raises(LSPFramingError, match="must be an object"):
            await read_message(make_reader(_frame(b"[1, 2, 3]")))

    async def test_read_message_size_limit(self, make_reader) -> None:
        with pytest.raises(LSPFramingError, match="exceeds maximum"):
            await read_message(make_reader(_frame(b'{"data":"x"}')), max_message_size=5)


class TestWriteMessage:
    """Tests for write_message and encode_message."""

    async def test_write_produces_header_and_body(self, capture_writer) -> None:
        msg = {"jsonrpc": "2.0", "id": 1, "result": {"success": True}}

        await write_message(capture_writer, msg, drain=False)

        data = bytes(capture_writer.transport.data)
        header, _, body = data.partition(b"\r\n\r\n")
        assert header == f"Content-Length: {len(body)}".encode()
        assert json.loads(body.decode("utf-8")) == msg

    def test_encode_counts_utf8_bytes(self) -> None:
        data = encode_message({"message": "世界"})

        header, _, body = data.partition(b"\r\n\r\n")
        assert int(header.split(b":")[1]) == len(body)
        assert len(body) > len('{"message":"xx"}')

    def test_encode_non_serializable_raises(self) -> None:
        with pytest.raises(LSPFramingError, match="cannot be serialized"):
            encode_message({"callback": lambda x: x})

    async def test_written_message_reads_back(self, capture_writer, make_reader) -> None:
        original = {
            "jsonrpc": "2.0",
            "method": "textDocument/didOpen",
            "params": {
                "textDocument": {
                    "uri": "file:///index.html",
                    "languageId": "html",
                    "version": 1,
                    "text": "<p>hi</p>",
                }
            },
        }

        await write_message(capture_writer, original, drain=False)

        assert await read_message(make_reader(bytes(capture_writer.transport.data))) == original
