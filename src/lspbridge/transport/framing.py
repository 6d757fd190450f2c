"""LSP base protocol framing.

Every message on the wire is a header block followed by a JSON body::

    Content-Length: <length>\\r\\n
    [Content-Type: application/vscode-jsonrpc; charset=utf-8]\\r\\n
    \\r\\n
    <json-rpc-message>

Content-Length counts bytes of the UTF-8 encoded body.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from lspbridge.errors import LspBridgeError

HEADER_ENCODING = "ascii"
CONTENT_ENCODING = "utf-8"
CRLF = b"\r\n"
DEFAULT_MAX_MESSAGE_SIZE = 16 * 1024 * 1024


class LSPFramingError(LspBridgeError):
    """Malformed header block or body.

    Raised when:
    - Content-Length header is missing, not an integer, or negative
    - A header line has no colon
    - Content-Type names a charset other than utf-8
    - The body is not a UTF-8 JSON object
    """


def parse_header(header_bytes: bytes) -> dict[str, str]:
    """Parse a header block (without the terminating blank line).

    Header names are matched case-insensitively and returned in their
    canonical ``Content-Length`` / ``Content-Type`` spelling.

    Example:
        >>> parse_header(b"Content-Length: 42\\r\\nContent-Type: application/json")
        {'Content-Length': '42', 'Content-Type': 'application/json'}
    """
    if not header_bytes:
        raise LSPFramingError("Empty header block")

    try:
        header_text = header_bytes.decode(HEADER_ENCODING)
    except UnicodeDecodeError as e:
        raise LSPFramingError(f"Header contains non-ASCII characters: {e}") from e

    headers: dict[str, str] = {}
    for line in header_text.split("\r\n"):
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise LSPFramingError(f"Malformed header line (no colon): {line!r}")
        name = name.strip()
        if not name:
            raise LSPFramingError(f"Empty header name in line: {line!r}")
        headers["-".join(part.capitalize() for part in name.split("-"))] = value.strip()

    _content_length(headers)

    content_type = headers.get("Content-Type", "")
    for param in content_type.split(";")[1:]:
        key, _, charset = param.strip().partition("=")
        if key.lower() == "charset" and charset.lower().replace("utf8", "utf-8") != "utf-8":
            raise LSPFramingError(f"Unsupported charset: {charset!r}")

    return headers


def _content_length(headers: dict[str, str]) -> int:
    if "Content-Length" not in headers:
        raise LSPFramingError("Missing required Content-Length header")
    try:
        length = int(headers["Content-Length"])
    except ValueError as e:
        raise LSPFramingError(
            f"Invalid Content-Length value: {headers['Content-Length']!r}"
        ) from e
    if length < 0:
        raise LSPFramingError(f"Negative Content-Length: {length}")
    return length


def encode_message(msg: dict[str, Any]) -> bytes:
    """Serialize a JSON-RPC payload into a framed byte string."""
    try:
        body = json.dumps(msg, separators=(",", ":"), ensure_ascii=False).encode(
            CONTENT_ENCODING
        )
    except (TypeError, ValueError) as e:
        raise LSPFramingError(f"Message cannot be serialized to JSON: {e}") from e
    header = f"Content-Length: {len(body)}\r\n\r\n".encode(HEADER_ENCODING)
    return header + body


async def read_message(
    reader: asyncio.StreamReader,
    *,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
) -> dict[str, Any] | None:
    """Read one framed message from ``reader``.

    Returns:
        The decoded JSON object, or None on a clean EOF between messages.

    Raises:
        LSPFramingError: On truncated input or an invalid header/body.
    """
    header_bytes = b""
    while True:
        try:
            line = await reader.readuntil(CRLF)
        except asyncio.IncompleteReadError as e:
            if not header_bytes and not e.partial:
                return None
            raise LSPFramingError("Unexpected EOF while reading headers") from e
        except asyncio.LimitOverrunError as e:
            raise LSPFramingError(f"Header line too long: {e}") from e

        if line == CRLF:
            break
        header_bytes += line

    headers = parse_header(header_bytes.removesuffix(CRLF))
    content_length = _content_length(headers)
    if content_length > max_message_size:
        raise LSPFramingError(f"Message size {content_length} exceeds maximum {max_message_size}")

    try:
        body_bytes = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError as e:
        raise LSPFramingError(
            f"Incomplete message body: expected {content_length} bytes, got {len(e.partial)}"
        ) from e

    try:
        message = json.loads(body_bytes.decode(CONTENT_ENCODING))
    except UnicodeDecodeError as e:
        raise LSPFramingError(f"Invalid UTF-8 in message body: {e}") from e
    except json.JSONDecodeError as e:
        raise LSPFramingError(f"Invalid JSON in message body: {e}") from e

    if not isinstance(message, dict):
        raise LSPFramingError(f"JSON-RPC message must be an object, got {type(message).__name__}")
    return message


async def write_message(
    writer: asyncio.StreamWriter,
    msg: dict[str, Any],
    *,
    drain: bool = True,
) -> None:
    """Write one framed message; header and body go out in a single write."""
    writer.write(encode_message(msg))
    if drain:
        await writer.drain()
