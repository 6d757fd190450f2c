"""Transport binding: server process supervision and the JSON-RPC channel."""

from lspbridge.transport.channel import Channel, ExitStatus
from lspbridge.transport.framing import (
    LSPFramingError,
    encode_message,
    parse_header,
    read_message,
    write_message,
)
from lspbridge.transport.messages import JsonRpcMessage
from lspbridge.transport.process import ServerProcess, spawn

__all__ = [
    "Channel",
    "ExitStatus",
    "JsonRpcMessage",
    "LSPFramingError",
    "ServerProcess",
    "encode_message",
    "parse_header",
    "read_message",
    "spawn",
    "write_message",
]
