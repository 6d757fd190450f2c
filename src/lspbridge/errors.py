"""Exception types raised by lspbridge."""

from __future__ import annotations

from enum import Enum
from typing import Any


class LspBridgeError(Exception):
    """Base class for all lspbridge errors."""


class SpawnErrorKind(Enum):
    """Why the server process could not be created."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


class SpawnError(LspBridgeError):
    """The server executable could not be started.

    Raised when:
    - The executable does not exist (``NOT_FOUND``)
    - The executable exists but cannot be executed (``PERMISSION_DENIED``)
    - The operating system refused to create the process (``OTHER``)
    """

    def __init__(self, kind: SpawnErrorKind, executable: str, detail: str = "") -> None:
        self.kind = kind
        self.executable = executable
        self.detail = detail
        message = f"Cannot start language server {executable!r}: {kind.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class HandshakeError(LspBridgeError):
    """The initialize exchange failed or timed out."""


class ShutdownTimeout(LspBridgeError):
    """The server did not exit within the bounded wait.

    Recovered internally by forced termination; only logged.
    """


class SessionStateError(LspBridgeError):
    """An illegal session state transition was attempted."""


class SessionError(LspBridgeError):
    """A session operation was issued at the wrong time."""


class ChannelClosedError(LspBridgeError):
    """The channel closed while a message was being sent or awaited."""


class ResponseError(LspBridgeError):
    """The server answered a request with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"[{code}] {message}")
